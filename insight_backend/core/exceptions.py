# insight_backend/core/exceptions.py

from typing import Optional


class InsightBackendError(Exception):
    """Base class for every error raised by the insight pipeline."""


class AuthenticationFailure(InsightBackendError):
    """Token acquisition for the tabular query service failed."""


class QueryExecutionError(InsightBackendError):
    """
    The tabular query service rejected or failed a query.
    status_code / body are the raw HTTP response values when one was received.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TransientQueryError(QueryExecutionError):
    """Network or timeout failure talking to the tabular service. Not retried."""


class DatasetAccessError(InsightBackendError):
    """Dataset listing or schema lookup failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class QueryGenerationError(InsightBackendError):
    """No usable query text could be produced for the question."""


class LLMServiceError(InsightBackendError):
    """The chat-completion service call failed."""


class ServiceUnavailable(InsightBackendError):
    """The fallback answer could not be produced either."""


class SchemaFetchWarning(UserWarning):
    """Best-effort schema lookup failed; the pipeline continues without schema."""
