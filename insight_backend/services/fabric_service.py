# insight_backend/services/fabric_service.py
"""
Executes DAX / SQL queries against the Fabric REST API and normalizes the
two response shapes into a single QueryResult. Results are cached by query
fingerprint for QUERY_CACHE_TTL_SECONDS.
"""
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from insight_backend.core.config import Settings
from insight_backend.core.credentials import CredentialProvider
from insight_backend.core.exceptions import (
    DatasetAccessError,
    QueryExecutionError,
    TransientQueryError,
)
from insight_backend.schemas.query import DataQuery, DatasetInfo, Dialect, QueryResult
from insight_backend.services.query_cache import QueryCache, build_cache_key

logger = logging.getLogger(__name__)


class FabricQueryExecutor:
    def __init__(
        self,
        settings: Settings,
        credentials: CredentialProvider,
        cache: QueryCache,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.credentials = credentials
        self.cache = cache
        self.base_url = settings.FABRIC_API_BASE_URL.rstrip("/")
        self.workspace_id = settings.FABRIC_WORKSPACE_ID
        # no client-side timeout on query execution; the tabular service bounds it
        self._client = http_client or httpx.AsyncClient(timeout=None)

        if not self.workspace_id:
            logger.warning("FABRIC_WORKSPACE_ID not configured. Some features may not work.")

    async def execute(self, query: DataQuery) -> QueryResult:
        """
        1) cache lookup  2) token  3) POST to the dialect's endpoint
        4) normalize  5) cache store  6) return with cached=False
        """
        key = build_cache_key(query, self.workspace_id)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("%s query result served from cache", query.dialect.value.upper())
            return cached.model_copy(update={"cached": True}, deep=True)

        if query.dialect == Dialect.DAX and not query.dataset_id:
            raise QueryExecutionError("Dataset ID required for DAX queries")

        started = time.perf_counter()
        token = await self.credentials.get_access_token(self.settings.FABRIC_TOKEN_SCOPE)
        workspace = query.workspace_id or self.workspace_id

        if query.dialect == Dialect.DAX:
            url = f"{self.base_url}/workspaces/{workspace}/datasets/{query.dataset_id}/executeQueries"
            body: Dict[str, Any] = {
                "queries": [{"query": query.text}],
                "serializerSettings": {"includeNulls": True},
            }
        else:
            url = f"{self.base_url}/workspaces/{workspace}/sqlEndpoints/query"
            body = {"query": query.text, "maxRows": self.settings.FABRIC_SQL_MAX_ROWS}
            if query.connection_id:
                body["connectionId"] = query.connection_id

        payload = await self._post(url, token, body)
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        if query.dialect == Dialect.DAX:
            rows, columns = _normalize_dax(payload)
        else:
            rows, columns = _normalize_sql(payload)

        result = QueryResult(
            rows=rows,
            columns=columns,
            row_count=len(rows),
            execution_time_ms=elapsed_ms,
            dialect=query.dialect,
            cached=False,
        )
        # callers own the returned rows; the cache keeps its own copy
        self.cache.set(key, result.model_copy(deep=True), self.settings.QUERY_CACHE_TTL_SECONDS)

        logger.info(
            "%s query executed successfully: %s rows in %sms",
            query.dialect.value.upper(), result.row_count, elapsed_ms,
        )
        return result

    async def execute_dax(
        self, dataset_id: str, dax_query: str, workspace_id: Optional[str] = None
    ) -> QueryResult:
        return await self.execute(
            DataQuery(text=dax_query, dialect=Dialect.DAX, dataset_id=dataset_id, workspace_id=workspace_id)
        )

    async def execute_sql(
        self,
        sql_query: str,
        workspace_id: Optional[str] = None,
        connection_id: Optional[str] = None,
    ) -> QueryResult:
        return await self.execute(
            DataQuery(
                text=sql_query,
                dialect=Dialect.SQL,
                workspace_id=workspace_id,
                connection_id=connection_id,
            )
        )

    async def list_datasets(self, workspace_id: Optional[str] = None) -> List[DatasetInfo]:
        workspace = workspace_id or self.workspace_id
        data = await self._get(f"{self.base_url}/workspaces/{workspace}/datasets", "datasets")

        return [
            DatasetInfo(
                id=str(ds.get("id")),
                name=ds.get("name") or "",
                workspace=workspace,
                tables=ds.get("tables") or [],
                last_refresh=ds.get("lastRefresh"),
            )
            for ds in (data.get("value") or [])
        ]

    async def get_dataset_schema(self, dataset_id: str, workspace_id: Optional[str] = None) -> Dict[str, Any]:
        workspace = workspace_id or self.workspace_id
        return await self._get(
            f"{self.base_url}/workspaces/{workspace}/datasets/{dataset_id}/schema",
            "dataset schema",
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---------------------------------------------------------
    # HTTP helpers
    # ---------------------------------------------------------
    async def _post(self, url: str, token: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = await self._client.post(url, headers=_auth_headers(token), json=body)
        except httpx.TimeoutException as e:
            raise TransientQueryError(f"Fabric API request timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransientQueryError(f"Fabric API unreachable: {e}") from e

        if resp.is_error:
            raise QueryExecutionError(
                f"Fabric API error: {resp.status_code} - {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise QueryExecutionError(
                "Fabric API returned a non-JSON body", status_code=resp.status_code, body=resp.text
            ) from e

    async def _get(self, url: str, what: str) -> Dict[str, Any]:
        token = await self.credentials.get_access_token(self.settings.FABRIC_TOKEN_SCOPE)
        try:
            resp = await self._client.get(url, headers=_auth_headers(token))
        except httpx.HTTPError as e:
            logger.error("Failed to get %s: %s", what, e)
            raise DatasetAccessError(f"Failed to retrieve {what}: {e}") from e

        if resp.is_error:
            logger.error("Failed to get %s: %s", what, resp.status_code)
            raise DatasetAccessError(
                f"Failed to fetch {what}: {resp.status_code}", status_code=resp.status_code
            )

        try:
            return resp.json()
        except ValueError as e:
            logger.error("Non-JSON %s response: %s", what, resp.text)
            raise DatasetAccessError(
                f"Failed to parse {what} response", status_code=resp.status_code
            ) from e


def _auth_headers(token: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }


def _normalize_dax(payload: Dict[str, Any]):
    """
    executeQueries nests rows as results[0].tables[0].rows and may report
    errors either at the top level or per result.
    """
    if payload.get("error"):
        raise QueryExecutionError(f"DAX query error: {_error_message(payload['error'])}", body=str(payload))

    results = payload.get("results") or []
    if not results:
        return [], []

    first = results[0] or {}
    if first.get("error"):
        raise QueryExecutionError(f"DAX query error: {_error_message(first['error'])}", body=str(payload))

    tables = first.get("tables") or []
    if not tables:
        return [], []

    table = tables[0] or {}
    columns = [
        c.get("name") if isinstance(c, dict) else str(c)
        for c in (table.get("columns") or [])
    ]
    columns = [c for c in columns if c]
    rows = _rows_as_dicts(table.get("rows") or [], columns)
    return rows, columns or _columns_from_rows(rows)


def _normalize_sql(payload: Dict[str, Any]):
    if payload.get("error"):
        raise QueryExecutionError(f"SQL query error: {_error_message(payload['error'])}", body=str(payload))

    columns = [
        c.get("name") if isinstance(c, dict) else str(c)
        for c in (payload.get("columns") or [])
    ]
    rows = _rows_as_dicts(payload.get("rows") or [], columns)
    return rows, columns or _columns_from_rows(rows)


def _rows_as_dicts(raw_rows: List[Any], columns: List[str]) -> List[Dict[str, Any]]:
    # SQL endpoints may return positional rows; pair them with the column list
    rows: List[Dict[str, Any]] = []
    for r in raw_rows:
        if isinstance(r, dict):
            rows.append(dict(r))
        elif isinstance(r, (list, tuple)):
            rows.append(dict(zip(columns, r)))
    return rows


def _columns_from_rows(rows: List[Dict[str, Any]]) -> List[str]:
    columns: List[str] = []
    for r in rows:
        for k in r:
            if k not in columns:
                columns.append(k)
    return columns


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error.get("code") or error)
    return str(error)
