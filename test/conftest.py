"""
Shared fixtures: scripted Fabric / chat-completion backends on httpx.MockTransport,
a controllable clock for cache expiry, and a service graph wired to both.
"""
import os

# Settings() requires an API key; set one before anything builds settings
os.environ.setdefault("OPENAI_API_KEY", "test-key")

import json

import httpx
import pytest
import pytest_asyncio

from insight_backend.core.config import Settings
from insight_backend.core.credentials import StaticTokenProvider
from insight_backend.core.llm_client import LLMClient
from insight_backend.main import create_app
from insight_backend.services.fabric_service import FabricQueryExecutor
from insight_backend.services.factory import build_services
from insight_backend.services.query_cache import QueryCache


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FabricStub:
    """Scripted Fabric REST API. Records every request it receives."""

    def __init__(self):
        self.requests = []
        self.sql_columns = ["region", "revenue"]
        self.sql_rows = [
            {"region": "North", "revenue": 1200.5},
            {"region": "South", "revenue": 800.0},
            {"region": "West", "revenue": 450.25},
        ]
        self.dax_payload = {
            "results": [
                {
                    "tables": [
                        {
                            "rows": [
                                {"Sales[Region]": "North", "[Average Revenue]": 400.0},
                                {"Sales[Region]": "South", "[Average Revenue]": 266.7},
                            ]
                        }
                    ]
                }
            ]
        }
        self.datasets = [
            {"id": "ds-1", "name": "Sales", "tables": ["Sales"], "lastRefresh": "2026-10-01T00:00:00Z"},
        ]
        self.schema = {
            "tables": [
                {
                    "name": "Sales",
                    "columns": [
                        {"name": "Region", "dataType": "String"},
                        {"name": "Revenue", "dataType": "Decimal"},
                        {"name": "OrderDate", "dataType": "DateTime"},
                    ],
                }
            ]
        }
        self.query_status = 200
        self.schema_status = 200
        # plain-text body served for GET requests instead of JSON
        self.get_text = None
        self.raise_error = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error

        path = request.url.path
        if request.method == "GET" and self.get_text is not None:
            return httpx.Response(200, text=self.get_text)
        if request.method == "POST" and self.query_status != 200:
            return httpx.Response(self.query_status, text="internal failure")
        if path.endswith("/sqlEndpoints/query"):
            return httpx.Response(
                200,
                json={"rows": self.sql_rows, "columns": [{"name": c} for c in self.sql_columns]},
            )
        if path.endswith("/executeQueries"):
            return httpx.Response(200, json=self.dax_payload)
        if path.endswith("/schema"):
            if self.schema_status != 200:
                return httpx.Response(self.schema_status, text="no schema")
            return httpx.Response(200, json=self.schema)
        if path.endswith("/datasets"):
            return httpx.Response(200, json={"value": self.datasets})
        return httpx.Response(404, text="unknown route")

    @property
    def query_requests(self):
        return [r for r in self.requests if r.method == "POST"]


class LLMStub:
    """Scripted /chat/completions endpoint."""

    def __init__(self):
        self.requests = []
        self.replies = []
        self.default_reply = "North leads revenue; South and West trail."
        self.fail_status = None
        # 1-based call numbers that fail; None means every call fails
        self.fail_calls = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)

        failing = self.fail_status is not None and (
            self.fail_calls is None or len(self.requests) in self.fail_calls
        )
        if failing:
            return httpx.Response(self.fail_status, json={"error": {"message": "unavailable"}})

        content = self.replies.pop(0) if self.replies else self.default_reply
        return httpx.Response(
            200,
            json={
                "choices": [{"message": {"role": "assistant", "content": content}}],
                "usage": {"total_tokens": 123},
            },
        )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        OPENAI_API_KEY="test-key",
        OPENAI_BASE_URL="https://llm.test/v1",
        FABRIC_API_BASE_URL="https://fabric.test/v1",
        FABRIC_WORKSPACE_ID="ws-default",
        FABRIC_ACCESS_TOKEN="static-token",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fabric() -> FabricStub:
    return FabricStub()


@pytest.fixture
def llm() -> LLMStub:
    return LLMStub()


@pytest.fixture
def cache(clock) -> QueryCache:
    return QueryCache(default_ttl=300, clock=clock)


@pytest.fixture
def executor(settings, cache, fabric) -> FabricQueryExecutor:
    return FabricQueryExecutor(
        settings,
        StaticTokenProvider("static-token"),
        cache,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fabric.handler)),
    )


@pytest.fixture
def llm_client(settings, llm) -> LLMClient:
    return LLMClient(settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(llm.handler)))


@pytest.fixture
def services(settings, fabric, llm):
    return build_services(
        settings,
        fabric_http=httpx.AsyncClient(transport=httpx.MockTransport(fabric.handler)),
        llm_http=httpx.AsyncClient(transport=httpx.MockTransport(llm.handler)),
    )


@pytest_asyncio.fixture
async def api_client(settings, services):
    app = create_app(settings, services=services)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
