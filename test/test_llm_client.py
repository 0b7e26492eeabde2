import httpx
import pytest

from insight_backend.core.exceptions import LLMServiceError
from insight_backend.core.llm_client import LLMClient


def _client(settings, handler) -> LLMClient:
    return LLMClient(settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_chat_returns_content_and_tokens(llm_client, llm):
    completion = await llm_client.chat([{"role": "user", "content": "hi"}])
    assert completion.content == llm.default_reply
    assert completion.tokens == 123


@pytest.mark.asyncio
async def test_request_shape(llm_client, llm, settings):
    await llm_client.chat([{"role": "user", "content": "hi"}], model="m-1", max_tokens=10, temperature=0.1)
    body = llm.requests[0]
    assert body["model"] == "m-1"
    assert body["max_tokens"] == 10
    assert body["temperature"] == 0.1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, fragment",
    [
        (429, "overloaded"),
        (401, "authentication failed"),
        (404, "model configuration"),
        (500, "Failed to get AI response"),
    ],
)
async def test_status_errors_are_classified(settings, status, fragment):
    client = _client(settings, lambda request: httpx.Response(status, text="nope"))
    with pytest.raises(LLMServiceError, match=fragment):
        await client.chat([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_timeout_is_reported(settings):
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    client = _client(settings, handler)
    with pytest.raises(LLMServiceError, match="too long"):
        await client.chat([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_empty_content_is_an_error(settings):
    client = _client(
        settings,
        lambda request: httpx.Response(200, json={"choices": [{"message": {"content": ""}}]}),
    )
    with pytest.raises(LLMServiceError):
        await client.chat([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_missing_usage_counts_zero_tokens(settings):
    client = _client(
        settings,
        lambda request: httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]}),
    )
    completion = await client.chat([{"role": "user", "content": "hi"}])
    assert completion.tokens == 0
