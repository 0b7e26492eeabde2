# insight_backend/core/llm_client.py
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from insight_backend.core.config import Settings
from insight_backend.core.exceptions import LLMServiceError

logger = logging.getLogger(__name__)


@dataclass
class ChatCompletion:
    content: str
    tokens: int = 0


class LLMClient:
    """
    Thin async client for an OpenAI-compatible /chat/completions endpoint.
    The httpx client is shared across requests and closed by the app lifespan.
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.api_key = settings.OPENAI_API_KEY
        self.url = settings.OPENAI_BASE_URL.rstrip("/") + "/chat/completions"
        self._client = http_client or httpx.AsyncClient(timeout=settings.LLM_TIMEOUT_SECONDS)

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> ChatCompletion:
        use_model = model or self.settings.OPENAI_INSIGHT_MODEL

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": use_model,
            "messages": messages,
            "max_tokens": max_tokens if max_tokens is not None else self.settings.LLM_MAX_TOKENS,
            "temperature": temperature if temperature is not None else self.settings.LLM_TEMPERATURE,
        }

        logger.info("Sending chat completion request (%s)", use_model)
        try:
            resp = await self._client.post(
                self.url,
                headers=headers,
                json=payload,
                timeout=self.settings.LLM_TIMEOUT_SECONDS,
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            logger.error("Chat completion timed out: %s", e)
            raise LLMServiceError("The AI service is taking too long to respond. Please try again.") from e
        except httpx.HTTPStatusError as e:
            raise _classify_status_error(e) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Chat completion request failed: %s", e)
            raise LLMServiceError("Failed to get AI response. Please try again.") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise LLMServiceError("No response content received from the AI service")

        tokens = int((data.get("usage") or {}).get("total_tokens") or 0)
        logger.info("Received chat completion (%s tokens)", tokens)
        return ChatCompletion(content=content, tokens=tokens)

    async def aclose(self) -> None:
        await self._client.aclose()


def _classify_status_error(error: httpx.HTTPStatusError) -> LLMServiceError:
    status = error.response.status_code
    logger.error("Chat completion API error: %s - %s", status, error.response.text)

    if status == 429:
        return LLMServiceError("The AI service is currently overloaded. Please wait a moment and try again.")
    if status in (401, 403):
        return LLMServiceError("AI service authentication failed. Please contact support.")
    if status == 404:
        return LLMServiceError("The AI model configuration is incorrect. Please contact support.")
    if status in (408, 504):
        return LLMServiceError("The AI service is taking too long to respond. Please try again.")
    return LLMServiceError("Failed to get AI response. Please try again.")
