# insight_backend/services/factory.py
"""
Builds the service graph once per process. The FastAPI lifespan keeps the
result on app.state; tests build their own graph with fakes.
"""
from dataclasses import dataclass
from typing import Optional

import httpx

from insight_backend.core.config import Settings
from insight_backend.core.credentials import CredentialProvider, build_credential_provider
from insight_backend.core.llm_client import LLMClient
from insight_backend.services.data_insight_service import DataInsightService
from insight_backend.services.fabric_service import FabricQueryExecutor
from insight_backend.services.insight_service import InsightGenerator
from insight_backend.services.query_cache import QueryCache
from insight_backend.services.query_generator import build_query_generator
from insight_backend.services.question_analyzer import KeywordQuestionAnalyzer


@dataclass
class ServiceContainer:
    settings: Settings
    cache: QueryCache
    credentials: CredentialProvider
    llm_client: LLMClient
    executor: FabricQueryExecutor
    insight_service: DataInsightService

    async def aclose(self) -> None:
        await self.cache.stop_sweeper()
        await self.executor.aclose()
        await self.llm_client.aclose()
        close = getattr(self.credentials, "aclose", None)
        if close is not None:
            await close()


def build_services(
    settings: Settings,
    fabric_http: Optional[httpx.AsyncClient] = None,
    llm_http: Optional[httpx.AsyncClient] = None,
    token_http: Optional[httpx.AsyncClient] = None,
) -> ServiceContainer:
    cache = QueryCache(
        default_ttl=settings.QUERY_CACHE_TTL_SECONDS,
        sweep_interval=settings.QUERY_CACHE_SWEEP_SECONDS,
    )
    credentials = build_credential_provider(settings, http_client=token_http)
    llm_client = LLMClient(settings, http_client=llm_http)
    executor = FabricQueryExecutor(settings, credentials, cache, http_client=fabric_http)

    insight_service = DataInsightService(
        settings=settings,
        analyzer=KeywordQuestionAnalyzer(),
        executor=executor,
        query_generator=build_query_generator(settings, llm_client),
        insight_generator=InsightGenerator(llm_client, settings),
    )

    return ServiceContainer(
        settings=settings,
        cache=cache,
        credentials=credentials,
        llm_client=llm_client,
        executor=executor,
        insight_service=insight_service,
    )
