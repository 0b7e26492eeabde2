# insight_backend/services/data_insight_service.py

import logging
import time
from typing import Any, Dict, List, Optional

from insight_backend.core.config import Settings
from insight_backend.core.exceptions import ServiceUnavailable, SchemaFetchWarning
from insight_backend.schemas.insight import InsightRequest, InsightResponse
from insight_backend.schemas.query import (
    DataQuery,
    DatasetInfo,
    Dialect,
    QueryResult,
    QuestionAnalysis,
    QuestionQueryResult,
)
from insight_backend.services.data_context import build_data_context
from insight_backend.services.fabric_service import FabricQueryExecutor
from insight_backend.services.insight_service import InsightGenerator
from insight_backend.services.query_generator import QueryGenerator
from insight_backend.services.question_analyzer import QuestionClassifier
from insight_backend.services.visualization import select_visualization

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.3
FALLBACK_PREFIX = (
    "I apologize, but I encountered an issue accessing your enterprise data "
    "to answer that question. Here's what I can tell you: "
)
FALLBACK_SUFFIX = "\n\nPlease try again or contact support if the issue persists."


class DataInsightService:
    """
    question -> dialect -> (schema) -> query text -> execute -> context
    -> insight -> (visualization).

    Any failure along the way is caught once in process_data_question and
    answered through a single no-data fallback completion.
    """

    def __init__(
        self,
        settings: Settings,
        analyzer: QuestionClassifier,
        executor: FabricQueryExecutor,
        query_generator: QueryGenerator,
        insight_generator: InsightGenerator,
    ):
        self.settings = settings
        self.analyzer = analyzer
        self.executor = executor
        self.query_generator = query_generator
        self.insight_generator = insight_generator

    def analyze_question(self, question: str) -> QuestionAnalysis:
        return self.analyzer.classify(question)

    async def classify_and_execute(
        self,
        question: str,
        dataset_id: Optional[str] = None,
        workspace_id: Optional[str] = None,
        connection_id: Optional[str] = None,
        dialect: Optional[Dialect] = None,
    ) -> QuestionQueryResult:
        analysis = self.analyzer.classify(question)
        use_dialect = dialect or analysis.suggested_dialect

        if use_dialect == Dialect.DAX and not dataset_id:
            # DAX runs against a dataset; without one the SQL endpoint is the only target
            logger.info("No dataset given for DAX question, using SQL endpoint instead")
            use_dialect = Dialect.SQL

        schema = await self._fetch_schema_best_effort(dataset_id, workspace_id)

        query_text = await self.query_generator.generate(question, use_dialect, dataset_id, schema)

        data = await self.executor.execute(
            DataQuery(
                text=query_text,
                dialect=use_dialect,
                dataset_id=dataset_id,
                workspace_id=workspace_id,
                connection_id=connection_id,
            )
        )
        return QuestionQueryResult(data=data, query=query_text, dialect=use_dialect, analysis=analysis)

    async def process_data_question(self, request: InsightRequest) -> InsightResponse:
        started = time.perf_counter()

        try:
            logger.info("Processing data question from %s: %s", request.requester_id, request.question)

            # 1) classify + generate + execute
            qr = await self.classify_and_execute(
                request.question,
                dataset_id=request.dataset_id,
                workspace_id=request.workspace_id,
                connection_id=request.connection_id,
                dialect=request.dialect_override,
            )

            # 2) bounded text context for the model
            data_context = build_data_context(
                qr.data, request.question, max_rows=self.settings.CONTEXT_MAX_ROWS
            )

            # 3) answer
            insight = await self.insight_generator.generate(
                request.question, data_context, qr.query, qr.dialect
            )

            # 4) presentation shape
            visualization = None
            if request.include_visualization and qr.data.row_count > 0:
                visualization = select_visualization(
                    qr.data, table_max_rows=self.settings.VISUALIZATION_TABLE_ROWS
                )

            return InsightResponse(
                answer=insight.content,
                data=qr.data,
                query=qr.query,
                dialect=qr.dialect,
                visualization=visualization,
                confidence=qr.analysis.confidence,
                execution_time_ms=_elapsed_ms(started),
                tokens_used=insight.tokens_used,
            )

        except Exception:
            logger.error("Failed to process data question", exc_info=True)
            return await self._fallback(request, started)

    async def execute_query(self, query: DataQuery) -> QueryResult:
        """Run caller-supplied query text as-is (no classification)."""
        return await self.executor.execute(query)

    async def list_available_datasets(self, workspace_id: Optional[str] = None) -> List[DatasetInfo]:
        return await self.executor.list_datasets(workspace_id)

    async def get_dataset_schema(self, dataset_id: str, workspace_id: Optional[str] = None) -> Dict[str, Any]:
        return await self.executor.get_dataset_schema(dataset_id, workspace_id)

    async def _fetch_schema_best_effort(
        self, dataset_id: Optional[str], workspace_id: Optional[str]
    ) -> Optional[Dict[str, Any]]:
        if not dataset_id:
            return None
        try:
            return await self.executor.get_dataset_schema(dataset_id, workspace_id)
        except Exception as e:
            logger.warning("%s: could not fetch dataset schema: %s", SchemaFetchWarning.__name__, e)
            return None

    async def _fallback(self, request: InsightRequest, started: float) -> InsightResponse:
        try:
            fallback = await self.insight_generator.generate_fallback(request.question)
        except Exception as e:
            logger.error("Fallback answer failed as well", exc_info=True)
            raise ServiceUnavailable("The AI service is unavailable. Please try again later.") from e

        return InsightResponse(
            answer=f"{FALLBACK_PREFIX}{fallback.content}{FALLBACK_SUFFIX}",
            confidence=FALLBACK_CONFIDENCE,
            execution_time_ms=_elapsed_ms(started),
            tokens_used=fallback.tokens_used,
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
