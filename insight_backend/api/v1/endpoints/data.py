# insight_backend/api/v1/endpoints/data.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from insight_backend.api.deps import get_insight_service, get_requester_id
from insight_backend.core.exceptions import (
    AuthenticationFailure,
    DatasetAccessError,
    QueryExecutionError,
    ServiceUnavailable,
)
from insight_backend.schemas.data import (
    AnalyzeRequest,
    AnalyzeResponse,
    DataPreview,
    DataQuestionRequest,
    DataQuestionResponse,
    DataQuestionResult,
    DatasetSchemaResponse,
    DatasetsResponse,
    DirectQueryRequest,
    DirectQueryResponse,
    DirectQueryResult,
    SuggestionsResponse,
)
from insight_backend.schemas.insight import InsightRequest
from insight_backend.schemas.query import DataQuery, Dialect
from insight_backend.services.data_insight_service import DataInsightService
from insight_backend.services.query_suggestions import suggest_queries

logger = logging.getLogger(__name__)

router = APIRouter()

# rows returned to the browser
QUESTION_PREVIEW_ROWS = 100
DIRECT_QUERY_ROWS = 1000


def _to_http_error(e: Exception, what: str) -> HTTPException:
    if isinstance(e, ServiceUnavailable):
        return HTTPException(status_code=503, detail=str(e))
    if isinstance(e, (AuthenticationFailure, QueryExecutionError, DatasetAccessError)):
        return HTTPException(status_code=502, detail=f"{what}: {e}")
    return HTTPException(status_code=500, detail=f"{what}: {e}")


@router.post("/question", response_model=DataQuestionResponse)
async def ask_data_question(
    req: DataQuestionRequest,
    requester_id: str = Depends(get_requester_id),
    service: DataInsightService = Depends(get_insight_service),
) -> DataQuestionResponse:
    """
    Natural-language question -> answer, data preview, query and visualization.
    """
    logger.info("Data question from user %s: %s", requester_id, req.question)

    try:
        result = await service.process_data_question(
            InsightRequest(
                question=req.question,
                requester_id=requester_id,
                dataset_id=req.dataset_id,
                connection_id=req.connection_id,
                workspace_id=req.workspace_id,
                dialect_override=req.query_type,
                include_visualization=req.include_visualization,
            )
        )
    except Exception as e:
        logger.error("Data question processing error", exc_info=True)
        raise _to_http_error(e, "Failed to process data question") from e

    preview = None
    if result.data is not None:
        preview = DataPreview(
            row_count=result.data.row_count,
            columns=result.data.columns,
            execution_time_ms=result.data.execution_time_ms,
            dialect=result.data.dialect,
            cached=result.data.cached,
            preview=result.data.rows[:QUESTION_PREVIEW_ROWS],
        )

    return DataQuestionResponse(
        message="Data question processed successfully",
        result=DataQuestionResult(
            answer=result.answer,
            data=preview,
            query=result.query,
            dialect=result.dialect,
            visualization=result.visualization,
            confidence=result.confidence,
            execution_time_ms=result.execution_time_ms,
            tokens_used=result.tokens_used,
        ),
    )


@router.post("/query", response_model=DirectQueryResponse)
async def execute_query(
    req: DirectQueryRequest,
    requester_id: str = Depends(get_requester_id),
    service: DataInsightService = Depends(get_insight_service),
) -> DirectQueryResponse:
    logger.info("Direct query execution from user %s: %s", requester_id, req.query_type.value.upper())

    if req.query_type == Dialect.DAX and not req.dataset_id:
        raise HTTPException(status_code=400, detail="Dataset ID required for DAX queries")

    try:
        result = await service.execute_query(
            DataQuery(
                text=req.query,
                dialect=req.query_type,
                dataset_id=req.dataset_id,
                workspace_id=req.workspace_id,
                connection_id=req.connection_id,
            )
        )
    except Exception as e:
        logger.error("Direct query execution error", exc_info=True)
        raise _to_http_error(e, "Failed to execute query") from e

    return DirectQueryResponse(
        message="Query executed successfully",
        result=DirectQueryResult(
            row_count=result.row_count,
            columns=result.columns,
            execution_time_ms=result.execution_time_ms,
            dialect=result.dialect,
            cached=result.cached,
            data=result.rows[:DIRECT_QUERY_ROWS],
        ),
    )


@router.get("/datasets", response_model=DatasetsResponse)
async def list_datasets(
    workspace_id: Optional[str] = None,
    requester_id: str = Depends(get_requester_id),
    service: DataInsightService = Depends(get_insight_service),
) -> DatasetsResponse:
    logger.info("Getting datasets for user %s", requester_id)
    try:
        datasets = await service.list_available_datasets(workspace_id)
    except Exception as e:
        logger.error("Get datasets error", exc_info=True)
        raise _to_http_error(e, "Failed to retrieve datasets") from e

    return DatasetsResponse(message="Datasets retrieved successfully", datasets=datasets)


@router.get("/datasets/{dataset_id}/schema", response_model=DatasetSchemaResponse)
async def get_dataset_schema(
    dataset_id: str,
    workspace_id: Optional[str] = None,
    requester_id: str = Depends(get_requester_id),
    service: DataInsightService = Depends(get_insight_service),
) -> DatasetSchemaResponse:
    logger.info("Getting schema for dataset %s for user %s", dataset_id, requester_id)
    try:
        schema = await service.get_dataset_schema(dataset_id, workspace_id)
    except Exception as e:
        logger.error("Get dataset schema error", exc_info=True)
        raise _to_http_error(e, "Failed to retrieve dataset schema") from e

    return DatasetSchemaResponse(message="Dataset schema retrieved successfully", dataset_schema=schema)


@router.get("/datasets/{dataset_id}/suggestions", response_model=SuggestionsResponse)
async def get_query_suggestions(
    dataset_id: str,
    workspace_id: Optional[str] = None,
    requester_id: str = Depends(get_requester_id),
    service: DataInsightService = Depends(get_insight_service),
) -> SuggestionsResponse:
    try:
        schema = await service.get_dataset_schema(dataset_id, workspace_id)
    except Exception as e:
        logger.error("Get query suggestions error", exc_info=True)
        raise _to_http_error(e, "Failed to generate query suggestions") from e

    return SuggestionsResponse(
        message="Query suggestions generated successfully",
        suggestions=suggest_queries(schema),
    )


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_question(
    req: AnalyzeRequest,
    requester_id: str = Depends(get_requester_id),
    service: DataInsightService = Depends(get_insight_service),
) -> AnalyzeResponse:
    logger.info("Analyzing question for user %s: %s", requester_id, req.question)
    return AnalyzeResponse(
        message="Question analyzed successfully",
        analysis=service.analyze_question(req.question),
    )
