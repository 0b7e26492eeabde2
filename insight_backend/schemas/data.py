# insight_backend/schemas/data.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from insight_backend.schemas.analysis import VisualizationSpec
from insight_backend.schemas.query import DatasetInfo, Dialect, QuestionAnalysis


class DataQuestionRequest(BaseModel):
    """
    Request body for POST /data/question.
    e.g. { "question": "What is the average revenue by region?", "dataset_id": "..." }
    """
    question: str = Field(min_length=1, max_length=1000)
    dataset_id: Optional[str] = None
    connection_id: Optional[str] = None
    workspace_id: Optional[str] = None
    query_type: Optional[Dialect] = None
    include_visualization: bool = True


class DataPreview(BaseModel):
    row_count: int = 0
    columns: List[str] = Field(default_factory=list)
    execution_time_ms: int = 0
    dialect: Dialect
    cached: bool = False
    preview: List[Dict[str, Any]] = Field(default_factory=list)


class DataQuestionResult(BaseModel):
    answer: str
    data: Optional[DataPreview] = None
    query: Optional[str] = None
    dialect: Optional[Dialect] = None
    visualization: Optional[VisualizationSpec] = None
    confidence: float
    execution_time_ms: int = 0
    tokens_used: int = 0


class DataQuestionResponse(BaseModel):
    message: str
    result: DataQuestionResult


class DirectQueryRequest(BaseModel):
    query: str = Field(min_length=1, max_length=10000)
    query_type: Dialect
    dataset_id: Optional[str] = None
    connection_id: Optional[str] = None
    workspace_id: Optional[str] = None


class DirectQueryResult(BaseModel):
    row_count: int = 0
    columns: List[str] = Field(default_factory=list)
    execution_time_ms: int = 0
    dialect: Dialect
    cached: bool = False
    data: List[Dict[str, Any]] = Field(default_factory=list)


class DirectQueryResponse(BaseModel):
    message: str
    result: DirectQueryResult


class DatasetsResponse(BaseModel):
    message: str
    datasets: List[DatasetInfo] = Field(default_factory=list)


class DatasetSchemaResponse(BaseModel):
    message: str
    # "schema" shadows a BaseModel attribute, so it only exists as the wire name
    dataset_schema: Dict[str, Any] = Field(default_factory=dict, serialization_alias="schema")


class SuggestionsResponse(BaseModel):
    message: str
    suggestions: List[str] = Field(default_factory=list)


class AnalyzeRequest(BaseModel):
    question: str = Field(min_length=1, max_length=1000)


class AnalyzeResponse(BaseModel):
    message: str
    analysis: QuestionAnalysis
