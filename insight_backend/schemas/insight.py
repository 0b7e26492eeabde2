# insight_backend/schemas/insight.py

from typing import Optional

from pydantic import BaseModel, Field

from insight_backend.schemas.analysis import VisualizationSpec
from insight_backend.schemas.query import Dialect, QueryResult


class InsightRequest(BaseModel):
    """
    One data question from an already authenticated requester.
    dialect_override, when given, always wins over the analyzer's choice.
    """
    question: str = Field(min_length=1, max_length=1000)
    requester_id: str
    dataset_id: Optional[str] = None
    connection_id: Optional[str] = None
    workspace_id: Optional[str] = None
    dialect_override: Optional[Dialect] = None
    include_visualization: bool = True


class InsightResponse(BaseModel):
    """
    Answer for a data question.
    A degraded (fallback) answer has no data/query and confidence 0.3.
    """
    answer: str
    data: Optional[QueryResult] = None
    query: Optional[str] = None
    dialect: Optional[Dialect] = None
    visualization: Optional[VisualizationSpec] = None
    confidence: float = Field(ge=0.0, le=1.0)
    execution_time_ms: int = 0
    tokens_used: int = 0


class GeneratedInsight(BaseModel):
    content: str
    tokens_used: int = 0
