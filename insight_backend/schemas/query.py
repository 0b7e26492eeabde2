# insight_backend/schemas/query.py

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class Dialect(str, Enum):
    """
    Query language for a question.
    - DAX: tabular-expression query against a semantic model (needs a dataset)
    - SQL: relational query against a workspace SQL endpoint
    """
    DAX = "dax"
    SQL = "sql"


class DataQuery(BaseModel):
    text: str
    dialect: Dialect
    dataset_id: Optional[str] = None
    workspace_id: Optional[str] = None
    connection_id: Optional[str] = None


class QueryResult(BaseModel):
    """
    Uniform result shape for both dialects.
    row_count always equals len(rows).
    """
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    columns: List[str] = Field(default_factory=list)
    row_count: int = 0
    execution_time_ms: int = 0
    dialect: Dialect
    cached: bool = False

    @model_validator(mode="after")
    def _check_row_count(self) -> "QueryResult":
        if self.row_count != len(self.rows):
            raise ValueError(
                f"row_count ({self.row_count}) does not match number of rows ({len(self.rows)})"
            )
        return self


class QuestionAnalysis(BaseModel):
    suggested_dialect: Dialect
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    matched_keywords: List[str] = Field(default_factory=list)


class DatasetInfo(BaseModel):
    id: str
    name: str
    workspace: str
    tables: List[Any] = Field(default_factory=list)
    last_refresh: Optional[str] = None


class QuestionQueryResult(BaseModel):
    """Output of classify + generate + execute for one question."""
    data: QueryResult
    query: str
    dialect: Dialect
    analysis: QuestionAnalysis
