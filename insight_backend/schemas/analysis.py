# insight_backend/schemas/analysis.py
from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field


class MetricVisualization(BaseModel):
    """Single headline number (one row, one numeric column)."""
    type: Literal["metric"] = "metric"
    value: Any
    label: str
    format: str = "number"


class ChartVisualization(BaseModel):
    """
    Category x value chart the frontend renders with its common chart component.
    """
    type: Literal["chart"] = "chart"
    chart_type: str = "bar"          # only bar today; line/pie can be added later
    x_axis: str
    y_axis: str
    data: List[Dict[str, Any]] = Field(default_factory=list)


class TableVisualization(BaseModel):
    type: Literal["table"] = "table"
    columns: List[str] = Field(default_factory=list)
    data: List[Dict[str, Any]] = Field(default_factory=list)
    total_rows: int = 0


VisualizationSpec = Annotated[
    Union[MetricVisualization, ChartVisualization, TableVisualization],
    Field(discriminator="type"),
]
