# insight_backend/services/visualization.py

from numbers import Number
from typing import Any, List, Tuple

from insight_backend.schemas.analysis import (
    ChartVisualization,
    MetricVisualization,
    TableVisualization,
    VisualizationSpec,
)
from insight_backend.schemas.query import QueryResult

CHART_MAX_ROWS = 50
TABLE_MAX_ROWS = 100
# rows inspected when inferring a column's type (first non-null value wins)
TYPE_SAMPLE_ROWS = 5


def select_visualization(result: QueryResult, table_max_rows: int = TABLE_MAX_ROWS) -> VisualizationSpec:
    """
    First match wins:
    1) one row + exactly one numeric column  -> metric
    2) numeric + string columns, <= 50 rows  -> bar chart
    3) anything else                         -> table (first 100 rows)
    """
    numeric_cols, string_cols = classify_columns(result)

    if result.row_count == 1 and len(numeric_cols) == 1:
        col = numeric_cols[0]
        return MetricVisualization(value=result.rows[0][col], label=col, format="number")

    if numeric_cols and string_cols and result.row_count <= CHART_MAX_ROWS:
        return ChartVisualization(
            chart_type="bar",
            x_axis=string_cols[0],
            y_axis=numeric_cols[0],
            data=result.rows,
        )

    return TableVisualization(
        columns=result.columns,
        data=result.rows[:table_max_rows],
        total_rows=result.row_count,
    )


def classify_columns(result: QueryResult) -> Tuple[List[str], List[str]]:
    numeric_cols: List[str] = []
    string_cols: List[str] = []
    sample = result.rows[:TYPE_SAMPLE_ROWS]

    for col in result.columns:
        value = _first_non_null(sample, col)
        if _is_numeric(value):
            numeric_cols.append(col)
        elif isinstance(value, str):
            string_cols.append(col)
    return numeric_cols, string_cols


def _first_non_null(rows: List[dict], col: str) -> Any:
    for row in rows:
        value = row.get(col)
        if value is not None:
            return value
    return None


def _is_numeric(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)
