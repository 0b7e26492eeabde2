from insight_backend.schemas.analysis import ChartVisualization, MetricVisualization, TableVisualization
from insight_backend.schemas.query import Dialect, QueryResult
from insight_backend.services.visualization import select_visualization


def _result(rows, columns):
    return QueryResult(rows=rows, columns=columns, row_count=len(rows), dialect=Dialect.SQL)


def test_single_number_is_metric():
    viz = select_visualization(_result([{"total": 42}], ["total"]))
    assert isinstance(viz, MetricVisualization)
    assert viz.value == 42
    assert viz.label == "total"
    assert viz.format == "number"


def test_category_and_value_is_bar_chart():
    rows = [{"region": f"R{i}", "revenue": i * 10} for i in range(10)]
    viz = select_visualization(_result(rows, ["region", "revenue"]))
    assert isinstance(viz, ChartVisualization)
    assert viz.chart_type == "bar"
    assert viz.x_axis == "region"
    assert viz.y_axis == "revenue"
    assert len(viz.data) == 10


def test_string_only_rows_become_capped_table():
    rows = [{"name": f"n{i}", "city": "Seoul"} for i in range(200)]
    viz = select_visualization(_result(rows, ["name", "city"]))
    assert isinstance(viz, TableVisualization)
    assert len(viz.data) <= 100
    assert viz.total_rows == 200
    assert viz.columns == ["name", "city"]


def test_too_many_rows_for_chart_falls_back_to_table():
    rows = [{"region": f"R{i}", "revenue": i} for i in range(51)]
    viz = select_visualization(_result(rows, ["region", "revenue"]))
    assert isinstance(viz, TableVisualization)


def test_null_first_value_does_not_hide_numeric_column():
    rows = [
        {"region": "North", "revenue": None},
        {"region": "South", "revenue": 5.5},
    ]
    viz = select_visualization(_result(rows, ["region", "revenue"]))
    assert isinstance(viz, ChartVisualization)
    assert viz.y_axis == "revenue"


def test_booleans_are_not_numeric():
    viz = select_visualization(_result([{"active": True}], ["active"]))
    assert isinstance(viz, TableVisualization)
