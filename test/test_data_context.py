from insight_backend.schemas.query import Dialect, QueryResult
from insight_backend.services.data_context import build_data_context, format_cell, format_table


def _result(rows, columns, dialect=Dialect.SQL):
    return QueryResult(rows=rows, columns=columns, row_count=len(rows), execution_time_ms=12, dialect=dialect)


def test_empty_result_has_no_table():
    context = build_data_context(_result([], ["region"]), "anything?")
    assert "0 rows" in context
    assert "\t" not in context
    assert "---" not in context


def test_small_result_renders_every_row():
    rows = [{"region": "North", "revenue": 1200}, {"region": "South", "revenue": 800}]
    context = build_data_context(_result(rows, ["region", "revenue"]), "revenue by region?")

    assert "- Query Type: SQL" in context
    assert "- Total Rows: 2" in context
    assert "- Columns: region, revenue" in context
    assert "region\trevenue\n---\t---\n" in context
    assert "North\t1,200" in context
    assert "more rows" not in context


def test_large_result_is_capped_with_trailing_note():
    rows = [{"id": i, "name": f"item {i}"} for i in range(75)]
    context = build_data_context(_result(rows, ["id", "name"]), "list items")

    assert "Showing first 50 rows of 75 total rows" in context
    assert "item 49" in context
    assert "item 50" not in context
    assert context.endswith("... and 25 more rows")


def test_cell_formatting():
    assert format_cell(None) == "NULL"
    assert format_cell(1234567) == "1,234,567"
    assert format_cell(1234.5) == "1,234.5"
    assert format_cell(2.0) == "2"
    assert format_cell(True) == "True"
    assert format_cell("x" * 60) == "x" * 47 + "..."
    assert format_cell("short") == "short"


def test_missing_column_value_is_null():
    table = format_table([{"a": 1}], ["a", "b"])
    assert table.splitlines()[2] == "1\tNULL"
