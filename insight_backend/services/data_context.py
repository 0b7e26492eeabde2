# insight_backend/services/data_context.py

from typing import Any, Dict, List

from insight_backend.schemas.query import QueryResult

DEFAULT_MAX_ROWS = 50
MAX_CELL_LENGTH = 50

NO_DATA_CONTEXT = (
    "No data was found for the query. "
    "The query executed successfully but returned 0 rows."
)


def build_data_context(result: QueryResult, question: str, max_rows: int = DEFAULT_MAX_ROWS) -> str:
    """
    Query result -> size-bounded text block for the insight prompt.
    Only the first `max_rows` rows are rendered; the rest are summarized
    in a trailing "... and N more rows" note.
    """
    if result.row_count == 0:
        return NO_DATA_CONTEXT

    limited_rows = result.rows[:max_rows]

    context = "Data Query Results:\n"
    context += f"- Query Type: {result.dialect.value.upper()}\n"
    context += f"- Total Rows: {result.row_count}\n"
    context += f"- Execution Time: {result.execution_time_ms}ms\n"
    context += f"- Columns: {', '.join(result.columns)}\n\n"

    if result.row_count > max_rows:
        context += f"Showing first {max_rows} rows of {result.row_count} total rows:\n\n"

    context += format_table(limited_rows, result.columns)

    if result.row_count > max_rows:
        context += f"\n... and {result.row_count - max_rows} more rows"

    return context


def format_table(rows: List[Dict[str, Any]], columns: List[str]) -> str:
    """Tab-delimited header, '---' separator, then one line per row."""
    if not rows:
        return "No data available"

    lines = ["\t".join(columns), "\t".join("---" for _ in columns)]
    for row in rows:
        lines.append("\t".join(format_cell(row.get(col)) for col in columns))
    return "\n".join(lines) + "\n"


def format_cell(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        # grouping separators, at most 3 decimals, no trailing zeros
        text = f"{value:,.3f}".rstrip("0").rstrip(".")
        return text if text not in ("-0", "") else "0"
    if isinstance(value, str) and len(value) > MAX_CELL_LENGTH:
        return value[: MAX_CELL_LENGTH - 3] + "..."
    return str(value)
