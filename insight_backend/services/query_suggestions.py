# insight_backend/services/query_suggestions.py

from typing import Any, Dict, List, Optional

NUMERIC_TYPES = {"Int64", "Double", "Decimal"}
MAX_SUGGESTIONS = 10


def suggest_queries(schema: Optional[Dict[str, Any]]) -> List[str]:
    """
    Starter questions derived from a dataset schema
    ({"tables": [{"name": ..., "columns": [{"name": ..., "dataType": ...}]}]}).
    """
    suggestions: List[str] = []

    for table in (schema or {}).get("tables") or []:
        table_name = table.get("name")
        if not table_name:
            continue

        suggestions.append(f"Show me the top 10 records from {table_name}")
        suggestions.append(f"What is the total count of records in {table_name}?")

        columns = table.get("columns") or []
        numeric_cols = [c for c in columns if c.get("dataType") in NUMERIC_TYPES]
        date_cols = [c for c in columns if c.get("dataType") == "DateTime"]

        for col in numeric_cols:
            suggestions.append(f"What is the average {col.get('name')} in {table_name}?")
            suggestions.append(f"Show me the sum of {col.get('name')} by month")

        if date_cols:
            suggestions.append(f"Show me trends over time for {table_name}")
            suggestions.append("What was the performance last month?")

    return suggestions[:MAX_SUGGESTIONS]
