# insight_backend/services/query_generator.py

import json
import logging
from typing import Any, Dict, Optional, Protocol

from insight_backend.core.config import Settings
from insight_backend.core.exceptions import QueryGenerationError
from insight_backend.core.llm_client import LLMClient
from insight_backend.schemas.query import Dialect

logger = logging.getLogger(__name__)


class QueryGenerator(Protocol):
    async def generate(
        self,
        question: str,
        dialect: Dialect,
        dataset_id: Optional[str] = None,
        schema: Optional[Dict[str, Any]] = None,
    ) -> str:
        ...


class TemplateQueryGenerator:
    """
    Placeholder generator: emits a commented template per dialect.
    Swap in LLMQueryGenerator (QUERY_GENERATOR=llm) for real query text.
    """

    async def generate(
        self,
        question: str,
        dialect: Dialect,
        dataset_id: Optional[str] = None,
        schema: Optional[Dict[str, Any]] = None,
    ) -> str:
        if dialect == Dialect.DAX:
            return (
                f"// Generated DAX query for: {question}\n"
                "// Query generation based on dataset schema is not enabled"
            )
        return (
            f"-- Generated SQL query for: {question}\n"
            "-- Query generation based on schema is not enabled\n"
            "SELECT * FROM [Table] WHERE 1=1;"
        )


QUERY_SYSTEM_PROMPT = """
You translate business questions into a single executable query.

Rules:
- dialect "sql": write one T-SQL SELECT statement (a leading WITH clause is allowed).
  Never write INSERT/UPDATE/DELETE/DDL and never use a semicolon.
- dialect "dax": write one DAX query starting with EVALUATE.
- Use only tables and columns present in the schema when a schema is given.

Output format (important):
- Return exactly one JSON object and nothing else, no markdown or code fences.

Example:
{"query": "SELECT region, SUM(revenue) AS total_revenue FROM sales GROUP BY region"}
"""


class LLMQueryGenerator:
    """Asks the chat-completion service for {"query": "..."} JSON."""

    def __init__(self, llm_client: LLMClient, settings: Settings):
        self.llm_client = llm_client
        self.settings = settings

    async def generate(
        self,
        question: str,
        dialect: Dialect,
        dataset_id: Optional[str] = None,
        schema: Optional[Dict[str, Any]] = None,
    ) -> str:
        payload = {
            "dialect": dialect.value,
            "dataset_id": dataset_id,
            "schema": schema,
            "question": question,
        }
        messages = [
            {"role": "system", "content": QUERY_SYSTEM_PROMPT},
            {"role": "user", "content": json.dumps(payload, ensure_ascii=False, default=str)},
        ]

        completion = await self.llm_client.chat(
            messages, model=self.settings.OPENAI_SQL_MODEL, temperature=0.0
        )
        raw = completion.content

        try:
            parsed = json.loads(raw)
            query = str(parsed.get("query", "")).strip() if isinstance(parsed, dict) else ""
        except json.JSONDecodeError:
            # model ignored the JSON instruction; use the raw text as the query
            query = raw.strip()

        if not query:
            raise QueryGenerationError("LLM returned an empty query")

        if dialect == Dialect.SQL:
            head = query.lstrip().upper()
            if not (head.startswith("SELECT") or head.startswith("WITH")):
                raise QueryGenerationError("Only SELECT queries are allowed.")
            if ";" in query:
                raise QueryGenerationError("Semicolons are forbidden in the SQL query.")

        logger.debug("Generated %s query: %s", dialect.value, query)
        return query


def build_query_generator(settings: Settings, llm_client: LLMClient) -> QueryGenerator:
    if settings.QUERY_GENERATOR == "llm":
        return LLMQueryGenerator(llm_client, settings)
    return TemplateQueryGenerator()
