# insight_backend/services/insight_service.py

from datetime import date
from typing import Dict, List, Optional

from insight_backend.core.config import Settings
from insight_backend.core.llm_client import LLMClient
from insight_backend.schemas.insight import GeneratedInsight
from insight_backend.schemas.query import Dialect

# system turn for answering with query results
INSIGHT_SYSTEM_PROMPT = """
You are an expert business intelligence analyst with deep knowledge of data
analysis, semantic models and SQL warehouses.

Your role is to:
1. Analyze enterprise data query results
2. Provide clear, actionable business insights
3. Explain trends, patterns, and anomalies
4. Suggest next steps or recommendations
5. Present information in a business-friendly manner

Guidelines:
- Focus on business value and actionable insights
- Use clear, non-technical language for business users
- Highlight key findings and trends
- Provide context and explain what the data means
- Suggest follow-up questions or actions when appropriate
- If data shows concerning trends, mention them diplomatically
- Always be accurate and don't make assumptions beyond what the data shows
"""

# system turn for the degraded path (no data could be read)
FALLBACK_SYSTEM_PROMPT = """
You are a helpful AI assistant. The user asked a question but there was an
issue accessing the enterprise data. Provide a helpful response and suggest
they try again or contact support.
"""


class InsightGenerator:
    def __init__(self, llm_client: LLMClient, settings: Settings):
        self.llm_client = llm_client
        self.settings = settings

    async def generate(
        self,
        question: str,
        data_context: str,
        query: str,
        dialect: Dialect,
    ) -> GeneratedInsight:
        """
        Two turns: analyst persona + (question, executed query, data context).
        """
        user_content = (
            f"Question: {question}\n\n"
            f"Query executed: {dialect.value.upper()}\n"
            f"{query}\n\n"
            f"{data_context}\n\n"
            "Please analyze this data and provide insights that answer the user's question. "
            "Focus on business value and actionable recommendations."
        )

        messages = [
            {"role": "system", "content": _with_date(INSIGHT_SYSTEM_PROMPT)},
            {"role": "user", "content": user_content},
        ]
        return await self._complete(messages)

    async def generate_fallback(self, question: str) -> GeneratedInsight:
        messages = [
            {"role": "system", "content": FALLBACK_SYSTEM_PROMPT.strip()},
            {"role": "user", "content": question},
        ]
        return await self._complete(messages)

    async def _complete(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> GeneratedInsight:
        completion = await self.llm_client.chat(
            messages,
            model=model or self.settings.OPENAI_INSIGHT_MODEL,
            max_tokens=self.settings.LLM_MAX_TOKENS,
            temperature=self.settings.LLM_TEMPERATURE,
        )
        return GeneratedInsight(content=completion.content.strip(), tokens_used=completion.tokens)


def _with_date(prompt: str) -> str:
    return f"{prompt.strip()}\n\nCurrent date: {date.today().isoformat()}"
