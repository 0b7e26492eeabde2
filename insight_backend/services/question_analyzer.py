# insight_backend/services/question_analyzer.py

from typing import List, Optional, Protocol

from insight_backend.schemas.query import Dialect, QuestionAnalysis

# keywords that point at a DAX (measure/aggregation) query
DAX_KEYWORDS = ["measure", "calculate", "sum", "average", "count", "filter", "related", "earlier"]
# keywords that point at a relational SQL query
SQL_KEYWORDS = ["select", "from", "where", "join", "group by", "order by", "having"]


class QuestionClassifier(Protocol):
    def classify(self, question: str) -> QuestionAnalysis:
        ...


class KeywordQuestionAnalyzer:
    """
    Keyword-bag classifier: counts case-insensitive substring hits per dialect.
    DAX wins only with a strictly higher score; ties and zero default to SQL.
    """

    def __init__(
        self,
        dax_keywords: Optional[List[str]] = None,
        sql_keywords: Optional[List[str]] = None,
    ):
        self.dax_keywords = DAX_KEYWORDS if dax_keywords is None else dax_keywords
        self.sql_keywords = SQL_KEYWORDS if sql_keywords is None else sql_keywords

    def classify(self, question: str) -> QuestionAnalysis:
        lower_q = (question or "").lower()

        dax_hits = [k for k in self.dax_keywords if k in lower_q]
        sql_hits = [k for k in self.sql_keywords if k in lower_q]

        if len(dax_hits) > len(sql_hits):
            return QuestionAnalysis(
                suggested_dialect=Dialect.DAX,
                confidence=_confidence(len(dax_hits)),
                reasoning=f"Detected DAX-specific keywords: {', '.join(dax_hits)}",
                matched_keywords=dax_hits,
            )

        if sql_hits:
            return QuestionAnalysis(
                suggested_dialect=Dialect.SQL,
                confidence=_confidence(len(sql_hits)),
                reasoning=f"Detected SQL-specific keywords: {', '.join(sql_hits)}",
                matched_keywords=sql_hits,
            )

        return QuestionAnalysis(
            suggested_dialect=Dialect.SQL,
            confidence=0.5,
            reasoning="Default to SQL for general queries",
        )


def _confidence(score: int) -> float:
    return round(min(0.9, 0.5 + 0.1 * score), 2)
