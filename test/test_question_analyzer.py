from insight_backend.schemas.query import Dialect
from insight_backend.services.question_analyzer import KeywordQuestionAnalyzer

analyzer = KeywordQuestionAnalyzer()


def test_relational_keywords_classify_as_sql():
    """Only relational keywords -> SQL with confidence above 0.5"""
    analysis = analyzer.classify("SELECT name FROM customers WHERE active = 1")
    assert analysis.suggested_dialect == Dialect.SQL
    assert analysis.confidence > 0.5
    assert set(analysis.matched_keywords) == {"select", "from", "where"}
    assert analysis.reasoning.startswith("Detected SQL-specific keywords")


def test_more_dax_matches_win():
    analysis = analyzer.classify("calculate the sum and average of sales from the store")
    assert analysis.suggested_dialect == Dialect.DAX
    assert analysis.confidence == 0.8


def test_average_revenue_by_region_scenario():
    analysis = analyzer.classify("What is the average revenue by region?")
    assert analysis.suggested_dialect == Dialect.DAX
    assert abs(analysis.confidence - 0.6) < 1e-9
    assert "average" in analysis.reasoning


def test_tie_defaults_to_sql():
    analysis = analyzer.classify("count rows where status is open")
    assert analysis.suggested_dialect == Dialect.SQL
    assert analysis.confidence == 0.6


def test_no_keywords_defaults_to_sql():
    analysis = analyzer.classify("How are we doing this quarter?")
    assert analysis.suggested_dialect == Dialect.SQL
    assert analysis.confidence == 0.5
    assert analysis.reasoning == "Default to SQL for general queries"
    assert analysis.matched_keywords == []


def test_confidence_is_capped():
    question = "measure calculate sum average count filter related earlier"
    analysis = analyzer.classify(question)
    assert analysis.suggested_dialect == Dialect.DAX
    assert analysis.confidence == 0.9


def test_matching_is_case_insensitive():
    analysis = analyzer.classify("Show the AVERAGE order value")
    assert analysis.suggested_dialect == Dialect.DAX


def test_empty_keyword_list_is_respected():
    sql_only = KeywordQuestionAnalyzer(dax_keywords=[])
    analysis = sql_only.classify("What is the average revenue?")
    assert analysis.suggested_dialect == Dialect.SQL
    assert analysis.matched_keywords == []
