"""Tests for query models."""

from corpus_rag.models.query import QueryAnalysis, QueryType, RetrievalStrategy


def test_every_query_type_has_a_strategy():
    for query_type in QueryType:
        assert RetrievalStrategy.for_query_type(query_type).value == query_type.value


def test_strategy_set_is_closed():
    assert {s.value for s in RetrievalStrategy} == {
        "narrative",
        "analytical",
        "factual",
        "thematic",
        "hybrid",
        "comparative",
        "multi_document_comprehensive",
    }


def test_search_text_prefers_expansion():
    analysis = QueryAnalysis(original_query="who?", expanded_query="who? author")
    assert analysis.search_text() == "who? author"


def test_search_text_falls_back_to_query():
    analysis = QueryAnalysis(original_query="who?")
    assert analysis.search_text() == "who?"
    assert analysis.query_type == QueryType.HYBRID
