"""Tests for the rule-based query classifier — pure regex, no LLM calls."""

import pytest

from corpus_rag.models.query import QueryType
from corpus_rag.query.classification import (
    RuleBasedQueryClassifier,
    extract_keywords,
    is_comparative_query,
    is_complex_query,
)


@pytest.fixture
def classifier():
    return RuleBasedQueryClassifier()


class TestQueryType:

    @pytest.mark.parametrize("query, expected", [
        ("Why did the poets leave the city?", QueryType.ANALYTICAL),
        ("Compare the two accounts of the journey", QueryType.ANALYTICAL),
        ("Who wrote the letters from the road?", QueryType.NARRATIVE),
        ("What happened after the exile?", QueryType.NARRATIVE),
        ("What is the main theme of the book?", QueryType.THEMATIC),
        ("What lessons does the author draw?", QueryType.THEMATIC),
        ("When was the city founded?", QueryType.FACTUAL),
        ("How many families left?", QueryType.FACTUAL),
        ("Gardens and rivers", QueryType.HYBRID),
    ])
    def test_english(self, classifier, query, expected):
        assert classifier.classify(query).query_type == expected

    @pytest.mark.parametrize("query, expected", [
        ("لماذا غادر الشعراء المدينة؟", QueryType.ANALYTICAL),
        ("ماذا حدث بعد المنفى؟", QueryType.NARRATIVE),
        ("ما هي الفكرة الرئيسية للكتاب؟", QueryType.THEMATIC),
        ("متى تأسست المدينة؟", QueryType.FACTUAL),
    ])
    def test_arabic(self, classifier, query, expected):
        assert classifier.classify(query).query_type == expected

    def test_first_rule_wins(self, classifier):
        """Analytical cues beat narrative ones in the same question."""
        assert classifier.classify("Why did the character leave?").query_type == QueryType.ANALYTICAL


class TestAnalysis:

    def test_multi_document_needs_several_documents(self, classifier):
        question = "What do both books have in common?"
        assert not classifier.classify(question, ["a"]).is_multi_document_query
        assert classifier.classify(question, ["a", "b"]).is_multi_document_query

    def test_non_comparative_over_several_documents(self, classifier):
        assert not classifier.classify("When was the city founded?", ["a", "b"]).is_multi_document_query

    def test_expanded_query_appends_keywords(self, classifier):
        analysis = classifier.classify("When did the exile begin?")
        assert analysis.keywords == ["exile", "begin"]
        assert analysis.expanded_query == "When did the exile begin? exile begin"
        assert analysis.search_text() == analysis.expanded_query

    def test_history_adds_recent_keywords(self, classifier):
        history = [
            {"role": "user", "content": "Tell me about the garden poems"},
            {"role": "assistant", "content": "They describe Cordoba."},
            {"role": "user", "content": "And the desert caravans?"},
        ]
        analysis = classifier.classify("When did the exile begin?", history=history)
        # Most recent user turn first, at most two extra keywords
        assert analysis.keywords == ["exile", "begin", "desert", "caravans"]

    def test_detected_language(self, classifier):
        assert classifier.classify("When was it?").detected_language == "en"
        assert classifier.classify("متى تأسست المدينة؟").detected_language == "ar"


class TestHelpers:

    def test_extract_keywords_filters(self):
        assert extract_keywords("What were the 1492 events about the exile and the exile?") == ["were", "events", "exile"]

    def test_extract_keywords_limit(self):
        assert len(extract_keywords("alpha bravo charlie delta foxtrot hotel india", limit=3)) == 3

    @pytest.mark.parametrize("query", [
        "How did the exile begin and why did it end?",
        "Compare the two poets",
        "What was the effect of the new law?",
        "Analyze the structure of the letters",
        "قارن بين الكتابين",
    ])
    def test_complex_queries(self, query):
        assert is_complex_query(query)

    def test_simple_query_is_not_complex(self):
        assert not is_complex_query("When was the city founded?")

    def test_comparative_queries(self):
        assert is_comparative_query("What do both texts share?")
        assert is_comparative_query("Differences between the first book and the second")
        assert is_comparative_query("ما المشترك بين الكتابين")
        assert not is_comparative_query("Who wrote the preface?")
