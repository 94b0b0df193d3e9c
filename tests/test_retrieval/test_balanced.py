"""Tests for balanced multi-document retrieval."""

import pytest

from corpus_rag.retrieval.balanced import (
    assess_retrieval_quality,
    ensure_cross_document_balance,
    retrieve_balanced_corpus,
)


class TestRetrieveBalancedCorpus:

    @pytest.mark.asyncio
    async def test_every_document_represented(self, corpus_store, embeddings):
        chunks = await retrieve_balanced_corpus(corpus_store, embeddings.embed_query("exile"), ["doc-a", "doc-b"])

        assert len(chunks) == 10
        assert {c.document_id for c in chunks} == {"doc-a", "doc-b"}
        assert all(c.source == "balanced" for c in chunks)
        similarities = [c.similarity for c in chunks]
        assert similarities == sorted(similarities, reverse=True)

    @pytest.mark.asyncio
    async def test_missing_document_forced_with_looser_threshold(self, corpus_store, embeddings):
        chunks = await retrieve_balanced_corpus(
            corpus_store,
            embeddings.embed_query("exile"),
            ["doc-a", "doc-b"],
            threshold=0.8,
            fallback_threshold=0.5,
            fallback_count=2,
        )

        fallback = [c for c in chunks if c.source == "balanced_fallback"]
        assert len(fallback) == 2
        assert {c.document_id for c in fallback} == {"doc-b"}
        assert len(chunks) == 8

    @pytest.mark.asyncio
    async def test_cut_never_drops_a_document(self, corpus_store, embeddings):
        chunks = await retrieve_balanced_corpus(
            corpus_store, embeddings.embed_query("exile"), ["doc-a", "doc-b"], total_chunks=3,
        )

        assert len(chunks) == 3
        assert {c.document_id for c in chunks} == {"doc-a", "doc-b"}

    @pytest.mark.asyncio
    async def test_forced_hits_respect_the_budget(self, corpus_store, embeddings):
        """Four forced doc-b hits plus doc-a's best would be five; the budget is three."""
        chunks = await retrieve_balanced_corpus(
            corpus_store,
            embeddings.embed_query("exile"),
            ["doc-a", "doc-b"],
            total_chunks=3,
            threshold=0.8,
            fallback_threshold=0.5,
            fallback_count=4,
        )

        assert len(chunks) == 3
        assert {c.document_id for c in chunks} == {"doc-a", "doc-b"}
        assert sum(c.source == "balanced_fallback" for c in chunks) == 2

    @pytest.mark.asyncio
    async def test_no_documents(self, corpus_store, embeddings):
        assert await retrieve_balanced_corpus(corpus_store, embeddings.embed_query("exile"), []) == []


class TestEnsureCrossDocumentBalance:

    def test_per_document_floor(self, make_scored):
        ranked = [make_scored("a", p, 0.9 - p / 100) for p in range(1, 6)]
        ranked += [make_scored("b", 1, 0.5), make_scored("b", 2, 0.4)]

        result = ensure_cross_document_balance(ranked, ["a", "b"], target=4)

        assert [(c.document_id, c.page_number) for c in result] == [("a", 1), ("a", 2), ("b", 1), ("b", 2)]

    def test_fills_with_best_of_the_rest(self, make_scored):
        ranked = [make_scored("a", p, 0.9) for p in range(1, 6)] + [make_scored("b", 1, 0.5)]

        result = ensure_cross_document_balance(ranked, ["a", "b"], target=4)

        assert len(result) == 4
        assert ("b", 1) in [(c.document_id, c.page_number) for c in result]

    def test_ignores_unselected_documents(self, make_scored):
        ranked = [make_scored("c", 1, 0.99), make_scored("a", 1, 0.5)]
        assert [c.document_id for c in ensure_cross_document_balance(ranked, ["a"], target=5)] == ["a"]

    def test_without_documents_truncates(self, make_scored):
        ranked = [make_scored("a", p, 0.5) for p in range(1, 4)]
        assert ensure_cross_document_balance(ranked, [], target=2) == ranked[:2]


def test_assess_retrieval_quality(make_scored):
    metrics = assess_retrieval_quality(
        [make_scored("a", 1, 0.8), make_scored("a", 2, 0.4)],
        ["a", "b"],
    )

    assert metrics.documents_represented == 1
    assert metrics.total_documents == 2
    assert metrics.coverage_ratio == 0.5
    assert metrics.average_similarity == pytest.approx(0.6)
    assert metrics.min_similarity == 0.4
    assert metrics.max_similarity == 0.8
