"""Tests for document models — pure Pydantic, no API calls."""

import pytest

from corpus_rag.models.document import Chunk, PageText, ScoredChunk


def test_chunk_requires_embedding():
    """A chunk is never stored with an empty vector."""
    with pytest.raises(ValueError, match="embedding"):
        Chunk(document_id="doc", page_number=1, text="some text", embedding=[])


def test_chunk_requires_text():
    with pytest.raises(ValueError, match="text"):
        Chunk(document_id="doc", page_number=1, text="   ", embedding=[0.1])


def test_chunk_page_is_one_based():
    with pytest.raises(Exception):
        Chunk(document_id="doc", page_number=0, text="x", embedding=[0.1])


def test_chunk_is_frozen():
    chunk = Chunk(document_id="doc", page_number=1, text="x", embedding=[0.1, 0.2])
    with pytest.raises(Exception):
        chunk.text = "changed"


def test_chunk_dimension_and_unique_ids():
    a = Chunk(document_id="doc", page_number=1, text="x", embedding=[0.1, 0.2, 0.3])
    b = Chunk(document_id="doc", page_number=1, text="x", embedding=[0.1, 0.2, 0.3])
    assert a.dimension == 3
    assert a.id != b.id


def test_scored_chunk_delegates_to_chunk():
    chunk = Chunk(document_id="doc-7", page_number=4, text="hello", embedding=[1.0])
    scored = ScoredChunk(chunk=chunk, similarity=0.8)
    assert scored.text == "hello"
    assert scored.document_id == "doc-7"
    assert scored.page_number == 4
    assert scored.source == "vector_match"


def test_scored_chunk_similarity_bounds():
    chunk = Chunk(document_id="doc", page_number=1, text="x", embedding=[1.0])
    with pytest.raises(Exception):
        ScoredChunk(chunk=chunk, similarity=1.2)


def test_with_score_clamps_and_retags():
    chunk = Chunk(document_id="doc", page_number=1, text="x", embedding=[1.0])
    scored = ScoredChunk(chunk=chunk, similarity=0.5)

    rescored = scored.with_score(1.7, "balanced")

    assert rescored.similarity == 1.0
    assert rescored.source == "balanced"
    assert scored.source == "vector_match"
    assert scored.with_score(0.3).source == "vector_match"


def test_page_text_defaults():
    page = PageText(page_number=3)
    assert page.text == ""
