"""Tests for chunking and the chunk quality filter — no API calls needed."""

import pytest

from corpus_rag.config import ChunkingConfig
from corpus_rag.indexing.chunking import (
    ChunkQualityEvaluator,
    ParagraphChunker,
    RecursiveChunker,
    get_chunker,
)

SHORT_PARAGRAPHS = (
    "The exile began in the spring. Families left their homes and walked north.\n\n"
    "Letters from the road describe hunger. They also describe songs sung at night."
)


def _long_paragraph(sentences=8):
    return " ".join(
        f"Sentence number {i} describes the long road of exile in detail." for i in range(1, sentences + 1)
    )


class TestParagraphChunker:

    def test_packs_small_paragraphs(self, chunking_config):
        """Paragraphs that fit the target end up in one chunk."""
        chunks = ParagraphChunker(chunking_config).chunk(SHORT_PARAGRAPHS)
        assert len(chunks) == 1
        assert "Families left" in chunks[0]
        assert "songs sung" in chunks[0]

    def test_splits_long_paragraph_with_sentence_overlap(self, chunking_config):
        chunks = ParagraphChunker(chunking_config).chunk(_long_paragraph())

        assert len(chunks) >= 2
        for chunk in chunks:
            assert len(chunk) <= chunking_config.target_chunk_size
        # The last sentence of a chunk seeds the next one
        last_sentence = chunks[0].split(". ")[-1]
        assert chunks[1].startswith(last_sentence.rstrip("."))

    def test_rejects_low_information_paragraphs(self, chunking_config):
        text = f"Chapter One\n\n12 - 13 - 14\n\nToo short.\n\n{_long_paragraph()}"
        chunks = ParagraphChunker(chunking_config).chunk(text)

        assert chunks
        for chunk in chunks:
            assert not chunk.startswith("Chapter One")
            assert "12 - 13" not in chunk

    def test_is_deterministic(self, chunking_config):
        chunker = ParagraphChunker(chunking_config)
        text = SHORT_PARAGRAPHS + "\n\n" + _long_paragraph()
        assert chunker.chunk(text) == chunker.chunk(text)

    def test_empty_text(self, chunking_config):
        assert ParagraphChunker(chunking_config).chunk("") == []


class TestRecursiveChunker:

    def test_chunks_respect_size(self):
        config = ChunkingConfig(
            strategy="recursive",
            target_chunk_size=200,
            chunk_overlap=20,
            min_chunk_chars=40,
            min_words=8,
            min_sentences=2,
        )
        chunks = RecursiveChunker(config).chunk(_long_paragraph(12))
        assert len(chunks) > 1
        for chunk in chunks:
            assert len(chunk) <= 200


class TestGetChunker:

    def test_paragraph(self):
        assert isinstance(get_chunker(ChunkingConfig(strategy="paragraph")), ParagraphChunker)

    def test_recursive(self):
        assert isinstance(get_chunker(ChunkingConfig(strategy="recursive")), RecursiveChunker)

    def test_unknown_strategy_raises(self):
        with pytest.raises(ValueError, match="Unknown chunking strategy"):
            get_chunker(ChunkingConfig(strategy="semantic"))


class TestChunkQualityEvaluator:

    def test_substantial_text(self, chunking_config):
        evaluator = ChunkQualityEvaluator(chunking_config)
        assert evaluator.is_substantial(_long_paragraph(3))

    def test_bare_heading_is_not_substantial(self, chunking_config):
        evaluator = ChunkQualityEvaluator(chunking_config)
        assert not evaluator.is_substantial("Chapter Twelve and the return of the exiled poets to the city")

    def test_min_sentences_override(self, chunking_config):
        evaluator = ChunkQualityEvaluator(chunking_config)
        one_sentence = "A single but rather long sentence about the exile of many poets and scholars."
        assert not evaluator.is_substantial(one_sentence)
        assert evaluator.is_substantial(one_sentence, min_sentences=1)

    def test_uniqueness_of_near_duplicate(self):
        score = ChunkQualityEvaluator.uniqueness_score("the road north", ["the road north again"])
        assert score == 0.0

    def test_uniqueness_without_others(self):
        assert ChunkQualityEvaluator.uniqueness_score("alone here", []) == 1.0
        assert ChunkQualityEvaluator.uniqueness_score("alone here", ["alone here"]) == 1.0

    def test_evaluate_reports_counts(self, chunking_config):
        metrics = ChunkQualityEvaluator(chunking_config).evaluate(_long_paragraph(3), [])
        assert metrics.has_substantial_content
        assert metrics.sentence_count == 3
        assert metrics.uniqueness_score == 1.0
