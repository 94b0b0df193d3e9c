"""
Text chunking and the chunk quality filter.

Takes normalized page text and splits it into substantive chunks for
embedding. Each chunker implements BaseChunker and is driven by
ChunkingConfig.

Choosing a strategy:

    "paragraph"   Default. Packs whole paragraphs up to the target size.
                  A paragraph longer than the target is split on sentence
                  boundaries and regrouped, and the last few sentences of
                  each finished chunk seed the next one so context carries
                  across the boundary. Sentence-aware for Arabic (؟).

    "recursive"   LangChain's RecursiveCharacterTextSplitter with a fixed
                  character overlap. Good for clean prose without reliable
                  paragraph breaks.

Both strategies pass every chunk through ChunkQualityEvaluator. A chunk
that is too short, has too few words or sentences, is just numbers and
dashes, or is a bare "Chapter ..." heading is logged and dropped. It is
never glued onto a neighbour, so accepted chunk boundaries do not depend
on what was rejected.

Usage:
    from corpus_rag.indexing.chunking import get_chunker
    from corpus_rag.config import ChunkingConfig

    chunker = get_chunker(ChunkingConfig(strategy="paragraph"))
    chunks = chunker.chunk(text)
"""

import logging
import re
from typing import Optional

from langchain_text_splitters import RecursiveCharacterTextSplitter
from pydantic import BaseModel, Field

from corpus_rag.base.indexer import BaseChunker
from corpus_rag.config import ChunkingConfig

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?؟])\s+")
_SENTENCE_END = re.compile(r"[.!?؟]+")
_ONLY_NUMBERS_AND_DASHES = re.compile(r"^[-_\d\s.]+$")
_BARE_HEADING = re.compile(r"^(الباب|الفصل|Chapter|Section)\s+[\u0600-\u06FF\w\s]+$", re.IGNORECASE)


class ChunkQualityMetrics(BaseModel):
    """Quality measurements for one chunk."""

    has_substantial_content: bool
    word_count: int = Field(ge=0)
    sentence_count: int = Field(ge=0)
    uniqueness_score: float = Field(ge=0.0, le=1.0)


class ChunkQualityEvaluator:
    """
    Decides whether a chunk carries enough information to be worth embedding.

    Two independent checks:
        is_substantial     Length, word and sentence minimums, plus the
                           numbers-only and bare-heading exclusions.
        uniqueness_score   1 - the highest token-set overlap with any other
                           chunk, where overlap = |A ∩ B| / min(|A|, |B|).
                           Near-duplicates score close to 0.

    Ingestion applies is_substantial with config.min_sentences. The
    cleanup pass over an existing corpus uses the looser
    config.cleanup_min_sentences together with the uniqueness threshold.
    """

    def __init__(self, config: Optional[ChunkingConfig] = None):
        self.config = config or ChunkingConfig()

    @staticmethod
    def count_words(text: str) -> int:
        return len(text.split())

    @staticmethod
    def count_sentences(text: str) -> int:
        return len(_SENTENCE_END.findall(text))

    def is_substantial(self, text: str, min_sentences: Optional[int] = None) -> bool:
        trimmed = text.strip()
        required_sentences = self.config.min_sentences if min_sentences is None else min_sentences

        if len(trimmed) < self.config.min_chunk_chars:
            return False
        if _ONLY_NUMBERS_AND_DASHES.match(trimmed):
            return False
        if _BARE_HEADING.match(trimmed):
            return False
        if self.count_sentences(trimmed) < required_sentences:
            return False
        if self.count_words(trimmed) < self.config.min_words:
            return False
        return True

    @staticmethod
    def uniqueness_score(text: str, others: list[str]) -> float:
        """
        How different text is from every other chunk, in [0, 1].

        Chunks identical to text are skipped (a chunk is not a duplicate of
        itself). With nothing to compare against the score is 1.0.
        """
        tokens = set(text.lower().split())
        if not tokens:
            return 0.0

        max_overlap = 0.0
        for other in others:
            if other == text:
                continue
            other_tokens = set(other.lower().split())
            if not other_tokens:
                continue
            overlap = len(tokens & other_tokens) / min(len(tokens), len(other_tokens))
            max_overlap = max(max_overlap, overlap)

        return 1.0 - max_overlap

    def evaluate(
        self,
        text: str,
        others: list[str],
        min_sentences: Optional[int] = None,
    ) -> ChunkQualityMetrics:
        trimmed = text.strip()
        return ChunkQualityMetrics(
            has_substantial_content=self.is_substantial(trimmed, min_sentences=min_sentences),
            word_count=self.count_words(trimmed),
            sentence_count=self.count_sentences(trimmed),
            uniqueness_score=self.uniqueness_score(trimmed, others),
        )


class _FilteringChunker(BaseChunker):
    """Shared quality filtering for the concrete chunkers."""

    def __init__(self, config: ChunkingConfig):
        super().__init__(config)
        self.evaluator = ChunkQualityEvaluator(config)

    def _accept(self, candidates: list[str]) -> list[str]:
        accepted = []
        for candidate in candidates:
            text = candidate.strip()
            if not text:
                continue
            if self.evaluator.is_substantial(text):
                accepted.append(text)
            else:
                logger.debug(f"Rejected low-information chunk ({len(text)} chars): {text[:60]!r}")
        return accepted


class ParagraphChunker(_FilteringChunker):
    """
    Paragraph-first chunker with sentence-level overlap.

    Paragraphs are packed into a chunk until adding the next one would
    exceed target_chunk_size. Oversized paragraphs are split into
    sentences and regrouped; every time a sentence group is closed, its
    last overlap_sentences sentences start the next group. The overlap is
    trimmed to at most half the target so groups always advance.
    """

    def chunk(self, text: str) -> list[str]:
        target = self.config.target_chunk_size
        paragraphs = [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]

        candidates: list[str] = []
        current = ""

        for paragraph in paragraphs:
            if len(paragraph) > target:
                if current:
                    candidates.append(current)
                    current = ""
                candidates.extend(self._split_long_paragraph(paragraph))
            elif current and len(current) + len(paragraph) + 2 > target:
                candidates.append(current)
                current = paragraph
            else:
                current = f"{current}\n\n{paragraph}" if current else paragraph

        if current:
            candidates.append(current)

        return self._accept(candidates)

    def _split_long_paragraph(self, paragraph: str) -> list[str]:
        target = self.config.target_chunk_size
        sentences = [s.strip() for s in _SENTENCE_BOUNDARY.split(paragraph) if s.strip()]

        groups: list[str] = []
        group: list[str] = []
        fresh = 0  # sentences in group that are not overlap

        for sentence in sentences:
            candidate_len = len(" ".join(group + [sentence]))
            if group and fresh and candidate_len > target:
                groups.append(" ".join(group))
                group = self._overlap(group)
                fresh = 0
            group.append(sentence)
            fresh += 1

        if group and fresh:
            groups.append(" ".join(group))

        return groups

    def _overlap(self, sentences: list[str]) -> list[str]:
        count = self.config.overlap_sentences
        if count <= 0:
            return []
        seed = sentences[-count:]
        while seed and len(" ".join(seed)) > self.config.target_chunk_size // 2:
            seed = seed[1:]
        return seed


class RecursiveChunker(_FilteringChunker):
    """
    Splits text using a hierarchy of separators.

    RecursiveCharacterTextSplitter tries paragraph breaks first, then
    newlines, sentence ends, spaces and finally characters. Chunks still
    go through the quality filter afterwards.
    """

    def __init__(self, config: ChunkingConfig):
        super().__init__(config)
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=config.target_chunk_size,
            chunk_overlap=config.chunk_overlap,
            length_function=len,
            separators=["\n\n", "\n", ". ", "؟ ", " ", ""],
        )

    def chunk(self, text: str) -> list[str]:
        return self._accept(self._splitter.split_text(text))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def get_chunker(config: ChunkingConfig) -> BaseChunker:
    """
    Factory that returns the right chunker based on config.strategy.

    Args:
        config: ChunkingConfig with strategy set.

    Returns:
        A BaseChunker implementation.

    Raises:
        ValueError: If the strategy is not recognized.
    """
    strategy = config.strategy.lower()

    if strategy == "paragraph":
        return ParagraphChunker(config)

    elif strategy == "recursive":
        return RecursiveChunker(config)

    else:
        raise ValueError(
            f"Unknown chunking strategy: '{config.strategy}'. "
            f"Built-in strategies: 'paragraph', 'recursive'. "
            f"For custom chunkers, subclass BaseChunker directly."
        )
