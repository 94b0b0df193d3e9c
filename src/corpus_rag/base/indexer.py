"""
Abstract base class for chunking.

Chunkers work on plain normalized text rather than LangChain Documents:
ingestion already knows the page and document a piece of text belongs to,
so the chunker only has to decide boundaries. The pipeline attaches ids,
pages and embeddings afterwards.

    chunker = get_chunker(ChunkingConfig(strategy="paragraph"))
    pieces = chunker.chunk(page_text)
"""

from abc import ABC, abstractmethod

from corpus_rag.config import ChunkingConfig


class BaseChunker(ABC):
    """
    Contract for text chunkers.

    A chunker splits normalized text into substantive pieces. Different
    chunkers use different boundary strategies:
        - ParagraphChunker: paragraphs, then sentences with sentence overlap
        - RecursiveChunker: LangChain's recursive character splitter

    Every chunker receives a ChunkingConfig so the caller controls the
    target size, overlap and the quality bars. Chunking must be
    deterministic: the same text always yields the same chunks.
    """

    def __init__(self, config: ChunkingConfig):
        self.config = config

    @abstractmethod
    def chunk(self, text: str) -> list[str]:
        """
        Split text into chunks that pass the quality filter.

        Args:
            text: Normalized text of one page or document.

        Returns:
            Chunk texts in document order. Rejected fragments are dropped.
        """
        ...
