"""
Abstract base class for vector stores.

The engine assumes an external nearest-neighbour primitive and only
needs a narrow, document-aware surface on top of it: similarity search
restricted to a set of document ids, a few metadata lookups the
retrieval procedures use (page ranges, keyword matches, early pages),
and append/delete for ingestion.

All methods are async because real backends are remote services.

Error contract: search methods never raise. A store that hits a service
or configuration error logs it with an actionable hint and returns an
empty list, so callers can apply their own fallback policy (the
multi-hop loop treats it as "no evidence"). Write methods may raise;
ingestion decides what to do with a failed write.
"""

from abc import ABC, abstractmethod
from typing import Optional

from corpus_rag.models.document import Chunk, ScoredChunk


class BaseVectorStore(ABC):
    """
    Contract for document-aware vector stores.

    similarity is always in [0, 1] and higher means closer. Results come
    back ordered by similarity, descending, and capped at limit.
    """

    @abstractmethod
    async def search(
        self,
        query_embedding: list[float],
        document_ids: list[str],
        limit: int = 50,
        threshold: float = 0.3,
    ) -> list[ScoredChunk]:
        """
        Nearest chunks to query_embedding across the given documents.

        Args:
            query_embedding: Vector of the query, same dimension as the chunks.
            document_ids: Only chunks of these documents are considered.
            limit: Maximum number of results.
            threshold: Minimum similarity for a chunk to be returned.

        Returns:
            ScoredChunks with source "vector_match", most similar first.
            Empty on any backend error.
        """
        ...

    async def search_document(
        self,
        query_embedding: list[float],
        document_id: str,
        limit: int = 30,
        threshold: float = 0.3,
    ) -> list[ScoredChunk]:
        """Per-document search, used for balanced retrieval."""
        return await self.search(query_embedding, [document_id], limit=limit, threshold=threshold)

    @abstractmethod
    async def add_chunks(self, chunks: list[Chunk]) -> None:
        """Append embedded chunks."""
        ...

    @abstractmethod
    async def delete_document(self, document_id: str) -> int:
        """Delete every chunk of a document. Returns how many were removed."""
        ...

    @abstractmethod
    async def delete_chunks(self, chunk_ids: list[str]) -> int:
        """Delete chunks by id. Returns how many were removed."""
        ...

    @abstractmethod
    async def get_document_chunks(self, document_id: str) -> list[Chunk]:
        """All chunks of a document ordered by page."""
        ...

    @abstractmethod
    async def list_document_ids(self) -> list[str]:
        """Ids of every document with at least one stored chunk."""
        ...

    @abstractmethod
    async def get_chunks_by_page_range(
        self,
        document_ids: list[str],
        start_page: int,
        end_page: int,
        limit: int,
        exclude_text: Optional[str] = None,
    ) -> list[Chunk]:
        """
        Chunks whose page lies in [start_page, end_page], ordered by page.

        exclude_text drops the chunk the caller is expanding around.
        """
        ...

    @abstractmethod
    async def keyword_search(
        self,
        document_ids: list[str],
        keyword: str,
        limit: int,
    ) -> list[Chunk]:
        """Chunks containing keyword, case-insensitive, ordered by page."""
        ...

    @abstractmethod
    async def early_chunks(
        self,
        document_ids: list[str],
        max_page: int,
        limit: int,
    ) -> list[Chunk]:
        """First chunks of the documents (page <= max_page) in page order."""
        ...

    @abstractmethod
    async def max_page(self, document_ids: list[str]) -> int:
        """Highest page number stored for the documents, 0 when empty."""
        ...

    async def count_chunks(self, document_ids: list[str]) -> int:
        total = 0
        for document_id in document_ids:
            total += len(await self.get_document_chunks(document_id))
        return total
