"""
Vector store implementations and factory.

This is the final step of the indexing pipeline:

    Chunker → EmbeddingPipeline → VectorStore (this file)

Two backends implement BaseVectorStore:

    InMemoryVectorStore  Exact cosine similarity over every stored chunk.
                         No extra dependencies. The reference backend, and
                         what the tests run against.
    FAISSVectorStore     Nearest-neighbour search delegated to LangChain's
                         FAISS wrapper (pip install corpus-rag[faiss]).
                         Vectors are L2-normalized and compared by inner
                         product, so scores are cosine similarities too.

Both keep a chunk registry in process for the metadata lookups the
retrieval procedures need (page ranges, keyword matches, early pages).
Search never raises: a backend failure is logged with a hint and an
empty list comes back.

Usage:
    from corpus_rag.indexing.vectorstore import get_vector_store
    from corpus_rag.config import VectorStoreConfig

    store = get_vector_store(VectorStoreConfig(store_type="memory"))
    await store.add_chunks(chunks)
    hits = await store.search(query_vector, ["doc-1"], limit=10, threshold=0.3)
"""

import logging
import math
from typing import Optional

from langchain_core.embeddings import Embeddings

from corpus_rag.base.vectorstore import BaseVectorStore
from corpus_rag.config import VectorStoreConfig, VectorStoreType
from corpus_rag.errors import ConfigurationError
from corpus_rag.models.document import Chunk, ScoredChunk

logger = logging.getLogger(__name__)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity clamped to [0, 1]; 0 for zero vectors or mismatched dimensions."""
    if len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return min(max(dot / (norm_a * norm_b), 0.0), 1.0)


def _page_order(chunk: Chunk) -> tuple[int, int]:
    return chunk.page_number, int(chunk.metadata.get("chunk_index_in_page", 0))


class InMemoryVectorStore(BaseVectorStore):
    """
    Exact, in-process vector store.

    Keeps chunks in a dict keyed by id (insertion order preserved) and
    scans all chunks of the requested documents on every search. Fine
    for thousands of chunks; use FAISSVectorStore beyond that.
    """

    def __init__(self):
        self._chunks: dict[str, Chunk] = {}

    def __len__(self) -> int:
        return len(self._chunks)

    def _select(self, document_ids: list[str]) -> list[Chunk]:
        wanted = set(document_ids)
        return [c for c in self._chunks.values() if c.document_id in wanted]

    async def search(
        self,
        query_embedding: list[float],
        document_ids: list[str],
        limit: int = 50,
        threshold: float = 0.3,
    ) -> list[ScoredChunk]:
        if not query_embedding or not document_ids or limit <= 0:
            return []
        try:
            scored = [
                ScoredChunk(chunk=chunk, similarity=cosine_similarity(query_embedding, chunk.embedding))
                for chunk in self._select(document_ids)
            ]
        except Exception as exc:
            logger.error(f"In-memory search failed: {exc}")
            return []

        hits = [s for s in scored if s.similarity >= threshold]
        hits.sort(key=lambda s: s.similarity, reverse=True)
        return hits[:limit]

    async def add_chunks(self, chunks: list[Chunk]) -> None:
        for chunk in chunks:
            self._chunks[chunk.id] = chunk

    async def delete_document(self, document_id: str) -> int:
        ids = [cid for cid, c in self._chunks.items() if c.document_id == document_id]
        return await self.delete_chunks(ids)

    async def delete_chunks(self, chunk_ids: list[str]) -> int:
        removed = 0
        for chunk_id in chunk_ids:
            if self._chunks.pop(chunk_id, None) is not None:
                removed += 1
        return removed

    async def get_document_chunks(self, document_id: str) -> list[Chunk]:
        return sorted(self._select([document_id]), key=_page_order)

    async def list_document_ids(self) -> list[str]:
        seen: list[str] = []
        for chunk in self._chunks.values():
            if chunk.document_id not in seen:
                seen.append(chunk.document_id)
        return seen

    async def get_chunks_by_page_range(
        self,
        document_ids: list[str],
        start_page: int,
        end_page: int,
        limit: int,
        exclude_text: Optional[str] = None,
    ) -> list[Chunk]:
        matches = [
            c for c in self._select(document_ids)
            if start_page <= c.page_number <= end_page and c.text != exclude_text
        ]
        return sorted(matches, key=_page_order)[:limit]

    async def keyword_search(
        self,
        document_ids: list[str],
        keyword: str,
        limit: int,
    ) -> list[Chunk]:
        needle = keyword.strip().lower()
        if not needle:
            return []
        matches = [c for c in self._select(document_ids) if needle in c.text.lower()]
        return sorted(matches, key=_page_order)[:limit]

    async def early_chunks(
        self,
        document_ids: list[str],
        max_page: int,
        limit: int,
    ) -> list[Chunk]:
        matches = [c for c in self._select(document_ids) if c.page_number <= max_page]
        return sorted(matches, key=_page_order)[:limit]

    async def max_page(self, document_ids: list[str]) -> int:
        return max((c.page_number for c in self._select(document_ids)), default=0)


class FAISSVectorStore(InMemoryVectorStore):
    """
    FAISS-backed vector store.

    The chunk registry inherited from InMemoryVectorStore answers the
    metadata lookups; similarity search goes through a LangChain FAISS
    index built lazily on the first add (FAISS cannot be created empty
    through LangChain). Chunk ids double as FAISS docstore ids so deletes
    stay in sync.

    The embeddings instance is only required by LangChain's constructor;
    vectors are always supplied precomputed.
    """

    def __init__(self, embeddings: Embeddings):
        super().__init__()
        try:
            from langchain_community.vectorstores import FAISS  # noqa: F401
        except ImportError:
            raise ImportError(
                "FAISSVectorStore requires langchain-community and faiss-cpu. "
                "Install with: pip install corpus-rag[faiss]"
            )
        self._embeddings = embeddings
        self._index = None

    async def add_chunks(self, chunks: list[Chunk]) -> None:
        if not chunks:
            return
        from langchain_community.vectorstores import FAISS
        from langchain_community.vectorstores.utils import DistanceStrategy

        pairs = [(c.text, c.embedding) for c in chunks]
        metadatas = [
            {"chunk_id": c.id, "document_id": c.document_id, "page_number": c.page_number}
            for c in chunks
        ]
        ids = [c.id for c in chunks]

        if self._index is None:
            self._index = FAISS.from_embeddings(
                pairs,
                self._embeddings,
                metadatas=metadatas,
                ids=ids,
                normalize_L2=True,
                distance_strategy=DistanceStrategy.MAX_INNER_PRODUCT,
            )
        else:
            self._index.add_embeddings(pairs, metadatas=metadatas, ids=ids)

        await super().add_chunks(chunks)

    async def delete_chunks(self, chunk_ids: list[str]) -> int:
        present = [cid for cid in chunk_ids if cid in self._chunks]
        if present and self._index is not None:
            self._index.delete(present)
        return await super().delete_chunks(present)

    async def search(
        self,
        query_embedding: list[float],
        document_ids: list[str],
        limit: int = 50,
        threshold: float = 0.3,
    ) -> list[ScoredChunk]:
        if self._index is None or not query_embedding or not document_ids or limit <= 0:
            return []

        wanted = set(document_ids)
        try:
            results = self._index.similarity_search_with_score_by_vector(
                query_embedding,
                k=limit,
                filter=lambda metadata: metadata.get("document_id") in wanted,
                fetch_k=max(len(self._chunks), limit),
            )
        except Exception as exc:
            logger.error(
                f"FAISS search failed: {exc}. Check that query vectors match "
                f"the dimension of the indexed chunks."
            )
            return []

        hits = []
        for doc, score in results:
            chunk = self._chunks.get(doc.metadata.get("chunk_id", ""))
            if chunk is None:
                continue
            similarity = min(max(float(score), 0.0), 1.0)
            if similarity >= threshold:
                hits.append(ScoredChunk(chunk=chunk, similarity=similarity))

        hits.sort(key=lambda s: s.similarity, reverse=True)
        return hits[:limit]


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def get_vector_store(
    config: VectorStoreConfig,
    embeddings: Optional[Embeddings] = None,
) -> BaseVectorStore:
    """
    Create an empty vector store for the configured backend.

    Args:
        config: Which backend to use.
        embeddings: Required by the FAISS backend.

    Returns:
        A BaseVectorStore ready for add_chunks().

    Raises:
        ConfigurationError: If the backend is unknown or FAISS is missing embeddings.
    """
    if config.store_type == VectorStoreType.MEMORY:
        return InMemoryVectorStore()

    elif config.store_type == VectorStoreType.FAISS:
        if embeddings is None:
            raise ConfigurationError("The FAISS vector store needs an embeddings instance.")
        return FAISSVectorStore(embeddings)

    else:
        raise ConfigurationError(
            f"Unknown vector store type: '{config.store_type}'. "
            f"Supported: 'memory', 'faiss'."
        )
