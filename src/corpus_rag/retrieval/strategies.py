"""
Candidate gathering procedures for each retrieval strategy.

Every procedure gathers a candidate pool for one query. The pool is a
fresh CandidatePool per call, keyed by chunk text, so the same passage
reached by two routes (vector hit and keyword match) appears once with
the provenance of whichever route found it first. Reranking and
confidence happen in search.py; this module only gathers.

Single-document procedures:

    narrative   Opening pages (setting, characters) + vector hits +
                neighbouring pages of the best hits for sequence +
                keyword matches. Top 50.
    analytical  Wide vector search, then the best 2 chunks of every
                8-page stretch so arguments from the whole document are
                represented, plus every very strong hit. Top 45.
    factual     Strict vector search + exact keyword matches + nearby
                supporting pages of the best hits. Top 40.
    thematic    Wide vector search + samples from five positional bands
                of the document (introduction ... conclusion). Top 50.
    hybrid      Vector hits + keyword matches + one chunk from each
                5-page stretch for diversity. Top 45.

Multi-document procedures add chunks to a balanced base result:

    enrich_with_document_specific_content   per-document strong hits (comparative)
    apply_query_type_enhancement            one wide search across all documents
"""

import asyncio
import math
from typing import Iterable, Optional

from corpus_rag.base.vectorstore import BaseVectorStore
from corpus_rag.indexing.vectorstore import cosine_similarity
from corpus_rag.models.document import Chunk, ScoredChunk
from corpus_rag.models.query import QueryAnalysis, QueryType

THEMATIC_BANDS: list[tuple[str, float, float]] = [
    ("introduction", 0.00, 0.15),
    ("early", 0.25, 0.35),
    ("core", 0.45, 0.55),
    ("late", 0.65, 0.75),
    ("conclusion", 0.85, 1.00),
]


class CandidatePool:
    """
    Ordered, text-keyed collection of candidates for one retrieval call.

    The first chunk added for a given text wins. Not shared between calls.
    """

    def __init__(self, chunks: Optional[Iterable[ScoredChunk]] = None):
        self._by_text: dict[str, ScoredChunk] = {}
        if chunks:
            self.extend(chunks)

    def __len__(self) -> int:
        return len(self._by_text)

    def __contains__(self, text: str) -> bool:
        return text in self._by_text

    def add(self, chunk: ScoredChunk) -> bool:
        if chunk.text in self._by_text:
            return False
        self._by_text[chunk.text] = chunk
        return True

    def extend(self, chunks: Iterable[ScoredChunk]) -> int:
        return sum(1 for chunk in chunks if self.add(chunk))

    def items(self) -> list[ScoredChunk]:
        """Candidates in insertion order."""
        return list(self._by_text.values())

    def ranked(self, limit: Optional[int] = None) -> list[ScoredChunk]:
        """Candidates by similarity, descending; ties keep insertion order."""
        ordered = sorted(self._by_text.values(), key=lambda c: c.similarity, reverse=True)
        return ordered if limit is None else ordered[:limit]


def _scored(chunks: Iterable[Chunk], similarity: float, source: str) -> list[ScoredChunk]:
    value = min(max(similarity, 0.0), 1.0)
    return [ScoredChunk(chunk=c, similarity=value, source=source) for c in chunks]


async def _neighbours(
    store: BaseVectorStore,
    anchors: list[ScoredChunk],
    radius: int,
    limit: int,
    factor: float,
    source: str,
) -> list[ScoredChunk]:
    """Chunks on pages within radius of each anchor, scored anchor similarity × factor."""
    found = await asyncio.gather(*(
        store.get_chunks_by_page_range(
            [anchor.document_id],
            max(1, anchor.page_number - radius),
            anchor.page_number + radius,
            limit,
            exclude_text=anchor.text,
        )
        for anchor in anchors
    ))
    results: list[ScoredChunk] = []
    for anchor, chunks in zip(anchors, found):
        results.extend(_scored(chunks, anchor.similarity * factor, source))
    return results


async def _keyword_matches(
    store: BaseVectorStore,
    document_ids: list[str],
    keywords: list[str],
    limit: int,
) -> list[list[Chunk]]:
    return await asyncio.gather(*(store.keyword_search(document_ids, kw, limit) for kw in keywords))


def apply_diversity_sampling(
    chunks: list[ScoredChunk],
    sample_size: int,
    page_group: int = 5,
) -> list[ScoredChunk]:
    """
    Best chunk of every page_group-page stretch, up to sample_size chunks.

    chunks are expected best-first; groups are visited in order of their
    best chunk.
    """
    picks: dict[tuple[str, int], ScoredChunk] = {}
    for chunk in chunks:
        key = (chunk.document_id, chunk.page_number // page_group)
        if key not in picks:
            picks[key] = chunk
            if len(picks) >= sample_size:
                break
    return list(picks.values())


# ---------------------------------------------------------------------------
# Single-document procedures
# ---------------------------------------------------------------------------

async def narrative_candidates(
    store: BaseVectorStore,
    query_embedding: list[float],
    analysis: QueryAnalysis,
    document_ids: list[str],
) -> list[ScoredChunk]:
    pool = CandidatePool()

    early = await store.early_chunks(document_ids, max_page=25, limit=12)
    pool.extend(_scored(early, 0.65, "narrative_foundation"))

    hits = await store.search(query_embedding, document_ids, limit=100, threshold=0.35)
    pool.extend(hits[:30])

    pool.extend(await _neighbours(store, hits[:10], radius=1, limit=4, factor=0.8, source="sequential_context"))

    for matches in await _keyword_matches(store, document_ids, analysis.keywords[:4], limit=8):
        pool.extend(_scored(matches, 0.5, "keyword_match"))

    return pool.ranked(50)


async def analytical_candidates(
    store: BaseVectorStore,
    query_embedding: list[float],
    analysis: QueryAnalysis,
    document_ids: list[str],
) -> list[ScoredChunk]:
    pool = CandidatePool()
    hits = await store.search(query_embedding, document_ids, limit=150, threshold=0.30)

    buckets: dict[tuple[str, int], list[ScoredChunk]] = {}
    for hit in hits:
        buckets.setdefault((hit.document_id, (hit.page_number - 1) // 8), []).append(hit)
    for key in sorted(buckets):
        pool.extend(buckets[key][:2])

    pool.extend([h for h in hits if h.similarity >= 0.65][:15])
    return pool.ranked(45)


async def factual_candidates(
    store: BaseVectorStore,
    query_embedding: list[float],
    analysis: QueryAnalysis,
    document_ids: list[str],
) -> list[ScoredChunk]:
    pool = CandidatePool()
    hits = await store.search(query_embedding, document_ids, limit=80, threshold=0.40)
    pool.extend(hits)

    for matches in await _keyword_matches(store, document_ids, analysis.keywords[:5], limit=10):
        for chunk in matches:
            similarity = max(cosine_similarity(query_embedding, chunk.embedding), 0.55)
            pool.add(ScoredChunk(chunk=chunk, similarity=similarity, source="keyword_exact"))

    pool.extend(await _neighbours(store, hits[:8], radius=2, limit=3, factor=0.75, source="factual_support"))
    return pool.ranked(40)


async def thematic_candidates(
    store: BaseVectorStore,
    query_embedding: list[float],
    analysis: QueryAnalysis,
    document_ids: list[str],
) -> list[ScoredChunk]:
    pool = CandidatePool()
    pool.extend(await store.search(query_embedding, document_ids, limit=120, threshold=0.32))

    last_page = await store.max_page(document_ids)
    if last_page > 0:
        ranges = []
        for label, low, high in THEMATIC_BANDS:
            start = max(1, math.floor(last_page * low))
            end = max(start, math.ceil(last_page * high))
            ranges.append((label, start, end))

        found = await asyncio.gather(*(
            store.get_chunks_by_page_range(document_ids, start, end, 6)
            for _, start, end in ranges
        ))
        for (label, _, _), chunks in zip(ranges, found):
            pool.extend(_scored(chunks, 0.45, f"thematic_{label}"))

    return pool.ranked(50)


async def hybrid_candidates(
    store: BaseVectorStore,
    query_embedding: list[float],
    analysis: QueryAnalysis,
    document_ids: list[str],
) -> list[ScoredChunk]:
    pool = CandidatePool()
    hits = await store.search(query_embedding, document_ids, limit=100, threshold=0.35)
    pool.extend(hits[:35])

    for matches in await _keyword_matches(store, document_ids, analysis.keywords[:3], limit=8):
        pool.extend(_scored(matches, 0.5, "keyword_match"))

    # Diversity picks survive the final cut
    ranked = pool.ranked()
    diverse = apply_diversity_sampling(ranked, 15)
    diverse_ids = {c.chunk.id for c in diverse}
    rest = [c for c in ranked if c.chunk.id not in diverse_ids]
    keep = diverse + rest[:max(45 - len(diverse), 0)]
    return sorted(keep, key=lambda c: c.similarity, reverse=True)


# ---------------------------------------------------------------------------
# Multi-document enrichment
# ---------------------------------------------------------------------------

async def enrich_with_document_specific_content(
    store: BaseVectorStore,
    query_embedding: list[float],
    base: list[ScoredChunk],
    document_ids: list[str],
    search_limit: int = 15,
    threshold: float = 0.40,
    per_doc: int = 8,
) -> list[ScoredChunk]:
    """Add each document's strongest hits (tagged doc_specific) to a base result."""
    pool = CandidatePool(base)
    per_doc_hits = await asyncio.gather(*(
        store.search_document(query_embedding, doc_id, limit=search_limit)
        for doc_id in document_ids
    ))
    for hits in per_doc_hits:
        strong = [h for h in hits if h.similarity >= threshold][:per_doc]
        pool.extend(h.with_score(h.similarity, "doc_specific") for h in strong)
    return pool.items()


async def apply_query_type_enhancement(
    store: BaseVectorStore,
    query_embedding: list[float],
    base: list[ScoredChunk],
    document_ids: list[str],
    query_type: QueryType,
    search_limit: int = 50,
    threshold: float = 0.35,
) -> list[ScoredChunk]:
    """Add the best chunks of one wide search; thematic questions get 20, others 15."""
    expansion = 20 if query_type == QueryType.THEMATIC else 15
    pool = CandidatePool(base)
    hits = await store.search(query_embedding, document_ids, limit=search_limit)
    pool.extend([h for h in hits if h.similarity >= threshold][:expansion])
    return pool.items()
