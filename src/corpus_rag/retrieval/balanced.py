"""
Balanced retrieval across several documents.

A single nearest-neighbour search over a multi-document selection tends
to return chunks from whichever document happens to be closest to the
query, and a comparison question then gets answered from one side only.
Balanced retrieval searches each document separately and merges:

    per-document searches (concurrent)
        → merge, sort by similarity
        → force-query documents that returned nothing (looser threshold)
        → cut to total_chunks, never dropping a represented document

ensure_cross_document_balance() applies the same idea to an already
ranked list (e.g. reranker output): a floor of target // n chunks per
document first, then the best of the rest.
"""

import asyncio
import logging

from corpus_rag.base.vectorstore import BaseVectorStore
from corpus_rag.models.document import ScoredChunk
from corpus_rag.models.result import RetrievalMetrics

logger = logging.getLogger(__name__)

_LOW_COVERAGE = 0.8


async def retrieve_balanced_corpus(
    store: BaseVectorStore,
    query_embedding: list[float],
    document_ids: list[str],
    chunks_per_doc: int = 20,
    total_chunks: int = 80,
    ensure_all_docs: bool = True,
    threshold: float = 0.3,
    fallback_threshold: float = 0.2,
    fallback_count: int = 5,
) -> list[ScoredChunk]:
    """
    Retrieve up to total_chunks chunks spread over every selected document.

    Args:
        store: Vector store to search.
        query_embedding: Embedded query.
        document_ids: Selected documents.
        chunks_per_doc: Per-document search limit.
        total_chunks: Size of the merged result.
        ensure_all_docs: Force-query documents missing from the first pass
            and protect every represented document from the final cut.
        threshold: Similarity floor for the per-document searches.
        fallback_threshold: Looser floor for the forced searches.
        fallback_count: Limit for each forced search.

    Returns:
        At most total_chunks ScoredChunks sorted by similarity, descending.
    """
    if not document_ids or total_chunks <= 0:
        return []

    per_doc = await asyncio.gather(*(
        store.search_document(query_embedding, doc_id, limit=chunks_per_doc, threshold=threshold)
        for doc_id in document_ids
    ))

    ranked = sorted(
        (hit.with_score(hit.similarity, "balanced") for hits in per_doc for hit in hits),
        key=lambda c: c.similarity,
        reverse=True,
    )

    fallback: list[ScoredChunk] = []
    if ensure_all_docs:
        represented = {c.document_id for c in ranked}
        missing = [doc_id for doc_id in document_ids if doc_id not in represented]
        if missing:
            logger.warning(f"{len(missing)} document(s) missing from balanced retrieval, forcing a looser search")
            forced = await asyncio.gather(*(
                store.search_document(query_embedding, doc_id, limit=fallback_count, threshold=fallback_threshold)
                for doc_id in missing
            ))
            fallback = [hit.with_score(hit.similarity, "balanced_fallback") for hits in forced for hit in hits]
            still_missing = set(missing) - {c.document_id for c in fallback}
            if still_missing:
                logger.warning(f"No chunks above {fallback_threshold} for: {sorted(still_missing)}")

    if len(ranked) + len(fallback) <= total_chunks:
        merged = ranked + fallback
    else:
        # One chunk per represented document survives the cut
        protected: list[ScoredChunk] = []
        if ensure_all_docs:
            seen_docs: set[str] = set()
            for chunk in ranked + fallback:
                if chunk.document_id not in seen_docs:
                    seen_docs.add(chunk.document_id)
                    protected.append(chunk)
        protected = protected[:total_chunks]
        protected_ids = {c.chunk.id for c in protected}
        rest = [c for c in fallback + ranked if c.chunk.id not in protected_ids]
        merged = protected + rest[:total_chunks - len(protected)]

    merged.sort(key=lambda c: c.similarity, reverse=True)
    logger.info(
        f"Balanced retrieval: {len(merged)} chunks from "
        f"{len({c.document_id for c in merged})}/{len(document_ids)} documents"
    )
    return merged


def ensure_cross_document_balance(
    chunks: list[ScoredChunk],
    document_ids: list[str],
    target: int,
) -> list[ScoredChunk]:
    """
    Select target chunks with a per-document floor, keeping the input order.

    The input order is treated as the ranking, so reranker output stays
    in reranker order. Chunks of documents outside document_ids are ignored.
    """
    if target <= 0:
        return []
    if not document_ids:
        return chunks[:target]

    wanted = set(document_ids)
    eligible = [c for c in chunks if c.document_id in wanted]
    floor = target // len(document_ids)

    selected: set[str] = set()
    taken = {doc_id: 0 for doc_id in document_ids}
    for chunk in eligible:
        if taken[chunk.document_id] < floor:
            taken[chunk.document_id] += 1
            selected.add(chunk.chunk.id)

    for chunk in eligible:
        if len(selected) >= target:
            break
        selected.add(chunk.chunk.id)

    return [c for c in eligible if c.chunk.id in selected][:target]


def assess_retrieval_quality(chunks: list[ScoredChunk], document_ids: list[str]) -> RetrievalMetrics:
    """Coverage of the selected documents and the similarity spread of a result."""
    represented = {c.document_id for c in chunks} & set(document_ids)
    total = len(document_ids)
    coverage = len(represented) / total if total else 0.0
    similarities = [c.similarity for c in chunks]

    metrics = RetrievalMetrics(
        documents_represented=len(represented),
        total_documents=total,
        coverage_ratio=coverage,
        average_similarity=sum(similarities) / len(similarities) if similarities else 0.0,
        min_similarity=min(similarities, default=0.0),
        max_similarity=max(similarities, default=0.0),
    )

    if total > 1 and coverage < _LOW_COVERAGE:
        logger.warning(
            f"Low document coverage: {len(represented)}/{total} documents represented "
            f"({coverage:.0%})"
        )
    return metrics
