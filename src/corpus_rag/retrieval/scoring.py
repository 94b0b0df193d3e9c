"""
Confidence and diagnostics for retrieval results.

Two confidence formulas, one per family of procedures:

    multi-document   (coverage × 0.4 + mean top-5 similarity × 0.6) × 0.9
                     Rewards results that actually draw on every selected
                     document, not just the single best one.
    single-document  max(mean top-5 similarity, floor)
                     floor is 0.65 with at least 10 chunks, 0.55 otherwise.
                     No chunks means confidence 0.

Weights, floors and the scale factor come from RetrieverConfig.
"""

from typing import Optional

from corpus_rag.config import RetrieverConfig
from corpus_rag.models.document import ScoredChunk
from corpus_rag.models.result import RetrievalMetadata, RetrievalMetrics

_TOP_K = 5


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def top_average(chunks: list[ScoredChunk], k: int = _TOP_K) -> float:
    """Mean similarity of the first k chunks (0 for no chunks)."""
    top = chunks[:k]
    if not top:
        return 0.0
    return sum(c.similarity for c in top) / len(top)


def calculate_confidence(
    metrics: RetrievalMetrics,
    chunks: list[ScoredChunk],
    config: Optional[RetrieverConfig] = None,
) -> float:
    """Coverage-weighted confidence for multi-document results."""
    config = config or RetrieverConfig()
    score = (
        metrics.coverage_ratio * config.coverage_weight
        + top_average(chunks) * config.similarity_weight
    ) * config.confidence_scale
    return _clamp(score)


def calculate_chunk_confidence(
    chunks: list[ScoredChunk],
    config: Optional[RetrieverConfig] = None,
) -> float:
    """Similarity-based confidence with a volume-dependent floor for single-document results."""
    if not chunks:
        return 0.0
    config = config or RetrieverConfig()
    floor = (
        config.single_doc_confidence_floor_high
        if len(chunks) >= config.single_doc_volume_for_high_floor
        else config.single_doc_confidence_floor
    )
    return _clamp(max(top_average(chunks), floor))


def build_retrieval_metadata(
    chunks: list[ScoredChunk],
    document_ids: list[str],
    total_candidates: int,
) -> RetrievalMetadata:
    """Diagnostics: distinct pages, per-document counts and a similarity × diversity quality score."""
    unique_pages = len({(c.document_id, c.page_number) for c in chunks})
    doc_coverage = {doc_id: 0 for doc_id in document_ids}
    for chunk in chunks:
        if chunk.document_id in doc_coverage:
            doc_coverage[chunk.document_id] += 1

    quality = 0.0
    if chunks:
        average = sum(c.similarity for c in chunks) / len(chunks)
        quality = average * (unique_pages / len(chunks))

    return RetrievalMetadata(
        total_candidates=total_candidates,
        unique_pages=unique_pages,
        doc_coverage=doc_coverage,
        quality_score=quality,
    )
