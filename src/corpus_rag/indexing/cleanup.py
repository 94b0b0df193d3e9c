"""
Cleanup pass over an already-embedded corpus.

Chunks embedded before the quality filter existed (or with looser
settings) can include headers, page furniture and near-duplicates. This
pass re-evaluates every stored chunk of a document against the others
and deletes the ones that are not substantive or whose uniqueness score
falls below the threshold.

    result = await cleanup_low_quality_chunks(store, "doc-1")
    print(f"deleted {result.deleted} of {result.analyzed}")
"""

import asyncio
import logging
from typing import Optional

from corpus_rag.base.vectorstore import BaseVectorStore
from corpus_rag.config import ChunkingConfig
from corpus_rag.indexing.chunking import ChunkQualityEvaluator
from corpus_rag.models.result import CleanupResult

logger = logging.getLogger(__name__)


async def cleanup_low_quality_chunks(
    store: BaseVectorStore,
    document_id: str,
    config: Optional[ChunkingConfig] = None,
) -> CleanupResult:
    """
    Delete low-quality chunks of one document.

    Uses config.cleanup_min_sentences (looser than ingestion) and
    config.uniqueness_threshold.
    """
    config = config or ChunkingConfig()
    evaluator = ChunkQualityEvaluator(config)

    chunks = await store.get_document_chunks(document_id)
    texts = [chunk.text for chunk in chunks]
    to_delete: list[str] = []

    for chunk in chunks:
        metrics = evaluator.evaluate(chunk.text, texts, min_sentences=config.cleanup_min_sentences)
        if not metrics.has_substantial_content or metrics.uniqueness_score < config.uniqueness_threshold:
            logger.debug(
                f"Marking chunk {chunk.id} (page {chunk.page_number}) for deletion: "
                f"substantial={metrics.has_substantial_content}, "
                f"uniqueness={metrics.uniqueness_score:.2f}"
            )
            to_delete.append(chunk.id)

    deleted = await store.delete_chunks(to_delete) if to_delete else 0
    logger.info(f"Cleanup of {document_id}: {len(chunks)} analyzed, {deleted} deleted")

    return CleanupResult(
        document_id=document_id,
        analyzed=len(chunks),
        deleted=deleted,
        remaining=len(chunks) - deleted,
    )


async def cleanup_all_documents(
    store: BaseVectorStore,
    config: Optional[ChunkingConfig] = None,
    delay_seconds: float = 2.0,
) -> list[CleanupResult]:
    """Run the cleanup over every document in the store, pausing between documents."""
    document_ids = await store.list_document_ids()
    results: list[CleanupResult] = []

    for position, document_id in enumerate(document_ids):
        try:
            results.append(await cleanup_low_quality_chunks(store, document_id, config))
        except Exception as exc:
            logger.error(f"Cleanup failed for {document_id}: {exc}")
        if delay_seconds > 0 and position < len(document_ids) - 1:
            await asyncio.sleep(delay_seconds)

    total_deleted = sum(r.deleted for r in results)
    logger.info(f"Cleanup finished: {len(results)} documents, {total_deleted} chunks deleted")
    return results
