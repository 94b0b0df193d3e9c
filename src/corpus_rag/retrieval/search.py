"""
Strategy dispatcher: picks a retrieval procedure and runs it.

SmartRetriever is the entry point of the retrieval stage:

    QueryAnalysis + document selection
        → select_strategy()               closed RetrievalStrategy enum
        → embed expanded query            (resilient, may yield nothing)
        → handler for that strategy       (gather → rerank → confidence)
        → RetrievalResult

Strategy selection:
    several documents + comparative question  → COMPARATIVE
    several documents                         → MULTI_DOCUMENT_COMPREHENSIVE
    one document                              → the query type's procedure

There is exactly one handler per RetrievalStrategy member, checked when
the retriever is built, so an unhandled strategy is a construction error
and never a silent fallback at query time.

retrieve() never raises. An embedding failure gives an empty result with
confidence 0; a store failure surfaces as missing chunks; a reranker
failure keeps similarity order.

Usage:
    retriever = SmartRetriever(store, embeddings, LLMReranker(generator))
    analysis = RuleBasedQueryClassifier().classify(question, ["doc-1", "doc-2"])
    result = await retriever.retrieve(analysis, ["doc-1", "doc-2"])
    print(result.strategy, result.confidence, len(result.chunks))
"""

import functools
import logging
from typing import Awaitable, Callable, Optional

from langchain_core.embeddings import Embeddings

from corpus_rag.base.retriever import BaseRetriever
from corpus_rag.base.vectorstore import BaseVectorStore
from corpus_rag.config import EmbeddingConfig, RetrieverConfig
from corpus_rag.errors import ConfigurationError
from corpus_rag.indexing.embeddings import embed_text
from corpus_rag.models.document import ScoredChunk
from corpus_rag.models.query import QueryAnalysis, RetrievalStrategy
from corpus_rag.models.result import RetrievalResult
from corpus_rag.retrieval.balanced import (
    assess_retrieval_quality,
    ensure_cross_document_balance,
    retrieve_balanced_corpus,
)
from corpus_rag.retrieval.reranking import LLMReranker
from corpus_rag.retrieval.scoring import (
    build_retrieval_metadata,
    calculate_chunk_confidence,
    calculate_confidence,
)
from corpus_rag.retrieval.strategies import (
    CandidatePool,
    analytical_candidates,
    apply_query_type_enhancement,
    enrich_with_document_specific_content,
    factual_candidates,
    hybrid_candidates,
    narrative_candidates,
    thematic_candidates,
)

logger = logging.getLogger(__name__)

Handler = Callable[[QueryAnalysis, list[float], list[str]], Awaitable[RetrievalResult]]
CandidateGatherer = Callable[
    [BaseVectorStore, list[float], QueryAnalysis, list[str]],
    Awaitable[list[ScoredChunk]],
]

# Result names of the single-document procedures
_SINGLE_DOCUMENT: dict[RetrievalStrategy, tuple[CandidateGatherer, str]] = {
    RetrievalStrategy.NARRATIVE: (narrative_candidates, "narrative_contextual"),
    RetrievalStrategy.ANALYTICAL: (analytical_candidates, "analytical_diverse"),
    RetrievalStrategy.FACTUAL: (factual_candidates, "factual_precision"),
    RetrievalStrategy.THEMATIC: (thematic_candidates, "thematic_comprehensive"),
    RetrievalStrategy.HYBRID: (hybrid_candidates, "hybrid_adaptive"),
}


class SmartRetriever(BaseRetriever):
    """
    Query-adaptive retriever over a document-aware vector store.

    Args:
        vector_store: Store holding the embedded chunks.
        embeddings: LangChain embedding model used for the query.
        reranker: Optional LLMReranker. Without one, procedures keep
            similarity order and truncate.
        config: Retrieval sizes, thresholds and confidence weights.
        embedding_config: Timeout and retries for the query embedding.
    """

    def __init__(
        self,
        vector_store: BaseVectorStore,
        embeddings: Embeddings,
        reranker: Optional[LLMReranker] = None,
        config: Optional[RetrieverConfig] = None,
        embedding_config: Optional[EmbeddingConfig] = None,
    ):
        self.vector_store = vector_store
        self.embeddings = embeddings
        self.reranker = reranker
        self.config = config or RetrieverConfig()
        self.embedding_config = embedding_config or EmbeddingConfig()

        self._handlers: dict[RetrievalStrategy, Handler] = {
            RetrievalStrategy.COMPARATIVE: self._comparative,
            RetrievalStrategy.MULTI_DOCUMENT_COMPREHENSIVE: self._multi_document,
        }
        for strategy, (gatherer, name) in _SINGLE_DOCUMENT.items():
            self._handlers[strategy] = functools.partial(self._single_document, gatherer, name)

        missing = [s.value for s in RetrievalStrategy if s not in self._handlers]
        if missing:
            raise ConfigurationError(f"No retrieval handler for strategies: {missing}")

    @staticmethod
    def select_strategy(analysis: QueryAnalysis, document_ids: list[str]) -> RetrievalStrategy:
        if len(document_ids) > 1:
            if analysis.is_multi_document_query:
                return RetrievalStrategy.COMPARATIVE
            return RetrievalStrategy.MULTI_DOCUMENT_COMPREHENSIVE
        return RetrievalStrategy.for_query_type(analysis.query_type)

    async def retrieve(self, analysis: QueryAnalysis, document_ids: list[str]) -> RetrievalResult:
        ids = list(dict.fromkeys(document_ids))
        strategy = self.select_strategy(analysis, ids)

        if not ids:
            logger.warning("Retrieval called without any documents")
            return RetrievalResult(strategy=strategy.value)

        logger.info(f"Retrieval strategy: {strategy.value} over {len(ids)} document(s)")

        embedding = await embed_text(self.embeddings, analysis.search_text(), self.embedding_config)
        if embedding is None:
            logger.warning("Query embedding failed, returning an empty result")
            return RetrievalResult(strategy=strategy.value)

        try:
            result = await self._handlers[strategy](analysis, embedding, ids)
        except Exception as exc:
            logger.error(f"Retrieval strategy {strategy.value} failed: {exc}")
            return RetrievalResult(strategy=strategy.value)

        return self._finalize(result, ids)

    # -----------------------------------------------------------------------
    # Handlers
    # -----------------------------------------------------------------------

    async def _comparative(
        self,
        analysis: QueryAnalysis,
        embedding: list[float],
        document_ids: list[str],
    ) -> RetrievalResult:
        c = self.config
        balanced = await retrieve_balanced_corpus(
            self.vector_store,
            embedding,
            document_ids,
            chunks_per_doc=c.comparative_chunks_per_doc,
            total_chunks=c.comparative_total_chunks,
            ensure_all_docs=True,
            threshold=c.default_threshold,
            fallback_threshold=c.fallback_threshold,
            fallback_count=c.fallback_chunks_per_doc,
        )
        enriched = await enrich_with_document_specific_content(
            self.vector_store,
            embedding,
            balanced,
            document_ids,
            search_limit=c.enrichment_search_limit,
            threshold=c.enrichment_threshold,
            per_doc=c.enrichment_per_doc,
        )
        candidates = CandidatePool(enriched).ranked()
        reranked = await self._rerank(analysis.original_query, candidates, c.comparative_final_size)

        # Reranked order first; the rest lets the per-document floor reach documents the reranker dropped
        picked = {r.chunk.id for r in reranked}
        remainder = [r for r in candidates if r.chunk.id not in picked]
        final = ensure_cross_document_balance(reranked + remainder, document_ids, c.comparative_final_size)

        metrics = assess_retrieval_quality(final, document_ids)
        return RetrievalResult(
            chunks=final,
            strategy="comparative_balanced_enhanced",
            confidence=calculate_confidence(metrics, final, c),
            metadata=build_retrieval_metadata(final, document_ids, len(candidates)),
        )

    async def _multi_document(
        self,
        analysis: QueryAnalysis,
        embedding: list[float],
        document_ids: list[str],
    ) -> RetrievalResult:
        c = self.config
        balanced = await retrieve_balanced_corpus(
            self.vector_store,
            embedding,
            document_ids,
            chunks_per_doc=c.multi_doc_chunks_per_doc,
            total_chunks=c.multi_doc_total_chunks,
            ensure_all_docs=True,
            threshold=c.default_threshold,
            fallback_threshold=c.fallback_threshold,
            fallback_count=c.fallback_chunks_per_doc,
        )
        enhanced = await apply_query_type_enhancement(
            self.vector_store,
            embedding,
            balanced,
            document_ids,
            analysis.query_type,
            search_limit=c.multi_doc_enhancement_limit,
            threshold=c.multi_doc_enhancement_threshold,
        )
        candidates = CandidatePool(enhanced).ranked()
        final = await self._rerank(analysis.original_query, candidates, c.multi_doc_final_size)

        metrics = assess_retrieval_quality(final, document_ids)
        confidence = calculate_confidence(metrics, final, c) * c.multi_doc_confidence_discount
        return RetrievalResult(
            chunks=final,
            strategy="multi_document_comprehensive",
            confidence=confidence,
            metadata=build_retrieval_metadata(final, document_ids, len(candidates)),
        )

    async def _single_document(
        self,
        gatherer: CandidateGatherer,
        name: str,
        analysis: QueryAnalysis,
        embedding: list[float],
        document_ids: list[str],
    ) -> RetrievalResult:
        candidates = await gatherer(self.vector_store, embedding, analysis, document_ids)
        if not candidates:
            logger.info(f"{name}: no candidates found")
            return RetrievalResult(strategy=name, metadata=build_retrieval_metadata([], document_ids, 0))

        final = await self._rerank(analysis.original_query, candidates, self.config.single_doc_final_size)
        return RetrievalResult(
            chunks=final,
            strategy=f"{name}_reranked",
            confidence=calculate_chunk_confidence(final, self.config),
            metadata=build_retrieval_metadata(final, document_ids, len(candidates)),
        )

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _rerank(self, query: str, candidates: list[ScoredChunk], top_n: int) -> list[ScoredChunk]:
        if self.reranker is None:
            return candidates[:top_n]
        return await self.reranker.rerank(query, candidates, top_n)

    @staticmethod
    def _finalize(result: RetrievalResult, document_ids: list[str]) -> RetrievalResult:
        """Drop chunks outside the selection and duplicate texts, keeping order."""
        wanted = set(document_ids)
        pool = CandidatePool(c for c in result.chunks if c.document_id in wanted)
        if len(pool) == len(result.chunks):
            return result
        logger.warning(f"Dropped {len(result.chunks) - len(pool)} out-of-selection or duplicate chunk(s)")
        return result.model_copy(update={"chunks": pool.items()})
