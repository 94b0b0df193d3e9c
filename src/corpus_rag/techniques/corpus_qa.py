"""
CorpusQA: question answering over a corpus of page-structured documents.

Wires every stage of the engine together:

    ingest:  pages → clean → chunk → embed → vector store
    query:   classify → (multi-hop | retrieve → answer) → QAResponse

Routing of a question:
    complex question + multi-hop enabled → MultiHopReasoner
        (falls back to standard retrieval if the run fails)
    everything else → SmartRetriever → AnswerGenerator

Components can be injected for tests or custom backends; anything not
injected is built from the ToolkitConfig.

Usage:
    from corpus_rag.techniques import CorpusQA

    qa = CorpusQA()
    await qa.ingest("doc-1", [PageText(page_number=1, text="...")])
    response = await qa.query("Compare how both essays treat exile", {"doc-1": "en", "doc-2": "en"})
    print(response.answer)
    print(response.strategy)   # "comparative_balanced_enhanced"
"""

import asyncio
import logging
from typing import Callable, Optional, Union

from langchain_core.embeddings import Embeddings

from corpus_rag.base.generator import BaseGenerator
from corpus_rag.base.vectorstore import BaseVectorStore
from corpus_rag.config import ToolkitConfig
from corpus_rag.errors import RunCancelledError
from corpus_rag.generation.correction import SpellingCorrector
from corpus_rag.generation.formatting import format_multi_hop_response
from corpus_rag.generation.generate import AnswerGenerator, FallbackGenerator
from corpus_rag.indexing.chunking import get_chunker
from corpus_rag.indexing.embeddings import EmbeddingPipeline, get_embedding_model
from corpus_rag.indexing.vectorstore import get_vector_store
from corpus_rag.models.document import PageText
from corpus_rag.models.query import QueryAnalysis
from corpus_rag.models.result import EmbeddingRunResult, MultiHopResult, QAResponse, RetrievalResult
from corpus_rag.query.classification import RuleBasedQueryClassifier, is_complex_query
from corpus_rag.retrieval.reranking import LLMReranker
from corpus_rag.retrieval.search import SmartRetriever
from corpus_rag.techniques.multi_hop import MultiHopReasoner
from corpus_rag.utils.helpers import setup_logging

logger = logging.getLogger(__name__)

DocumentSelection = Union[dict[str, str], list[str]]


def _split_selection(documents: DocumentSelection) -> tuple[list[str], dict[str, str]]:
    """Document ids in order plus their languages (empty for a plain id list)."""
    if isinstance(documents, dict):
        return list(documents), {k: v for k, v in documents.items() if v}
    return list(dict.fromkeys(documents)), {}


class CorpusQA:
    """
    Corpus question answering with adaptive retrieval and multi-hop reasoning.

    Can be initialized two ways:
        1. With just a ToolkitConfig: builds embeddings, store and models
        2. With injected components: skips provider construction
    """

    def __init__(
        self,
        config: Optional[ToolkitConfig] = None,
        embeddings: Optional[Embeddings] = None,
        vector_store: Optional[BaseVectorStore] = None,
        generator: Optional[BaseGenerator] = None,
    ):
        self._config = config or ToolkitConfig()
        if self._config.log_level:
            setup_logging(self._config.log_level)

        self.embeddings = embeddings or get_embedding_model(self._config.embedding)
        self.vector_store = vector_store or get_vector_store(self._config.vector_store, self.embeddings)
        self.generator = generator or FallbackGenerator(self._config.llm)

        self.classifier = RuleBasedQueryClassifier()
        self.corrector = SpellingCorrector(self.generator)
        self.answer_generator = AnswerGenerator(self.generator)
        self.pipeline = EmbeddingPipeline(
            self.embeddings,
            self.vector_store,
            get_chunker(self._config.chunking),
            self._config.embedding,
        )
        self.retriever = SmartRetriever(
            self.vector_store,
            self.embeddings,
            reranker=LLMReranker(self.generator),
            config=self._config.retriever,
            embedding_config=self._config.embedding,
        )
        self.reasoner = MultiHopReasoner(
            self.vector_store,
            self.embeddings,
            self.generator,
            config=self._config.reasoning,
            embedding_config=self._config.embedding,
            corrector=self.corrector,
        )

    # -----------------------------------------------------------------------
    # Ingestion
    # -----------------------------------------------------------------------

    async def ingest(
        self,
        document_id: str,
        pages: list[PageText],
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> EmbeddingRunResult:
        """Chunk, embed and store a document, replacing any earlier version."""
        return await self.pipeline.embed_document(document_id, pages, on_progress=on_progress)

    # -----------------------------------------------------------------------
    # Retrieval and reasoning
    # -----------------------------------------------------------------------

    async def retrieve(self, analysis: QueryAnalysis, document_ids: list[str]) -> RetrievalResult:
        return await self.retriever.retrieve(analysis, document_ids)

    async def run_multi_hop(
        self,
        query: str,
        document_ids: list[str],
        document_languages: Optional[dict[str, str]] = None,
        max_hops: Optional[int] = None,
        response_language: str = "en",
        correct_spelling: bool = False,
        aggressive: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> MultiHopResult:
        return await self.reasoner.run(
            query,
            document_ids,
            document_languages=document_languages,
            max_hops=max_hops,
            response_language=response_language,
            correct_spelling=correct_spelling,
            aggressive=aggressive,
            cancel_event=cancel_event,
        )

    async def query(
        self,
        question: str,
        documents: DocumentSelection,
        history: Optional[list[dict[str, str]]] = None,
        enable_multi_hop: bool = True,
        response_language: Optional[str] = None,
        correct_spelling: bool = False,
        aggressive: bool = False,
    ) -> QAResponse:
        """
        Answer a question over the selected documents.

        Args:
            question: The user's question.
            documents: Document ids, or a mapping of document id to language.
            history: Recent conversation turns used for query expansion.
            enable_multi_hop: Allow complex questions to go through the reasoner.
            response_language: "en" or "ar". Defaults to the question's language.
            correct_spelling: Run LLM spelling correction on the evidence.
            aggressive: Use the aggressive correction instruction.

        Returns:
            QAResponse with the answer and whichever of retrieval / multi_hop ran.

        Raises:
            AllModelsFailedError: When no model could produce the answer.
        """
        document_ids, languages = _split_selection(documents)
        analysis = self.classifier.classify(question, document_ids, history)
        language = response_language or analysis.detected_language

        if enable_multi_hop and document_ids and is_complex_query(question):
            logger.info("Complex question, using multi-hop reasoning")
            try:
                result = await self.run_multi_hop(
                    question,
                    document_ids,
                    document_languages=languages,
                    response_language=language,
                    correct_spelling=correct_spelling,
                    aggressive=aggressive,
                )
            except RunCancelledError:
                raise
            except Exception as exc:
                logger.warning(f"Multi-hop reasoning failed ({exc}), falling back to standard retrieval")
            else:
                return QAResponse(
                    answer=format_multi_hop_response(result, language),
                    strategy=result.strategy,
                    confidence=result.confidence_score,
                    multi_hop=result,
                    analysis=analysis,
                    model_used=result.model_used,
                )

        retrieval = await self.retrieve(analysis, document_ids)
        chunks = retrieval.chunks
        if correct_spelling and chunks:
            chunks = await self.corrector.correct_chunks(
                chunks,
                languages,
                default_language=language,
                aggressive=aggressive,
            )

        generation = await self.answer_generator.answer(question, chunks, document_ids, language)
        return QAResponse(
            answer=generation.text,
            strategy=retrieval.strategy,
            confidence=retrieval.confidence,
            retrieval=retrieval,
            analysis=analysis,
            model_used=generation.model_used,
        )
