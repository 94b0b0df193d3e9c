"""
Multi-hop reasoning: answer a complex question as a chain of sub-questions.

MultiHopReasoner wraps the LangGraph built in graphs/multi_hop.py:

    hop 1..n:  sub-question → search → evidence gate → partial answer
    stop:      hop limit, circular sub-question, or no sub-question
    finally:   synthesize partial answers → MultiHopResult

Hops without usable evidence answer from general knowledge; the result
then reports strategy "hybrid-multi-hop" and flags the steps concerned.

Usage:
    from corpus_rag.techniques import MultiHopReasoner

    reasoner = MultiHopReasoner(store, embeddings, FallbackGenerator())
    result = await reasoner.run(
        "How did the author's exile shape the themes of the later essays?",
        ["doc-1", "doc-2"],
        max_hops=3,
    )
    print(result.final_answer)
    print(result.strategy, result.stop_reason)
"""

import asyncio
import logging
from typing import Optional

from langchain_core.embeddings import Embeddings

from corpus_rag.base.generator import BaseGenerator
from corpus_rag.base.vectorstore import BaseVectorStore
from corpus_rag.config import EmbeddingConfig, ReasoningConfig
from corpus_rag.generation.correction import SpellingCorrector
from corpus_rag.graphs.multi_hop import build_multi_hop_graph, recursion_limit_for
from corpus_rag.models.result import MultiHopResult

logger = logging.getLogger(__name__)


class MultiHopReasoner:
    """
    Bounded multi-hop reasoner over a document-aware vector store.

    The graph is built once and reused; every run gets its own state, so
    one reasoner can serve concurrent runs.

    Raises from run():
        AllModelsFailedError: No model could answer a hop or the synthesis.
        RunCancelledError: The caller set cancel_event before a hop started.
    """

    def __init__(
        self,
        vector_store: BaseVectorStore,
        embeddings: Embeddings,
        generator: BaseGenerator,
        config: Optional[ReasoningConfig] = None,
        embedding_config: Optional[EmbeddingConfig] = None,
        corrector: Optional[SpellingCorrector] = None,
    ):
        self._reasoning_config = config or ReasoningConfig()

        self._graph = build_multi_hop_graph(
            vector_store=vector_store,
            embeddings=embeddings,
            generator=generator,
            config=self._reasoning_config,
            embedding_config=embedding_config,
            corrector=corrector,
        )

    async def run(
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
        """
        Run the multi-hop loop for one question.

        Args:
            query: The original question.
            document_ids: Documents every hop searches.
            document_languages: Language per document id, used to pick the
                spelling correction prompt.
            max_hops: Hop limit for this run. Defaults to the configured one.
            response_language: "en" or "ar" for prompts and labels.
            correct_spelling: Run LLM spelling correction on hop evidence.
            aggressive: Use the aggressive correction instruction.
            cancel_event: Checked at every hop boundary.

        Returns:
            MultiHopResult with the steps, final answer and stop reason.
        """
        hops = max_hops or self._reasoning_config.max_hops
        ids = list(dict.fromkeys(document_ids))
        logger.info(f"Multi-hop run over {len(ids)} document(s), up to {hops} hop(s)")

        state = await self._graph.ainvoke(
            {
                "query": query,
                "document_ids": ids,
                "document_languages": document_languages or {},
                "max_hops": hops,
                "response_language": response_language,
                "correct_spelling": correct_spelling,
                "aggressive": aggressive,
                "cancel_event": cancel_event,
                "hop": 0,
                "steps": [],
                "documents_used": [],
            },
            config={"recursion_limit": recursion_limit_for(hops)},
        )

        result: MultiHopResult = state["result"]
        logger.info(
            f"Multi-hop run finished: {len(result.steps)} step(s), "
            f"stop={result.stop_reason}, strategy={result.strategy}"
        )
        return result
