"""
Multi-hop reasoning LangGraph graph.

Complex questions ("how did X's early life shape the ideas in Y, and
why?") rarely have one passage that answers them. This graph answers a
chain of sub-questions instead, each grounded in its own evidence, and
then synthesizes the partial answers:

    hop 1: original question   → evidence → partial answer
    hop 2: next sub-question   → evidence → partial answer
    ...
    synthesize all partial answers → final answer

When a hop finds no usable evidence (nothing retrieved, or the best
similarity is not above the evidence threshold) the hop answers from the
model's general knowledge instead, and the run becomes "hybrid".

Graph structure:
    START → ask → retrieve → evidence_gate → answer → continue
    continue → ask          (next sub-question accepted)
    continue → synthesize   (max hops, circular question, or no question)
    synthesize → END

The loop is bounded: decide_transition() is a pure function of the hop
counter and the proposed question, and the graph is invoked with a
recursion limit sized to max_hops.

Usage:
    from corpus_rag.graphs.multi_hop import build_multi_hop_graph

    graph = build_multi_hop_graph(store, embeddings, generator)
    state = await graph.ainvoke({"query": "...", "document_ids": ["doc-1"], "max_hops": 3})
    print(state["result"].final_answer)
"""

import logging
import re
from typing import NamedTuple, Optional

from langchain_core.embeddings import Embeddings
from langgraph.graph import END, START, StateGraph

from corpus_rag.base.generator import BaseGenerator
from corpus_rag.base.vectorstore import BaseVectorStore
from corpus_rag.config import EmbeddingConfig, ReasoningConfig
from corpus_rag.errors import RunCancelledError
from corpus_rag.generation.correction import SpellingCorrector
from corpus_rag.generation.generate import evidence_sources, format_evidence_context
from corpus_rag.generation.prompts import (
    EVIDENCE_ANSWER_PROMPTS,
    GENERAL_KNOWLEDGE_NOTES,
    GENERAL_KNOWLEDGE_PROMPTS,
    INSUFFICIENT_INFORMATION,
    NEXT_QUESTION_PROMPTS,
    SYNTHESIS_PROMPTS,
    prompt_language,
)
from corpus_rag.graphs.state import MultiHopState
from corpus_rag.indexing.embeddings import embed_text
from corpus_rag.models.result import MultiHopResult, ReasoningStep, StopReason
from corpus_rag.utils.helpers import string_similarity

logger = logging.getLogger(__name__)

NODES_PER_HOP = 5

_GENERAL_KNOWLEDGE_SOURCE = {"en": "General Knowledge", "ar": "معرفة عامة"}
_LEADING_NUMBER = re.compile(r"^\d+\.\s*")
_EDGE_QUOTES = re.compile(r"^[\"']|[\"']$")


class Transition(NamedTuple):
    """Outcome of the continue step: go on, or stop with a reason."""

    should_continue: bool
    stop_reason: Optional[StopReason] = None


def decide_transition(
    hop: int,
    max_hops: int,
    next_question: Optional[str],
    original_query: str,
    threshold: float = 0.85,
) -> Transition:
    """
    Decide whether the loop runs another hop.

    Stops with:
        "max_hops"           the hop just answered was the last allowed one
        "generation_failed"  no usable sub-question was produced
        "circular"           the sub-question is basically the original question
    """
    if hop >= max_hops:
        return Transition(False, "max_hops")
    if not next_question or not next_question.strip():
        return Transition(False, "generation_failed")
    if string_similarity(next_question.lower(), original_query.lower()) > threshold:
        return Transition(False, "circular")
    return Transition(True)


def clean_sub_question(text: str) -> str:
    """Strip surrounding quotes and list numbering, keep the first line."""
    cleaned = _EDGE_QUOTES.sub("", text.strip())
    cleaned = _LEADING_NUMBER.sub("", cleaned)
    return cleaned.split("\n")[0].strip()


def aggregate_confidence(steps: list[ReasoningStep], max_hops: int) -> float:
    """Mean step confidence, scaled from 0.7 (one hop) up to 1.0 (all hops used)."""
    if not steps or max_hops <= 0:
        return 0.0
    average = sum(s.confidence for s in steps) / len(steps)
    return min(max(average * (0.7 + 0.3 * len(steps) / max_hops), 0.0), 1.0)


def build_reasoning_chain(steps: list[ReasoningStep], language: str = "en") -> str:
    """Transcript of the steps in the form the synthesis prompt expects."""
    lang = prompt_language(language)
    general = _GENERAL_KNOWLEDGE_SOURCE[lang]
    blocks = []
    for step in steps:
        marker = f" 💡 ({general})" if step.used_general_knowledge else ""
        sources = general if step.used_general_knowledge else ", ".join(step.document_sources[:3])
        confidence = f"{step.confidence * 100:.1f}%"
        if lang == "ar":
            blocks.append(
                f"### خطوة {step.step_number}: {step.question}{marker}\n"
                f"**الجواب:** {step.answer}\n"
                f"**المصادر:** {sources}\n"
                f"**الثقة:** {confidence}"
            )
        else:
            blocks.append(
                f"### Step {step.step_number}: {step.question}{marker}\n"
                f"**Answer:** {step.answer}\n"
                f"**Sources:** {sources}\n"
                f"**Confidence:** {confidence}"
            )
    return "\n\n".join(blocks)


def build_multi_hop_graph(
    vector_store: BaseVectorStore,
    embeddings: Embeddings,
    generator: BaseGenerator,
    config: Optional[ReasoningConfig] = None,
    embedding_config: Optional[EmbeddingConfig] = None,
    corrector: Optional[SpellingCorrector] = None,
):
    """
    Build the multi-hop reasoning LangGraph.

    Args:
        vector_store: Store searched for each sub-question.
        embeddings: Embedding model for sub-questions.
        generator: Generator for answers, sub-questions and synthesis.
        config: Hop limit, thresholds and step confidence values.
        embedding_config: Timeout and retries for sub-question embeddings.
        corrector: Spelling corrector used when a run asks for correction.
            Defaults to one built on the same generator.

    Returns:
        A compiled LangGraph that accepts a MultiHopState with at least
        query and document_ids, and returns it with result populated.
    """
    config = config or ReasoningConfig()
    embedding_config = embedding_config or EmbeddingConfig()
    corrector = corrector or SpellingCorrector(generator)

    # --- Node functions ---
    # Each node takes the full state and returns a partial update dict.

    async def ask_node(state: MultiHopState) -> dict:
        """Pick the question for this hop; the cancellation check happens here."""
        cancel_event = state.get("cancel_event")
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Multi-hop run cancelled before hop {state.get('hop', 0) + 1}")
            raise RunCancelledError("Multi-hop run cancelled by the caller")

        hop = state.get("hop", 0) + 1
        question = state.get("next_question") or state["query"]
        logger.info(f"Hop {hop}/{state.get('max_hops', config.max_hops)}: {question[:120]}")
        return {"hop": hop, "current_question": question, "next_question": ""}

    async def retrieve_node(state: MultiHopState) -> dict:
        """Embed the sub-question and search the selected documents."""
        embedding = await embed_text(embeddings, state["current_question"], embedding_config)
        if embedding is None:
            logger.warning(f"Hop {state['hop']}: sub-question embedding failed")
            return {"retrieved": []}

        try:
            chunks = await vector_store.search(
                embedding,
                state["document_ids"],
                limit=config.candidate_count,
                threshold=config.search_threshold,
            )
        except Exception as exc:
            logger.error(f"Hop {state['hop']}: search failed: {exc}")
            chunks = []
        return {"retrieved": chunks}

    async def evidence_gate_node(state: MultiHopState) -> dict:
        """Decide between document evidence and general knowledge for this hop."""
        chunks = state.get("retrieved", [])
        if not chunks or chunks[0].similarity <= config.evidence_threshold:
            best = f"{chunks[0].similarity:.2f}" if chunks else "none"
            logger.warning(
                f"Hop {state['hop']}: insufficient evidence (best similarity {best}), "
                f"using general knowledge"
            )
            return {"used_general_knowledge": True}

        documents = list(dict.fromkeys(c.document_id for c in chunks))
        return {"used_general_knowledge": False, "documents_used": documents}

    async def answer_node(state: MultiHopState) -> dict:
        """Answer the sub-question from evidence or general knowledge."""
        lang = prompt_language(state.get("response_language", "en"))
        question = state["current_question"]
        chunks = state.get("retrieved", [])
        general = state.get("used_general_knowledge", False)

        if general:
            evidence = []
            sources = [_GENERAL_KNOWLEDGE_SOURCE["en"]]
            prompt = GENERAL_KNOWLEDGE_PROMPTS[lang].format(question=question)
        else:
            evidence = chunks[:config.context_chunks]
            if state.get("correct_spelling"):
                if len(evidence) <= config.correction_max_chunks:
                    evidence = await corrector.correct_chunks(
                        evidence,
                        state.get("document_languages") or {},
                        default_language=lang,
                        aggressive=state.get("aggressive", False),
                    )
                else:
                    logger.info(
                        f"Hop {state['hop']}: skipping spelling correction "
                        f"({len(evidence)} evidence chunks > {config.correction_max_chunks})"
                    )
            context = format_evidence_context(evidence, state["document_ids"])
            sources = evidence_sources(evidence, state["document_ids"])
            prompt = EVIDENCE_ANSWER_PROMPTS[lang].format(context=context, question=question)

        generation = await generator.generate(prompt)
        answer = generation.text.strip() or INSUFFICIENT_INFORMATION[lang]

        step = ReasoningStep(
            step_number=state["hop"],
            question=question,
            retrieved_chunks=evidence,
            answer=answer,
            confidence=config.general_knowledge_confidence if general else chunks[0].similarity,
            document_sources=sources,
            used_general_knowledge=general,
        )
        return {"steps": [step], "model_used": generation.model_used}

    async def continue_node(state: MultiHopState) -> dict:
        """Propose the next sub-question, or record why the loop stops."""
        hop = state["hop"]
        max_hops = state.get("max_hops", config.max_hops)
        lang = prompt_language(state.get("response_language", "en"))

        next_question: Optional[str] = None
        if hop < max_hops:
            prompt = NEXT_QUESTION_PROMPTS[lang].format(
                partial_answer=state["steps"][-1].answer,
                original_question=state["query"],
            )
            try:
                generation = await generator.generate(prompt)
                next_question = clean_sub_question(generation.text)
            except Exception as exc:
                logger.warning(f"Hop {hop}: sub-question generation failed: {exc}")

        transition = decide_transition(
            hop, max_hops, next_question, state["query"], config.loop_similarity_threshold
        )
        if not transition.should_continue:
            logger.info(f"Multi-hop loop stops after hop {hop}: {transition.stop_reason}")
            return {"stop_reason": transition.stop_reason, "next_question": ""}

        logger.info(f"Next sub-question: {next_question}")
        return {"next_question": next_question}

    async def synthesize_node(state: MultiHopState) -> dict:
        """Combine the partial answers into the final answer."""
        steps = state.get("steps", [])
        lang = prompt_language(state.get("response_language", "en"))
        max_hops = state.get("max_hops", config.max_hops)
        any_general = any(s.used_general_knowledge for s in steps)

        logger.info(f"Synthesizing {len(steps)} reasoning step(s)")
        prompt = SYNTHESIS_PROMPTS[lang].format(
            question=state["query"],
            reasoning_chain=build_reasoning_chain(steps, lang),
            note=GENERAL_KNOWLEDGE_NOTES[lang] if any_general else "",
        )
        generation = await generator.generate(prompt)

        result = MultiHopResult.from_steps(
            steps,
            final_answer=generation.text.strip(),
            confidence_score=aggregate_confidence(steps, max_hops),
            total_documents_used=len(set(state.get("documents_used", []))),
            stop_reason=state.get("stop_reason") or "max_hops",
            model_used=generation.model_used,
        )
        return {"result": result}

    # --- Routing function ---
    def route_after_continue(state: MultiHopState) -> str:
        return "synthesize" if state.get("stop_reason") else "ask"

    # --- Build the graph ---
    graph = StateGraph(MultiHopState)

    graph.add_node("ask", ask_node)
    graph.add_node("retrieve", retrieve_node)
    graph.add_node("evidence_gate", evidence_gate_node)
    graph.add_node("answer", answer_node)
    graph.add_node("continue", continue_node)
    graph.add_node("synthesize", synthesize_node)

    graph.add_edge(START, "ask")
    graph.add_edge("ask", "retrieve")
    graph.add_edge("retrieve", "evidence_gate")
    graph.add_edge("evidence_gate", "answer")
    graph.add_edge("answer", "continue")

    graph.add_conditional_edges(
        "continue",
        route_after_continue,
        {"ask": "ask", "synthesize": "synthesize"},
    )

    graph.add_edge("synthesize", END)

    return graph.compile()


def recursion_limit_for(max_hops: int) -> int:
    """Graph steps needed for max_hops hops plus synthesis, with a little headroom."""
    return max_hops * NODES_PER_HOP + 5
