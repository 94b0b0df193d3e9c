"""
Result models for retrieval, reasoning and generation outputs.

These are the final outputs of the engine — what the caller gets back.
All of them are transient value objects built fresh per query; nothing
here is persisted.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .document import ScoredChunk
from .query import QueryAnalysis


# ---------------------------------------------------------------------------
# Retrieval results
# ---------------------------------------------------------------------------

class RetrievalMetadata(BaseModel):
    """
    Diagnostic numbers attached to every RetrievalResult.

    unique_pages counts distinct (document, page) pairs; doc_coverage maps
    each document id to the number of chunks it contributed.
    quality_score = average similarity × page diversity.
    """

    total_candidates: int = Field(default=0, ge=0)
    unique_pages: int = Field(default=0, ge=0)
    doc_coverage: dict[str, int] = Field(default_factory=dict)
    quality_score: float = Field(default=0.0, ge=0.0)


class RetrievalResult(BaseModel):
    """
    Output of the retrieval stage.

    Bundles the retrieved chunks with the name of the procedure that ran
    and a confidence in [0, 1]. Chunks are ordered by the final ranking
    (reranker order where a reranker ran, similarity otherwise).
    """

    chunks: list[ScoredChunk] = Field(default_factory=list)
    strategy: str = Field(description="Name of the retrieval procedure that produced the chunks")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    metadata: RetrievalMetadata = Field(default_factory=RetrievalMetadata)

    @property
    def is_empty(self) -> bool:
        return not self.chunks


class RetrievalMetrics(BaseModel):
    """Coverage and similarity summary of a multi-document chunk set."""

    documents_represented: int = Field(default=0, ge=0)
    total_documents: int = Field(default=0, ge=0)
    coverage_ratio: float = Field(default=0.0, ge=0.0, le=1.0)
    average_similarity: float = Field(default=0.0, ge=0.0, le=1.0)
    min_similarity: float = Field(default=0.0, ge=0.0, le=1.0)
    max_similarity: float = Field(default=0.0, ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Ingestion results
# ---------------------------------------------------------------------------

class EmbeddingRunResult(BaseModel):
    """Aggregate outcome of embedding one document."""

    document_id: str
    total_pages: int = Field(default=0, ge=0)
    chunks_count: int = Field(default=0, ge=0)
    skipped_chunks: int = Field(default=0, ge=0)
    failed_pages: list[int] = Field(default_factory=list)


class CleanupResult(BaseModel):
    """Outcome of the low-quality chunk cleanup for one document."""

    document_id: str
    analyzed: int = Field(default=0, ge=0)
    deleted: int = Field(default=0, ge=0)
    remaining: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Generation results
# ---------------------------------------------------------------------------

class GenerationResult(BaseModel):
    """Text produced by the generator plus the model that produced it."""

    text: str
    model_used: str = Field(default="")


# ---------------------------------------------------------------------------
# Multi-hop reasoning
# ---------------------------------------------------------------------------

StopReason = Literal["max_hops", "circular", "generation_failed"]


class ReasoningStep(BaseModel):
    """
    One hop of a multi-hop run: sub-question → evidence → partial answer.

    The run's list of steps is the audit trail. confidence is the best
    chunk similarity for grounded hops and a fixed value for hops that
    fell back to general knowledge.
    """

    model_config = ConfigDict(frozen=True)

    step_number: int = Field(ge=1)
    question: str
    retrieved_chunks: list[ScoredChunk] = Field(default_factory=list)
    answer: str = Field(default="")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    document_sources: list[str] = Field(default_factory=list)
    used_general_knowledge: bool = Field(default=False)


class MultiHopResult(BaseModel):
    """
    Terminal output of one reasoning run. Not mutated after construction.

    strategy is "hybrid-multi-hop" exactly when some step used general
    knowledge; the validator rejects any other combination. Prefer
    from_steps(), which derives strategy, the evidence chain and the
    general-knowledge flag from the steps themselves.
    """

    model_config = ConfigDict(frozen=True)

    steps: list[ReasoningStep] = Field(default_factory=list)
    final_answer: str = Field(default="")
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    evidence_chain: list[str] = Field(default_factory=list)
    strategy: Literal["multi-hop", "hybrid-multi-hop"] = Field(default="multi-hop")
    total_documents_used: int = Field(default=0, ge=0)
    used_general_knowledge: bool = Field(default=False)
    stop_reason: StopReason = Field(default="max_hops")
    model_used: str = Field(default="")

    @model_validator(mode="after")
    def validate_strategy(self) -> "MultiHopResult":
        """strategy and used_general_knowledge must both agree with the steps."""
        any_general = any(step.used_general_knowledge for step in self.steps)
        expected = "hybrid-multi-hop" if any_general else "multi-hop"
        if self.strategy != expected or self.used_general_knowledge != any_general:
            raise ValueError(
                f"strategy '{self.strategy}' (used_general_knowledge={self.used_general_knowledge}) "
                f"does not match the steps; expected '{expected}'"
            )
        return self

    @classmethod
    def from_steps(
        cls,
        steps: list[ReasoningStep],
        final_answer: str,
        confidence_score: float,
        total_documents_used: int,
        stop_reason: StopReason = "max_hops",
        model_used: str = "",
    ) -> "MultiHopResult":
        any_general = any(step.used_general_knowledge for step in steps)

        # Unique sources in first-seen order
        evidence: list[str] = []
        for step in steps:
            for source in step.document_sources:
                if source not in evidence:
                    evidence.append(source)

        return cls(
            steps=steps,
            final_answer=final_answer,
            confidence_score=min(max(confidence_score, 0.0), 1.0),
            evidence_chain=evidence,
            strategy="hybrid-multi-hop" if any_general else "multi-hop",
            total_documents_used=total_documents_used,
            used_general_knowledge=any_general,
            stop_reason=stop_reason,
            model_used=model_used,
        )


# ---------------------------------------------------------------------------
# Full response (top-level output of CorpusQA)
# ---------------------------------------------------------------------------

class QAResponse(BaseModel):
    """
    The complete response from CorpusQA.query().

    Exactly one of retrieval / multi_hop is populated, depending on
    whether the question went through single-shot retrieval or the
    multi-hop reasoner.
    """

    answer: str = Field(description="The generated answer")
    strategy: str = Field(description="Retrieval strategy or multi-hop strategy that produced it")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    retrieval: Optional[RetrievalResult] = Field(default=None)
    multi_hop: Optional[MultiHopResult] = Field(default=None)
    analysis: Optional[QueryAnalysis] = Field(default=None)
    model_used: str = Field(default="")
