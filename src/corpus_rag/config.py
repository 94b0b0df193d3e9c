"""
Configuration for the corpus RAG engine.

Split into one config per concern so each stage module only receives
what it needs. ToolkitConfig bundles them all for convenience.

Every threshold and confidence constant used by retrieval and reasoning
lives here instead of being hard-coded in the algorithms. The defaults
are the values the engine was tuned with; treat them as starting points
and validate against a labelled retrieval set before tightening them.

Usage:
    # Full config, passed to CorpusQA
    config = ToolkitConfig()

    # Override specific parts
    config = ToolkitConfig(
        llm=LLMConfig(provider="anthropic", model_name="claude-sonnet-4-5-20250929"),
        reasoning=ReasoningConfig(max_hops=3),
    )

    # Standalone, just one piece
    retriever_config = RetrieverConfig(default_threshold=0.25)
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load .env from the project root (walks up from src/corpus_rag/ to find it).
# Runs once at import time so credentials are visible before any provider
# client is built.
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)


# ---------------------------------------------------------------------------
# Enums for the fixed sets of choices
# ---------------------------------------------------------------------------

class LLMProvider(str, Enum):
    """
    Supported LLM providers.

    Each provider needs a different LangChain chat class, so the set we
    can instantiate is closed.
    """

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


class VectorStoreType(str, Enum):
    """Supported vector store backends."""

    MEMORY = "memory"
    FAISS = "faiss"


# ---------------------------------------------------------------------------
# Per-concern configs
# ---------------------------------------------------------------------------

class LLMConfig(BaseModel):
    """
    LLM configuration.

    Used by: generation/, retrieval/reranking.py, graphs/multi_hop.py

    model_name is tried first, then each entry of fallback_models in order.
    Quota errors, timeouts and other transient failures are retried on the
    same model up to max_retries times with exponential backoff. A model
    that is unsupported, answers with nothing or keeps failing is skipped
    and the next one is tried. The identifier of the model that finally
    answered is reported back to the caller.
    """

    provider: LLMProvider = Field(
        default=LLMProvider.OPENAI,
        description="Which LLM provider to use",
    )
    model_name: str = Field(
        default="gpt-4o-mini",
        description="Primary model identifier",
    )
    fallback_models: list[str] = Field(
        default_factory=list,
        description="Model identifiers tried in order when the primary model fails",
    )
    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=2.0,
        description="Sampling temperature. 0 = deterministic, higher = more creative",
    )
    max_tokens: int = Field(
        default=2048,
        gt=0,
        description="Maximum tokens in the LLM response",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Upper bound on a single generation call",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per model for transient failures (quota, timeout, network)",
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Base of the exponential wait between attempts on one model",
    )

    @property
    def model_chain(self) -> list[str]:
        """Primary model followed by the fallbacks, duplicates removed."""
        chain: list[str] = []
        for name in [self.model_name, *self.fallback_models]:
            if name and name not in chain:
                chain.append(name)
        return chain


class EmbeddingConfig(BaseModel):
    """
    Embedding model and ingestion pipeline configuration.

    Used by: indexing/embeddings.py

    Provider is an open string because the embedding landscape keeps
    growing. The factory in indexing/embeddings.py maps known strings to
    LangChain classes and raises a clear error for unknown ones.

    The retry and batching knobs drive EmbeddingPipeline: every chunk gets
    up to max_retries attempts of at most timeout_seconds each, waiting
    retry_backoff_seconds * attempt between them. Pages are processed
    pages_per_batch at a time with rate_limit_delay_seconds between windows.
    """

    provider: str = Field(
        default="openai",
        description="Embedding provider: 'openai', 'huggingface', 'cohere', 'google'",
    )
    model_name: str = Field(
        default="text-embedding-3-small",
        description="Embedding model identifier",
    )
    model_kwargs: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra kwargs passed to the embedding model constructor",
    )
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=1)
    retry_backoff_seconds: float = Field(default=0.5, ge=0.0)
    pages_per_batch: int = Field(default=2, ge=1)
    rate_limit_delay_seconds: float = Field(default=12.0, ge=0.0)


class ChunkingConfig(BaseModel):
    """
    Document chunking and quality filter configuration.

    Used by: indexing/chunking.py, indexing/cleanup.py

    Built-in strategies:
        "paragraph"  — Packs paragraphs up to target_chunk_size; oversized
                       paragraphs are split on sentences with a sentence
                       overlap seeding the next chunk. Default.
        "recursive"  — RecursiveCharacterTextSplitter with chunk_overlap
                       characters of overlap. Good baseline for clean text.

    Both strategies run every chunk through the same substantiveness test
    (min_chunk_chars / min_words / min_sentences). The cleanup pass over an
    existing corpus uses the looser cleanup_min_sentences bar plus the
    uniqueness_threshold.
    """

    strategy: str = Field(
        default="paragraph",
        description="Chunking strategy: 'paragraph' or 'recursive'",
    )
    target_chunk_size: int = Field(
        default=1200,
        gt=0,
        description="Target chunk size in characters",
    )
    chunk_overlap: int = Field(
        default=200,
        ge=0,
        description="Character overlap between consecutive chunks (recursive only)",
    )
    overlap_sentences: int = Field(
        default=3,
        ge=0,
        description="Trailing sentences of a finished chunk that seed the next (paragraph only)",
    )
    min_chunk_chars: int = Field(default=150, ge=0)
    min_words: int = Field(default=30, ge=0)
    min_sentences: int = Field(default=3, ge=0)
    cleanup_min_sentences: int = Field(default=2, ge=0)
    uniqueness_threshold: float = Field(default=0.3, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_overlap(self) -> "ChunkingConfig":
        """Overlap must be smaller than chunk size, otherwise chunks would never advance."""
        if self.chunk_overlap >= self.target_chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be less than "
                f"target_chunk_size ({self.target_chunk_size})"
            )
        return self


class RetrieverConfig(BaseModel):
    """
    Retrieval configuration.

    Used by: retrieval/search.py, retrieval/strategies.py, retrieval/balanced.py

    The vector store floor (default_threshold) is deliberately permissive;
    precision comes from the stricter per-strategy floors and the reranker.
    """

    default_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    fallback_threshold: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Threshold used to force-query documents missing from a balanced result",
    )
    fallback_chunks_per_doc: int = Field(default=5, gt=0)

    # Comparative mode
    comparative_chunks_per_doc: int = Field(default=20, gt=0)
    comparative_total_chunks: int = Field(default=80, gt=0)
    enrichment_search_limit: int = Field(default=15, gt=0)
    enrichment_threshold: float = Field(default=0.40, ge=0.0, le=1.0)
    enrichment_per_doc: int = Field(default=8, gt=0)
    comparative_final_size: int = Field(default=50, gt=0)

    # Multi-document comprehensive mode
    multi_doc_chunks_per_doc: int = Field(default=15, gt=0)
    multi_doc_total_chunks: int = Field(default=60, gt=0)
    multi_doc_enhancement_limit: int = Field(default=50, gt=0)
    multi_doc_enhancement_threshold: float = Field(default=0.35, ge=0.0, le=1.0)
    multi_doc_final_size: int = Field(default=35, gt=0)
    multi_doc_confidence_discount: float = Field(default=0.85, ge=0.0, le=1.0)

    # Single-document modes
    single_doc_final_size: int = Field(default=15, gt=0)
    single_doc_confidence_floor: float = Field(default=0.55, ge=0.0, le=1.0)
    single_doc_confidence_floor_high: float = Field(default=0.65, ge=0.0, le=1.0)
    single_doc_volume_for_high_floor: int = Field(default=10, gt=0)

    # Confidence for multi-document results
    coverage_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    similarity_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    confidence_scale: float = Field(default=0.9, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_thresholds(self) -> "RetrieverConfig":
        """The fallback pass must be looser than the primary pass, otherwise it can never add anything."""
        if self.fallback_threshold > self.default_threshold:
            raise ValueError(
                f"fallback_threshold ({self.fallback_threshold}) must not exceed "
                f"default_threshold ({self.default_threshold})"
            )
        return self


class ReasoningConfig(BaseModel):
    """
    Multi-hop reasoning configuration.

    Used by: graphs/multi_hop.py, techniques/multi_hop.py

    Each hop searches candidate_count chunks above search_threshold. The
    evidence gate is stricter: if the best hit does not exceed
    evidence_threshold the hop answers from general knowledge instead.
    """

    max_hops: int = Field(default=4, ge=1, le=10)
    candidate_count: int = Field(default=15, gt=0)
    search_threshold: float = Field(default=0.30, ge=0.0, le=1.0)
    evidence_threshold: float = Field(default=0.35, ge=0.0, le=1.0)
    context_chunks: int = Field(default=10, gt=0)
    loop_similarity_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Stop when the proposed sub-question is this similar to the original query",
    )
    general_knowledge_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    correction_max_chunks: int = Field(
        default=10,
        ge=0,
        description="Skip spelling correction when a hop sends more evidence chunks than this",
    )


class VectorStoreConfig(BaseModel):
    """
    Vector store configuration.

    Used by: indexing/vectorstore.py

    "memory" keeps everything in process and is exact; "faiss" wraps the
    LangChain FAISS store (pip install corpus-rag[faiss]).
    """

    store_type: VectorStoreType = Field(
        default=VectorStoreType.MEMORY,
        description="Vector store backend",
    )


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

class ToolkitConfig(BaseModel):
    """
    Complete engine configuration.

    CorpusQA receives this and passes slices to each stage:
        self.chunker = get_chunker(config.chunking)
        self.retriever = SmartRetriever(store, embeddings, reranker, config.retriever)
        self.reasoner = MultiHopReasoner(..., config.reasoning)

    All sub-configs have sensible defaults, so ToolkitConfig() with
    no arguments gives you a working setup out of the box.
    """

    llm: LLMConfig = Field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    retriever: RetrieverConfig = Field(default_factory=RetrieverConfig)
    reasoning: ReasoningConfig = Field(default_factory=ReasoningConfig)
    vector_store: VectorStoreConfig = Field(default_factory=VectorStoreConfig)
    log_level: Optional[str] = Field(
        default_factory=lambda: os.getenv("CORPUS_RAG_LOG_LEVEL"),
        description="Logging level applied by utils.helpers.setup_logging",
    )
