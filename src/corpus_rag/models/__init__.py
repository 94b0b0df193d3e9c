"""
Pydantic models shared across the engine.

Import from here rather than reaching into submodules:
    from corpus_rag.models import Chunk, QueryAnalysis, RetrievalResult
"""

from .document import Chunk, DocumentRef, PageText, ScoredChunk
from .query import QueryAnalysis, QueryType, RetrievalStrategy
from .result import (
    CleanupResult,
    EmbeddingRunResult,
    GenerationResult,
    MultiHopResult,
    QAResponse,
    ReasoningStep,
    RetrievalMetadata,
    RetrievalMetrics,
    RetrievalResult,
)

__all__ = [
    # Document
    "Chunk",
    "DocumentRef",
    "PageText",
    "ScoredChunk",
    # Query
    "QueryAnalysis",
    "QueryType",
    "RetrievalStrategy",
    # Result
    "CleanupResult",
    "EmbeddingRunResult",
    "GenerationResult",
    "MultiHopResult",
    "QAResponse",
    "ReasoningStep",
    "RetrievalMetadata",
    "RetrievalMetrics",
    "RetrievalResult",
]
