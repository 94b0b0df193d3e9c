"""
Query models — what the classifier produces and the dispatcher consumes.

QueryType is what the query looks like; RetrievalStrategy is what the
dispatcher will actually run. They differ because the document selection
matters too: a factual question over two documents runs the
multi-document procedure, not the factual one.
"""

from enum import Enum

from pydantic import BaseModel, Field


class QueryType(str, Enum):
    """Query categories detected by the rule-based classifier."""

    NARRATIVE = "narrative"
    ANALYTICAL = "analytical"
    FACTUAL = "factual"
    THEMATIC = "thematic"
    HYBRID = "hybrid"


class RetrievalStrategy(str, Enum):
    """
    Closed set of retrieval procedures.

    SmartRetriever keeps exactly one handler per member; adding a member
    without a handler fails at construction, not at query time.
    """

    NARRATIVE = "narrative"
    ANALYTICAL = "analytical"
    FACTUAL = "factual"
    THEMATIC = "thematic"
    HYBRID = "hybrid"
    COMPARATIVE = "comparative"
    MULTI_DOCUMENT_COMPREHENSIVE = "multi_document_comprehensive"

    @classmethod
    def for_query_type(cls, query_type: QueryType) -> "RetrievalStrategy":
        return cls(query_type.value)


class QueryAnalysis(BaseModel):
    """
    Output of the query classifier.

    expanded_query is what gets embedded: the query followed by its
    keywords, which pulls the embedding towards the terms that matter.
    """

    original_query: str
    query_type: QueryType = Field(default=QueryType.HYBRID)
    keywords: list[str] = Field(default_factory=list)
    is_multi_document_query: bool = Field(default=False)
    expanded_query: str = Field(default="")
    detected_language: str = Field(default="en", description="'ar', 'en' or 'mixed'")

    def search_text(self) -> str:
        """Text to embed; falls back to the original query when no expansion was built."""
        return self.expanded_query or self.original_query
