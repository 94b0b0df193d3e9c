"""
Document models for the engine.

These represent data at each stage:
  PageText (raw input) → Chunk (split + embedded) → ScoredChunk (retrieved + scored)

Chunks are frozen. Re-embedding a document deletes its chunks and creates
new ones; nothing edits a stored chunk in place. Stages that rewrite chunk
text for display (spelling correction) produce a copy via model_copy().
"""

import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PageText(BaseModel):
    """One page of extracted text, the input unit for ingestion."""

    page_number: int = Field(ge=1, description="1-based page number")
    text: str = Field(default="")


class DocumentRef(BaseModel):
    """
    Reference to a document owned by an external registry.

    The engine only needs the id and, optionally, its language tag, which
    selects the correction prompt for chunks from that document.
    """

    document_id: str
    language: Optional[str] = Field(default=None, description="'ar', 'en' or 'mixed'")


class Chunk(BaseModel):
    """
    A bounded span of document text stored with its embedding.

    This is the unit that gets stored in the vector store. A chunk is never
    constructed without a non-empty embedding and non-blank text, so
    nothing downstream has to guard against degenerate vectors.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    document_id: str
    page_number: int = Field(ge=1)
    text: str
    embedding: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("chunk text must not be empty")
        return value

    @field_validator("embedding")
    @classmethod
    def embedding_not_empty(cls, value: list[float]) -> list[float]:
        if not value:
            raise ValueError("chunk embedding must not be empty")
        return value

    @property
    def dimension(self) -> int:
        return len(self.embedding)


class ScoredChunk(BaseModel):
    """
    A chunk with a similarity score and a provenance tag.

    similarity is the ranking key everywhere in retrieval. source records
    which stage contributed the chunk ("vector_match", "keyword_match",
    "sequential_context", "balanced", ...), which makes a result explain
    itself when you debug why a passage showed up.
    """

    chunk: Chunk
    similarity: float = Field(ge=0.0, le=1.0)
    source: str = Field(default="vector_match")

    @property
    def text(self) -> str:
        return self.chunk.text

    @property
    def document_id(self) -> str:
        return self.chunk.document_id

    @property
    def page_number(self) -> int:
        return self.chunk.page_number

    def with_score(self, similarity: float, source: Optional[str] = None) -> "ScoredChunk":
        """Copy with a new similarity (clamped to [0, 1]) and optionally a new source tag."""
        return ScoredChunk(
            chunk=self.chunk,
            similarity=min(max(similarity, 0.0), 1.0),
            source=source or self.source,
        )
