"""
Shared test fixtures for the corpus-rag test suite.

Provides reusable fixtures: configs, deterministic embeddings, a scripted
generator, chunk factories and an in-memory store seeded with a small
two-document corpus. Nothing here touches the network.
"""

from typing import Callable, Optional, Union

import pytest
import pytest_asyncio
from langchain_core.embeddings import Embeddings

from corpus_rag.base.generator import BaseGenerator
from corpus_rag.config import ChunkingConfig, EmbeddingConfig, ReasoningConfig, RetrieverConfig
from corpus_rag.indexing.vectorstore import InMemoryVectorStore
from corpus_rag.models.document import Chunk, ScoredChunk
from corpus_rag.models.result import GenerationResult


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class StaticEmbeddings(Embeddings):
    """
    Bag-of-topics embeddings: one dimension per topic word, plus a constant.

    Texts sharing topic words get high cosine similarity; texts with
    disjoint topics score close to 0. The constant keeps every vector
    non-zero.
    """

    TOPICS = ["exile", "poetry", "law", "travel", "garden"]

    def _vector(self, text: str) -> list[float]:
        lower = text.lower()
        return [float(lower.count(topic)) for topic in self.TOPICS] + [0.1]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._vector(text)

    async def aembed_query(self, text: str) -> list[float]:
        return self._vector(text)


class FailingEmbeddings(StaticEmbeddings):
    """Embeddings whose async query call always raises."""

    async def aembed_query(self, text: str) -> list[float]:
        raise ConnectionError("embedding service unavailable")


Reply = Union[str, Exception, list, Callable[[str], str]]


class ScriptedGenerator(BaseGenerator):
    """
    Generator that answers by prompt marker.

    script maps a marker (a phrase from one of the prompt templates) to a
    reply: a string, an exception to raise, a callable of the prompt, or a
    list consumed one reply per call (the last one repeats). Every prompt
    is recorded.
    """

    RERANK = "search relevance expert"
    ANSWER = "Answer the question based on the following excerpts"
    EVIDENCE = "Based on the following evidence"
    GENERAL = "using your general knowledge"
    NEXT = "next most important sub-question"
    SYNTHESIS = "multi-hop reasoning to answer"
    CORRECTION = "Correct spelling errors"

    def __init__(self, script: Optional[dict[str, Reply]] = None, default: str = "", model: str = "scripted-model"):
        self.script = dict(script or {})
        self.default = default
        self.model = model
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> GenerationResult:
        self.prompts.append(prompt)
        for marker, reply in self.script.items():
            if marker not in prompt:
                continue
            if isinstance(reply, list):
                reply = reply.pop(0) if len(reply) > 1 else reply[0]
            if isinstance(reply, Exception):
                raise reply
            if callable(reply):
                reply = reply(prompt)
            return GenerationResult(text=reply, model_used=self.model)
        return GenerationResult(text=self.default, model_used=self.model)

    def calls(self, marker: str) -> list[str]:
        return [p for p in self.prompts if marker in p]


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def embedding_config():
    """No waiting between retries or page windows."""
    return EmbeddingConfig(
        provider="openai",
        timeout_seconds=5.0,
        max_retries=2,
        retry_backoff_seconds=0.0,
        rate_limit_delay_seconds=0.0,
    )


@pytest.fixture
def chunking_config():
    return ChunkingConfig(
        strategy="paragraph",
        target_chunk_size=300,
        chunk_overlap=50,
        overlap_sentences=1,
        min_chunk_chars=40,
        min_words=8,
        min_sentences=2,
    )


@pytest.fixture
def retriever_config():
    return RetrieverConfig()


@pytest.fixture
def reasoning_config():
    return ReasoningConfig(max_hops=3)


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def embeddings():
    return StaticEmbeddings()


@pytest.fixture
def make_chunk(embeddings):
    """Factory for stored chunks; the embedding is derived from the text unless given."""

    def _make(document_id: str, page_number: int, text: str, embedding: Optional[list[float]] = None, **metadata):
        return Chunk(
            document_id=document_id,
            page_number=page_number,
            text=text,
            embedding=embedding or embeddings.embed_query(text),
            metadata=metadata,
        )

    return _make


@pytest.fixture
def make_scored(make_chunk):
    """Factory for ScoredChunks with a fixed similarity."""

    def _make(document_id: str, page_number: int, similarity: float, text: Optional[str] = None, source: str = "vector_match"):
        text = text or f"{document_id} page {page_number} text at {similarity:.3f}"
        return ScoredChunk(
            chunk=make_chunk(document_id, page_number, text, embedding=[1.0, 0.0]),
            similarity=similarity,
            source=source,
        )

    return _make


def corpus_texts() -> dict[str, list[tuple[int, str]]]:
    """
    Two ten-page documents.

    doc-a: pages 1-6 about exile, 7-10 about poetry.
    doc-b: pages 1-4 about exile in the garden, 5-10 about law.
    """
    texts: dict[str, list[tuple[int, str]]] = {"doc-a": [], "doc-b": []}
    for page in range(1, 11):
        topic = "exile" if page <= 6 else "poetry"
        texts["doc-a"].append((page, f"doc-a page {page}: a passage about {topic}."))
        topic = "garden exile" if page <= 4 else "law"
        texts["doc-b"].append((page, f"doc-b page {page}: a passage about {topic}."))
    return texts


@pytest_asyncio.fixture
async def corpus_store(make_chunk):
    """InMemoryVectorStore holding the two-document corpus, one chunk per page."""
    store = InMemoryVectorStore()
    chunks = [
        make_chunk(doc_id, page, text, chunk_index_in_page=0)
        for doc_id, pages in corpus_texts().items()
        for page, text in pages
    ]
    await store.add_chunks(chunks)
    return store


@pytest.fixture
def make_generator():
    return ScriptedGenerator


@pytest.fixture
def failing_embeddings():
    return FailingEmbeddings()
