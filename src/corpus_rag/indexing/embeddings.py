"""
Embedding model factory and the document embedding pipeline.

get_embedding_model() returns the right LangChain embedding model for an
EmbeddingConfig. It is the single place that maps provider strings to
actual classes.

Supported providers:
    "openai"      → OpenAIEmbeddings (API-based, default)
    "huggingface" → HuggingFaceEmbeddings (local sentence-transformers)
    "cohere"      → CohereEmbeddings (API-based)
    "google"      → GoogleGenerativeAIEmbeddings (API-based)

EmbeddingPipeline turns the pages of one document into stored chunks:

    page text → normalize → regex OCR repair → chunk → embed → store

Every chunk embedding is a resilient call (timeout, a few retries with
linear backoff). A chunk whose embedding still fails is skipped, never
stored with an empty vector. Pages are processed a small window at a
time with a fixed pause between windows to stay under provider rate
limits, and progress is reported as (processed_pages, total_pages).

Usage:
    pipeline = EmbeddingPipeline(embeddings, store, get_chunker(ChunkingConfig()))
    result = await pipeline.embed_document("doc-1", pages, on_progress=print)
    print(result.chunks_count)
"""

import asyncio
import logging
from typing import Callable, Optional

from langchain_core.embeddings import Embeddings

from corpus_rag.base.indexer import BaseChunker
from corpus_rag.base.vectorstore import BaseVectorStore
from corpus_rag.config import EmbeddingConfig
from corpus_rag.errors import EmbeddingError
from corpus_rag.indexing.cleaning import extract_dates, fix_common_corruptions, normalize_text
from corpus_rag.models.document import Chunk, PageText
from corpus_rag.models.result import EmbeddingRunResult
from corpus_rag.utils.helpers import detect_language
from corpus_rag.utils.resilience import resilient_call

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def get_embedding_model(config: EmbeddingConfig) -> Embeddings:
    """
    Factory that returns a LangChain embedding model based on config.

    Each provider has its own LangChain integration package. We import
    them lazily (inside the if-branch) so you only need the package
    for the provider you actually use.

    Args:
        config: EmbeddingConfig with provider, model_name, and optional model_kwargs.

    Returns:
        A LangChain Embeddings instance.

    Raises:
        ValueError: If the provider is not recognized.
        ImportError: If the required package for the provider is not installed.
    """
    provider = config.provider.lower()

    if provider == "openai":
        from langchain_openai import OpenAIEmbeddings

        return OpenAIEmbeddings(
            model=config.model_name,
            **config.model_kwargs,
        )

    elif provider == "huggingface":
        try:
            from langchain_huggingface import HuggingFaceEmbeddings
        except ImportError:
            raise ImportError(
                "HuggingFace embeddings require langchain-huggingface. "
                "Install with: pip install corpus-rag[huggingface]"
            )

        return HuggingFaceEmbeddings(
            model_name=config.model_name,
            model_kwargs=config.model_kwargs,
        )

    elif provider == "cohere":
        try:
            from langchain_cohere import CohereEmbeddings
        except ImportError:
            raise ImportError(
                "Cohere embeddings require langchain-cohere. "
                "Install with: pip install corpus-rag[cohere]"
            )

        return CohereEmbeddings(
            model=config.model_name,
            **config.model_kwargs,
        )

    elif provider == "google":
        try:
            from langchain_google_genai import GoogleGenerativeAIEmbeddings
        except ImportError:
            raise ImportError(
                "Google embeddings require langchain-google-genai. "
                "Install with: pip install corpus-rag[google]"
            )

        return GoogleGenerativeAIEmbeddings(
            model=config.model_name,
            **config.model_kwargs,
        )

    else:
        raise ValueError(
            f"Unknown embedding provider: '{config.provider}'. "
            f"Supported: 'openai', 'huggingface', 'cohere', 'google'. "
            f"For other providers, pass a LangChain Embeddings instance directly."
        )


async def embed_text(
    embeddings: Embeddings,
    text: str,
    config: Optional[EmbeddingConfig] = None,
) -> Optional[list[float]]:
    """
    Embed one text with timeout and linear-backoff retries.

    Returns None when every attempt failed or the service returned an
    empty vector; callers treat None as "skip this chunk" (ingestion) or
    "no evidence" (retrieval).
    """
    config = config or EmbeddingConfig()
    outcome = await resilient_call(
        lambda: embeddings.aembed_query(text),
        timeout=config.timeout_seconds,
        max_attempts=config.max_retries,
        backoff=config.retry_backoff_seconds,
        backoff_mode="linear",
        label="embed",
    )
    if not outcome.ok:
        return None
    if not outcome.value:
        logger.warning("Embedding service returned an empty vector")
        return None
    return list(outcome.value)


class EmbeddingPipeline:
    """
    Chunks, embeds and stores the pages of a document.

    The pipeline pins the embedding dimension D to the first vector it
    sees. Any later vector of a different length is treated like a failed
    embedding, so every chunk in the store shares one dimension.
    """

    def __init__(
        self,
        embeddings: Embeddings,
        vector_store: BaseVectorStore,
        chunker: BaseChunker,
        config: Optional[EmbeddingConfig] = None,
    ):
        self.embeddings = embeddings
        self.vector_store = vector_store
        self.chunker = chunker
        self.config = config or EmbeddingConfig()
        self.dimension: Optional[int] = None

    async def embed_piece(self, piece: str) -> list[float]:
        """Embed one chunk, raising EmbeddingError on failure or a dimension mismatch."""
        vector = await embed_text(self.embeddings, piece, self.config)
        if vector is None:
            raise EmbeddingError(f"no vector after {self.config.max_retries} attempts")
        if self.dimension is None:
            self.dimension = len(vector)
        elif len(vector) != self.dimension:
            raise EmbeddingError(f"dimension {len(vector)} does not match {self.dimension}")
        return vector

    async def process_page(self, document_id: str, page: PageText) -> tuple[list[Chunk], int]:
        """
        Build the embedded chunks of one page.

        Returns:
            (chunks, skipped) where skipped counts chunks whose embedding
            failed or had the wrong dimension.
        """
        if not page.text or len(page.text.strip()) < 10:
            logger.info(f"Page {page.page_number} of {document_id} has no usable text, skipping")
            return [], 0

        language = detect_language(page.text)
        text = fix_common_corruptions(normalize_text(page.text, language=language))
        dates = extract_dates(text)
        pieces = self.chunker.chunk(text)

        chunks: list[Chunk] = []
        skipped = 0
        for index, piece in enumerate(pieces):
            try:
                vector = await self.embed_piece(piece)
            except EmbeddingError as exc:
                logger.error(
                    f"Failed to embed chunk {index} on page {page.page_number} of {document_id} "
                    f"({exc}), skipping chunk"
                )
                skipped += 1
                continue

            chunks.append(Chunk(
                document_id=document_id,
                page_number=page.page_number,
                text=piece,
                embedding=vector,
                metadata={
                    "language": language,
                    "chunk_index_in_page": index,
                    "length": len(piece),
                    "byte_size": len(piece.encode("utf-8")),
                    "extracted_dates": dates,
                },
            ))

        return chunks, skipped

    async def embed_document(
        self,
        document_id: str,
        pages: list[PageText],
        on_progress: Optional[ProgressCallback] = None,
        replace_existing: bool = True,
    ) -> EmbeddingRunResult:
        """
        Embed every page of a document in rate-limited windows.

        Args:
            document_id: Id of the document being embedded.
            pages: Extracted page texts.
            on_progress: Called with (processed_pages, total_pages) after each window.
            replace_existing: Delete the document's existing chunks first.
                Re-embedding supersedes chunks, it never edits them.

        Returns:
            EmbeddingRunResult with total pages and stored chunk count.
        """
        total_pages = len(pages)
        window = self.config.pages_per_batch
        result = EmbeddingRunResult(document_id=document_id, total_pages=total_pages)

        if replace_existing:
            removed = await self.vector_store.delete_document(document_id)
            if removed:
                logger.info(f"Removed {removed} existing chunks of {document_id} before re-embedding")

        logger.info(f"Embedding {document_id}: {total_pages} pages, {window} at a time")

        for start in range(0, total_pages, window):
            batch = pages[start:start + window]
            outcomes = await asyncio.gather(
                *(self.process_page(document_id, page) for page in batch),
                return_exceptions=True,
            )

            window_chunks: list[Chunk] = []
            for page, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    logger.error(f"Error on page {page.page_number} of {document_id}: {outcome}")
                    result.failed_pages.append(page.page_number)
                    continue
                if isinstance(outcome, BaseException):
                    raise outcome
                page_chunks, skipped = outcome
                window_chunks.extend(page_chunks)
                result.skipped_chunks += skipped

            if window_chunks:
                try:
                    await self.vector_store.add_chunks(window_chunks)
                    result.chunks_count += len(window_chunks)
                    logger.info(f"Stored {len(window_chunks)} chunks (pages {start + 1}-{start + len(batch)})")
                except Exception as exc:
                    logger.error(f"Error storing chunks for pages {start + 1}-{start + len(batch)}: {exc}")

            processed = min(start + window, total_pages)
            if on_progress is not None:
                on_progress(processed, total_pages)

            if processed < total_pages and self.config.rate_limit_delay_seconds > 0:
                logger.info(
                    f"Waiting {self.config.rate_limit_delay_seconds}s before next window "
                    f"(rate limit protection)"
                )
                await asyncio.sleep(self.config.rate_limit_delay_seconds)

        logger.info(f"Embedding complete for {document_id}: {result.chunks_count} chunks from {total_pages} pages")
        return result
