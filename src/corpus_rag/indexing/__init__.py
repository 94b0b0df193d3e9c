from .chunking import ChunkQualityEvaluator, ParagraphChunker, RecursiveChunker, get_chunker
from .cleaning import fix_common_corruptions, has_corruptions, normalize_text
from .cleanup import cleanup_all_documents, cleanup_low_quality_chunks
from .embeddings import EmbeddingPipeline, embed_text, get_embedding_model
from .vectorstore import FAISSVectorStore, InMemoryVectorStore, get_vector_store

__all__ = [
    "ChunkQualityEvaluator",
    "ParagraphChunker",
    "RecursiveChunker",
    "get_chunker",
    "fix_common_corruptions",
    "has_corruptions",
    "normalize_text",
    "cleanup_all_documents",
    "cleanup_low_quality_chunks",
    "EmbeddingPipeline",
    "embed_text",
    "get_embedding_model",
    "FAISSVectorStore",
    "InMemoryVectorStore",
    "get_vector_store",
]
