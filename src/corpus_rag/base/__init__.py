"""
Abstract base classes defining the contract for each engine stage.

Import from here:
    from corpus_rag.base import BaseVectorStore, BaseRetriever, BaseGenerator
"""

from .indexer import BaseChunker
from .vectorstore import BaseVectorStore
from .router import BaseQueryClassifier
from .retriever import BaseRetriever
from .generator import BaseGenerator

__all__ = [
    "BaseChunker",
    "BaseVectorStore",
    "BaseQueryClassifier",
    "BaseRetriever",
    "BaseGenerator",
]
