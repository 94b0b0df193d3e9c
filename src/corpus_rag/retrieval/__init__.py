from .balanced import assess_retrieval_quality, ensure_cross_document_balance, retrieve_balanced_corpus
from .reranking import LLMReranker, parse_rerank_indices
from .scoring import build_retrieval_metadata, calculate_chunk_confidence, calculate_confidence
from .search import SmartRetriever
from .strategies import CandidatePool, apply_diversity_sampling

__all__ = [
    "assess_retrieval_quality",
    "ensure_cross_document_balance",
    "retrieve_balanced_corpus",
    "LLMReranker",
    "parse_rerank_indices",
    "build_retrieval_metadata",
    "calculate_chunk_confidence",
    "calculate_confidence",
    "SmartRetriever",
    "CandidatePool",
    "apply_diversity_sampling",
]
