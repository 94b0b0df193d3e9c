"""
Abstract base class for retrievers.

A retriever takes an analysed query and a document selection and returns
a RetrievalResult. The strategy it runs internally (comparative,
narrative, ...) is its own business; the result names it so callers can
see what happened.
"""

from abc import ABC, abstractmethod

from corpus_rag.models.query import QueryAnalysis
from corpus_rag.models.result import RetrievalResult


class BaseRetriever(ABC):
    """
    Contract for retrievers.

    retrieve() must not raise during a user-facing query: embedding,
    store and rerank failures are absorbed and surface as an empty or
    un-reranked result with a correspondingly low confidence.
    """

    @abstractmethod
    async def retrieve(
        self,
        analysis: QueryAnalysis,
        document_ids: list[str],
    ) -> RetrievalResult:
        """
        Retrieve evidence for an analysed query.

        Args:
            analysis: Output of the query classifier.
            document_ids: Documents to search. Every returned chunk belongs
                to one of them.

        Returns:
            RetrievalResult with text-unique chunks, strategy and confidence.
        """
        ...
