"""
Abstract base class for query classifiers.

The classifier is the decision-maker in front of retrieval. It looks at a
user query (and optionally the recent conversation) and decides:
    1. What TYPE of query is this? (narrative, analytical, factual, ...)
    2. Is it asking to compare across the selected documents?
    3. Which keywords should pull the embedding and drive keyword search?

The dispatcher turns that analysis plus the document selection into a
RetrievalStrategy. Keeping the classifier separate means an LLM-based
classifier can replace the rule-based one without touching retrieval.
"""

from abc import ABC, abstractmethod
from typing import Optional

from corpus_rag.models.query import QueryAnalysis


class BaseQueryClassifier(ABC):
    """
    Contract for query classifiers.

    Implementations can be as simple as a regex table or as complex as
    an LLM call, as long as they return a QueryAnalysis.
    """

    @abstractmethod
    def classify(
        self,
        query: str,
        document_ids: Optional[list[str]] = None,
        history: Optional[list[dict[str, str]]] = None,
    ) -> QueryAnalysis:
        """
        Analyse a user query.

        Args:
            query: The original user question.
            document_ids: Documents selected for this query. Multi-document
                detection requires more than one.
            history: Recent conversation turns as {"role", "content"} dicts.

        Returns:
            QueryAnalysis with type, keywords, expansion and language.
        """
        ...
