"""
Abstract base class for text generators.

Everything in the engine that needs natural language out of a model
(reranking, per-hop answers, sub-question proposals, synthesis, spelling
correction) goes through this one narrow interface: prompt in, text plus
the model identifier out. That keeps model fallback and timeouts in a
single place (FallbackGenerator) and lets tests script the generator
without patching LangChain.
"""

from abc import ABC, abstractmethod

from corpus_rag.models.result import GenerationResult


class BaseGenerator(ABC):
    """
    Contract for text generators.

    Implementations raise AllModelsFailedError when no model could answer;
    every other failure is theirs to retry or classify.
    """

    @abstractmethod
    async def generate(self, prompt: str) -> GenerationResult:
        """
        Produce a completion for a fully rendered prompt.

        Args:
            prompt: The prompt text.

        Returns:
            GenerationResult with the text and the model that produced it.
        """
        ...
