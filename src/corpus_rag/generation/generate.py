"""
Text generation with model fallback, and grounded answer generation.

FallbackGenerator is the one generator every other component talks to
(reranker, multi-hop reasoning, spelling correction, AnswerGenerator). It
walks an ordered list of model identifiers and returns the first
non-empty answer:

    primary model → fallback 1 → fallback 2 → ... → AllModelsFailedError

Each attempt is bounded by LLMConfig.timeout_seconds. Transient failures
(quota, timeout, network) are retried on the same model with exponential
backoff before moving on. Failures are classified so the logs (and the
final error) say whether a model ran out of quota, is not available,
timed out or answered with nothing.

AnswerGenerator is the final stage of the standard (non multi-hop) path:
take the question + retrieved chunks and produce a grounded answer. With
no chunks it answers from the model's general knowledge instead.

Usage:
    generator = FallbackGenerator(LLMConfig(fallback_models=["gpt-4o"]))
    result = await generator.generate("Say hello")
    print(result.model_used, result.text)

    answerer = AnswerGenerator(generator)
    result = await answerer.answer(question, retrieval.chunks, document_ids)
"""

import asyncio
import logging
from typing import Callable, Optional

from langchain_core.language_models import BaseChatModel

from corpus_rag.base.generator import BaseGenerator
from corpus_rag.config import LLMConfig
from corpus_rag.errors import (
    AllModelsFailedError,
    ConfigurationError,
    FailureReason,
    GenerationAttempt,
    GenerationError,
)
from corpus_rag.generation.prompts import (
    CONTEXT_ANSWER_PROMPTS,
    GENERAL_KNOWLEDGE_PROMPTS,
    INSUFFICIENT_INFORMATION,
    prompt_language,
    select_prompt,
)
from corpus_rag.models.document import ScoredChunk
from corpus_rag.models.result import GenerationResult
from corpus_rag.utils.helpers import get_llm, message_text
from corpus_rag.utils.resilience import resilient_call

logger = logging.getLogger(__name__)

LLMFactory = Callable[[LLMConfig, str], BaseChatModel]

_QUOTA_MARKERS = ("429", "quota", "rate limit", "rate_limit", "resource_exhausted", "too many requests")
_UNSUPPORTED_MARKERS = ("404", "not found", "not_found", "unsupported", "does not exist", "not supported")


def classify_failure(error: BaseException) -> FailureReason:
    """Map a provider exception to a FailureReason by its type and message."""
    if isinstance(error, GenerationError):
        return error.reason
    if isinstance(error, asyncio.TimeoutError):
        return FailureReason.TIMEOUT
    message = str(error).lower()
    if any(marker in message for marker in _QUOTA_MARKERS):
        return FailureReason.QUOTA
    if any(marker in message for marker in _UNSUPPORTED_MARKERS):
        return FailureReason.UNSUPPORTED
    if "timeout" in message or "timed out" in message:
        return FailureReason.TIMEOUT
    return FailureReason.OTHER


def is_transient(error: BaseException) -> bool:
    """Worth another attempt on the same model: anything but an unsupported model or an empty answer."""
    return classify_failure(error) not in (FailureReason.UNSUPPORTED, FailureReason.EMPTY)


class FallbackGenerator(BaseGenerator):
    """
    Generator that falls back through an ordered list of models.

    One chat client per model identifier is built up front, so missing
    credentials or an unknown provider fail at construction with a
    ConfigurationError instead of in the middle of a query.
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        llm_factory: LLMFactory = get_llm,
    ):
        self.config = config or LLMConfig()
        chain = self.config.model_chain
        if not chain:
            raise ConfigurationError("LLMConfig needs at least one model name.")
        self._clients: dict[str, BaseChatModel] = {
            name: llm_factory(self.config, name) for name in chain
        }

    @property
    def models(self) -> list[str]:
        return list(self._clients)

    async def _invoke(self, name: str, llm: BaseChatModel, prompt: str) -> str:
        text = message_text(await llm.ainvoke(prompt)).strip()
        if not text:
            raise GenerationError(f"Model {name} returned an empty response", reason=FailureReason.EMPTY)
        return text

    async def generate(self, prompt: str) -> GenerationResult:
        attempts: list[GenerationAttempt] = []

        for name, llm in self._clients.items():
            outcome = await resilient_call(
                lambda: self._invoke(name, llm, prompt),
                timeout=self.config.timeout_seconds,
                max_attempts=self.config.max_retries,
                backoff=self.config.retry_backoff_seconds,
                backoff_mode="exponential",
                retry_if=is_transient,
                label=f"generate[{name}]",
            )
            if outcome.ok:
                if attempts:
                    logger.info(f"Generated with fallback model {name} after {len(attempts)} failed model(s)")
                return GenerationResult(text=outcome.value, model_used=name)

            reason = classify_failure(outcome.error)
            attempts.append(GenerationAttempt(model=name, reason=reason, message=str(outcome.error)))
            logger.warning(
                f"Model {name} failed ({reason.value}) after {outcome.attempts} attempt(s), trying next model"
            )

        error = AllModelsFailedError(attempts)
        logger.error(str(error))
        raise error


# ---------------------------------------------------------------------------
# Context formatting shared by answer generation and multi-hop reasoning
# ---------------------------------------------------------------------------

def document_number(document_id: str, document_ids: list[str]) -> int:
    """1-based position of a document in the selection; 0 when it is not selected."""
    try:
        return document_ids.index(document_id) + 1
    except ValueError:
        return 0


def format_evidence_context(chunks: list[ScoredChunk], document_ids: list[str]) -> str:
    """Chunks as "[Document n - Page p]" blocks separated by horizontal rules."""
    return "\n\n---\n\n".join(
        f"[Document {document_number(c.document_id, document_ids)} - Page {c.page_number}]\n{c.text}"
        for c in chunks
    )


def evidence_sources(chunks: list[ScoredChunk], document_ids: list[str]) -> list[str]:
    """Unique "Doc n, Page p" labels in chunk order."""
    sources: list[str] = []
    for chunk in chunks:
        label = f"Doc {document_number(chunk.document_id, document_ids)}, Page {chunk.page_number}"
        if label not in sources:
            sources.append(label)
    return sources


class AnswerGenerator:
    """
    Straightforward grounded generator: context + question → answer.

    How it works:
        1. Labels each retrieved chunk with its document number and page
        2. Builds a prompt: "Answer based on these excerpts, cite pages"
        3. Calls the fallback generator and returns a GenerationResult

    Without chunks it uses the general knowledge prompt. An empty answer
    is replaced with the "information insufficient" text in the
    response language.
    """

    def __init__(self, generator: BaseGenerator, max_context_chunks: int = 15):
        self.generator = generator
        self.max_context_chunks = max_context_chunks

    async def answer(
        self,
        question: str,
        chunks: list[ScoredChunk],
        document_ids: list[str],
        language: str = "en",
    ) -> GenerationResult:
        """
        Generate an answer grounded in retrieved chunks.

        Raises:
            AllModelsFailedError: When no model could answer.
        """
        if chunks:
            context = format_evidence_context(chunks[:self.max_context_chunks], document_ids)
            prompt = select_prompt(CONTEXT_ANSWER_PROMPTS, language).format(context=context, question=question)
        else:
            logger.info("No evidence retrieved, answering from general knowledge")
            prompt = select_prompt(GENERAL_KNOWLEDGE_PROMPTS, language).format(question=question)

        result = await self.generator.generate(prompt)
        if not result.text.strip():
            return GenerationResult(
                text=INSUFFICIENT_INFORMATION[prompt_language(language)],
                model_used=result.model_used,
            )
        return result
