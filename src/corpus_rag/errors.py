"""
Exception hierarchy for the engine.

Only two kinds of failure are allowed to reach a caller during a query:
configuration problems discovered when a component is built, and the
exhaustion of every generation model. Everything else (timeouts, empty
responses, unparseable rerank output, store outages) is absorbed at the
boundary of the stage that hit it and replaced with a safe default.

FailureReason lets callers and logs tell quota exhaustion apart from an
unsupported model or a plain error without parsing message strings.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureReason(str, Enum):
    """Why a single model attempt failed."""

    QUOTA = "quota"
    UNSUPPORTED = "unsupported"
    TIMEOUT = "timeout"
    EMPTY = "empty"
    OTHER = "other"


class GenerationAttempt(BaseModel):
    """One failed attempt against one model identifier."""

    model: str
    reason: FailureReason
    message: str = Field(default="")


class CorpusRAGError(Exception):
    """Base class for every error raised by corpus_rag."""


class ConfigurationError(CorpusRAGError):
    """Missing credentials, unknown provider or an invalid component choice."""


class EmbeddingError(CorpusRAGError):
    """The embedding service could not produce a usable vector."""


class GenerationError(CorpusRAGError):
    """A single generation call failed."""

    def __init__(self, message: str, reason: FailureReason = FailureReason.OTHER):
        super().__init__(message)
        self.reason = reason


class AllModelsFailedError(GenerationError):
    """
    Every configured model failed.

    Carries the full list of attempts so the caller can see which model
    failed for which reason.
    """

    def __init__(self, attempts: list[GenerationAttempt]):
        self.attempts = attempts
        summary = "; ".join(f"{a.model}: {a.reason.value}" for a in attempts) or "no models configured"
        super().__init__(f"All generation models failed ({summary})")


class RunCancelledError(CorpusRAGError):
    """The caller abandoned a multi-hop run at a hop boundary."""
