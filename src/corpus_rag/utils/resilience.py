"""
Resilient call wrapper: timeout + bounded retry + typed outcome.

Embedding, generation and rerank call sites all need the same thing:
bound each attempt with a timeout, retry a small fixed number of times
with backoff, and hand back a result the caller can branch on instead of
an exception it has to remember to catch. This module is the one place
that logic lives.

    outcome = await resilient_call(
        lambda: embeddings.aembed_query(text),
        timeout=30.0,
        max_attempts=3,
        backoff=0.5,
        label="embed",
    )
    if outcome.ok:
        vector = outcome.value

Backoff modes:
    "linear"       waits backoff × attempt (0.5s, 1.0s, 1.5s, ...)
    "exponential"  waits backoff × 2^(attempt-1), capped at max_backoff
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Literal, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_incrementing,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

BackoffMode = Literal["linear", "exponential"]


@dataclass(frozen=True)
class CallOutcome(Generic[T]):
    """
    Result of a resilient call.

    Exactly one of value / error is meaningful: ok tells you which.
    attempts is how many times the call was actually made.
    """

    value: Optional[T] = None
    error: Optional[BaseException] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def timed_out(self) -> bool:
        return isinstance(self.error, asyncio.TimeoutError)


def _wait_strategy(mode: BackoffMode, backoff: float, max_backoff: float):
    if mode == "linear":
        return wait_incrementing(start=backoff, increment=backoff, max=max_backoff)
    if mode == "exponential":
        return wait_exponential(multiplier=backoff, max=max_backoff)
    raise ValueError(f"Unknown backoff mode: '{mode}'. Supported: 'linear', 'exponential'.")


async def resilient_call(
    call: Callable[[], Awaitable[T]],
    *,
    timeout: float,
    max_attempts: int = 1,
    backoff: float = 0.0,
    backoff_mode: BackoffMode = "linear",
    max_backoff: float = 30.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    retry_if: Optional[Callable[[BaseException], bool]] = None,
    label: str = "call",
) -> CallOutcome[T]:
    """
    Run an async call with a per-attempt timeout and bounded retries.

    Args:
        call: Zero-argument factory returning a fresh awaitable per attempt.
        timeout: Seconds allowed for each attempt.
        max_attempts: Total attempts, including the first.
        backoff: Base wait between attempts in seconds.
        backoff_mode: "linear" or "exponential".
        max_backoff: Upper bound on a single wait.
        retry_on: Exception types worth retrying. Anything else fails fast.
        retry_if: Optional predicate narrowing retry_on. An error it rejects
            is returned in the outcome without another attempt.
        label: Name used in log messages.

    Returns:
        CallOutcome holding either the value or the last error. Never raises
        for exceptions covered by retry_on; cancellation still propagates.
    """
    attempts = 0

    def _log_retry(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            f"{label}: attempt {state.attempt_number}/{max_attempts} failed "
            f"({type(error).__name__}: {error}); retrying"
        )

    retry = retry_if_exception_type(retry_on)
    if retry_if is not None:
        retry = retry & retry_if_exception(retry_if)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=_wait_strategy(backoff_mode, backoff, max_backoff),
        retry=retry,
        before_sleep=_log_retry,
        reraise=True,
    )

    try:
        async for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                value = await asyncio.wait_for(call(), timeout=timeout)
    except retry_on as exc:
        logger.warning(f"{label}: giving up after {attempts} attempt(s): {type(exc).__name__}: {exc}")
        return CallOutcome(error=exc, attempts=attempts)

    return CallOutcome(value=value, attempts=attempts)
