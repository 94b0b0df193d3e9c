from .helpers import (
    detect_language,
    ensure_credentials,
    get_llm,
    levenshtein_distance,
    message_text,
    setup_logging,
    string_similarity,
)
from .resilience import CallOutcome, resilient_call

__all__ = [
    "detect_language",
    "ensure_credentials",
    "get_llm",
    "levenshtein_distance",
    "message_text",
    "setup_logging",
    "string_similarity",
    "CallOutcome",
    "resilient_call",
]
