from .correction import SpellingCorrector
from .formatting import format_multi_hop_response
from .generate import AnswerGenerator, FallbackGenerator, classify_failure

__all__ = [
    "AnswerGenerator",
    "FallbackGenerator",
    "SpellingCorrector",
    "classify_failure",
    "format_multi_hop_response",
]
