from .multi_hop import (
    Transition,
    aggregate_confidence,
    build_multi_hop_graph,
    clean_sub_question,
    decide_transition,
    recursion_limit_for,
)
from .state import MultiHopState

__all__ = [
    "MultiHopState",
    "Transition",
    "aggregate_confidence",
    "build_multi_hop_graph",
    "clean_sub_question",
    "decide_transition",
    "recursion_limit_for",
]
