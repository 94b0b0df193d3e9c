"""
LangGraph state definition for multi-hop reasoning.

LangGraph graphs pass a state dict between nodes. Each node receives
the full state, reads what it needs, and returns updates. TypedDict
gives us type safety without the overhead of Pydantic (LangGraph
requires TypedDict, not BaseModel).

steps and documents_used are append-only: nodes return the new items
and the operator.add reducer concatenates them onto the existing list.

Usage:
    from corpus_rag.graphs.state import MultiHopState
"""

import asyncio
import operator
from typing import Annotated, Optional

from typing_extensions import TypedDict

from corpus_rag.models.document import ScoredChunk
from corpus_rag.models.result import MultiHopResult, ReasoningStep


class MultiHopState(TypedDict, total=False):
    """
    State for the multi-hop reasoning graph.

    Flow: ask → retrieve → evidence_gate → answer → continue → (ask | synthesize)

    Fields are populated by different nodes:
        - query ... cancel_event:   set at start
        - hop, current_question:    set by ask
        - retrieved:                set by retrieve
        - used_general_knowledge:   set by evidence_gate
        - steps, model_used:        appended / set by answer
        - next_question:            set by continue
        - stop_reason:              set by continue once the loop ends
        - result:                   set by synthesize
    """

    # Input
    query: str
    document_ids: list[str]
    document_languages: dict[str, str]
    max_hops: int
    response_language: str
    correct_spelling: bool
    aggressive: bool
    cancel_event: Optional[asyncio.Event]

    # Current hop
    hop: int
    current_question: str
    retrieved: list[ScoredChunk]
    used_general_knowledge: bool

    # Accumulated across hops
    steps: Annotated[list[ReasoningStep], operator.add]
    documents_used: Annotated[list[str], operator.add]
    model_used: str

    # Loop control
    next_question: str
    stop_reason: str

    # Output
    result: MultiHopResult
