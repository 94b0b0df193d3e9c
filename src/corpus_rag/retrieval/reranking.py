"""
LLM reranking of retrieved chunks.

Reranking takes an already-retrieved candidate pool and reorders it by
relevance to the query. The typical pattern is:
    1. Retrieve a large pool (50-150 chunks) with cheap vector search
    2. Ask the LLM for the indices of the best top_n, in order

One generator call per rerank, not one per chunk: every candidate is
listed with its index, page, similarity and a 400-character preview, and
the model answers with a flat JSON array of indices.

Models do not always answer with clean JSON, so parse_rerank_indices()
tries, in order:
    1. json.loads on the whole answer
    2. a ```json fenced block
    3. the first bracketed numeric array anywhere in the text
Nested arrays are flattened, invalid and duplicate indices dropped.

The reranker never raises: a generator failure or an answer without a
single usable index returns the input order truncated to top_n.

Usage:
    reranker = LLMReranker(FallbackGenerator(LLMConfig()))
    best = await reranker.rerank(query, candidates, top_n=15)
"""

import json
import logging
import re
from typing import Any, Iterator

from corpus_rag.base.generator import BaseGenerator
from corpus_rag.generation.prompts import RERANK_PROMPT
from corpus_rag.models.document import ScoredChunk

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_NUMERIC_ARRAY = re.compile(r"\[[\d,\[\]\s]+\]")


def _flatten(value: Any) -> Iterator[Any]:
    if isinstance(value, list):
        for item in value:
            yield from _flatten(item)
    else:
        yield value


def _valid_indices(parsed: Any, count: int) -> list[int]:
    if not isinstance(parsed, list):
        return []
    indices: list[int] = []
    for item in _flatten(parsed):
        # bool is an int subclass; true/false are not indices
        if isinstance(item, bool) or not isinstance(item, int):
            continue
        if 0 <= item < count and item not in indices:
            indices.append(item)
    return indices


def _try_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, TypeError):
        return None


def parse_rerank_indices(text: str, count: int) -> list[int]:
    """
    Extract candidate indices from a reranker answer.

    Args:
        text: Raw model output.
        count: Number of candidates; valid indices are 0..count-1.

    Returns:
        Unique in-range indices in answer order. Empty if nothing usable.
    """
    text = (text or "").strip()
    if not text:
        return []

    indices = _valid_indices(_try_json(text), count)
    if indices:
        return indices

    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        indices = _valid_indices(_try_json(fenced.group(1).strip()), count)
        if indices:
            return indices

    array = _NUMERIC_ARRAY.search(text)
    if array:
        return _valid_indices(_try_json(array.group(0)), count)

    return []


class LLMReranker:
    """
    Uses an LLM to pick and order the most relevant chunks.

    Trade-off: one call per rerank regardless of pool size, but the model
    only sees a preview of each chunk. Candidates not picked by the model
    are dropped; the result never exceeds top_n.
    """

    def __init__(self, generator: BaseGenerator, preview_chars: int = 400):
        self.generator = generator
        self.preview_chars = preview_chars

    def build_prompt(self, query: str, candidates: list[ScoredChunk], top_n: int) -> str:
        entries = []
        for index, candidate in enumerate(candidates):
            preview = candidate.text[:self.preview_chars].replace("\n", " ")
            entries.append(
                f"[{index}] (Page {candidate.page_number}, Sim: {candidate.similarity * 100:.1f}%)\n"
                f"{preview}...\n"
            )
        return RERANK_PROMPT.format(
            query=query,
            count=len(candidates),
            chunks="\n".join(entries),
            top_n=top_n,
        )

    async def rerank(
        self,
        query: str,
        candidates: list[ScoredChunk],
        top_n: int,
    ) -> list[ScoredChunk]:
        """
        Reorder candidates by LLM judgement.

        Args:
            query: The user query (not the expanded one).
            candidates: Chunks to rerank.
            top_n: Maximum number of chunks to return.

        Returns:
            At most top_n chunks in the model's order, or the input order
            truncated to top_n when the model's answer is unusable.
        """
        if not candidates or top_n <= 0:
            return []

        target = min(top_n, len(candidates))
        prompt = self.build_prompt(query, candidates, target)

        try:
            result = await self.generator.generate(prompt)
        except Exception as exc:
            logger.warning(f"Reranking failed ({exc}); keeping original order")
            return candidates[:target]

        indices = parse_rerank_indices(result.text, len(candidates))
        if not indices:
            logger.warning(f"Reranker returned no usable indices: {result.text[:200]!r}; keeping original order")
            return candidates[:target]

        logger.info(f"Reranked {len(candidates)} candidates to {min(len(indices), target)}")
        return [candidates[i] for i in indices[:target]]
