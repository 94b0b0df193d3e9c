"""Tests for LLM reranking — generator scripted or LLM client mocked, no API calls."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage

from corpus_rag.config import LLMConfig
from corpus_rag.generation.generate import FallbackGenerator
from corpus_rag.retrieval.reranking import LLMReranker, parse_rerank_indices


class TestParseRerankIndices:

    def test_plain_json(self):
        assert parse_rerank_indices("[2, 0, 1]", 3) == [2, 0, 1]

    def test_fenced_block(self):
        assert parse_rerank_indices("Here you go:\n```json\n[1, 0]\n```", 3) == [1, 0]

    def test_embedded_array(self):
        assert parse_rerank_indices("The best chunks are [3, 1] in that order.", 5) == [3, 1]

    def test_nested_arrays_are_flattened(self):
        assert parse_rerank_indices("[[0, 1], [2]]", 3) == [0, 1, 2]

    def test_invalid_and_duplicate_indices_dropped(self):
        assert parse_rerank_indices("[5, 1, 1, -1, 0]", 3) == [1, 0]

    def test_booleans_are_not_indices(self):
        assert parse_rerank_indices("[true, 1]", 3) == [1]

    @pytest.mark.parametrize("text", ["", "no indices at all", '{"best": 1}', "[]"])
    def test_unusable(self, text):
        assert parse_rerank_indices(text, 3) == []


class TestLLMReranker:

    @pytest.mark.asyncio
    async def test_model_order(self, make_generator, make_scored):
        candidates = [make_scored("doc-a", page, 0.9 - page / 10) for page in range(1, 4)]
        generator = make_generator({make_generator.RERANK: "[2, 0]"})

        result = await LLMReranker(generator).rerank("exile", candidates, top_n=2)

        assert result == [candidates[2], candidates[0]]

    @pytest.mark.asyncio
    async def test_never_exceeds_top_n(self, make_generator, make_scored):
        candidates = [make_scored("doc-a", page, 0.5) for page in range(1, 5)]
        generator = make_generator({make_generator.RERANK: "[3, 2, 1, 0]"})

        result = await LLMReranker(generator).rerank("exile", candidates, top_n=2)

        assert result == [candidates[3], candidates[2]]

    @pytest.mark.asyncio
    async def test_generator_failure_keeps_order(self, make_generator, make_scored):
        candidates = [make_scored("doc-a", page, 0.5) for page in range(1, 5)]
        generator = make_generator({make_generator.RERANK: RuntimeError("rate limited")})

        result = await LLMReranker(generator).rerank("exile", candidates, top_n=3)

        assert result == candidates[:3]

    @pytest.mark.asyncio
    async def test_rate_limited_rerank_is_retried(self, make_scored):
        client = MagicMock()
        client.ainvoke = AsyncMock(side_effect=[RuntimeError("429 Too Many Requests"), AIMessage(content="[1, 0]")])
        generator = FallbackGenerator(
            LLMConfig(model_name="only", retry_backoff_seconds=0.0),
            llm_factory=lambda cfg, name: client,
        )
        candidates = [make_scored("doc-1", p, 0.5) for p in (1, 2)]

        result = await LLMReranker(generator).rerank("exile", candidates, top_n=2)

        assert [c.page_number for c in result] == [2, 1]
        assert client.ainvoke.await_count == 2

    @pytest.mark.asyncio
    async def test_garbage_answer_keeps_order(self, make_generator, make_scored):
        candidates = [make_scored("doc-a", page, 0.5) for page in range(1, 5)]
        generator = make_generator({make_generator.RERANK: "I cannot decide."})

        assert await LLMReranker(generator).rerank("exile", candidates, top_n=2) == candidates[:2]

    @pytest.mark.asyncio
    async def test_empty_candidates(self, make_generator):
        generator = make_generator()
        assert await LLMReranker(generator).rerank("exile", [], top_n=5) == []
        assert generator.prompts == []

    def test_prompt_lists_candidates(self, make_generator, make_scored):
        candidates = [make_scored("doc-a", 7, 0.9, text="Line one\nline two")]
        prompt = LLMReranker(make_generator()).build_prompt("When was the exile?", candidates, 1)

        assert "When was the exile?" in prompt
        assert "[0] (Page 7, Sim: 90.0%)" in prompt
        assert "Line one line two" in prompt
