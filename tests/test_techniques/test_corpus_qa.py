"""Tests for CorpusQA — components injected, no provider construction, no API calls."""

from unittest.mock import AsyncMock

import pytest

from corpus_rag.config import ToolkitConfig
from corpus_rag.errors import AllModelsFailedError, RunCancelledError
from corpus_rag.generation.prompts import INSUFFICIENT_INFORMATION
from corpus_rag.indexing.vectorstore import InMemoryVectorStore
from corpus_rag.models.document import PageText
from corpus_rag.techniques.corpus_qa import CorpusQA, _split_selection

SIMPLE = "When was the exile?"
COMPLEX = "Why did exile shape the poetry, and how did it change?"


@pytest.fixture
def toolkit_config(embedding_config, chunking_config):
    return ToolkitConfig(embedding=embedding_config, chunking=chunking_config, log_level=None)


@pytest.fixture
def make_qa(toolkit_config, embeddings, corpus_store):
    def _make(generator, store=None):
        return CorpusQA(
            config=toolkit_config,
            embeddings=embeddings,
            vector_store=store if store is not None else corpus_store,
            generator=generator,
        )

    return _make


def test_split_selection():
    assert _split_selection(["a", "b", "a"]) == (["a", "b"], {})
    assert _split_selection({"a": "ar", "b": ""}) == (["a", "b"], {"a": "ar"})


@pytest.mark.asyncio
async def test_ingest(make_qa, make_generator):
    store = InMemoryVectorStore()
    qa = make_qa(make_generator(), store=store)
    text = (
        "The exile began in the spring of that year. Families left their homes and walked north.\n\n"
        "Letters from the road describe hunger and cold. They also describe songs sung at night."
    )

    result = await qa.ingest("doc-new", [PageText(page_number=1, text=text)])

    assert result.chunks_count == 1
    assert await store.list_document_ids() == ["doc-new"]


class TestStandardPath:

    @pytest.mark.asyncio
    async def test_simple_question(self, make_qa, make_generator):
        generator = make_generator({
            make_generator.RERANK: "[1, 0]",
            make_generator.ANSWER: "It began on page 2.",
        })

        response = await make_qa(generator).query(SIMPLE, ["doc-a"])

        assert response.answer == "It began on page 2."
        assert response.strategy == "factual_precision_reranked"
        assert response.multi_hop is None
        assert [c.page_number for c in response.retrieval.chunks] == [2, 1]
        assert response.analysis.query_type.value == "factual"
        assert response.confidence == response.retrieval.confidence
        assert response.model_used == "scripted-model"

    @pytest.mark.asyncio
    async def test_multi_hop_disabled(self, make_qa, make_generator):
        generator = make_generator({make_generator.ANSWER: "Standard answer."})

        response = await make_qa(generator).query(COMPLEX, ["doc-a", "doc-b"], enable_multi_hop=False)

        assert response.answer == "Standard answer."
        assert response.strategy == "multi_document_comprehensive"
        assert generator.calls(make_generator.SYNTHESIS) == []

    @pytest.mark.asyncio
    async def test_response_language(self, make_qa, make_generator):
        response = await make_qa(make_generator()).query(SIMPLE, ["doc-a"], response_language="ar")
        assert response.answer == INSUFFICIENT_INFORMATION["ar"]

    @pytest.mark.asyncio
    async def test_spelling_correction(self, make_qa, make_generator):
        generator = make_generator({
            make_generator.CORRECTION: lambda prompt: prompt.split("Original text:\n", 1)[1].split("\n\n", 1)[0],
            make_generator.ANSWER: "Answer.",
        })

        await make_qa(generator).query(SIMPLE, ["doc-a"], correct_spelling=True)

        assert generator.calls(make_generator.CORRECTION)

    @pytest.mark.asyncio
    async def test_all_models_failed_propagates(self, make_qa, make_generator):
        generator = make_generator({make_generator.ANSWER: AllModelsFailedError([])})
        with pytest.raises(AllModelsFailedError):
            await make_qa(generator).query(SIMPLE, ["doc-a"])


class TestMultiHopPath:

    @pytest.mark.asyncio
    async def test_complex_question(self, make_qa, make_generator):
        generator = make_generator({
            make_generator.EVIDENCE: "Partial.",
            make_generator.NEXT: "",
            make_generator.SYNTHESIS: "Exile shaped the poetry.",
        })

        response = await make_qa(generator).query(COMPLEX, {"doc-a": "en", "doc-b": "en"})

        assert response.strategy == "multi-hop"
        assert response.retrieval is None
        assert response.multi_hop.stop_reason == "generation_failed"
        assert response.answer.startswith("## 🧠 Multi-Hop Analysis")
        assert "Exile shaped the poetry." in response.answer
        assert response.confidence == response.multi_hop.confidence_score

    @pytest.mark.asyncio
    async def test_falls_back_to_standard_retrieval(self, make_qa, make_generator):
        generator = make_generator({
            make_generator.EVIDENCE: AllModelsFailedError([]),
            make_generator.ANSWER: "Standard answer.",
        })

        response = await make_qa(generator).query(COMPLEX, ["doc-a", "doc-b"])

        assert response.answer == "Standard answer."
        assert response.multi_hop is None
        assert response.retrieval is not None

    @pytest.mark.asyncio
    async def test_cancellation_is_not_swallowed(self, make_qa, make_generator):
        qa = make_qa(make_generator())
        qa.reasoner.run = AsyncMock(side_effect=RunCancelledError("cancelled"))

        with pytest.raises(RunCancelledError):
            await qa.query(COMPLEX, ["doc-a", "doc-b"])

    @pytest.mark.asyncio
    async def test_no_documents_skips_multi_hop(self, make_qa, make_generator):
        generator = make_generator({make_generator.GENERAL: "General answer."})

        response = await make_qa(generator).query(COMPLEX, [])

        assert response.answer == "General answer."
        assert response.retrieval.is_empty
