"""Tests for MultiHopReasoner — full runs over the in-memory corpus, generator scripted."""

import asyncio

import pytest

from corpus_rag.config import ReasoningConfig
from corpus_rag.errors import AllModelsFailedError, RunCancelledError
from corpus_rag.indexing.vectorstore import InMemoryVectorStore
from corpus_rag.techniques.multi_hop import MultiHopReasoner

QUESTION = "How did exile shape the poetry?"
DOCS = ["doc-a", "doc-b"]


@pytest.fixture
def make_reasoner(corpus_store, embeddings, embedding_config, reasoning_config):
    def _make(generator, store=None, config=None):
        return MultiHopReasoner(
            store if store is not None else corpus_store,
            embeddings,
            generator,
            config=config or reasoning_config,
            embedding_config=embedding_config,
        )

    return _make


class TestGroundedRuns:

    @pytest.mark.asyncio
    async def test_two_grounded_hops(self, make_reasoner, make_generator):
        generator = make_generator({
            make_generator.EVIDENCE: "Partial answer.",
            make_generator.NEXT: '"Which poems mention the garden?"',
            make_generator.SYNTHESIS: "Exile shaped the poetry through loss.",
        })

        result = await make_reasoner(generator).run(QUESTION, DOCS, max_hops=2)

        assert [s.question for s in result.steps] == [QUESTION, "Which poems mention the garden?"]
        assert result.stop_reason == "max_hops"
        assert result.strategy == "multi-hop"
        assert not result.used_general_knowledge
        assert result.total_documents_used == 2
        assert result.final_answer == "Exile shaped the poetry through loss."
        assert result.model_used == "scripted-model"
        # Hop 2 only finds the garden pages of doc-b
        assert {c.document_id for c in result.steps[1].retrieved_chunks} == {"doc-b"}
        assert result.evidence_chain[-4:] == ["Doc 2, Page 1", "Doc 2, Page 2", "Doc 2, Page 3", "Doc 2, Page 4"]
        assert 0 < result.confidence_score <= 1

    @pytest.mark.asyncio
    async def test_hop_without_evidence_makes_run_hybrid(self, make_reasoner, make_generator):
        generator = make_generator({
            make_generator.EVIDENCE: "From the documents.",
            make_generator.GENERAL: "From general knowledge.",
            make_generator.NEXT: ["Which poems mention the garden?", "Who were the rulers?"],
            make_generator.SYNTHESIS: "Final.",
        })

        result = await make_reasoner(generator).run(QUESTION, DOCS, max_hops=3)

        assert len(result.steps) == 3
        assert [s.used_general_knowledge for s in result.steps] == [False, False, True]
        assert result.steps[2].answer == "From general knowledge."
        assert result.steps[2].document_sources == ["General Knowledge"]
        assert result.strategy == "hybrid-multi-hop"
        assert result.total_documents_used == 2
        # The last hop does not propose another question
        assert len(generator.calls(make_generator.NEXT)) == 2

    @pytest.mark.asyncio
    async def test_duplicate_document_ids(self, make_reasoner, make_generator):
        generator = make_generator({make_generator.EVIDENCE: "Partial.", make_generator.SYNTHESIS: "Final."})
        result = await make_reasoner(generator).run(QUESTION, ["doc-a", "doc-a"], max_hops=1)
        assert result.total_documents_used == 1


class TestEmptyStore:

    @pytest.mark.asyncio
    async def test_every_hop_uses_general_knowledge(self, make_reasoner, make_generator):
        generator = make_generator({
            make_generator.GENERAL: "A general answer.",
            make_generator.NEXT: ["What laws did they pass?", "Where did they go afterwards?"],
            make_generator.SYNTHESIS: "Final answer.",
        })

        result = await make_reasoner(generator, store=InMemoryVectorStore()).run(QUESTION, DOCS)

        assert len(result.steps) == 3
        assert all(s.used_general_knowledge for s in result.steps)
        assert all(s.confidence == pytest.approx(0.6) for s in result.steps)
        assert result.strategy == "hybrid-multi-hop"
        assert result.total_documents_used == 0
        assert result.confidence_score == pytest.approx(0.6)
        assert result.evidence_chain == ["General Knowledge"]


class TestStopping:

    @pytest.mark.asyncio
    async def test_circular_question_stops(self, make_reasoner, make_generator):
        generator = make_generator({
            make_generator.EVIDENCE: "Partial.",
            make_generator.NEXT: "How did exile shape the poetry",
            make_generator.SYNTHESIS: "Final.",
        })

        result = await make_reasoner(generator).run(QUESTION, DOCS)

        assert len(result.steps) == 1
        assert result.stop_reason == "circular"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["", RuntimeError("model down")])
    async def test_no_sub_question_stops(self, make_reasoner, make_generator, reply):
        generator = make_generator({
            make_generator.EVIDENCE: "Partial.",
            make_generator.NEXT: reply,
            make_generator.SYNTHESIS: "Final.",
        })

        result = await make_reasoner(generator).run(QUESTION, DOCS)

        assert len(result.steps) == 1
        assert result.stop_reason == "generation_failed"
        assert result.final_answer == "Final."

    @pytest.mark.asyncio
    async def test_hop_count_is_bounded(self, make_reasoner, make_generator):
        counter = iter(range(100))
        generator = make_generator({
            make_generator.EVIDENCE: "Partial.",
            make_generator.NEXT: lambda prompt: f"Distinct follow-up question number {next(counter)} about gardens?",
            make_generator.SYNTHESIS: "Final.",
        })

        result = await make_reasoner(generator, config=ReasoningConfig(max_hops=4)).run(QUESTION, DOCS)

        assert len(result.steps) == 4
        assert [s.step_number for s in result.steps] == [1, 2, 3, 4]
        assert result.stop_reason == "max_hops"


class TestFailures:

    @pytest.mark.asyncio
    async def test_all_models_failed_propagates(self, make_reasoner, make_generator):
        generator = make_generator({make_generator.EVIDENCE: AllModelsFailedError([])})
        with pytest.raises(AllModelsFailedError):
            await make_reasoner(generator).run(QUESTION, DOCS)

    @pytest.mark.asyncio
    async def test_synthesis_failure_propagates(self, make_reasoner, make_generator):
        generator = make_generator({
            make_generator.EVIDENCE: "Partial.",
            make_generator.SYNTHESIS: AllModelsFailedError([]),
        })
        with pytest.raises(AllModelsFailedError):
            await make_reasoner(generator).run(QUESTION, DOCS, max_hops=1)

    @pytest.mark.asyncio
    async def test_embedding_failure_falls_back_to_general_knowledge(
        self, corpus_store, failing_embeddings, embedding_config, make_generator,
    ):
        generator = make_generator({make_generator.GENERAL: "General.", make_generator.SYNTHESIS: "Final."})
        reasoner = MultiHopReasoner(corpus_store, failing_embeddings, generator, embedding_config=embedding_config)

        result = await reasoner.run(QUESTION, DOCS, max_hops=1)

        assert result.steps[0].used_general_knowledge


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancelled_before_first_hop(self, make_reasoner, make_generator):
        cancel = asyncio.Event()
        cancel.set()
        generator = make_generator()

        with pytest.raises(RunCancelledError):
            await make_reasoner(generator).run(QUESTION, DOCS, cancel_event=cancel)
        assert generator.prompts == []

    @pytest.mark.asyncio
    async def test_cancelled_between_hops(self, make_reasoner, make_generator):
        cancel = asyncio.Event()

        def answer_then_cancel(prompt):
            cancel.set()
            return "Partial."

        generator = make_generator({
            make_generator.EVIDENCE: answer_then_cancel,
            make_generator.NEXT: "Which poems mention the garden?",
        })

        with pytest.raises(RunCancelledError):
            await make_reasoner(generator).run(QUESTION, DOCS, cancel_event=cancel)
        assert len(generator.calls(make_generator.EVIDENCE)) == 1
        assert generator.calls(make_generator.SYNTHESIS) == []


class TestSpellingCorrection:

    @staticmethod
    def _upper_text(prompt):
        return prompt.split("Original text:\n", 1)[1].split("\n\n", 1)[0].upper()

    @pytest.mark.asyncio
    async def test_evidence_corrected_when_requested(self, make_reasoner, make_generator):
        generator = make_generator({
            make_generator.CORRECTION: self._upper_text,
            make_generator.EVIDENCE: "Partial.",
            make_generator.SYNTHESIS: "Final.",
        })
        reasoner = make_reasoner(generator, config=ReasoningConfig(max_hops=1))

        result = await reasoner.run(QUESTION, DOCS, correct_spelling=True)

        assert len(generator.calls(make_generator.CORRECTION)) == 10
        assert "DOC-A PAGE 1: A PASSAGE ABOUT EXILE." in generator.calls(make_generator.EVIDENCE)[0]
        assert all(c.chunk.metadata.get("corrected") for c in result.steps[0].retrieved_chunks)

    @pytest.mark.asyncio
    async def test_correction_skipped_above_limit(self, make_reasoner, make_generator):
        """Ten evidence chunks exceed a limit of five, so correction is skipped."""
        generator = make_generator({make_generator.EVIDENCE: "Partial.", make_generator.SYNTHESIS: "Final."})
        reasoner = make_reasoner(generator, config=ReasoningConfig(max_hops=1, correction_max_chunks=5))

        await reasoner.run(QUESTION, DOCS, correct_spelling=True)

        assert generator.calls(make_generator.CORRECTION) == []

    @pytest.mark.asyncio
    async def test_no_correction_by_default(self, make_reasoner, make_generator):
        generator = make_generator({make_generator.EVIDENCE: "Partial.", make_generator.SYNTHESIS: "Final."})
        reasoner = make_reasoner(generator, config=ReasoningConfig(max_hops=1))

        await reasoner.run(QUESTION, DOCS)

        assert generator.calls(make_generator.CORRECTION) == []
