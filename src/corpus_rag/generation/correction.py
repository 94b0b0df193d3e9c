"""
LLM spelling correction for retrieved chunks.

Scanned books come back from OCR with misspellings that hurt answer
quality. Before chunks are used as multi-hop evidence they can optionally
be run past the generator with a "fix the spelling, nothing else" prompt
in the chunk's own language.

Two modes:
    conservative (default)  Fix only obvious errors, keep rare or historical words.
    aggressive              Fix everything.

Guard rails:
    - Chunks are corrected in concurrent batches of 5.
    - A chunk whose correction fails keeps its original text.
    - A correction whose length differs from the original by more than
      30% is rejected; that is the model rewriting, not correcting.

Corrected chunks are copies; stored chunks are never modified.
"""

import asyncio
import logging
from typing import Optional

from corpus_rag.base.generator import BaseGenerator
from corpus_rag.generation.prompts import (
    CORRECTION_INSTRUCTIONS,
    CORRECTION_PROMPTS,
    prompt_language,
)
from corpus_rag.models.document import ScoredChunk

logger = logging.getLogger(__name__)

BATCH_SIZE = 5
MAX_LENGTH_CHANGE = 0.3


class SpellingCorrector:
    """Corrects chunk text through a generator, keeping the original on any failure."""

    def __init__(self, generator: BaseGenerator, batch_size: int = BATCH_SIZE):
        self.generator = generator
        self.batch_size = batch_size

    async def correct(self, text: str, language: str = "en", aggressive: bool = False) -> str:
        """
        Corrected version of text.

        Raises whatever the generator raises; correct_chunks() is the
        caller that absorbs failures.
        """
        lang = prompt_language(language)
        prompt = CORRECTION_PROMPTS[lang].format(
            instruction=CORRECTION_INSTRUCTIONS[lang][aggressive],
            text=text,
        )
        result = await self.generator.generate(prompt)
        return result.text.strip()

    @staticmethod
    def is_plausible(original: str, corrected: str) -> bool:
        if not corrected:
            return False
        if not original:
            return True
        return abs(len(corrected) - len(original)) / len(original) <= MAX_LENGTH_CHANGE

    async def _correct_chunk(self, scored: ScoredChunk, language: str, aggressive: bool) -> ScoredChunk:
        try:
            corrected = await self.correct(scored.text, language, aggressive)
        except Exception as exc:
            logger.warning(f"Failed to correct chunk {scored.chunk.id}: {exc}")
            return scored

        if not self.is_plausible(scored.text, corrected):
            logger.warning(
                f"Rejected correction of chunk {scored.chunk.id}: length changed from "
                f"{len(scored.text)} to {len(corrected)} characters"
            )
            return scored

        chunk = scored.chunk.model_copy(update={
            "text": corrected,
            "metadata": {**scored.chunk.metadata, "corrected": True},
        })
        return scored.model_copy(update={"chunk": chunk})

    async def correct_chunks(
        self,
        chunks: list[ScoredChunk],
        document_languages: Optional[dict[str, str]] = None,
        default_language: str = "en",
        aggressive: bool = False,
    ) -> list[ScoredChunk]:
        """
        Correct a list of chunks in batches, preserving order.

        Each chunk is corrected in its document's language from
        document_languages, falling back to default_language.
        """
        document_languages = document_languages or {}
        mode = "aggressive" if aggressive else "conservative"
        logger.info(f"Correcting {len(chunks)} chunks ({mode} mode)")

        corrected: list[ScoredChunk] = []
        total_batches = (len(chunks) + self.batch_size - 1) // self.batch_size
        for start in range(0, len(chunks), self.batch_size):
            batch = chunks[start:start + self.batch_size]
            corrected.extend(await asyncio.gather(*(
                self._correct_chunk(c, document_languages.get(c.document_id, default_language), aggressive)
                for c in batch
            )))
            logger.debug(f"Corrected batch {start // self.batch_size + 1}/{total_batches}")

        return corrected
