"""
Corpus QA example — ingest two books and ask questions about them.

This script:
    1. Reads two plain-text books (pages separated by form feeds, the way
       pdftotext writes them)
    2. Chunks, embeds and stores them in memory
    3. Asks a simple question and a comparative one and prints the answers

Run:
    python examples/corpus_qa.py data/book_one.txt data/book_two.txt
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, "src")

from corpus_rag.config import LLMConfig, ToolkitConfig
from corpus_rag.models.document import PageText
from corpus_rag.techniques import CorpusQA


def read_pages(path: Path) -> list[PageText]:
    text = path.read_text(encoding="utf-8")
    return [PageText(page_number=i, text=page) for i, page in enumerate(text.split("\f"), start=1)]


async def main(paths: list[Path]):
    qa = CorpusQA(ToolkitConfig(
        llm=LLMConfig(provider="openai", model_name="gpt-4o-mini", fallback_models=["gpt-4o"]),
        log_level="INFO",
    ))

    for path in paths:
        result = await qa.ingest(
            path.stem,
            read_pages(path),
            on_progress=lambda done, total: print(f"   {done}/{total} pages"),
        )
        print(f"Ingested {path.stem}: {result.chunks_count} chunks, failed pages {result.failed_pages}")

    document_ids = [p.stem for p in paths]

    questions = [
        ("When did the exile begin?", document_ids[:1]),
        ("What do both books have in common?", document_ids),
    ]
    for q, selection in questions:
        print(f"\nQ: {q}")
        response = await qa.query(q, selection, enable_multi_hop=False)
        print(f"A: {response.answer}")
        print(f"   Strategy:   {response.strategy}")
        print(f"   Confidence: {response.confidence:.2f}")
        print(f"   Chunks:     {len(response.retrieval.chunks)}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(main([Path(p) for p in sys.argv[1:]]))
