"""
Multi-hop reasoning example — answer a complex question in several steps.

Shows the reasoning trace: each hop's sub-question, whether it was
answered from the documents or from general knowledge, and why the loop
stopped. Also shows cancelling a run from another task.

Run:
    python examples/multi_hop.py data/book_one.txt
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, "src")

from corpus_rag.config import ReasoningConfig, ToolkitConfig
from corpus_rag.errors import RunCancelledError
from corpus_rag.generation.formatting import format_multi_hop_response
from corpus_rag.models.document import PageText
from corpus_rag.techniques import CorpusQA


QUESTION = "How did the exile shape the poetry of the period, and why did it last?"


async def main(path: Path):
    qa = CorpusQA(ToolkitConfig(reasoning=ReasoningConfig(max_hops=3)))
    pages = [PageText(page_number=i, text=t) for i, t in enumerate(path.read_text(encoding="utf-8").split("\f"), start=1)]
    await qa.ingest(path.stem, pages)

    result = await qa.run_multi_hop(QUESTION, [path.stem], correct_spelling=True)

    print(f"Strategy:    {result.strategy}")
    print(f"Stop reason: {result.stop_reason}")
    print(f"Confidence:  {result.confidence_score:.2f}")
    for step in result.steps:
        origin = "general knowledge" if step.used_general_knowledge else ", ".join(step.document_sources[:3])
        print(f"\n  Step {step.step_number}: {step.question}")
        print(f"     {step.answer[:200]}")
        print(f"     from {origin}")

    print("\n" + format_multi_hop_response(result))

    # --- Cancelling a run ---
    cancel = asyncio.Event()
    task = asyncio.create_task(qa.run_multi_hop(QUESTION, [path.stem], cancel_event=cancel))
    cancel.set()
    try:
        await task
    except RunCancelledError:
        print("Run cancelled at a hop boundary")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(main(Path(sys.argv[1])))
