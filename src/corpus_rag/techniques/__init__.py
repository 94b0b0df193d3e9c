"""
Techniques: the public API of the corpus-rag package.

Usage:
    from corpus_rag.techniques import CorpusQA, MultiHopReasoner

    qa = CorpusQA()
    response = await qa.query("Who wrote the preface?", ["doc-1"])
"""

from .corpus_qa import CorpusQA
from .multi_hop import MultiHopReasoner

__all__ = [
    "CorpusQA",
    "MultiHopReasoner",
]
