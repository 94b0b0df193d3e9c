"""
corpus-rag: retrieval and multi-hop reasoning over document corpora.

Usage:
    from corpus_rag.techniques import CorpusQA
"""

__version__ = "0.1.0"
