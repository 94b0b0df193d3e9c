from .classification import (
    RuleBasedQueryClassifier,
    extract_keywords,
    is_comparative_query,
    is_complex_query,
)

__all__ = [
    "RuleBasedQueryClassifier",
    "extract_keywords",
    "is_comparative_query",
    "is_complex_query",
]
