"""
Rule-based query classification.

The classifier looks at the surface of a question and decides which kind
of evidence it needs:

    analytical   compare / contrast / why / cause and effect
    narrative    who did what, what happened, story, plot, characters
    thematic     themes, meaning, message, lessons, overall interpretation
    factual      when, where, how many, dates, names, definitions
    hybrid       nothing matched; broad retrieval with diversity sampling

Rules are checked in order and the first match wins, so a question like
"why did the character leave?" is analytical, not narrative.

It also extracts search keywords, builds the expanded query that gets
embedded, detects the query language and flags comparative questions
over more than one document.

Two helpers are used in front of the classifier:

    is_complex_query(query)      Should this go through multi-hop reasoning?
    is_comparative_query(query)  Does it ask what documents share or how they differ?

Usage:
    from corpus_rag.query.classification import RuleBasedQueryClassifier

    classifier = RuleBasedQueryClassifier()
    analysis = classifier.classify("What themes do both books share?", ["a", "b"])
    # → QueryAnalysis(query_type=THEMATIC, is_multi_document_query=True, ...)
"""

import re
from typing import Optional

from corpus_rag.base.router import BaseQueryClassifier
from corpus_rag.models.query import QueryAnalysis, QueryType
from corpus_rag.utils.helpers import detect_language

_MAX_KEYWORDS = 5
_MAX_HISTORY_KEYWORDS = 2
_HISTORY_TURNS = 3

_COMPLEX_PATTERNS = [
    re.compile(r"\b(how|why|what|where|when|who)\b.*\b(and|also|additionally)\b.*\b(how|why|what|where|when|who)\b", re.IGNORECASE),
    re.compile(r"\b(compare|contrast|difference|similar|relationship|connection|relate)\b", re.IGNORECASE),
    re.compile(r"\b(because|therefore|thus|hence|lead to|result in|cause|effect)\b", re.IGNORECASE),
    re.compile(r"\b(across|between|among)\b.*\b(document|text|book|source|both|all)\b", re.IGNORECASE),
    re.compile(r"\b(analyze|evaluate|assess|examine|investigate|explore)\b", re.IGNORECASE),
    re.compile(r"قارن|فرق|علاقة|ارتباط|بين|تحليل|لماذا.*وكيف|ما.*ولماذا"),
]

_COMPARATIVE_PATTERNS = [
    re.compile(r"\b(common|similar|shared|both|difference|differ|compare|contrast|versus|vs)\b", re.IGNORECASE),
    re.compile(r"\b(between|across|among)\b.*\b(document|text|book|source)", re.IGNORECASE),
    re.compile(r"مشترك|تشابه|فرق|مقارنة|كلاهما|بين"),
]

_STOPWORDS = frozenset({
    # English
    "about", "above", "after", "again", "also", "among", "been", "before", "being",
    "between", "both", "could", "does", "doing", "during", "each", "from", "have",
    "having", "here", "into", "more", "most", "other", "over", "same", "should",
    "some", "such", "than", "that", "their", "them", "then", "there", "these",
    "they", "this", "those", "through", "under", "very", "what", "when", "where",
    "which", "while", "whom", "whose", "will", "with", "would", "your", "tell",
    "explain", "describe", "please", "document", "documents",
    # Arabic
    "هذا", "هذه", "ذلك", "تلك", "التي", "الذي", "الذين", "والتي", "والذي",
    "على", "إلى", "عند", "كيف", "ماذا", "لماذا", "متى", "هناك", "كانت", "يكون",
})

_TOKEN = re.compile(r"\w+", re.UNICODE)


def is_complex_query(query: str) -> bool:
    """True when the question needs several reasoning steps (multi-part, comparative, causal)."""
    return any(pattern.search(query) for pattern in _COMPLEX_PATTERNS)


def is_comparative_query(query: str) -> bool:
    """True when the question asks what documents share or how they differ."""
    return any(pattern.search(query) for pattern in _COMPARATIVE_PATTERNS)


def extract_keywords(text: str, limit: int = _MAX_KEYWORDS) -> list[str]:
    """Lower-cased tokens longer than 3 characters, stopwords removed, first-seen order."""
    keywords: list[str] = []
    for token in _TOKEN.findall(text.lower()):
        if len(token) <= 3 or token.isdigit() or token in _STOPWORDS:
            continue
        if token not in keywords:
            keywords.append(token)
        if len(keywords) >= limit:
            break
    return keywords


class RuleBasedQueryClassifier(BaseQueryClassifier):
    """
    Fast, zero-cost classifier using keyword patterns.

    No LLM call, just regex. English and Arabic cues are both covered;
    Arabic patterns skip word boundaries because of attached prefixes
    (و, ال, ب).

    Rules (checked in order, first match wins):
        "compare/why/cause"       → ANALYTICAL
        "who/happened/story"      → NARRATIVE
        "theme/meaning/lesson"    → THEMATIC
        "when/where/how many"     → FACTUAL
        Everything else           → HYBRID

    Thematic cues are checked before factual ones so "what is the main
    theme" is not mistaken for a definition lookup.
    """

    _PATTERNS: list[tuple[re.Pattern, QueryType]] = [
        (re.compile(
            r"\b(compare|comparison|contrast|differ|difference|similarit(y|ies)|versus|vs|why|"
            r"because|cause[sd]?|effect|impact|lead to|result(ed)? in|analy[sz]e|evaluate|relationship)\b",
            re.IGNORECASE,
        ), QueryType.ANALYTICAL),
        (re.compile(r"قارن|مقارنة|الفرق|لماذا|سبب|أسباب|نتيجة|تأثير|تحليل|علاقة"), QueryType.ANALYTICAL),
        (re.compile(
            r"\b(who|what happen(s|ed)?|story|stories|character|characters|plot|events?|narrat\w*|"
            r"protagonist|journey)\b",
            re.IGNORECASE,
        ), QueryType.NARRATIVE),
        (re.compile(r"قصة|القصة|شخصية|الشخصيات|أحداث|الأحداث|ماذا حدث|من هو|من هي|رحلة"), QueryType.NARRATIVE),
        (re.compile(
            r"\b(themes?|meaning|message|lessons?|interpret\w*|overall|symboli[sz]\w*|moral|idea|ideas)\b",
            re.IGNORECASE,
        ), QueryType.THEMATIC),
        (re.compile(r"موضوع|مواضيع|معنى|رسالة|درس|دروس|فكرة|أفكار|رمز|العبرة"), QueryType.THEMATIC),
        (re.compile(
            r"\b(when|where|what year|which year|how many|how much|date|dates|name|named|"
            r"define|definition|what is|list)\b",
            re.IGNORECASE,
        ), QueryType.FACTUAL),
        (re.compile(r"متى|أين|كم|تاريخ|سنة|عام|اسم|عرّف|تعريف|ما هو|ما هي"), QueryType.FACTUAL),
    ]

    def classify(
        self,
        query: str,
        document_ids: Optional[list[str]] = None,
        history: Optional[list[dict[str, str]]] = None,
    ) -> QueryAnalysis:
        query_type = QueryType.HYBRID
        for pattern, candidate in self._PATTERNS:
            if pattern.search(query):
                query_type = candidate
                break

        keywords = extract_keywords(query)
        for keyword in self._history_keywords(history, exclude=keywords):
            keywords.append(keyword)

        multi_document = bool(document_ids) and len(document_ids) > 1 and is_comparative_query(query)
        expanded = f"{query} {' '.join(keywords)}".strip() if keywords else query

        return QueryAnalysis(
            original_query=query,
            query_type=query_type,
            keywords=keywords,
            is_multi_document_query=multi_document,
            expanded_query=expanded,
            detected_language=detect_language(query),
        )

    @staticmethod
    def _history_keywords(
        history: Optional[list[dict[str, str]]],
        exclude: list[str],
    ) -> list[str]:
        """Up to two keywords from the most recent user turns that the query does not already have."""
        if not history:
            return []

        user_turns = [turn.get("content", "") for turn in history if turn.get("role") == "user"]
        extra: list[str] = []
        for content in reversed(user_turns[-_HISTORY_TURNS:]):
            for keyword in extract_keywords(content, limit=10):
                if keyword not in exclude and keyword not in extra:
                    extra.append(keyword)
                if len(extra) >= _MAX_HISTORY_KEYWORDS:
                    return extra
        return extra
