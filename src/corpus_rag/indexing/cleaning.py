"""
Text normalization and regex-only OCR repair.

Runs on page text before chunking. Nothing in here calls a model: these
are the cheap fixes applied to every page, so the model-based spelling
correction (generation/correction.py) only has to deal with what is left.

    text = normalize_text(raw, language="ar")
    text = fix_common_corruptions(text)
    if has_corruptions(text):
        ...  # worth a model-based correction pass
"""

import logging
import re
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)

# Page markers and separators left behind by PDF extraction
_PAGE_MARKERS = [
    re.compile(r"(?<!\S)[-_]+\s*\d+\s*[-_]+(?!\S)"),
    re.compile(r"صفحة\s*\d+"),
    re.compile(r"\bPage\s*\d+\b", re.IGNORECASE),
]
_RULES = re.compile(r"[_-]{3,}")
_HORIZONTAL_SPACE = re.compile(r"[ \t\f\v]+")
_SPACE_AROUND_NEWLINE = re.compile(r" *\n *")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")

# Arabic letter-form normalization (hamza carriers, alef maqsura, ta marbuta)
_ARABIC_FORMS = [
    (re.compile(r"[أإآ]"), "ا"),
    (re.compile(r"[ىئ]"), "ي"),
    (re.compile(r"ة"), "ه"),
]

Replacement = Union[str, Callable[[re.Match], str]]

# Transliteration and glyph-confusion repairs seen in scanned scholarly texts
_CORRUPTION_FIXES: list[tuple[re.Pattern, Replacement]] = [
    (re.compile(r"Ibn-?[IJ1l]{1,2}[aā]zm", re.IGNORECASE), "Ibn Ḥazm"),
    (re.compile(r"Da['’]?[fƒt]d", re.IGNORECASE), "Dāwūd"),
    (re.compile(r"[1IJ][).:]?adīth", re.IGNORECASE), "Ḥadīth"),
    (re.compile(r"[1IJ][).:]?adith", re.IGNORECASE), "Hadith"),
    (re.compile(r"al-[ZẒ]ah[iī]r[iī]", re.IGNORECASE), "al-Ẓāhirī"),
    (re.compile(r"M[aā]lik[iī]"), "Mālikī"),
    (re.compile(r"Pahlavl"), "Pahlavi"),
    (re.compile(r"\$ufi", re.IGNORECASE), "Sufi"),
    (re.compile(r"\$[a-z]", re.IGNORECASE), lambda m: m.group(0)[1].upper()),
    (re.compile(r"Proven[<>][;,]?al", re.IGNORECASE), "Provençal"),
    (re.compile(r"<[;,]"), "ç"),
    (re.compile(r"([a-z])[<>]+([a-z])", re.IGNORECASE), r"\1\2"),
    (re.compile(r"([A-Z])II([a-z])"), r"\1li\2"),
    (re.compile(r"\b([A-Z][a-z]+)1([a-z]+)\b"), r"\1i\2"),
]

_CORRUPTION_SIGNS = [
    re.compile(r"[<>]{2,}"),
    re.compile(r"\$[a-z]", re.IGNORECASE),
    re.compile(r"\b[IJ1l]{2,}[a-z]", re.IGNORECASE),
    re.compile(r"\b[A-Z][a-z]*[IJ1][a-z]*[IJ1]"),
    # Long runs outside ASCII, Arabic, whitespace and general punctuation
    re.compile(r"[^\x00-\x7F\u0600-\u06FF\s\u2000-\u206F]{5,}"),
]

_DATE_PATTERNS = [
    re.compile(r"\b\d{4}\b"),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
    re.compile(r"\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s+\d{1,2},?\s+\d{4}\b", re.IGNORECASE),
    re.compile(r"\b\d{1,2}\s+(?:يناير|فبراير|مارس|أبريل|مايو|يونيو|يوليو|أغسطس|سبتمبر|أكتوبر|نوفمبر|ديسمبر)\s+\d{2,4}\b"),
]


def normalize_text(text: str, language: Optional[str] = None) -> str:
    """
    Clean extracted page text while keeping paragraph boundaries.

    Removes page markers and separator rules, collapses horizontal
    whitespace, and reduces runs of blank lines to a single paragraph
    break. For Arabic text the letter forms are normalized as well, so
    the same word spelled with different hamza carriers embeds the same.
    """
    cleaned = text.replace("\r\n", "\n").replace("\r", "\n")
    for pattern in _PAGE_MARKERS:
        cleaned = pattern.sub("", cleaned)
    cleaned = _RULES.sub("", cleaned)
    cleaned = _HORIZONTAL_SPACE.sub(" ", cleaned)
    cleaned = _SPACE_AROUND_NEWLINE.sub("\n", cleaned)
    cleaned = _EXCESS_NEWLINES.sub("\n\n", cleaned)

    if language == "ar":
        for pattern, replacement in _ARABIC_FORMS:
            cleaned = pattern.sub(replacement, cleaned)

    return cleaned.strip()


def fix_common_corruptions(text: str) -> str:
    """Apply the regex repair table. Idempotent on already-clean text."""
    fixed = text
    changes = 0
    for pattern, replacement in _CORRUPTION_FIXES:
        updated = pattern.sub(replacement, fixed)
        if updated != fixed:
            changes += 1
            fixed = updated
    if changes:
        logger.debug(f"Fixed {changes} common corruption pattern(s)")
    return fixed


def has_corruptions(text: str) -> bool:
    """Whether text still shows signs of OCR damage after the regex pass."""
    return any(pattern.search(text) for pattern in _CORRUPTION_SIGNS)


def extract_dates(text: str, limit: int = 8) -> list[str]:
    """Date-like strings in text, unique, in first-seen order."""
    found: list[str] = []
    for pattern in _DATE_PATTERNS:
        for match in pattern.finditer(text):
            if match.group(0) not in found:
                found.append(match.group(0))
    return found[:limit]
