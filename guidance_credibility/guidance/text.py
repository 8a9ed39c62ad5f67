"""
Text normalization and sentence chunking for guidance extraction.
"""

import re

_DASHES = re.compile(r"[\u2010-\u2015\u2212\ufe58\ufe63\uff0d]")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?;])\s+")

GUIDANCE_KEYWORDS = re.compile(
    r"\b(?:guidance|outlook|expect\w*|sees?|range|between|forecast\w*|project\w*|estimate[sd]?)\b",
    re.IGNORECASE,
)


def normalize_text(text: str) -> str:
    """Unify dash variants and collapse whitespace."""
    text = _DASHES.sub("-", text.replace("\u00a0", " "))
    return _WHITESPACE.sub(" ", text).strip()


def split_sentences(text: str) -> list[str]:
    """Split normalized text into sentence-like chunks on terminal punctuation."""
    return [chunk.strip() for chunk in _SENTENCE_BOUNDARY.split(text) if chunk.strip()]


def guidance_candidates(text: str) -> list[str]:
    """Sentences of the text that contain a guidance keyword."""
    return [s for s in split_sentences(normalize_text(text)) if GUIDANCE_KEYWORDS.search(s)]
