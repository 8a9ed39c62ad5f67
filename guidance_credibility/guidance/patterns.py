"""
Pattern families for numeric guidance.

Each family is a named matcher that returns its first match in a sentence
as a RangeMatch, or None. Segment ranges are the exception: a sentence can
list several segments, so match_segment_ranges returns all of them.
Revenue values are normalized to USD millions; EPS values are per share and
never carry a currency-unit suffix.

Families:
- match_midpoint_percent: "$5.2 billion, plus or minus 2%"
- match_dollar_range: "between $500 million and $520 million"
- match_segment_ranges: "Intelligent Cloud revenue of $28.05 to $28.35 billion"
- match_eps_range: "diluted EPS of $1.52 to $1.56"
"""

import re
from dataclasses import dataclass

from guidance_credibility.models import (
    GAAP,
    NON_GAAP,
    PER_SHARE,
    UNKNOWN_BASIS,
    USD_MILLIONS,
)

_NUMBER = r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?"
_UNIT = r"billion|million|bn|mm|b|m"
_BILLIONS = {"billion", "bn", "b"}

MIDPOINT_PERCENT = re.compile(
    rf"\$\s*(?P<mid>{_NUMBER})\s*(?P<unit>{_UNIT})\b[^.;$]{{0,40}}?"
    rf"(?:plus\s+or\s+minus|\+/-|±)\s*(?P<pct>\d+(?:\.\d+)?)\s*(?:%|percent)",
    re.IGNORECASE,
)

DOLLAR_RANGE = re.compile(
    rf"\$\s*(?P<low>{_NUMBER})\s*(?:(?P<low_unit>{_UNIT})\b)?\s*(?:-|to|and)\s*"
    rf"\$?\s*(?P<high>{_NUMBER})\s*(?P<high_unit>{_UNIT})\b",
    re.IGNORECASE,
)

EPS_RANGE = re.compile(
    r"\$?\s*(?P<low>\d+\.\d{1,2})\s*(?:-|to|and)\s*\$?\s*(?P<high>\d+\.\d{1,2})(?!\d|\.\d)"
    rf"(?!\s*(?:(?:{_UNIT})\b|%|percent))",
    re.IGNORECASE,
)

EPS_CONTEXT = re.compile(
    r"\b(?:EPS|earnings per (?:diluted )?share|per diluted share|per share)\b"
    r"|\b(?:diluted\s+)?earnings\b(?!\s+(?:call|release|conference|webcast|date))",
    re.IGNORECASE,
)

SEGMENT_REVENUE = re.compile(
    r"(?P<segment>\b[A-Z][\w&'-]*(?:\s+(?:and|&|of|[A-Z][\w&'-]*)){0,5})\s+(?P<cue>segment\s+)?[Rr]evenues?\b"
)

NON_GAAP_PATTERN = re.compile(r"\bnon[-\s]?GAAP\b", re.IGNORECASE)
GAAP_PATTERN = re.compile(r"\bGAAP\b", re.IGNORECASE)

DEFERRED_GUIDANCE = re.compile(
    r"\b(?:will|plans?\s+to|intends?\s+to|expects?\s+to)\s+(?:provide|discuss|give|share|issue)\b"
    r"[^.]{0,80}?\b(?:guidance|outlook)\b[^.]{0,60}?\b(?:on|during)\s+(?:the|its|our)\s+"
    r"(?:[\w-]+\s+){0,3}call\b"
    # passive: "Guidance for the quarter will be provided on the earnings call"
    r"|\b(?:guidance|outlook)\b[^.]{0,80}?\bwill\s+be\s+(?:provided|given|discussed|shared|issued)\b"
    r"[^.]{0,60}?\b(?:on|during)\s+(?:the|its|our)\s+(?:[\w-]+\s+){0,3}call\b",
    re.IGNORECASE,
)

# Leading words that describe the period or the whole company, not a segment
_SEGMENT_STOPWORDS = {
    "the", "our", "we", "its", "total", "net", "consolidated", "company",
    "quarter", "quarterly", "fiscal", "annual", "full", "year", "first",
    "second", "third", "fourth", "gaap", "non-gaap", "q1", "q2", "q3", "q4",
    "fy", "and", "&", "of", "outlook", "guidance", "for", "in",
}

# Words that mark a capitalized name as a reporting segment
SEGMENT_VOCABULARY = {
    "segment", "division", "business", "businesses", "cloud", "computing",
    "processes", "services", "solutions", "products", "devices", "gaming",
    "center", "automotive", "enterprise", "consumer", "commercial",
    "visualization", "software", "hardware", "advertising", "subscriptions",
    "networking", "platforms", "licensing", "payments", "healthcare",
    "retail", "wholesale", "international", "americas", "emea", "apac",
}

_LEGAL_SUFFIXES = {
    "inc", "incorporated", "corp", "corporation", "co", "company", "ltd",
    "limited", "plc", "llc", "lp", "holdings", "group", "sa", "ag", "nv",
}


@dataclass(frozen=True)
class RangeMatch:
    """A numeric range found by one pattern family."""

    low: float
    high: float
    units: str
    segment: str | None = None


def _to_float(value: str) -> float:
    return float(value.replace(",", ""))


def _usd_millions(value: str, unit: str) -> float:
    factor = 1000 if unit.lower() in _BILLIONS else 1
    return round(_to_float(value) * factor, 2)


def match_midpoint_percent(sentence: str) -> RangeMatch | None:
    """Midpoint plus or minus a percentage: min/max = mid*(1-/+pct/100)."""
    match = MIDPOINT_PERCENT.search(sentence)
    if match is None:
        return None
    mid = _usd_millions(match["mid"], match["unit"])
    pct = float(match["pct"])
    return RangeMatch(
        low=round(mid * (1 - pct / 100), 2),
        high=round(mid * (1 + pct / 100), 2),
        units=USD_MILLIONS,
    )


def match_dollar_range(sentence: str) -> RangeMatch | None:
    """Explicit dollar range with a billion/million unit, in USD millions."""
    match = DOLLAR_RANGE.search(sentence)
    if match is None:
        return None
    high_unit = match["high_unit"]
    low_unit = match["low_unit"] or high_unit
    return RangeMatch(
        low=_usd_millions(match["low"], low_unit),
        high=_usd_millions(match["high"], high_unit),
        units=USD_MILLIONS,
    )


def _clean_segment(raw: str) -> str | None:
    tokens = raw.split()
    while tokens and tokens[0].lower() in _SEGMENT_STOPWORDS:
        tokens.pop(0)
    while tokens and tokens[-1].lower() in _SEGMENT_STOPWORDS:
        tokens.pop()
    if not tokens or any(token.lower() in _SEGMENT_STOPWORDS - {"and", "&", "of"} for token in tokens):
        return None
    return " ".join(tokens)


def issuer_aliases(name: str | None) -> set[str]:
    """Lower-cased forms of a company name, with and without its legal suffix."""
    if not name:
        return set()
    words = re.sub(r"[^\w&\s-]", " ", name).lower().split()
    aliases = {" ".join(words)}
    while words and words[-1] in _LEGAL_SUFFIXES:
        words.pop()
        aliases.add(" ".join(words))
    if words and words[0] == "the":
        aliases.add(" ".join(words[1:]))
    return {alias for alias in aliases if alias}


def _has_segment_cue(match: re.Match, segment: str, known: set[str]) -> bool:
    if known:
        return segment.lower() in known
    if match["cue"]:
        return True
    return any(token.lower() in SEGMENT_VOCABULARY for token in segment.split())


def match_segment_ranges(
    sentence: str,
    segments: tuple[str, ...] | list[str] = (),
    issuer: str | None = None,
) -> list[RangeMatch]:
    """
    Every dollar range that follows a segment name and "revenue".

    A capitalized name counts as a segment only with a cue: it is one of
    the known segments when those are given, otherwise it is followed by
    the word "segment" or contains a segment vocabulary word. The issuer's
    own name is consolidated revenue, never a segment.

    Args:
        sentence: Normalized candidate sentence
        segments: Known segment names; when given, only these match
        issuer: Company name, treated as consolidated

    Returns:
        One RangeMatch per segment, in sentence order
    """
    known = {s.lower() for s in segments}
    consolidated = issuer_aliases(issuer)
    matches = list(SEGMENT_REVENUE.finditer(sentence))
    found_ranges: list[RangeMatch] = []

    for i, match in enumerate(matches):
        segment = _clean_segment(match["segment"])
        if segment is None or segment.lower() in consolidated:
            continue
        if not _has_segment_cue(match, segment, known):
            continue
        # A range belongs to the nearest preceding segment name
        end = matches[i + 1].start() if i + 1 < len(matches) else len(sentence)
        found = match_dollar_range(sentence[match.end():end])
        if found is None:
            continue
        found_ranges.append(RangeMatch(low=found.low, high=found.high, units=found.units, segment=segment))

    return found_ranges


def match_eps_range(sentence: str) -> RangeMatch | None:
    """Plain decimal per-share range in a sentence that mentions EPS."""
    if not EPS_CONTEXT.search(sentence):
        return None
    match = EPS_RANGE.search(sentence)
    if match is None:
        return None
    return RangeMatch(low=_to_float(match["low"]), high=_to_float(match["high"]), units=PER_SHARE)


def detect_basis(text: str) -> str:
    if NON_GAAP_PATTERN.search(text):
        return NON_GAAP
    if GAAP_PATTERN.search(text):
        return GAAP
    return UNKNOWN_BASIS


def defers_guidance_to_call(text: str) -> bool:
    """True when the text says guidance will be given live on the earnings call."""
    return DEFERRED_GUIDANCE.search(text) is not None
