"""
Guidance extraction from filing text.

Provides the pattern families, the sentence-level extractor, the per-filing
first-match-wins processor and fiscal period resolution.
"""

from guidance_credibility.guidance.extractor import FilingGuidanceProcessor, GuidanceExtractor
from guidance_credibility.guidance.periods import PeriodResolver, infer_period

__all__ = [
    "FilingGuidanceProcessor",
    "GuidanceExtractor",
    "PeriodResolver",
    "infer_period",
]
