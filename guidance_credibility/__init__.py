"""
Guidance credibility scoring for SEC filers.

Extracts forward-looking guidance from SEC filings, aligns it with reported
actuals, scores filing language and combines these into a per-company
guidance credibility index (GCI).
"""

from guidance_credibility.config import Settings
from guidance_credibility.models import (
    GuidanceStatement,
    LanguageMetrics,
    ScoreCard,
    TickerResult,
)
from guidance_credibility.pipeline import GuidancePipeline

__all__ = [
    "Settings",
    "GuidanceStatement",
    "LanguageMetrics",
    "ScoreCard",
    "TickerResult",
    "GuidancePipeline",
]
