"""
Relational store for companies, periods, guidance, actuals and scores.
"""

from guidance_credibility.store.repository import GuidancePair, Repository

__all__ = [
    "GuidancePair",
    "Repository",
]
