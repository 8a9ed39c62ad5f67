"""
Issuer investor-relations fallbacks for guidance extraction.
"""

from guidance_credibility.sources.issuer_sites.adapters import (
    IssuerAdapterRegistry,
    IssuerProfile,
    percent_band_parser,
    segment_range_parser,
)

__all__ = [
    "IssuerAdapterRegistry",
    "IssuerProfile",
    "percent_band_parser",
    "segment_range_parser",
]
