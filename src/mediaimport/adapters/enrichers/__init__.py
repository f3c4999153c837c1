"""
Enrichers module for mediaimport.

This module contains enrichers that complete items before comparison.
"""

from .base import Enricher, EnricherError
from .library_details_enricher import LibraryDetailsEnricher

__all__ = [
    "Enricher",
    "EnricherError",
    "LibraryDetailsEnricher",
]
