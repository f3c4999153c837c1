"""
Enricher protocol.

Enrichers make sure an item carries every field a comparison needs before it
is classified. They never persist anything.
"""

from __future__ import annotations

from typing import Protocol

from ...domain.items import MediaItem


class Enricher(Protocol):
    """
    Fills in the fields an incoming or local item is missing.

    An enricher works in place and returns the item it was given. Storage
    failures surface as EnricherError. Calling it again on a complete item
    is a no-op.
    """

    name: str

    def enrich(self, item: MediaItem) -> MediaItem:
        """
        Complete ``item`` and return it.

        Raises:
            EnricherError: If the missing fields cannot be loaded
        """
        ...


class EnricherError(Exception):
    """An item could not be enriched."""
