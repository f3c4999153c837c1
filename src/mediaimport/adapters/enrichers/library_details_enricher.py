"""
Lazy loader for the detail fields of local library items.

Local items are listed without artwork, cast and list fields. This enricher
loads them from the library just before an item is compared with its
incoming counterpart.
"""

from __future__ import annotations

from ...domain.items import MediaItem
from ...infra.exceptions import RepositoryError
from ...infra.library_repository import LibraryRepository
from .base import EnricherError


class LibraryDetailsEnricher:
    name = "library-details"

    def __init__(self, repository: LibraryRepository) -> None:
        self.repository = repository

    def enrich(self, item: MediaItem) -> MediaItem:
        if item.details_loaded or not item.is_persisted:
            return item
        try:
            return self.repository.load_item_details(item)
        except RepositoryError as e:
            raise EnricherError(f"Failed to load details of {item.label}: {e}") from e
