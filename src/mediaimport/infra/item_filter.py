"""
Logical predicates for library queries.

Callers describe *what* they want (a media type, an import, a parent) and the
repository turns the filter into SQL. Nothing outside the repository builds
statements directly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, NamedTuple

from ..shared.types import MediaType

if TYPE_CHECKING:
    from ..domain.media_import import MediaImport


class ChildCounts(NamedTuple):
    """Children of a parent item: all of them, and those imported by one import."""

    total: int
    imported: int


@dataclass(frozen=True)
class ItemFilter:
    media_type: MediaType
    source_identifier: str | None = None
    import_media_types: str | None = None
    imported_only: bool = False
    enabled_only: bool = False
    show_id: int | None = None
    season: int | None = None
    set_id: int | None = None
    title: str | None = None

    @classmethod
    def for_import(
        cls, media_type: MediaType, media_import: MediaImport, **predicates: Any
    ) -> ItemFilter:
        """Filter scoped to the items one import produced."""
        return cls(
            media_type=MediaType(media_type),
            source_identifier=media_import.source_identifier,
            import_media_types=media_import.media_types_as_string,
            imported_only=True,
            **predicates,
        )

    @property
    def is_import_scoped(self) -> bool:
        return self.source_identifier is not None

    def without_import(self) -> ItemFilter:
        """Same predicates, across every source and local items."""
        return replace(
            self,
            source_identifier=None,
            import_media_types=None,
            imported_only=False,
            enabled_only=False,
        )
