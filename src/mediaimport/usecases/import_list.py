from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..domain.media_import import MediaImport
from ..infra.exceptions import ImportNotFoundError
from ..infra.library_repository import LibraryRepository
from ..shared.types import MediaType, media_types_to_string


def import_to_dict(media_import: MediaImport) -> dict[str, Any]:
    return {
        "source_identifier": media_import.source_identifier,
        "friendly_name": media_import.source.friendly_name,
        "importer_id": media_import.source.importer_id,
        "media_types": [media_type.value for media_type in media_import.media_types],
        "last_synced": (
            media_import.last_synced.isoformat() if media_import.last_synced else None
        ),
        "settings": media_import.settings.to_dict(),
    }


def list_imports(db: Session, *, source_identifier: str | None = None) -> list[dict[str, Any]]:
    """
    List import descriptors, optionally of one source. Single operation.
    """
    repository = LibraryRepository(db)
    return [
        import_to_dict(media_import) for media_import in repository.list_imports(source_identifier)
    ]


def get_import(db: Session, *, source_identifier: str, media_types: list[MediaType]) -> MediaImport:
    """
    Load one import descriptor.

    Raises:
        ImportNotFoundError: If no import matches the source and media types
    """
    types_string = media_types_to_string(tuple(media_types))
    media_import = LibraryRepository(db).get_import(source_identifier, types_string)
    if media_import is None:
        raise ImportNotFoundError(f"No import of '{types_string}' from '{source_identifier}'")
    return media_import


__all__ = ["get_import", "import_to_dict", "list_imports"]
