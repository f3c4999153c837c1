from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..domain.media_import import MediaImport, MediaImportSettings, MediaImportSource
from ..infra.exceptions import ValidationError
from ..infra.library_repository import LibraryRepository
from ..shared.types import MediaImportTrigger, MediaType
from .import_list import import_to_dict


def add_import(
    db: Session,
    *,
    source_identifier: str,
    media_types: list[MediaType],
    friendly_name: str = "",
    importer_id: str = "",
    trigger: MediaImportTrigger = MediaImportTrigger.AUTO,
    update_items: bool = True,
    update_playback_from_source: bool = True,
    update_playback_on_source: bool = True,
) -> dict[str, Any]:
    """
    Create an import descriptor. Single noun-verb operation. Returns data for CLI.

    The caller owns the transaction.
    """
    media_import = MediaImport(
        media_types=tuple(media_types),
        source=MediaImportSource(
            identifier=source_identifier, friendly_name=friendly_name, importer_id=importer_id
        ),
        settings=MediaImportSettings(),
    )
    if not media_import.is_valid():
        raise ValidationError("An import needs a source identifier and at least one media type")
    if len(set(media_import.media_types)) != len(media_import.media_types):
        raise ValidationError(f"Duplicate media types in '{media_import.media_types_as_string}'")

    settings = media_import.settings
    settings.import_trigger = MediaImportTrigger(trigger)
    settings.update_imported_media_items = update_items
    settings.update_playback_metadata_from_source = update_playback_from_source
    settings.update_playback_metadata_on_source = update_playback_on_source

    repository = LibraryRepository(db)
    if repository.get_import(source_identifier, media_import.media_types_as_string) is not None:
        raise ValidationError(f"Import {media_import} already exists")
    if not repository.save_import(media_import):
        raise ValidationError(f"Unable to save import {media_import}")

    return import_to_dict(media_import)


__all__ = ["add_import"]
