"""
Removal and (de)activation of everything an import produced.

Both operations run over all media types of the import without incoming
items; removal goes children first so parents are judged on the children
that actually remain.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..adapters.handlers.base import HandlerContext
from ..adapters.registry import HandlerRegistry, create_default_registry
from ..domain.media_import import MediaImport
from ..infra.library_repository import LibraryRepository
from ..infra.logging import get_logger
from .import_sync import order_media_types

_log = get_logger(__name__)


def remove_imported_items(
    db: Session, *, media_import: MediaImport, registry: HandlerRegistry | None = None
) -> dict[str, Any]:
    """
    Delete every item the import produced, or detach the import from
    parents still holding other children.

    The caller owns the transaction.
    """
    registry = registry or create_default_registry()
    repository = LibraryRepository(db)
    context = HandlerContext(repository=repository, registry=registry)

    removed: dict[str, int] = {}
    for media_type in order_media_types(media_import.media_types, children_first=True):
        handler = registry.create(media_type, context)
        removed[media_type.value] = len(handler.get_local_items(media_import))
        handler.remove_imported_items(media_import)

    _log.info("import_items_removed", media_import=str(media_import), **removed)
    return {"media_import": str(media_import), "removed": removed}


def remove_import(
    db: Session, *, media_import: MediaImport, registry: HandlerRegistry | None = None
) -> dict[str, Any]:
    """Remove the import's items and then the import itself."""
    summary = remove_imported_items(db, media_import=media_import, registry=registry)
    summary["deleted"] = LibraryRepository(db).delete_import(media_import)
    return summary


def set_imported_items_enabled(
    db: Session,
    *,
    media_import: MediaImport,
    enable: bool,
    registry: HandlerRegistry | None = None,
) -> dict[str, Any]:
    """Show or hide every item the import produced, e.g. while its source is offline."""
    registry = registry or create_default_registry()
    context = HandlerContext(repository=LibraryRepository(db), registry=registry)
    for media_type in order_media_types(media_import.media_types):
        registry.create(media_type, context).set_imported_items_enabled(media_import, enable)

    _log.info("import_items_enabled", media_import=str(media_import), enabled=enable)
    return {"media_import": str(media_import), "enabled": enable}


__all__ = ["remove_import", "remove_imported_items", "set_imported_items_enabled"]
