"""
Synchronisation of one import against the library.

``ImportSynchroniser`` drives a whole run: it builds the changeset of the
incoming items against the items previously imported for the import, applies
it through the media type handlers, cleans up parents left behind and finally
records the time of the run. The run is one unit of work; every item and
every cleanup pass is a SAVEPOINT inside it, so a failed item leaves no
partial writes and a failed run leaves the library and ``last_synced`` as
they were.
"""

from __future__ import annotations

import contextlib
import threading
import weakref
from collections.abc import Callable, Generator, Iterable, Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..adapters.enrichers.library_details_enricher import LibraryDetailsEnricher
from ..adapters.handlers.base import HandlerContext, MediaImportHandler, SynchronisationState
from ..adapters.registry import HandlerRegistry, create_default_registry
from ..domain.items import MediaItem
from ..domain.media_import import MediaImport
from ..infra import db as db_module
from ..infra import uow
from ..infra.exceptions import (
    MediaImportError,
    RepositoryError,
    SynchronisationCancelledError,
    SynchronisationError,
    SynchronisationInProgressError,
    TransactionError,
)
from ..infra.library_repository import LibraryRepository
from ..infra.logging import get_logger
from ..infra.settings import settings
from ..shared.types import ChangesetType, MediaType
from .matcher import LocalItemPool

_log = get_logger(__name__)

__all__ = [
    "Changeset",
    "ChangesetEntry",
    "ImportSynchroniser",
    "SyncResult",
    "SynchronisationState",
    "order_media_types",
]

# Parents are written before their children and removed after them
_HIERARCHY_RANK: dict[MediaType, int] = {
    MediaType.MOVIE_SET: 0,
    MediaType.TVSHOW: 0,
    MediaType.MUSIC_VIDEO: 0,
    MediaType.SEASON: 1,
    MediaType.MOVIE: 1,
    MediaType.EPISODE: 2,
}


def order_media_types(
    media_types: Iterable[MediaType], children_first: bool = False
) -> list[MediaType]:
    """Order media types parents first (or children first), keeping ties stable."""
    return sorted(
        (MediaType(media_type) for media_type in media_types),
        key=lambda media_type: _HIERARCHY_RANK[media_type],
        reverse=children_first,
    )


@dataclass
class ChangesetEntry:
    """One incoming (or removed local) item and what a run does with it."""

    type: ChangesetType
    media_type: MediaType
    item: MediaItem
    local_item: MediaItem | None = None


@dataclass
class Changeset:
    entries: list[ChangesetEntry] = field(default_factory=list)

    def append(self, entry: ChangesetEntry) -> None:
        self.entries.append(entry)

    def of_type(self, changeset_type: ChangesetType) -> list[ChangesetEntry]:
        return [entry for entry in self.entries if entry.type == changeset_type]

    def for_media_type(self, media_type: MediaType) -> list[ChangesetEntry]:
        return [entry for entry in self.entries if entry.media_type == media_type]

    def counts(self) -> dict[str, int]:
        return {
            changeset_type.value: len(self.of_type(changeset_type))
            for changeset_type in ChangesetType
        }

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


@dataclass
class SyncResult:
    """Counters of one synchronisation run."""

    added: int = 0
    updated: int = 0
    removed: int = 0
    unchanged: int = 0
    failed: int = 0
    success: bool = False
    cancelled: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class _ItemRejected(Exception):
    """A handler reported failure for a single item; its savepoint is rolled back."""


class ImportSynchroniser:
    """
    Runs synchronisations of imports, one at a time per import.

    Runs against different imports may proceed concurrently from different
    threads; a second run against the same import waits for the first one
    (up to ``settings.import_lock_timeout`` seconds).
    """

    # a lock lives only while a run holds or waits for it
    _locks: weakref.WeakValueDictionary[tuple[str, str], threading.Lock] = (
        weakref.WeakValueDictionary()
    )
    _locks_guard = threading.Lock()

    def __init__(
        self,
        session_factory: sessionmaker | Callable[[], Session] | None = None,
        registry: HandlerRegistry | None = None,
        lock_timeout: float | None = None,
    ) -> None:
        self._session_factory = session_factory or db_module.SessionLocal
        self.registry = registry or create_default_registry()
        self.lock_timeout = settings.import_lock_timeout if lock_timeout is None else lock_timeout
        self.last_result: SyncResult | None = None

    # ------------------------------------------------------------------
    # locking

    @classmethod
    def _lock_for(cls, media_import: MediaImport) -> threading.Lock:
        key = (media_import.source_identifier, media_import.media_types_as_string)
        with cls._locks_guard:
            return cls._locks.setdefault(key, threading.Lock())

    @contextlib.contextmanager
    def _exclusive(self, media_import: MediaImport) -> Generator[None, None, None]:
        lock = self._lock_for(media_import)
        timeout = -1 if self.lock_timeout < 0 else self.lock_timeout
        if not lock.acquire(timeout=timeout):
            raise SynchronisationInProgressError(
                f"Another synchronisation of {media_import} is in progress"
            )
        try:
            yield
        finally:
            lock.release()

    # ------------------------------------------------------------------
    # handlers

    def _create_handlers(
        self, media_import: MediaImport, context: HandlerContext
    ) -> dict[MediaType, MediaImportHandler]:
        handlers = {
            media_type: self.registry.create(media_type, context)
            for media_type in media_import.media_types
        }
        for media_type, handler in handlers.items():
            missing = [t for t in handler.required_media_types if t not in handlers]
            if missing:
                raise SynchronisationError(
                    f"{media_type.value} items of {media_import} require "
                    f"{', '.join(t.value for t in missing)} to be imported as well"
                )
        return handlers

    def _context(self, repository: LibraryRepository) -> HandlerContext:
        return HandlerContext(
            repository=repository,
            registry=self.registry,
            state=SynchronisationState(),
            enricher=LibraryDetailsEnricher(repository),
        )

    # ------------------------------------------------------------------
    # changeset

    def determine_changeset(
        self, media_import: MediaImport, items_by_type: Mapping[MediaType, list[MediaItem]]
    ) -> Changeset:
        """
        Classify incoming items against the library without changing it.

        Args:
            media_import: The import the items come from
            items_by_type: Incoming items keyed by media type

        Returns:
            The changeset, including the local items no incoming item confirmed
        """
        with uow.session_scope(self._session_factory) as db:
            repository = LibraryRepository(db)
            repository.open()
            context = self._context(repository)
            handlers = self._create_handlers(media_import, context)
            changeset = self._build_changeset(media_import, handlers, items_by_type)
            db.rollback()
        return changeset

    def _build_changeset(
        self,
        media_import: MediaImport,
        handlers: Mapping[MediaType, MediaImportHandler],
        items_by_type: Mapping[MediaType, list[MediaItem]],
    ) -> Changeset:
        changeset = Changeset()
        for media_type, items in items_by_type.items():
            media_type = MediaType(media_type)
            handler = handlers.get(media_type)
            if handler is None:
                _log.warning(
                    "media_type_not_imported",
                    media_type=media_type.value,
                    items=len(items),
                    media_import=str(media_import),
                )
                continue

            if not handler.start_changeset(media_import):
                raise SynchronisationError(
                    f"Unable to start the changeset of {media_type.value} items of {media_import}"
                )

            pool = LocalItemPool(media_type, handler.get_local_items(media_import))
            for item in items:
                local_item = pool.claim(item, media_import)
                if local_item is None:
                    changeset.append(ChangesetEntry(ChangesetType.ADDED, media_type, item))
                    continue

                changeset_type = handler.determine_changeset(media_import, item, local_item)
                handler.prepare_imported_item(media_import, item, local_item)
                changeset.append(ChangesetEntry(changeset_type, media_type, item, local_item))

            for local_item in pool.remaining():
                changeset.append(
                    ChangesetEntry(ChangesetType.REMOVED, media_type, local_item, local_item)
                )

            if not handler.finish_changeset(media_import):
                raise SynchronisationError(
                    f"Unable to finish the changeset of {media_type.value} items of {media_import}"
                )

        _log.debug("changeset_determined", media_import=str(media_import), **changeset.counts())
        return changeset

    # ------------------------------------------------------------------
    # synchronisation

    def synchronise(
        self,
        media_import: MediaImport,
        items_by_type: Mapping[MediaType, list[MediaItem]],
        cancel_event: threading.Event | None = None,
    ) -> bool:
        """
        Synchronise the library with the items reported by an import's source.

        Per-item failures are logged and counted; they do not fail the run.
        Structural failures (library unavailable, unresolvable hierarchy,
        commit failure) and cancellation roll the whole run back.

        Args:
            media_import: The import being synchronised; its ``last_synced``
                is updated only when the run commits
            items_by_type: Incoming items keyed by media type; media types
                without an entry keep their previously imported items
            cancel_event: Checked between items; when set the run is rolled back

        Returns:
            True if the run committed
        """
        result = SyncResult()
        self.last_result = result
        synced_at = datetime.now(timezone.utc)

        try:
            with (
                structlog.contextvars.bound_contextvars(
                    source=media_import.source_identifier,
                    media_types=media_import.media_types_as_string,
                ),
                self._exclusive(media_import),
                uow.session_scope(self._session_factory) as db,
            ):
                repository = LibraryRepository(db)
                repository.open()
                self._run(repository, media_import, items_by_type, cancel_event, result)

                record = media_import.clone()
                record.set_last_synced(synced_at)
                if not repository.save_import(record):
                    raise SynchronisationError(f"Unable to record the run of {media_import}")
                repository.commit()
        except SynchronisationCancelledError as e:
            result.cancelled = True
            result.error = str(e)
            _log.warning("synchronisation_cancelled", media_import=str(media_import))
            return False
        except (MediaImportError, SQLAlchemyError) as e:
            result.error = str(e)
            _log.error(
                "synchronisation_failed",
                media_import=str(media_import),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        media_import.set_last_synced(synced_at)
        result.success = True
        _log.info("synchronisation_finished", media_import=str(media_import), **result.to_dict())
        return True

    def _run(
        self,
        repository: LibraryRepository,
        media_import: MediaImport,
        items_by_type: Mapping[MediaType, list[MediaItem]],
        cancel_event: threading.Event | None,
        result: SyncResult,
    ) -> None:
        context = self._context(repository)
        handlers = self._create_handlers(media_import, context)
        changeset = self._build_changeset(media_import, handlers, items_by_type)
        result.unchanged = len(changeset.of_type(ChangesetType.NONE))

        for media_type in order_media_types(handlers):
            if not handlers[media_type].start_synchronisation(media_import):
                raise SynchronisationError(
                    f"Unable to start the synchronisation of {media_type.value} items "
                    f"of {media_import}"
                )

        for media_type in order_media_types(handlers):
            for entry in changeset.for_media_type(media_type):
                if entry.type in (ChangesetType.ADDED, ChangesetType.CHANGED):
                    self._apply(
                        repository,
                        context.state,
                        media_import,
                        handlers[media_type],
                        entry,
                        result,
                        cancel_event,
                    )

        for media_type in order_media_types(handlers, children_first=True):
            for entry in changeset.for_media_type(media_type):
                if entry.type == ChangesetType.REMOVED:
                    self._apply(
                        repository,
                        context.state,
                        media_import,
                        handlers[media_type],
                        entry,
                        result,
                        cancel_event,
                    )

        self._check_cancelled(cancel_event)
        for media_type in order_media_types(handlers, children_first=True):
            with repository.savepoint():
                if not handlers[media_type].cleanup_imported_items(media_import):
                    _log.warning(
                        "cleanup_failed",
                        media_type=media_type.value,
                        media_import=str(media_import),
                    )

        for media_type in order_media_types(handlers):
            if not handlers[media_type].finish_synchronisation(media_import):
                raise SynchronisationError(
                    f"Unable to finish the synchronisation of {media_type.value} items "
                    f"of {media_import}"
                )

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SynchronisationCancelledError("Synchronisation cancelled")

    def _apply(
        self,
        repository: LibraryRepository,
        state: SynchronisationState,
        media_import: MediaImport,
        handler: MediaImportHandler,
        entry: ChangesetEntry,
        result: SyncResult,
        cancel_event: threading.Event | None,
    ) -> None:
        self._check_cancelled(cancel_event)
        # ids cached by a rolled back item must not leak into the next one
        snapshot = state.snapshot()

        if entry.type == ChangesetType.ADDED:
            operation = handler.add_imported_item
        elif entry.type == ChangesetType.CHANGED:
            operation = handler.update_imported_item
        else:
            operation = handler.remove_imported_item

        try:
            with repository.savepoint():
                if not operation(media_import, entry.item):
                    raise _ItemRejected()
        except _ItemRejected:
            state.restore(snapshot)
            result.failed += 1
            _log.error(
                "item_failed",
                changeset=entry.type.value,
                media_type=entry.media_type.value,
                item=handler.get_item_label(entry.item),
                media_import=str(media_import),
            )
            return
        except TransactionError:
            raise
        except RepositoryError as e:
            state.restore(snapshot)
            result.failed += 1
            _log.error(
                "item_failed",
                changeset=entry.type.value,
                media_type=entry.media_type.value,
                item=handler.get_item_label(entry.item),
                media_import=str(media_import),
                error=str(e),
            )
            return

        if entry.type == ChangesetType.ADDED:
            result.added += 1
        elif entry.type == ChangesetType.CHANGED:
            result.updated += 1
        else:
            result.removed += 1
