"""
Base contract and shared implementation of the per-media-type import handlers.

``MediaImportHandler`` is the contract the synchroniser drives.
``VideoImportHandler`` implements it once for every video media type; the
concrete handlers only supply a ``HandlerPolicy`` (ignored fields, inherited
artwork, parent and child kinds) and the few operations that really differ,
such as the typed repository write or how a parent is resolved.

Handlers are created per run from a ``HandlerContext`` that carries the
run's repository, the handler registry and the run-scoped caches.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ...domain.items import UNSET_ID, MediaItem
from ...domain.media_import import MediaImport
from ...infra.exceptions import HierarchyResolutionError, RepositoryError
from ...infra.item_filter import ChildCounts, ItemFilter
from ...infra.library_repository import LibraryRepository
from ...infra.logging import get_logger
from ...shared.types import ChangesetType, Field, GroupedMediaTypes, MediaType
from ...usecases import changeset, matcher
from ..enrichers.base import Enricher, EnricherError
from .hierarchy import HierarchyCache

if TYPE_CHECKING:
    from ..registry import HandlerRegistry

_log = get_logger(__name__)


@dataclass
class SynchronisationState:
    """Caches owned by one synchronisation run and discarded with it."""

    tvshows: HierarchyCache = field(default_factory=HierarchyCache)
    movie_sets: HierarchyCache = field(default_factory=HierarchyCache)
    source_path_ids: dict[str, int] = field(default_factory=dict)

    def snapshot(self) -> SynchronisationState:
        return SynchronisationState(
            tvshows=self.tvshows.copy(),
            movie_sets=self.movie_sets.copy(),
            source_path_ids=dict(self.source_path_ids),
        )

    def restore(self, snapshot: SynchronisationState) -> None:
        """Forget everything cached since ``snapshot`` was taken."""
        self.tvshows = snapshot.tvshows
        self.movie_sets = snapshot.movie_sets
        self.source_path_ids = snapshot.source_path_ids


@dataclass
class HandlerContext:
    """Everything a handler needs for one run."""

    repository: LibraryRepository
    registry: HandlerRegistry
    state: SynchronisationState = field(default_factory=SynchronisationState)
    enricher: Enricher | None = None


@dataclass(frozen=True)
class HandlerPolicy:
    """Type specific values plugged into the shared handler implementation."""

    ignored_fields: frozenset[Field] = frozenset()
    parent_art_prefixes: tuple[str, ...] = ()
    parent_type: MediaType | None = None
    child_type: MediaType | None = None


class MediaImportHandler(ABC):
    """
    Contract of a per-media-type import handler.

    Operations returning ``bool`` report per-item success; a ``False`` result
    is logged by the handler and never aborts a run by itself.
    """

    media_type: MediaType
    required_media_types: tuple[MediaType, ...] = ()
    grouped_media_types: GroupedMediaTypes = ()

    @abstractmethod
    def get_item_label(self, item: MediaItem) -> str: ...

    @abstractmethod
    def get_local_items(self, media_import: MediaImport) -> list[MediaItem]:
        """All items previously imported by the import for this media type."""

    @abstractmethod
    def start_changeset(self, media_import: MediaImport) -> bool: ...

    @abstractmethod
    def finish_changeset(self, media_import: MediaImport) -> bool: ...

    @abstractmethod
    def find_matching_local_item(
        self, media_import: MediaImport, item: MediaItem, local_items: list[MediaItem]
    ) -> MediaItem | None: ...

    @abstractmethod
    def determine_changeset(
        self, media_import: MediaImport, item: MediaItem, local_item: MediaItem
    ) -> ChangesetType: ...

    @abstractmethod
    def prepare_imported_item(
        self, media_import: MediaImport, item: MediaItem, local_item: MediaItem
    ) -> None:
        """Copy the identity of the matched local item onto the incoming item."""

    @abstractmethod
    def start_synchronisation(self, media_import: MediaImport) -> bool: ...

    @abstractmethod
    def finish_synchronisation(self, media_import: MediaImport) -> bool: ...

    @abstractmethod
    def add_imported_item(self, media_import: MediaImport, item: MediaItem) -> bool: ...

    @abstractmethod
    def update_imported_item(self, media_import: MediaImport, item: MediaItem) -> bool: ...

    @abstractmethod
    def remove_imported_item(self, media_import: MediaImport, item: MediaItem) -> bool: ...

    @abstractmethod
    def cleanup_imported_items(self, media_import: MediaImport) -> bool: ...

    @abstractmethod
    def remove_imported_items(self, media_import: MediaImport) -> bool: ...

    @abstractmethod
    def set_imported_items_enabled(self, media_import: MediaImport, enable: bool) -> None: ...


HandlerFactory = Callable[[HandlerContext], MediaImportHandler]


class VideoImportHandler(MediaImportHandler):
    """Shared implementation of the handler contract for video media types."""

    policy: HandlerPolicy = HandlerPolicy()

    def __init__(self, context: HandlerContext) -> None:
        self.context = context

    @property
    def repository(self) -> LibraryRepository:
        return self.context.repository

    @property
    def state(self) -> SynchronisationState:
        return self.context.state

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(media_type='{self.media_type.value}')"

    # ------------------------------------------------------------------
    # changeset

    def get_item_label(self, item: MediaItem) -> str:
        return item.label

    def get_local_items(self, media_import: MediaImport) -> list[MediaItem]:
        return self.repository.get_items(
            ItemFilter.for_import(self.media_type, media_import), details=False
        )

    def start_changeset(self, media_import: MediaImport) -> bool:
        return True

    def finish_changeset(self, media_import: MediaImport) -> bool:
        return True

    def find_matching_local_item(
        self, media_import: MediaImport, item: MediaItem, local_items: list[MediaItem]
    ) -> MediaItem | None:
        return matcher.find_matching_local_item(self.media_type, item, local_items)

    def determine_changeset(
        self, media_import: MediaImport, item: MediaItem, local_item: MediaItem
    ) -> ChangesetType:
        settings = media_import.settings
        if settings.update_imported_media_items:
            self._load_details(media_import, local_item)
        return changeset.classify(
            local_item,
            item,
            update_all_metadata=settings.update_imported_media_items,
            update_playback_metadata=settings.update_playback_metadata_from_source,
            ignored_fields=self.policy.ignored_fields,
            parent_art_prefixes=self.policy.parent_art_prefixes,
        )

    def _load_details(self, media_import: MediaImport, local_item: MediaItem) -> None:
        enricher = self.context.enricher
        if enricher is None or local_item.details_loaded:
            return
        try:
            enricher.enrich(local_item)
        except EnricherError as e:
            _log.warning(
                "local_item_details_unavailable",
                item=self.get_item_label(local_item),
                path=local_item.path,
                media_import=str(media_import),
                error=str(e),
            )

    def prepare_imported_item(
        self, media_import: MediaImport, item: MediaItem, local_item: MediaItem
    ) -> None:
        item.db_id = local_item.db_id
        item.file_id = local_item.file_id
        item.show_id = local_item.show_id
        item.season_id = local_item.season_id
        item.source = local_item.source
        item.base_path = local_item.base_path
        item.parent_path_id = local_item.parent_path_id

    # ------------------------------------------------------------------
    # synchronisation

    def start_synchronisation(self, media_import: MediaImport) -> bool:
        return True

    def finish_synchronisation(self, media_import: MediaImport) -> bool:
        self.set_imported_items_enabled(media_import, True)
        return True

    @abstractmethod
    def write_item(self, item: MediaItem, db_id: int | None = None) -> int:
        """Persist the item through the typed repository write; returns its id or -1."""

    def resolve_parent(self, media_import: MediaImport, item: MediaItem) -> bool:
        """Fill the item's parent linkage before it is written."""
        return True

    def add_imported_item(self, media_import: MediaImport, item: MediaItem) -> bool:
        self.prepare_item(media_import, item)
        if not self.resolve_parent(media_import, item):
            return False

        item.db_id = self.write_item(item)
        if item.db_id <= 0:
            self._log_write_failure(media_import, item, "add")
            return False

        self.set_details_for_file(item, reset=False)
        return self.set_import_for_item(media_import, item)

    def update_imported_item(self, media_import: MediaImport, item: MediaItem) -> bool:
        if item.db_id <= 0:
            return False
        if not self.resolve_parent(media_import, item):
            return False

        if self.write_item(item, db_id=item.db_id) <= 0:
            self._log_write_failure(media_import, item, "update")
            return False

        if media_import.settings.update_playback_metadata_from_source:
            self.set_details_for_file(item, reset=True)
        return True

    def remove_imported_item(self, media_import: MediaImport, item: MediaItem) -> bool:
        if item.db_id <= 0:
            return False
        if self.policy.child_type is not None:
            self._collapse_or_warn(media_import, item)
            return True
        self.repository.delete_item(self.media_type, item.db_id)
        return True

    def cleanup_imported_items(self, media_import: MediaImport) -> bool:
        if self.policy.child_type is None:
            return True

        for parent in self.get_local_items(media_import):
            if parent.db_id > 0:
                self._collapse_or_warn(media_import, parent)
        return True

    def remove_imported_items(self, media_import: MediaImport) -> bool:
        if self.policy.child_type is None:
            self.repository.delete_items_from_import(media_import, self.media_type)
            return True

        for parent in self.get_local_items(media_import):
            counts = self.count_children(media_import, parent)
            if counts.total == counts.imported:
                self.repository.delete_item(self.media_type, parent.db_id)
            else:
                self.unlink_parent(media_import, parent)
        return True

    def set_imported_items_enabled(self, media_import: MediaImport, enable: bool) -> None:
        self.repository.set_import_items_enabled(enable, self.media_type, media_import)

    # ------------------------------------------------------------------
    # parents

    def child_filter(self, media_import: MediaImport, parent: MediaItem) -> ItemFilter:
        raise NotImplementedError(f"{self.media_type.value} items have no children")

    def count_children(self, media_import: MediaImport, parent: MediaItem) -> ChildCounts:
        return self.repository.count_children(self.child_filter(media_import, parent))

    def unlink_parent(self, media_import: MediaImport, parent: MediaItem) -> None:
        self.repository.remove_import_from_item(self.media_type, parent.db_id, media_import)

    def _collapse_or_warn(self, media_import: MediaImport, parent: MediaItem) -> None:
        # a failed count leaves the parent untouched
        try:
            with self.repository.savepoint():
                self.collapse_parent(media_import, parent)
        except RepositoryError as e:
            _log.warning(
                "cleanup_skipped",
                media_type=self.media_type.value,
                item=self.get_item_label(parent),
                media_import=str(media_import),
                error=str(e),
            )

    def collapse_parent(self, media_import: MediaImport, parent: MediaItem) -> bool:
        """
        Delete a parent left without children, or detach it from the import.

        A parent with no children at all is deleted; one whose children all
        come from elsewhere only loses this import's link; one that still has
        children from this import is kept as it is.
        """
        counts = self.count_children(media_import, parent)
        if counts.total == 0:
            _log.debug(
                "parent_deleted",
                media_type=self.media_type.value,
                item=self.get_item_label(parent),
                media_import=str(media_import),
            )
            self.repository.delete_item(self.media_type, parent.db_id)
        elif counts.imported == 0:
            _log.debug(
                "parent_unlinked",
                media_type=self.media_type.value,
                item=self.get_item_label(parent),
                remaining_children=counts.total,
                media_import=str(media_import),
            )
            self.unlink_parent(media_import, parent)
        return True

    def create_parent(
        self, media_import: MediaImport, parent: MediaItem, cache: HierarchyCache
    ) -> int:
        """
        Create a minimal parent and register it in the run's cache.

        The parent type's own handler is used when one is registered so its
        deduplication applies; otherwise the parent is written directly.

        Returns:
            Database id of the parent, or -1 if its handler rejected it

        Raises:
            HierarchyResolutionError: If no handler is registered and the
                direct write fails as well
        """
        parent_type = parent.media_type
        if self.context.registry.get_handler_factory(parent_type) is not None:
            handler = self.context.registry.create(parent_type, self.context)
            if not handler.add_imported_item(media_import, parent):
                return UNSET_ID
        else:
            path_id = None
            if parent_type == MediaType.TVSHOW:
                parent.db_id = self.repository.set_details_for_tvshow(parent)
                path_id = self.repository.add_path(parent.path)
            else:
                parent.db_id = self.repository.set_details_for_movie_set(parent)
            if parent.db_id <= 0 or not self.repository.set_import_for_item(
                parent_type, parent.db_id, media_import, path_id
            ):
                raise HierarchyResolutionError(
                    f"Unable to create {parent_type.value} '{parent.title}' for {media_import}"
                )

        cache.add(parent)
        return parent.db_id

    # ------------------------------------------------------------------
    # shared persistence

    def prepare_item(self, media_import: MediaImport, item: MediaItem) -> None:
        """Stamp provenance on an incoming item and register its file."""
        source_id = media_import.source_identifier
        path_id = self.state.source_path_ids.get(source_id)
        if path_id is None:
            path_id = self.repository.add_path(source_id)
            self.state.source_path_ids[source_id] = path_id

        item.source = source_id
        item.base_path = source_id
        item.parent_path_id = path_id

        if not item.is_folder:
            item.file_id = self.repository.add_file(item.path, path_id)

    def set_details_for_file(self, item: MediaItem, reset: bool) -> None:
        """Persist playback state of the item's file."""
        if item.is_folder or item.file_id <= 0:
            return
        self.repository.set_play_count(item.file_id, item.play_count, item.last_played)
        if reset:
            self.repository.delete_resume_bookmark(item.file_id)
        if item.resume.is_part_way():
            self.repository.add_resume_bookmark(
                item.file_id, item.resume.position, item.resume.total
            )

    def set_import_for_item(
        self, media_import: MediaImport, item: MediaItem, path_id: int | None = None
    ) -> bool:
        return self.repository.set_import_for_item(
            self.media_type, item.db_id, media_import, path_id
        )

    def _log_write_failure(self, media_import: MediaImport, item: MediaItem, action: str) -> None:
        _log.error(
            "set_details_failed",
            action=action,
            media_type=self.media_type.value,
            item=self.get_item_label(item),
            media_import=str(media_import),
        )
