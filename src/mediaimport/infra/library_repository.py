"""
Library repository for database operations.

This module wraps every SQLAlchemy operation the synchronisation engine needs
behind one class bound to a single session. Callers pass ``MediaItem`` values
and ``ItemFilter`` predicates; rows and statements never leave this module.

Writes that are rejected by the store (constraint or data errors) are logged
and reported as ``-1``/``False``. Any other database failure is raised as
``RepositoryError``.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator, Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import case, delete, exists, func, select, update
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.entities import (
    MEDIA_TABLES,
    Episode,
    ImportLink,
    LibraryPath,
    MediaFile,
    MediaImportRecord,
    Movie,
    MovieSet,
    MusicVideo,
    Season,
    TvShow,
    TvShowPath,
)
from ..domain.items import UNSET_ID, Actor, MediaItem, ResumePoint, normalize_timestamp
from ..domain.media_import import MediaImport, MediaImportSettings, MediaImportSource
from ..shared.path_utils import get_parent_path
from ..shared.types import MediaType, media_types_from_string
from . import uow
from .exceptions import RepositoryError, TransactionError
from .item_filter import ChildCounts, ItemFilter
from .logging import get_logger

_log = get_logger(__name__)

# Columns copied verbatim between MediaItem and every media table
_SCALAR_FIELDS = (
    "title",
    "original_title",
    "sort_title",
    "show_title",
    "plot",
    "plot_outline",
    "tagline",
    "year",
    "premiered",
    "aired",
    "rating",
    "user_rating",
    "mpaa",
    "runtime",
    "top250",
    "trailer",
    "status",
    "production_code",
    "album",
    "track",
    "special_sort_season",
    "special_sort_episode",
    "default_unique_id_type",
    "path",
    "base_path",
)

# Loaded only when details are requested
_LIST_FIELDS = ("genres", "countries", "directors", "writers", "studios", "tags", "artists")


def _set_columns(row: Any, item: MediaItem) -> None:
    for name in _SCALAR_FIELDS:
        setattr(row, name, getattr(item, name))
    row.season_number = item.season
    row.episode_number = item.episode
    for name in _LIST_FIELDS:
        setattr(row, name, list(getattr(item, name)))
    row.cast = [actor.to_dict() for actor in item.cast]
    row.unique_ids = dict(item.unique_ids)
    row.art = dict(item.art)


def _load_details(item: MediaItem, row: Any) -> None:
    for name in _LIST_FIELDS:
        setattr(item, name, list(getattr(row, name) or []))
    item.cast = [Actor.from_dict(entry) for entry in row.cast or []]
    item.art = dict(row.art or {})
    item.details_loaded = True


class LibraryRepository:
    """
    Repository for media library operations.

    One repository wraps one session; the session's transaction is owned by
    whoever opened it (normally a ``uow.session_scope`` block).
    """

    def __init__(self, db: Session):
        """
        Initialize the repository with a database session.

        Args:
            db: SQLAlchemy session instance
        """
        self.db = db

    # ------------------------------------------------------------------
    # session control

    def open(self) -> None:
        """Check the store is reachable; raises ``RepositoryError`` when it is not."""
        try:
            self.db.execute(select(1))
        except SQLAlchemyError as exc:
            raise RepositoryError(f"Unable to open the media library: {exc}") from exc

    def close(self) -> None:
        self.db.close()

    def begin_transaction(self) -> None:
        try:
            if not self.db.in_transaction():
                self.db.begin()
        except SQLAlchemyError as exc:
            raise TransactionError(f"Unable to begin a transaction: {exc}") from exc

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            raise TransactionError(f"Unable to commit the transaction: {exc}") from exc

    def rollback(self) -> None:
        self.db.rollback()

    @contextlib.contextmanager
    def savepoint(self) -> Generator[LibraryRepository, None, None]:
        with uow.savepoint(self.db):
            yield self

    # ------------------------------------------------------------------
    # write helpers

    def _flush(self, operation: str, **context: Any) -> bool:
        try:
            self.db.flush()
        except (IntegrityError, DataError) as exc:
            _log.error("library_write_rejected", operation=operation, error=str(exc.orig), **context)
            return False
        except SQLAlchemyError as exc:
            raise RepositoryError(f"{operation} failed: {exc}") from exc
        return True

    def _execute(self, statement: Any) -> Any:
        try:
            return self.db.execute(statement)
        except SQLAlchemyError as exc:
            raise RepositoryError(f"Library query failed: {exc}") from exc

    def _get(self, model: type, db_id: int) -> Any:
        try:
            return self.db.get(model, db_id)
        except SQLAlchemyError as exc:
            raise RepositoryError(f"Loading {model.__name__} {db_id} failed: {exc}") from exc

    def _scalar(self, statement: Any) -> Any:
        return self._execute(statement).scalar()

    def _scalars(self, statement: Any) -> list[Any]:
        return list(self._execute(statement).scalars())

    def _upsert(self, model: type, item: MediaItem, db_id: int | None, **columns: Any) -> int:
        row = None
        if db_id is not None and db_id > 0:
            row = self._get(model, db_id)
            if row is None:
                _log.error(
                    "library_item_missing", media_type=item.media_type.value, db_id=db_id
                )
                return UNSET_ID
        else:
            row = model()
            self.db.add(row)
        _set_columns(row, item)
        for name, value in columns.items():
            setattr(row, name, value)
        if not self._flush(f"set_details_for_{item.media_type.value}", item=item.label):
            return UNSET_ID
        return row.id

    # ------------------------------------------------------------------
    # paths and files

    def add_path(self, path: str) -> int:
        """
        Get or create the id of a directory path.

        Args:
            path: Directory path (stored as given)

        Returns:
            Positive path id, or -1 if the path could not be stored
        """
        if not path:
            return UNSET_ID
        existing = self._scalar(select(LibraryPath.id).where(LibraryPath.path == path))
        if existing is not None:
            return existing
        row = LibraryPath(path=path)
        self.db.add(row)
        if not self._flush("add_path", path=path):
            return UNSET_ID
        return row.id

    def get_file_id(self, path: str) -> int:
        found = self._scalar(select(MediaFile.id).where(MediaFile.path == path))
        return found if found is not None else UNSET_ID

    def add_file(self, path: str, path_id: int | None = None) -> int:
        """
        Get or create the id of a playable file.

        Args:
            path: Full path of the file
            path_id: Id of the containing directory; resolved from ``path`` if omitted

        Returns:
            Positive file id, or -1 if the file could not be stored
        """
        if not path:
            return UNSET_ID
        existing = self.get_file_id(path)
        if existing > 0:
            return existing
        if path_id is None or path_id <= 0:
            parent = get_parent_path(path)
            path_id = self.add_path(parent) if parent else None
        row = MediaFile(path=path, path_id=path_id if path_id and path_id > 0 else None)
        self.db.add(row)
        if not self._flush("add_file", path=path):
            return UNSET_ID
        return row.id

    def delete_file(self, file_id: int) -> bool:
        result = self._execute(delete(MediaFile).where(MediaFile.id == file_id))
        return result.rowcount > 0

    def set_play_count(
        self, file_id: int, play_count: int, last_played: datetime | None = None
    ) -> bool:
        row = self._get(MediaFile, file_id)
        if row is None:
            return False
        row.play_count = max(play_count, 0)
        row.last_played = normalize_timestamp(last_played)
        return self._flush("set_play_count", file_id=file_id)

    def add_resume_bookmark(self, file_id: int, position: float, total: float) -> bool:
        row = self._get(MediaFile, file_id)
        if row is None:
            return False
        row.resume_position = position
        row.resume_total = total
        return self._flush("add_resume_bookmark", file_id=file_id)

    def delete_resume_bookmark(self, file_id: int) -> bool:
        row = self._get(MediaFile, file_id)
        if row is None:
            return False
        row.resume_position = None
        row.resume_total = None
        return self._flush("delete_resume_bookmark", file_id=file_id)

    # ------------------------------------------------------------------
    # typed writes

    def set_details_for_movie(self, item: MediaItem, db_id: int | None = None) -> int:
        return self._upsert(
            Movie,
            item,
            db_id,
            file_id=item.file_id if item.file_id > 0 else None,
            set_id=item.set_id if item.set_id > 0 else None,
        )

    def set_details_for_movie_set(self, item: MediaItem, db_id: int | None = None) -> int:
        return self._upsert(MovieSet, item, db_id)

    def set_details_for_tvshow(
        self,
        item: MediaItem,
        paths: Iterable[tuple[str, str | None]] | None = None,
        db_id: int | None = None,
    ) -> int:
        """
        Insert or update a tvshow and attach its locations.

        Args:
            item: The tvshow
            paths: (path, base_path) pairs to attach; defaults to the item's own path
            db_id: Row to update; a new row is inserted when omitted

        Returns:
            Positive tvshow id, or -1 on failure
        """
        show_id = self._upsert(TvShow, item, db_id)
        if show_id <= 0:
            return UNSET_ID
        if paths is None:
            paths = [(item.path, item.base_path)] if item.path else []
        for path, base_path in paths:
            if self.add_path_to_tvshow(show_id, path, base_path) <= 0:
                return UNSET_ID
        return show_id

    def add_path_to_tvshow(self, show_id: int, path: str, base_path: str | None = None) -> int:
        """Attach a location to a tvshow; returns the path id."""
        path_id = self.add_path(path)
        if path_id <= 0:
            return UNSET_ID
        linked = self._scalar(
            select(TvShowPath.id).where(
                TvShowPath.tvshow_id == show_id, TvShowPath.path_id == path_id
            )
        )
        if linked is None:
            self.db.add(TvShowPath(tvshow_id=show_id, path_id=path_id, base_path=base_path))
            if not self._flush("add_path_to_tvshow", show_id=show_id, path=path):
                return UNSET_ID
        return path_id

    def get_paths_for_tvshow(self, show_id: int) -> list[str]:
        return self._scalars(
            select(LibraryPath.path)
            .join(TvShowPath, TvShowPath.path_id == LibraryPath.id)
            .where(TvShowPath.tvshow_id == show_id)
            .order_by(TvShowPath.id)
        )

    def remove_path_from_tvshow(self, show_id: int, path: str) -> bool:
        path_id = self._scalar(select(LibraryPath.id).where(LibraryPath.path == path))
        if path_id is None:
            return False
        result = self._execute(
            delete(TvShowPath).where(
                TvShowPath.tvshow_id == show_id, TvShowPath.path_id == path_id
            )
        )
        return result.rowcount > 0

    def get_season_id(self, show_id: int, season: int) -> int:
        found = self._scalar(
            select(Season.id).where(Season.tvshow_id == show_id, Season.season_number == season)
        )
        return found if found is not None else UNSET_ID

    def set_details_for_season(self, item: MediaItem, db_id: int | None = None) -> int:
        if item.show_id <= 0:
            _log.error("season_without_show", item=item.label)
            return UNSET_ID
        return self._upsert(Season, item, db_id, tvshow_id=item.show_id)

    def _ensure_season(self, item: MediaItem) -> int:
        season_id = self.get_season_id(item.show_id, item.season)
        if season_id > 0:
            return season_id
        season = MediaItem(
            media_type=MediaType.SEASON,
            show_id=item.show_id,
            season=item.season,
            show_title=item.show_title,
            title=f"Season {item.season}" if item.season > 0 else "Specials",
            base_path=item.base_path,
        )
        return self.set_details_for_season(season)

    def set_details_for_episode(self, item: MediaItem, db_id: int | None = None) -> int:
        """
        Insert or update an episode.

        The episode's season row is created when the show has none for the
        episode's season number yet.

        Returns:
            Positive episode id, or -1 on failure
        """
        if item.show_id <= 0:
            _log.error("episode_without_show", item=item.label)
            return UNSET_ID
        season_id = self._ensure_season(item)
        if season_id <= 0:
            return UNSET_ID
        item.season_id = season_id
        return self._upsert(
            Episode,
            item,
            db_id,
            tvshow_id=item.show_id,
            season_id=season_id,
            file_id=item.file_id if item.file_id > 0 else None,
        )

    def set_details_for_music_video(self, item: MediaItem, db_id: int | None = None) -> int:
        return self._upsert(
            MusicVideo, item, db_id, file_id=item.file_id if item.file_id > 0 else None
        )

    # ------------------------------------------------------------------
    # deletes

    def _delete_links(self, media_type: MediaType, item_ids: Iterable[int]) -> None:
        ids = list(item_ids)
        if ids:
            self._execute(
                delete(ImportLink).where(
                    ImportLink.media_type == media_type.value, ImportLink.item_id.in_(ids)
                )
            )

    def _delete_playable(self, model: type, media_type: MediaType, ids: list[int]) -> int:
        if not ids:
            return 0
        file_ids = [
            file_id
            for file_id in self._scalars(select(model.file_id).where(model.id.in_(ids)))
            if file_id is not None
        ]
        self._delete_links(media_type, ids)
        result = self._execute(delete(model).where(model.id.in_(ids)))
        if file_ids:
            self._execute(delete(MediaFile).where(MediaFile.id.in_(file_ids)))
        return result.rowcount

    def delete_movie(self, db_id: int) -> bool:
        return self._delete_playable(Movie, MediaType.MOVIE, [db_id]) > 0

    def delete_music_video(self, db_id: int) -> bool:
        return self._delete_playable(MusicVideo, MediaType.MUSIC_VIDEO, [db_id]) > 0

    def delete_episode(self, db_id: int) -> bool:
        return self._delete_playable(Episode, MediaType.EPISODE, [db_id]) > 0

    def delete_movie_set(self, db_id: int) -> bool:
        self._execute(update(Movie).where(Movie.set_id == db_id).values(set_id=None))
        self._delete_links(MediaType.MOVIE_SET, [db_id])
        result = self._execute(delete(MovieSet).where(MovieSet.id == db_id))
        return result.rowcount > 0

    def delete_season(self, db_id: int) -> bool:
        """Delete a season together with its episodes."""
        season = self._get(Season, db_id)
        if season is None:
            return False
        episode_ids = self._scalars(
            select(Episode.id).where(
                (Episode.season_id == db_id)
                | (
                    (Episode.tvshow_id == season.tvshow_id)
                    & (Episode.season_number == season.season_number)
                )
            )
        )
        self._delete_playable(Episode, MediaType.EPISODE, episode_ids)
        self._delete_links(MediaType.SEASON, [db_id])
        result = self._execute(delete(Season).where(Season.id == db_id))
        return result.rowcount > 0

    def delete_tvshow(self, db_id: int) -> bool:
        """Delete a tvshow with all of its seasons, episodes and locations."""
        episode_ids = self._scalars(select(Episode.id).where(Episode.tvshow_id == db_id))
        self._delete_playable(Episode, MediaType.EPISODE, episode_ids)
        season_ids = self._scalars(select(Season.id).where(Season.tvshow_id == db_id))
        self._delete_links(MediaType.SEASON, season_ids)
        self._execute(delete(Season).where(Season.tvshow_id == db_id))
        self._execute(delete(TvShowPath).where(TvShowPath.tvshow_id == db_id))
        self._delete_links(MediaType.TVSHOW, [db_id])
        result = self._execute(delete(TvShow).where(TvShow.id == db_id))
        return result.rowcount > 0

    def delete_item(self, media_type: MediaType, db_id: int) -> bool:
        deleters = {
            MediaType.MOVIE: self.delete_movie,
            MediaType.MOVIE_SET: self.delete_movie_set,
            MediaType.TVSHOW: self.delete_tvshow,
            MediaType.SEASON: self.delete_season,
            MediaType.EPISODE: self.delete_episode,
            MediaType.MUSIC_VIDEO: self.delete_music_video,
        }
        return deleters[MediaType(media_type)](db_id)

    # ------------------------------------------------------------------
    # queries

    def _link_clause(self, model: type, media_filter: ItemFilter) -> Any:
        clause = exists().where(
            ImportLink.media_type == media_filter.media_type.value,
            ImportLink.item_id == model.id,
        )
        if media_filter.source_identifier is not None:
            clause = clause.where(ImportLink.source_identifier == media_filter.source_identifier)
        if media_filter.import_media_types is not None:
            clause = clause.where(ImportLink.import_media_types == media_filter.import_media_types)
        if media_filter.enabled_only:
            clause = clause.where(ImportLink.enabled.is_(True))
        return clause

    def _where(self, model: type, media_filter: ItemFilter) -> list[Any]:
        conditions: list[Any] = []
        if media_filter.imported_only or media_filter.is_import_scoped:
            conditions.append(self._link_clause(model, media_filter))
        if media_filter.show_id is not None:
            conditions.append(model.tvshow_id == media_filter.show_id)
        if media_filter.season is not None:
            conditions.append(model.season_number == media_filter.season)
        if media_filter.set_id is not None:
            conditions.append(model.set_id == media_filter.set_id)
        if media_filter.title is not None:
            conditions.append(model.title == media_filter.title)
        return conditions

    def get_items(self, media_filter: ItemFilter, details: bool = True) -> list[MediaItem]:
        """
        Fetch the items matching a filter.

        Args:
            media_filter: Logical predicates
            details: Also load artwork, cast and list fields; without them the
                items carry ``details_loaded=False``

        Returns:
            Matching items ordered by id
        """
        model = MEDIA_TABLES[media_filter.media_type.value]
        rows = self._scalars(
            select(model).where(*self._where(model, media_filter)).order_by(model.id)
        )
        if not rows:
            return []
        return self._to_items(media_filter, rows, details)

    def get_item(self, media_type: MediaType, db_id: int, details: bool = True) -> MediaItem | None:
        media_type = MediaType(media_type)
        row = self._get(MEDIA_TABLES[media_type.value], db_id)
        if row is None:
            return None
        return self._to_items(ItemFilter(media_type=media_type), [row], details)[0]

    def count_items(self, media_filter: ItemFilter) -> int:
        model = MEDIA_TABLES[media_filter.media_type.value]
        return self._scalar(
            select(func.count(model.id)).where(*self._where(model, media_filter))
        )

    def count_children(self, media_filter: ItemFilter) -> ChildCounts:
        """
        Count the children of a parent in a single statement.

        ``media_filter`` names the child media type, the parent predicate
        (``show_id``/``season`` or ``set_id``) and the import. ``total`` counts
        every child regardless of provenance; ``imported`` only those linked to
        the filter's import.
        """
        model = MEDIA_TABLES[media_filter.media_type.value]
        unscoped = media_filter.without_import()
        imported = case((self._link_clause(model, media_filter), 1), else_=0)
        row = self._execute(
            select(func.count(model.id), func.coalesce(func.sum(imported), 0)).where(
                *self._where(model, unscoped)
            )
        ).one()
        return ChildCounts(total=int(row[0]), imported=int(row[1]))

    def get_tvshows_by_title(self, title: str) -> list[MediaItem]:
        """All tvshows with a title, whichever source they came from."""
        return self.get_items(ItemFilter(media_type=MediaType.TVSHOW, title=title))

    def get_movie_sets_by_title(self, title: str) -> list[MediaItem]:
        return self.get_items(ItemFilter(media_type=MediaType.MOVIE_SET, title=title))

    def load_item_details(self, item: MediaItem) -> MediaItem:
        """Fill artwork, cast and list fields of a persisted item in place."""
        row = self._get(MEDIA_TABLES[item.media_type.value], item.db_id)
        if row is None:
            raise RepositoryError(f"{item.media_type.value} {item.db_id} does not exist")
        _load_details(item, row)
        return item

    def _to_items(self, media_filter: ItemFilter, rows: list[Any], details: bool) -> list[MediaItem]:
        media_type = media_filter.media_type
        ids = [row.id for row in rows]

        links: dict[int, ImportLink] = {}
        if media_filter.is_import_scoped:
            link_stmt = select(ImportLink).where(
                ImportLink.media_type == media_type.value,
                ImportLink.item_id.in_(ids),
                ImportLink.source_identifier == media_filter.source_identifier,
            )
            if media_filter.import_media_types is not None:
                link_stmt = link_stmt.where(
                    ImportLink.import_media_types == media_filter.import_media_types
                )
            links = {link.item_id: link for link in self._scalars(link_stmt)}

        files: dict[int, MediaFile] = {}
        file_ids = [row.file_id for row in rows if getattr(row, "file_id", None)]
        if file_ids:
            files = {f.id: f for f in self._scalars(select(MediaFile).where(MediaFile.id.in_(file_ids)))}

        sets: dict[int, MovieSet] = {}
        set_ids = [row.set_id for row in rows if getattr(row, "set_id", None)]
        if set_ids:
            sets = {s.id: s for s in self._scalars(select(MovieSet).where(MovieSet.id.in_(set_ids)))}

        link_paths: dict[int, str] = {}
        path_ids = [link.path_id for link in links.values() if link.path_id]
        if path_ids:
            link_paths = dict(
                self._execute(
                    select(LibraryPath.id, LibraryPath.path).where(LibraryPath.id.in_(path_ids))
                ).all()
            )

        episode_counts: dict[Any, int] = {}
        if media_type == MediaType.TVSHOW:
            episode_counts = dict(
                self._execute(
                    select(Episode.tvshow_id, func.count(Episode.id))
                    .where(Episode.tvshow_id.in_(ids))
                    .group_by(Episode.tvshow_id)
                ).all()
            )
        elif media_type == MediaType.SEASON:
            episode_counts = {
                (show_id, number): count
                for show_id, number, count in self._execute(
                    select(Episode.tvshow_id, Episode.season_number, func.count(Episode.id))
                    .where(Episode.tvshow_id.in_(sorted({row.tvshow_id for row in rows})))
                    .group_by(Episode.tvshow_id, Episode.season_number)
                ).all()
            }

        items = []
        for row in rows:
            item = MediaItem(media_type=media_type, db_id=row.id)
            for name in _SCALAR_FIELDS:
                setattr(item, name, getattr(row, name))
            item.season = row.season_number
            item.episode = row.episode_number
            item.unique_ids = dict(row.unique_ids or {})
            if details:
                _load_details(item, row)
            else:
                item.details_loaded = False

            link = links.get(row.id)
            if link is not None:
                item.source = link.source_identifier
                if link.path_id and link.path_id in link_paths:
                    item.path = link_paths[link.path_id]
                    item.parent_path_id = link.path_id

            if media_type == MediaType.TVSHOW:
                item.episode_count = episode_counts.get(row.id, 0)
            elif media_type == MediaType.SEASON:
                item.show_id = row.tvshow_id
                item.episode_count = episode_counts.get((row.tvshow_id, row.season_number), 0)
            elif media_type == MediaType.EPISODE:
                item.show_id = row.tvshow_id
                item.season_id = row.season_id if row.season_id else UNSET_ID
            elif media_type == MediaType.MOVIE and row.set_id:
                item.set_id = row.set_id
                movie_set = sets.get(row.set_id)
                if movie_set is not None:
                    item.set_title = movie_set.title
                    item.set_overview = movie_set.plot

            file_id = getattr(row, "file_id", None)
            if file_id:
                item.file_id = file_id
                media_file = files.get(file_id)
                if media_file is not None:
                    item.parent_path_id = media_file.path_id or item.parent_path_id
                    item.play_count = media_file.play_count
                    item.last_played = normalize_timestamp(media_file.last_played)
                    item.resume = ResumePoint(
                        position=media_file.resume_position or 0.0,
                        total=media_file.resume_total or 0.0,
                    )
            items.append(item)
        return items

    # ------------------------------------------------------------------
    # provenance

    def _link_for(self, media_type: MediaType, item_id: int, media_import: MediaImport) -> Any:
        return (
            select(ImportLink)
            .where(
                ImportLink.media_type == MediaType(media_type).value,
                ImportLink.item_id == item_id,
                ImportLink.source_identifier == media_import.source_identifier,
                ImportLink.import_media_types == media_import.media_types_as_string,
            )
        )

    def set_import_for_item(
        self,
        media_type: MediaType,
        item_id: int,
        media_import: MediaImport,
        path_id: int | None = None,
    ) -> bool:
        """
        Record that an item was produced by an import.

        New links start disabled; they are enabled when the run finishes.
        """
        link = self._scalar(self._link_for(media_type, item_id, media_import))
        if link is None:
            link = ImportLink(
                media_type=MediaType(media_type).value,
                item_id=item_id,
                source_identifier=media_import.source_identifier,
                import_media_types=media_import.media_types_as_string,
                enabled=False,
            )
            self.db.add(link)
        if path_id is not None and path_id > 0:
            link.path_id = path_id
        return self._flush("set_import_for_item", media_type=MediaType(media_type).value, item_id=item_id)

    def remove_import_from_item(
        self, media_type: MediaType, item_id: int, media_import: MediaImport
    ) -> bool:
        result = self._execute(
            delete(ImportLink).where(
                ImportLink.media_type == MediaType(media_type).value,
                ImportLink.item_id == item_id,
                ImportLink.source_identifier == media_import.source_identifier,
                ImportLink.import_media_types == media_import.media_types_as_string,
            )
        )
        return result.rowcount > 0

    def get_path_for_imported_item(
        self, media_type: MediaType, item_id: int, media_import: MediaImport
    ) -> str | None:
        link = self._scalar(self._link_for(media_type, item_id, media_import))
        if link is None or not link.path_id:
            return None
        return self._scalar(select(LibraryPath.path).where(LibraryPath.id == link.path_id))

    def delete_items_from_import(self, media_import: MediaImport, media_type: MediaType) -> int:
        """Delete every item of one media type produced by an import; returns the count."""
        media_type = MediaType(media_type)
        model = MEDIA_TABLES[media_type.value]
        ids = self._scalars(
            select(model.id).where(
                *self._where(model, ItemFilter.for_import(media_type, media_import))
            )
        )
        deleted = sum(1 for db_id in ids if self.delete_item(media_type, db_id))
        return deleted

    def set_import_items_enabled(
        self, enable: bool, media_type: MediaType, media_import: MediaImport
    ) -> int:
        result = self._execute(
            update(ImportLink)
            .where(
                ImportLink.media_type == MediaType(media_type).value,
                ImportLink.source_identifier == media_import.source_identifier,
                ImportLink.import_media_types == media_import.media_types_as_string,
            )
            .values(enabled=enable)
        )
        return result.rowcount

    def is_item_enabled(self, media_type: MediaType, item_id: int) -> bool:
        """An item is visible unless every import that produced it is disabled."""
        enabled = self._scalars(
            select(ImportLink.enabled).where(
                ImportLink.media_type == MediaType(media_type).value,
                ImportLink.item_id == item_id,
            )
        )
        return not enabled or any(enabled)

    # ------------------------------------------------------------------
    # import records

    def _record_for(self, source_identifier: str, media_types: str) -> MediaImportRecord | None:
        return self._scalar(
            select(MediaImportRecord).where(
                MediaImportRecord.source_identifier == source_identifier,
                MediaImportRecord.media_types == media_types,
            )
        )

    @staticmethod
    def _to_import(record: MediaImportRecord) -> MediaImport:
        source = MediaImportSource(
            identifier=record.source_identifier,
            friendly_name=record.source_name,
            importer_id=record.importer_id,
            last_synced=record.last_synced,
        )
        return MediaImport(
            media_types=media_types_from_string(record.media_types),
            source=source,
            last_synced=record.last_synced,
            settings=MediaImportSettings.from_json(record.settings),
        )

    def get_import(self, source_identifier: str, media_types: str) -> MediaImport | None:
        record = self._record_for(source_identifier, media_types)
        return self._to_import(record) if record is not None else None

    def list_imports(self, source_identifier: str | None = None) -> list[MediaImport]:
        stmt = select(MediaImportRecord).order_by(MediaImportRecord.id)
        if source_identifier is not None:
            stmt = stmt.where(MediaImportRecord.source_identifier == source_identifier)
        return [self._to_import(record) for record in self._scalars(stmt)]

    def save_import(self, media_import: MediaImport) -> bool:
        """Insert or update the persisted descriptor of an import."""
        record = self._record_for(
            media_import.source_identifier, media_import.media_types_as_string
        )
        if record is None:
            record = MediaImportRecord(
                source_identifier=media_import.source_identifier,
                media_types=media_import.media_types_as_string,
            )
            self.db.add(record)
        record.source_name = media_import.source.friendly_name
        record.importer_id = media_import.source.importer_id
        record.last_synced = media_import.last_synced
        record.settings = media_import.settings.to_json()
        return self._flush("save_import", media_import=str(media_import))

    def delete_import(self, media_import: MediaImport) -> bool:
        result = self._execute(
            delete(MediaImportRecord).where(
                MediaImportRecord.source_identifier == media_import.source_identifier,
                MediaImportRecord.media_types == media_import.media_types_as_string,
            )
        )
        return result.rowcount > 0
