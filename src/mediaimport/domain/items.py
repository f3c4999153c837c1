"""
In-memory media items exchanged between sources, handlers and the repository.

A ``MediaItem`` is the tagged record for every media type. Identity fields
use ``-1`` for "not persisted / not resolved"; a persisted item always has a
strictly positive ``db_id``.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from ..shared.types import ArtMap, Field, MediaType, UniqueIds

UNSET_ID = -1

# Media types describing a folder of other items rather than a playable file
FOLDER_MEDIA_TYPES = frozenset({MediaType.TVSHOW, MediaType.SEASON, MediaType.MOVIE_SET})


@dataclass
class Actor:
    """A cast member of a media item."""

    name: str
    role: str = ""
    order: int = -1
    thumb: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "role": self.role, "order": self.order, "thumb": self.thumb}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Actor:
        return cls(
            name=data.get("name", ""),
            role=data.get("role", "") or "",
            order=int(data.get("order", -1)),
            thumb=data.get("thumb", "") or "",
        )


@dataclass
class ResumePoint:
    """Resume bookmark of a partially watched item, in seconds."""

    position: float = 0.0
    total: float = 0.0

    def is_part_way(self) -> bool:
        return self.position > 0 and (self.total <= 0 or self.position < self.total)


@dataclass
class MediaItem:
    """A media record of any importable media type."""

    media_type: MediaType
    path: str = ""

    # identity and linkage
    db_id: int = UNSET_ID
    file_id: int = UNSET_ID
    show_id: int = UNSET_ID
    season_id: int = UNSET_ID
    set_id: int = UNSET_ID
    parent_path_id: int = UNSET_ID

    # provenance
    source: str | None = None
    base_path: str | None = None
    is_folder: bool = False

    # descriptive metadata
    title: str = ""
    original_title: str = ""
    sort_title: str = ""
    show_title: str = ""
    set_title: str = ""
    set_overview: str = ""
    plot: str = ""
    plot_outline: str = ""
    tagline: str = ""
    year: int | None = None
    premiered: date | None = None
    aired: date | None = None
    rating: float | None = None
    user_rating: int | None = None
    mpaa: str = ""
    runtime: int = 0
    top250: int = 0
    trailer: str = ""
    status: str = ""
    production_code: str = ""
    album: str = ""
    track: int = -1
    season: int = -1
    episode: int = -1
    special_sort_season: int = -1
    special_sort_episode: int = -1

    genres: list[str] = field(default_factory=list)
    countries: list[str] = field(default_factory=list)
    directors: list[str] = field(default_factory=list)
    writers: list[str] = field(default_factory=list)
    studios: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    artists: list[str] = field(default_factory=list)
    cast: list[Actor] = field(default_factory=list)
    unique_ids: UniqueIds = field(default_factory=dict)
    default_unique_id_type: str = ""
    art: ArtMap = field(default_factory=dict)

    # playback state
    play_count: int = 0
    last_played: datetime | None = None
    resume: ResumePoint = field(default_factory=ResumePoint)

    # number of child episodes (seasons and tvshows)
    episode_count: int = 0
    details_loaded: bool = True

    def __post_init__(self) -> None:
        self.media_type = MediaType(self.media_type)
        if self.media_type in FOLDER_MEDIA_TYPES:
            self.is_folder = True
        self.last_played = normalize_timestamp(self.last_played)

    @property
    def is_persisted(self) -> bool:
        return self.db_id > 0

    @property
    def label(self) -> str:
        """Human readable label used in logs and listings."""
        if self.media_type in (MediaType.SEASON, MediaType.EPISODE) and self.show_title:
            return f"{self.show_title}: {self.title}"
        return self.title or self.path

    @property
    def unique_id(self) -> str:
        """The unique identifier of the default type, or the first one known."""
        if self.default_unique_id_type and self.default_unique_id_type in self.unique_ids:
            return self.unique_ids[self.default_unique_id_type]
        for value in self.unique_ids.values():
            return value
        return ""

    def has_unique_id(self) -> bool:
        return bool(self.unique_id)

    def has_year(self) -> bool:
        return self.year is not None and self.year > 0

    def copy(self) -> MediaItem:
        return copy.deepcopy(self)

    def field_values(self) -> dict[Field, Any]:
        """Comparable value of every metadata field (artwork is compared separately)."""
        return {
            Field.ACTOR: [(a.name, a.role, a.order, a.thumb) for a in self.cast],
            Field.AIR_DATE: self.aired,
            Field.ALBUM: self.album,
            Field.ARTIST: list(self.artists),
            Field.COUNTRY: list(self.countries),
            Field.DIRECTOR: list(self.directors),
            Field.EPISODE_NUMBER: self.episode,
            Field.EPISODE_NUMBER_SPECIAL_SORT: self.special_sort_episode,
            Field.FILENAME: _filename(self.path) if not self.is_folder else "",
            Field.GENRE: list(self.genres),
            Field.IN_PROGRESS: (
                (self.resume.position, self.resume.total) if self.resume.is_part_way() else None
            ),
            Field.LAST_PLAYED: self.last_played,
            Field.MPAA: self.mpaa,
            Field.ORIGINAL_TITLE: self.original_title,
            Field.PATH: self.path,
            Field.PLAYCOUNT: self.play_count,
            Field.PLOT: self.plot,
            Field.PLOT_OUTLINE: self.plot_outline,
            Field.PREMIERED: self.premiered,
            Field.PRODUCTION_CODE: self.production_code,
            Field.RATING: self.rating,
            Field.SEASON: self.season,
            Field.SEASON_SPECIAL_SORT: self.special_sort_season,
            Field.SET: self.set_title,
            Field.SORT_TITLE: self.sort_title,
            Field.STUDIO: list(self.studios),
            Field.TAG: list(self.tags),
            Field.TAGLINE: self.tagline,
            Field.TIME: self.runtime,
            Field.TITLE: self.title,
            Field.TOP250: self.top250,
            Field.TRACK_NUMBER: self.track,
            Field.TRAILER: self.trailer,
            Field.TVSHOW_STATUS: self.status,
            Field.TVSHOW_TITLE: self.show_title,
            Field.UNIQUE_ID: dict(self.unique_ids),
            Field.USER_RATING: self.user_rating,
            Field.WRITER: list(self.writers),
            Field.YEAR: self.year,
        }


def normalize_timestamp(value: datetime | None) -> datetime | None:
    """Playback timestamps are stored as naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _filename(path: str) -> str:
    stripped = path.replace("\\", "/").rstrip("/")
    return stripped.rsplit("/", 1)[-1]


def copy_shared_parent_fields(child: MediaItem, parent_type: MediaType) -> MediaItem:
    """
    Build a minimal parent item from the descriptive fields a child shares with it.

    Numbering and episode specific fields are never copied. The parent's title
    is the child's show title (or set title for movie sets).
    """
    title = child.set_title if parent_type == MediaType.MOVIE_SET else child.show_title
    parent = MediaItem(
        media_type=parent_type,
        title=title,
        is_folder=True,
        source=child.source,
        base_path=child.base_path,
        parent_path_id=child.parent_path_id,
    )
    if parent_type == MediaType.MOVIE_SET:
        parent.plot = child.set_overview
        return parent

    parent.show_title = title
    parent.cast = copy.deepcopy(child.cast)
    parent.countries = list(child.countries)
    parent.directors = list(child.directors)
    parent.genres = list(child.genres)
    parent.year = child.year
    parent.premiered = child.premiered
    parent.mpaa = child.mpaa
    parent.rating = child.rating
    parent.plot = child.plot
    parent.studios = list(child.studios)
    parent.writers = list(child.writers)
    return parent
