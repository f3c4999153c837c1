"""
Shared types and enums for mediaimport.

This module contains common types and enums that are used across
the domain, handlers, CLI, and other layers.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class MediaType(str, Enum):
    """Media types that can be imported into the library."""

    MOVIE = "movie"
    MOVIE_SET = "set"
    TVSHOW = "tvshow"
    SEASON = "season"
    EPISODE = "episode"
    MUSIC_VIDEO = "musicvideo"


class ChangesetType(str, Enum):
    """Classification of an incoming item relative to its local counterpart."""

    NONE = "none"
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


class MediaImportTrigger(str, Enum):
    """How a synchronisation of an import is triggered."""

    AUTO = "auto"
    MANUAL = "manual"


class Field(str, Enum):
    """Comparable metadata fields of a media item."""

    ACTOR = "actor"
    AIR_DATE = "airdate"
    ALBUM = "album"
    ARTIST = "artist"
    COUNTRY = "country"
    DIRECTOR = "director"
    EPISODE_NUMBER = "episodenumber"
    EPISODE_NUMBER_SPECIAL_SORT = "episodenumberspecialsort"
    FILENAME = "filename"
    GENRE = "genre"
    IN_PROGRESS = "inprogress"
    LAST_PLAYED = "lastplayed"
    MPAA = "mpaa"
    ORIGINAL_TITLE = "originaltitle"
    PATH = "path"
    PLAYCOUNT = "playcount"
    PLOT = "plot"
    PLOT_OUTLINE = "plotoutline"
    PREMIERED = "premiered"
    PRODUCTION_CODE = "productioncode"
    RATING = "rating"
    SEASON = "season"
    SEASON_SPECIAL_SORT = "seasonspecialsort"
    SET = "set"
    SORT_TITLE = "sorttitle"
    STUDIO = "studio"
    TAG = "tag"
    TAGLINE = "tagline"
    TIME = "time"
    TITLE = "title"
    TOP250 = "top250"
    TRACK_NUMBER = "tracknumber"
    TRAILER = "trailer"
    TVSHOW_STATUS = "tvshowstatus"
    TVSHOW_TITLE = "tvshowtitle"
    UNIQUE_ID = "uniqueid"
    USER_RATING = "userrating"
    WRITER = "writer"
    YEAR = "year"


# Fields describing playback state rather than metadata
PLAYBACK_FIELDS: frozenset[Field] = frozenset(
    {Field.PLAYCOUNT, Field.LAST_PLAYED, Field.IN_PROGRESS}
)

# An ordered group of media types imported together (e.g. tvshow, season, episode)
GroupedMediaTypes = tuple[MediaType, ...]


def media_types_to_string(media_types: GroupedMediaTypes) -> str:
    """Serialise grouped media types into their comma separated form."""
    return ",".join(media_type.value for media_type in media_types)


def media_types_from_string(value: str) -> GroupedMediaTypes:
    """Parse the comma separated form of grouped media types."""
    if not value:
        return ()
    return tuple(MediaType(part.strip()) for part in value.split(",") if part.strip())


# Type aliases for common data structures
ArtMap = dict[str, str]
UniqueIds = dict[str, str]
RawItemData = dict[str, Any]
