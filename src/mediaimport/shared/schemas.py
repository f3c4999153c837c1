"""
Pydantic schemas for incoming items.

Sources hand their items to the CLI as JSON; these models validate that JSON
and convert it into ``MediaItem`` values for the synchronisation engine.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from ..domain.items import Actor, MediaItem, ResumePoint
from .types import MediaType


class ActorSchema(BaseModel):
    """A cast member as reported by a source."""

    name: str = Field(..., min_length=1)
    role: str = ""
    order: int = -1
    thumb: str = ""


class ResumeSchema(BaseModel):
    position: float = Field(0.0, ge=0, description="Resume position in seconds")
    total: float = Field(0.0, ge=0, description="Total duration in seconds")


class IncomingItem(BaseModel):
    """One item reported by a source."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    media_type: MediaType = Field(..., alias="type")
    path: str = Field("", description="Location of the item on the source")
    is_folder: bool = False

    title: str = ""
    original_title: str = ""
    sort_title: str = ""
    show_title: str = Field("", description="Title of the tvshow of a season or episode")
    set_title: str = Field("", description="Title of the movie set of a movie")
    set_overview: str = ""
    plot: str = ""
    plot_outline: str = ""
    tagline: str = ""
    year: int | None = Field(None, ge=0)
    premiered: date | None = None
    aired: date | None = None
    rating: float | None = None
    user_rating: int | None = None
    mpaa: str = ""
    runtime: int = Field(0, ge=0)
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

    genres: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list)
    directors: list[str] = Field(default_factory=list)
    writers: list[str] = Field(default_factory=list)
    studios: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    artists: list[str] = Field(default_factory=list)
    cast: list[ActorSchema] = Field(default_factory=list)
    unique_ids: dict[str, str] = Field(default_factory=dict)
    default_unique_id_type: str = ""
    art: dict[str, str] = Field(default_factory=dict)

    play_count: int = Field(0, ge=0)
    last_played: datetime | None = None
    resume: ResumeSchema = Field(default_factory=ResumeSchema)

    def to_media_item(self) -> MediaItem:
        data = self.model_dump(exclude={"cast", "resume"})
        return MediaItem(
            **data,
            cast=[Actor(**actor.model_dump()) for actor in self.cast],
            resume=ResumePoint(**self.resume.model_dump()),
        )


class ImportPayload(BaseModel):
    """
    Items reported by a source for one synchronisation.

    ``media_types`` names the media types the source reported in full; local
    items of those types missing from ``items`` are removed. When omitted
    every media type of the import counts as reported.
    """

    media_types: list[MediaType] | None = None
    items: list[IncomingItem] = Field(default_factory=list)

    def items_by_type(
        self, import_media_types: Iterable[MediaType]
    ) -> dict[MediaType, list[MediaItem]]:
        reported = self.media_types if self.media_types is not None else list(import_media_types)
        grouped: dict[MediaType, list[MediaItem]] = {media_type: [] for media_type in reported}
        for incoming in self.items:
            grouped.setdefault(incoming.media_type, []).append(incoming.to_media_item())
        return grouped
