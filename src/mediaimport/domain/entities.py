"""
Persistence entities for the media library.

Every media table shares the descriptive columns of ``VideoDetailsMixin``;
type specific linkage (show, season, set, file) lives on the concrete
tables. ``ImportLink`` records the provenance of a library row: which
source and import produced it.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ..infra.db import Base


class MediaImportRecord(Base):
    """A persisted import descriptor."""

    __tablename__ = "media_imports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_identifier: Mapped[str] = mapped_column(Text, nullable=False)
    media_types: Mapped[str] = mapped_column(String(255), nullable=False)
    source_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    importer_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    last_synced: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    settings: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("source_identifier", "media_types", name="uq_media_imports_source_types"),
    )

    def __repr__(self) -> str:
        return f"<MediaImportRecord(id={self.id}, source={self.source_identifier}, media_types={self.media_types})>"


class LibraryPath(Base):
    """A directory or source root known to the library."""

    __tablename__ = "paths"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    path: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<LibraryPath(id={self.id}, path={self.path})>"


class MediaFile(Base):
    """A playable file with its playback state and resume bookmark."""

    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    path_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("paths.id", ondelete="SET NULL"), nullable=True
    )
    path: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    play_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_played: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    resume_position: Mapped[float | None] = mapped_column(Float, nullable=True)
    resume_total: Mapped[float | None] = mapped_column(Float, nullable=True)
    date_added: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<MediaFile(id={self.id}, path={self.path}, play_count={self.play_count})>"


class VideoDetailsMixin:
    """Descriptive columns shared by every media table."""

    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    original_title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sort_title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    show_title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    plot: Mapped[str] = mapped_column(Text, nullable=False, default="")
    plot_outline: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tagline: Mapped[str] = mapped_column(Text, nullable=False, default="")
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    premiered: Mapped[date | None] = mapped_column(Date, nullable=True)
    aired: Mapped[date | None] = mapped_column(Date, nullable=True)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    user_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mpaa: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    runtime: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    top250: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    trailer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    production_code: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    album: Mapped[str] = mapped_column(Text, nullable=False, default="")
    track: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)
    season_number: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)
    episode_number: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)
    special_sort_season: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)
    special_sort_episode: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)
    genres: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    countries: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    directors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    writers: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    studios: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    artists: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    cast: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    unique_ids: Mapped[dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)
    default_unique_id_type: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    art: Mapped[dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)
    path: Mapped[str] = mapped_column(Text, nullable=False, default="")
    base_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_added: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class MovieSet(VideoDetailsMixin, Base):
    """A collection of movies (e.g. a trilogy)."""

    __tablename__ = "movie_sets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    __table_args__ = (Index("ix_movie_sets_title", "title"),)

    def __repr__(self) -> str:
        return f"<MovieSet(id={self.id}, title={self.title})>"


class Movie(VideoDetailsMixin, Base):
    __tablename__ = "movies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("files.id", ondelete="SET NULL"), nullable=True
    )
    set_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("movie_sets.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (Index("ix_movies_set_id", "set_id"),)

    def __repr__(self) -> str:
        return f"<Movie(id={self.id}, title={self.title}, year={self.year}, set_id={self.set_id})>"


class TvShow(VideoDetailsMixin, Base):
    __tablename__ = "tvshows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    __table_args__ = (Index("ix_tvshows_title", "title"),)

    def __repr__(self) -> str:
        return f"<TvShow(id={self.id}, title={self.title}, year={self.year})>"


class TvShowPath(Base):
    """One of possibly several locations (one per source) a tvshow lives at."""

    __tablename__ = "tvshow_paths"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tvshow_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tvshows.id", ondelete="CASCADE"), nullable=False
    )
    path_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("paths.id", ondelete="CASCADE"), nullable=False
    )
    base_path: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("tvshow_id", "path_id", name="uq_tvshow_paths_show_path"),
    )


class Season(VideoDetailsMixin, Base):
    __tablename__ = "seasons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tvshow_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tvshows.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("tvshow_id", "season_number", name="uq_seasons_show_number"),
    )

    def __repr__(self) -> str:
        return f"<Season(id={self.id}, tvshow_id={self.tvshow_id}, season={self.season_number})>"


class Episode(VideoDetailsMixin, Base):
    __tablename__ = "episodes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tvshow_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tvshows.id", ondelete="CASCADE"), nullable=False
    )
    season_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("seasons.id", ondelete="SET NULL"), nullable=True
    )
    file_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("files.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        Index("ix_episodes_tvshow_season", "tvshow_id", "season_number"),
    )

    def __repr__(self) -> str:
        return (
            f"<Episode(id={self.id}, tvshow_id={self.tvshow_id}, "
            f"S{self.season_number:02d}E{self.episode_number:02d})>"
        )


class MusicVideo(VideoDetailsMixin, Base):
    __tablename__ = "music_videos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("files.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<MusicVideo(id={self.id}, title={self.title})>"


class ImportLink(Base):
    """Provenance of a library row: the import that produced or last touched it."""

    __tablename__ = "import_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    media_type: Mapped[str] = mapped_column(String(32), nullable=False)
    item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    source_identifier: Mapped[str] = mapped_column(Text, nullable=False)
    import_media_types: Mapped[str] = mapped_column(String(255), nullable=False)
    path_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    enabled: Mapped[bool] = mapped_column(
        Boolean, server_default=sa.text("0"), default=False, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "media_type",
            "item_id",
            "source_identifier",
            "import_media_types",
            name="uq_import_links_item_import",
        ),
        Index("ix_import_links_item", "media_type", "item_id"),
        Index("ix_import_links_import", "source_identifier", "import_media_types"),
    )

    def __repr__(self) -> str:
        return (
            f"<ImportLink(media_type={self.media_type}, item_id={self.item_id}, "
            f"source={self.source_identifier}, enabled={self.enabled})>"
        )


# Media type value -> mapped class
MEDIA_TABLES: dict[str, type[Base]] = {
    "movie": Movie,
    "set": MovieSet,
    "tvshow": TvShow,
    "season": Season,
    "episode": Episode,
    "musicvideo": MusicVideo,
}
