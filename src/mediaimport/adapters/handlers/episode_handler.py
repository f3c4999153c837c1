"""
Episode import handler.

An episode is written only once its show is known: resolved from the run's
tvshow cache, or created as a minimal show from the episode's own details.
"""

from __future__ import annotations

from ...domain.items import MediaItem
from ...shared.types import Field, MediaType
from .base import HandlerPolicy
from .hierarchy import show_path_for_episode
from .tvshow_handler import TvShowChildImportHandler


class EpisodeImportHandler(TvShowChildImportHandler):
    media_type = MediaType.EPISODE
    required_media_types = (MediaType.TVSHOW, MediaType.SEASON)
    policy = HandlerPolicy(
        ignored_fields=frozenset(
            {
                Field.ACTOR,
                Field.ALBUM,
                Field.ARTIST,
                Field.COUNTRY,
                Field.GENRE,
                Field.MPAA,
                Field.PLOT_OUTLINE,
                Field.SET,
                Field.SORT_TITLE,
                Field.STUDIO,
                Field.TAG,
                Field.TAGLINE,
                Field.TOP250,
                Field.TRACK_NUMBER,
                Field.TRAILER,
                Field.TVSHOW_STATUS,
                Field.TVSHOW_TITLE,
            }
        ),
        parent_art_prefixes=("tvshow", "season"),
        parent_type=MediaType.TVSHOW,
    )

    def show_path(self, item: MediaItem) -> str:
        return show_path_for_episode(item)

    def write_item(self, item: MediaItem, db_id: int | None = None) -> int:
        return self.repository.set_details_for_episode(item, db_id=db_id)
