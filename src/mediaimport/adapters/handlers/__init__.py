"""
Import handlers module for mediaimport.

One handler per media type implements the import handler contract.
"""

from .base import (
    HandlerContext,
    HandlerFactory,
    HandlerPolicy,
    MediaImportHandler,
    SynchronisationState,
    VideoImportHandler,
)
from .episode_handler import EpisodeImportHandler
from .hierarchy import HierarchyCache, show_path_for_episode, show_path_for_season
from .movie_handler import MovieImportHandler
from .movie_set_handler import MovieSetImportHandler
from .music_video_handler import MusicVideoImportHandler
from .season_handler import SeasonImportHandler
from .tvshow_handler import TvShowChildImportHandler, TvShowImportHandler

__all__ = [
    "EpisodeImportHandler",
    "HandlerContext",
    "HandlerFactory",
    "HandlerPolicy",
    "HierarchyCache",
    "MediaImportHandler",
    "MovieImportHandler",
    "MovieSetImportHandler",
    "MusicVideoImportHandler",
    "SeasonImportHandler",
    "SynchronisationState",
    "TvShowChildImportHandler",
    "TvShowImportHandler",
    "VideoImportHandler",
    "show_path_for_episode",
    "show_path_for_season",
]
