"""
Registry of import handlers by media type.

This module is the plug-in registry for import handlers, not business logic.
Handlers are registered as factories and created per synchronisation run with
that run's ``HandlerContext``, so no handler instance outlives a run.
"""

from __future__ import annotations

from ..infra.exceptions import HandlerNotFoundError
from ..shared.types import MediaType
from .handlers.base import HandlerContext, HandlerFactory, MediaImportHandler
from .handlers.episode_handler import EpisodeImportHandler
from .handlers.movie_handler import MovieImportHandler
from .handlers.movie_set_handler import MovieSetImportHandler
from .handlers.music_video_handler import MusicVideoImportHandler
from .handlers.season_handler import SeasonImportHandler
from .handlers.tvshow_handler import TvShowImportHandler

# Available handler classes
HANDLERS: dict[MediaType, HandlerFactory] = {
    MediaType.MOVIE: MovieImportHandler,
    MediaType.MOVIE_SET: MovieSetImportHandler,
    MediaType.TVSHOW: TvShowImportHandler,
    MediaType.SEASON: SeasonImportHandler,
    MediaType.EPISODE: EpisodeImportHandler,
    MediaType.MUSIC_VIDEO: MusicVideoImportHandler,
}


class HandlerRegistry:
    """Handler factories keyed by the media type they handle."""

    def __init__(self) -> None:
        self._factories: dict[MediaType, HandlerFactory] = {}

    def register(self, media_type: MediaType, factory: HandlerFactory) -> None:
        """
        Register a handler factory.

        Args:
            media_type: The media type handled
            factory: Callable building the handler from a ``HandlerContext``

        Raises:
            ValueError: If a handler is already registered for the media type
        """
        media_type = MediaType(media_type)
        if media_type in self._factories:
            raise ValueError(f"Handler for '{media_type.value}' is already registered")
        self._factories[media_type] = factory

    def unregister(self, media_type: MediaType) -> None:
        try:
            del self._factories[MediaType(media_type)]
        except KeyError:
            raise HandlerNotFoundError(
                f"No handler registered for '{MediaType(media_type).value}'"
            ) from None

    def get_handler_factory(self, media_type: MediaType) -> HandlerFactory | None:
        return self._factories.get(MediaType(media_type))

    def create(self, media_type: MediaType, context: HandlerContext) -> MediaImportHandler:
        """
        Create the handler of a media type for one run.

        Raises:
            HandlerNotFoundError: If no handler is registered for the media type
        """
        factory = self.get_handler_factory(media_type)
        if factory is None:
            available = ", ".join(sorted(t.value for t in self._factories))
            raise HandlerNotFoundError(
                f"No handler registered for '{MediaType(media_type).value}'. "
                f"Available: {available or 'none'}"
            )
        return factory(context)

    def list_media_types(self) -> list[MediaType]:
        return list(self._factories)

    def clear(self) -> None:
        self._factories.clear()

    def __contains__(self, media_type: object) -> bool:
        return media_type in self._factories


def create_default_registry() -> HandlerRegistry:
    """Registry with the handlers of every supported media type."""
    registry = HandlerRegistry()
    for media_type, factory in HANDLERS.items():
        registry.register(media_type, factory)
    return registry
