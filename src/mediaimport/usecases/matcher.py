"""
Matching of incoming items against previously imported local items.

Every media type is matched by its normalised path except tvshows, seasons
and movie sets, which sources commonly expose without a stable path and are
matched by title (plus year and season number where they apply).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from ..domain.items import MediaItem
from ..infra.logging import get_logger
from ..shared.path_utils import paths_equal
from ..shared.types import MediaType

_log = get_logger(__name__)

MatchPredicate = Callable[[MediaItem, MediaItem], bool]


def _years_compatible(left: MediaItem, right: MediaItem) -> bool:
    return not left.has_year() or not right.has_year() or left.year == right.year


def match_by_path(item: MediaItem, local: MediaItem) -> bool:
    return paths_equal(item.path, local.path)


def match_tvshow(item: MediaItem, local: MediaItem) -> bool:
    return item.title == local.title and _years_compatible(item, local)


def match_season(item: MediaItem, local: MediaItem) -> bool:
    return (
        item.show_title == local.show_title
        and _years_compatible(item, local)
        and item.season == local.season
    )


def match_movie_set(item: MediaItem, local: MediaItem) -> bool:
    return item.title == local.title


MATCHERS: dict[MediaType, MatchPredicate] = {
    MediaType.TVSHOW: match_tvshow,
    MediaType.SEASON: match_season,
    MediaType.MOVIE_SET: match_movie_set,
}


def get_match_predicate(media_type: MediaType) -> MatchPredicate:
    return MATCHERS.get(MediaType(media_type), match_by_path)


def find_matching_local_item(
    media_type: MediaType, item: MediaItem, local_items: Iterable[MediaItem]
) -> MediaItem | None:
    """
    Find the local counterpart of an incoming item.

    Args:
        media_type: Media type deciding the identity key
        item: The incoming item
        local_items: Items previously imported for the same import

    Returns:
        The first local item with the same identity, or None
    """
    predicate = get_match_predicate(media_type)
    for local in local_items:
        if predicate(item, local):
            return local
    return None


class LocalItemPool:
    """
    Local items of one media type that no incoming item has claimed yet.

    Claiming removes the match from the pool, so each local item pairs with at
    most one incoming item and whatever is left at the end of a run was not
    confirmed by the source.
    """

    def __init__(self, media_type: MediaType, local_items: Iterable[MediaItem]) -> None:
        self.media_type = MediaType(media_type)
        self._predicate = get_match_predicate(self.media_type)
        self._items = list(local_items)

    def __len__(self) -> int:
        return len(self._items)

    def claim(self, item: MediaItem, media_import: object = None) -> MediaItem | None:
        indexes = [i for i, local in enumerate(self._items) if self._predicate(item, local)]
        if not indexes:
            return None
        matches = [self._items[i] for i in indexes]
        if len(matches) > 1:
            _log.warning(
                "ambiguous_local_match",
                media_type=self.media_type.value,
                item=item.label,
                candidates=[local.db_id for local in matches],
                chosen=matches[0].db_id,
                media_import=str(media_import) if media_import is not None else None,
            )
        return self._items.pop(indexes[0])

    def remaining(self) -> list[MediaItem]:
        return list(self._items)
