"""
Run-scoped resolution of parent items (tvshows, movie sets) by title.

The cache is rebuilt from the parents previously imported for the import at
the start of every run and grows as handlers create new parents. It is never
shared between runs.
"""

from __future__ import annotations

from collections.abc import Iterable

from ...domain.items import UNSET_ID, MediaItem
from ...shared.path_utils import get_parent_path, path_has_parent, paths_equal


class HierarchyCache:
    """Candidate parent items grouped by title."""

    def __init__(self, parents: Iterable[MediaItem] = ()) -> None:
        self._parents: dict[str, list[MediaItem]] = {}
        self.rebuild(parents)

    def rebuild(self, parents: Iterable[MediaItem]) -> None:
        self._parents.clear()
        for parent in parents:
            self.add(parent)

    def add(self, parent: MediaItem) -> None:
        if not parent.title:
            return
        candidates = self._parents.setdefault(parent.title, [])
        if not any(candidate.db_id == parent.db_id for candidate in candidates):
            candidates.append(parent)

    def copy(self) -> HierarchyCache:
        clone = HierarchyCache()
        clone._parents = {title: list(parents) for title, parents in self._parents.items()}
        return clone

    def candidates(self, title: str) -> list[MediaItem]:
        return list(self._parents.get(title, []))

    def resolve(self, title: str, child_path: str) -> int:
        """
        Find the parent a child belongs to.

        A single candidate with the title wins outright; with several, the one
        whose path is an ancestor of the child's path is chosen.

        Args:
            title: Parent title as carried by the child (e.g. its show title)
            child_path: Path of the child

        Returns:
            Database id of the parent, or -1 if it cannot be resolved
        """
        if not title:
            return UNSET_ID
        candidates = self._parents.get(title)
        if not candidates:
            return UNSET_ID
        if len(candidates) == 1:
            return candidates[0].db_id
        for candidate in candidates:
            if path_has_parent(child_path, candidate.path):
                return candidate.db_id
        return UNSET_ID

    def __len__(self) -> int:
        return sum(len(candidates) for candidates in self._parents.values())

    def __contains__(self, title: object) -> bool:
        return title in self._parents


def show_path_for_season(season: MediaItem) -> str:
    """A season's show lives one level above the season."""
    return get_parent_path(season.path)


def show_path_for_episode(episode: MediaItem) -> str:
    """
    Guess the location of an episode's show.

    Walks up at most twice (season directory, then show directory) and never
    above the base path of the source.
    """
    base_path = episode.base_path or ""
    show_path = base_path
    candidate = get_parent_path(episode.path)
    if candidate and not paths_equal(candidate, base_path):
        show_path = candidate
        candidate = get_parent_path(show_path)
        if candidate and not paths_equal(candidate, base_path):
            show_path = candidate
    return show_path
