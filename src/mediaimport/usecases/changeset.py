"""
Changeset classification of an incoming item against its local counterpart.

The comparison runs in a fixed order: playback-only mode short-circuits
everything; artwork is compared before the generic field diff (artwork is not
part of it); playback, ignored and cast differences are then discarded and
whatever remains decides between CHANGED and NONE.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..domain.items import Actor, MediaItem
from ..shared.types import PLAYBACK_FIELDS, ArtMap, ChangesetType, Field

DEFAULT_ARTWORK = frozenset({"DefaultVideo.png", "DefaultFolder.png"})
GENERATED_ART_SCHEME = "image://"


def remove_auto_artwork(art: ArtMap, parent_prefixes: Iterable[str] = ()) -> ArtMap:
    """
    Drop the artwork the library attaches on its own.

    Removed entries are default placeholders, generated ``image://`` URLs and
    artwork inherited from a parent (keys such as ``set.poster`` or
    ``tvshow.fanart``).

    Args:
        art: Artwork map of a local item
        parent_prefixes: Parent kinds whose artwork is inherited (``set``, ``tvshow``, ...)

    Returns:
        A new artwork map without the automatic entries
    """
    prefixes = tuple(f"{prefix}." for prefix in parent_prefixes)
    return {
        kind: url
        for kind, url in art.items()
        if url not in DEFAULT_ARTWORK
        and not url.startswith(GENERATED_ART_SCHEME)
        and not (prefixes and kind.startswith(prefixes))
    }


def field_differences(local: MediaItem, incoming: MediaItem) -> set[Field]:
    """Fields whose comparable values differ between two items."""
    local_values = local.field_values()
    incoming_values = incoming.field_values()
    return {field for field, value in local_values.items() if incoming_values[field] != value}


def cast_equal(local_cast: list[Actor], incoming_cast: list[Actor]) -> bool:
    """
    Compare cast lists, tolerating sources that omit cast artwork.

    An empty incoming cast never counts as a difference; otherwise both lists
    must match entry by entry on name and role, and on thumbnail only where
    the incoming entry has one.
    """
    if not incoming_cast:
        return True
    if len(local_cast) != len(incoming_cast):
        return False
    for local_actor, incoming_actor in zip(local_cast, incoming_cast):
        if local_actor.name != incoming_actor.name or local_actor.role != incoming_actor.role:
            return False
        if incoming_actor.thumb and local_actor.thumb != incoming_actor.thumb:
            return False
    return True


def playback_equal(local: MediaItem, incoming: MediaItem) -> bool:
    return (
        local.play_count == incoming.play_count
        and local.last_played == incoming.last_played
        and local.resume.position == incoming.resume.position
    )


def classify(
    local: MediaItem,
    incoming: MediaItem,
    update_all_metadata: bool = True,
    update_playback_metadata: bool = True,
    ignored_fields: Iterable[Field] = (),
    parent_art_prefixes: Iterable[str] = (),
) -> ChangesetType:
    """
    Decide whether a matched incoming item changes its local counterpart.

    Args:
        local: The previously imported item
        incoming: The item reported by the source
        update_all_metadata: Compare all metadata; when False only playback
            state is compared
        update_playback_metadata: Include playback state in the full comparison
        ignored_fields: Fields the media type legitimately takes from elsewhere
        parent_art_prefixes: Parent kinds whose inherited artwork is ignored

    Returns:
        ``ChangesetType.CHANGED`` or ``ChangesetType.NONE``
    """
    if not update_all_metadata:
        return ChangesetType.NONE if playback_equal(local, incoming) else ChangesetType.CHANGED

    if local.art != incoming.art:
        # same number of entries means an url really changed
        if len(local.art) == len(incoming.art):
            return ChangesetType.CHANGED
        if remove_auto_artwork(local.art, parent_art_prefixes) != incoming.art:
            return ChangesetType.CHANGED

    differences = field_differences(local, incoming)
    if not differences:
        return ChangesetType.NONE

    if not update_playback_metadata:
        differences -= PLAYBACK_FIELDS
    differences -= set(ignored_fields)

    if Field.ACTOR in differences and cast_equal(local.cast, incoming.cast):
        differences.discard(Field.ACTOR)

    return ChangesetType.CHANGED if differences else ChangesetType.NONE
