"""
Path utilities for comparing and walking item paths.

Imported items carry either plain filesystem paths or source URLs
(e.g. ``upnp://device/item/123``). The helpers here treat both the same way:
forward slashes, no trailing separator when comparing.
"""

from __future__ import annotations


def normalize_path(path: str | None) -> str:
    """
    Normalize a path or URL for consistent comparison.

    Args:
        path: The path to normalize

    Returns:
        Normalized path string (empty string for missing paths)
    """
    if not path:
        return ""

    normalized = path.strip().replace("\\", "/")
    scheme, sep, rest = normalized.partition("://")
    if not sep:
        scheme, rest = "", normalized

    while "//" in rest:
        rest = rest.replace("//", "/")
    if len(rest) > 1:
        rest = rest.rstrip("/")

    return f"{scheme}://{rest}" if sep else rest


def paths_equal(left: str | None, right: str | None) -> bool:
    """Check whether two paths point to the same location."""
    return normalize_path(left) == normalize_path(right)


def get_parent_path(path: str | None) -> str:
    """
    Get the parent of a path, keeping a trailing separator.

    Args:
        path: Path or URL of a file or directory

    Returns:
        The parent directory with a trailing ``/``, or an empty string if the
        path has no parent
    """
    normalized = normalize_path(path)
    if not normalized:
        return ""

    scheme, sep, rest = normalized.partition("://")
    if not sep:
        scheme, rest = "", normalized

    stripped = rest.rstrip("/")
    index = stripped.rfind("/")
    if index < 0:
        # "upnp://device" has no parent beyond the root of the source
        return ""

    parent = stripped[: index + 1]
    return f"{scheme}://{parent}" if sep else parent


def path_has_parent(path: str | None, parent: str | None) -> bool:
    """
    Check whether ``parent`` is an ancestor of (or equal to) ``path``.

    Args:
        path: Path of the child item
        parent: Candidate ancestor path

    Returns:
        True if ``path`` lives below ``parent``
    """
    normalized_parent = normalize_path(parent)
    normalized_path = normalize_path(path)
    if not normalized_parent or not normalized_path:
        return False

    if normalized_path == normalized_parent:
        return True

    prefix = normalized_parent if normalized_parent.endswith("/") else normalized_parent + "/"
    return normalized_path.startswith(prefix)
