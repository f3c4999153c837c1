"""
Unit tests for path comparison and walking helpers.
"""

from mediaimport.shared.path_utils import (
    get_parent_path,
    normalize_path,
    path_has_parent,
    paths_equal,
)


class TestNormalizePath:
    def test_missing_path_is_empty(self):
        assert normalize_path(None) == ""
        assert normalize_path("") == ""

    def test_backslashes_and_trailing_separator(self):
        assert normalize_path("C:\\Movies\\Alien\\") == "C:/Movies/Alien"

    def test_url_scheme_is_kept(self):
        assert normalize_path("upnp://server//shows/X/") == "upnp://server/shows/X"


class TestPathsEqual:
    def test_trailing_separator_is_ignored(self):
        assert paths_equal("upnp://server/shows/X/", "upnp://server/shows/X")

    def test_different_paths(self):
        assert not paths_equal("/movies/a.mkv", "/movies/b.mkv")


class TestGetParentPath:
    def test_parent_of_file(self):
        assert get_parent_path("upnp://server/shows/X/S01E01.mkv") == "upnp://server/shows/X/"

    def test_parent_of_directory(self):
        assert get_parent_path("/shows/X/Season 1/") == "/shows/X/"

    def test_source_root_has_no_parent(self):
        assert get_parent_path("upnp://server") == ""


class TestPathHasParent:
    def test_descendant(self):
        assert path_has_parent("/shows/X/Season 1/e1.mkv", "/shows/X/")

    def test_same_path(self):
        assert path_has_parent("/shows/X", "/shows/X/")

    def test_sibling_with_common_prefix(self):
        """'/shows/X2' does not live below '/shows/X'."""
        assert not path_has_parent("/shows/X2/e1.mkv", "/shows/X")

    def test_missing_parent(self):
        assert not path_has_parent("/shows/X/e1.mkv", "")
