"""
CLI tests for the mediaimport import commands.

The usecases and the synchroniser are mocked; these tests cover argument
parsing, the JSON contract and exit codes.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from mediaimport.cli.main import app
from mediaimport.domain.media_import import MediaImport, MediaImportSource
from mediaimport.infra.exceptions import ImportNotFoundError, ValidationError
from mediaimport.shared.types import MediaType
from mediaimport.usecases.import_sync import SyncResult

SOURCE = "upnp://server-1/"

runner = CliRunner()


@pytest.fixture
def mock_db():
    with patch("mediaimport.cli.commands.media_import.session") as mock_session:
        db = MagicMock()
        mock_session.return_value.__enter__.return_value = db
        mock_session.return_value.__exit__.return_value = False
        yield db


@pytest.fixture
def movie_import():
    return MediaImport(
        media_types=(MediaType.MOVIE, MediaType.MOVIE_SET),
        source=MediaImportSource(identifier=SOURCE, friendly_name="Living room"),
    )


def _json(result):
    return json.loads(result.stdout)


class TestImportAdd:
    def test_add_json(self, mock_db):
        created = {
            "source_identifier": SOURCE,
            "friendly_name": "Living room",
            "importer_id": "",
            "media_types": ["tvshow", "season", "episode"],
            "last_synced": None,
            "settings": {},
        }
        with patch("mediaimport.usecases.import_add.add_import", return_value=created) as add:
            result = runner.invoke(
                app,
                [
                    "import",
                    "add",
                    SOURCE,
                    "--types",
                    "tvshow,season,episode",
                    "--name",
                    "Living room",
                    "--no-update-items",
                    "--json",
                ],
            )

        assert result.exit_code == 0
        assert _json(result) == {"status": "ok", "import": created}
        kwargs = add.call_args.kwargs
        assert kwargs["media_types"] == [MediaType.TVSHOW, MediaType.SEASON, MediaType.EPISODE]
        assert kwargs["update_items"] is False
        assert kwargs["update_playback_from_source"] is True

    def test_add_validation_error(self, mock_db):
        with patch(
            "mediaimport.usecases.import_add.add_import",
            side_effect=ValidationError("Import already exists"),
        ):
            result = runner.invoke(app, ["import", "add", SOURCE, "--types", "movie", "--json"])

        assert result.exit_code == 1
        assert _json(result)["code"] == "VALIDATION_ERROR"

    def test_add_unknown_media_type(self, mock_db):
        result = runner.invoke(app, ["import", "add", SOURCE, "--types", "movie,album"])

        assert result.exit_code == 2


class TestImportList:
    def test_list_empty(self, mock_db):
        with patch("mediaimport.usecases.import_list.list_imports", return_value=[]):
            result = runner.invoke(app, ["import", "list"])

        assert result.exit_code == 0
        assert "No imports found" in result.stdout

    def test_list_json_by_source(self, mock_db):
        entry = {
            "source_identifier": SOURCE,
            "friendly_name": "",
            "importer_id": "",
            "media_types": ["movie"],
            "last_synced": None,
            "settings": {},
        }
        with patch(
            "mediaimport.usecases.import_list.list_imports", return_value=[entry]
        ) as list_imports:
            result = runner.invoke(app, ["import", "list", "--source", SOURCE, "--json"])

        assert result.exit_code == 0
        assert _json(result)["total"] == 1
        list_imports.assert_called_once_with(mock_db, source_identifier=SOURCE)


class TestImportSync:
    @pytest.fixture
    def items_file(self, tmp_path):
        path = tmp_path / "items.json"
        path.write_text(
            json.dumps([{"type": "movie", "title": "A", "path": f"{SOURCE}movies/a.mkv"}])
        )
        return path

    def test_sync_unknown_import(self, mock_db, items_file):
        with patch(
            "mediaimport.usecases.import_list.get_import",
            side_effect=ImportNotFoundError("No import of 'movie'"),
        ):
            result = runner.invoke(
                app,
                ["import", "sync", SOURCE, "--types", "movie", "--items", str(items_file), "--json"],
            )

        assert result.exit_code == 1
        assert _json(result)["code"] == "IMPORT_NOT_FOUND"

    def test_sync_invalid_payload(self, mock_db, movie_import, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"items": [{"type": "album", "title": "X"}]}))
        with patch("mediaimport.usecases.import_list.get_import", return_value=movie_import):
            result = runner.invoke(
                app,
                ["import", "sync", SOURCE, "--types", "movie,set", "--items", str(bad), "--json"],
            )

        assert result.exit_code == 1
        assert _json(result)["code"] == "INVALID_PAYLOAD"

    def test_sync_success(self, mock_db, movie_import, items_file):
        with (
            patch("mediaimport.usecases.import_list.get_import", return_value=movie_import),
            patch("mediaimport.cli.commands.media_import.ImportSynchroniser") as synchroniser_cls,
        ):
            synchroniser = synchroniser_cls.return_value
            synchroniser.synchronise.return_value = True
            synchroniser.last_result = SyncResult(added=1, success=True)
            result = runner.invoke(
                app,
                ["import", "sync", SOURCE, "--types", "movie,set", "--items", str(items_file), "--json"],
            )

        assert result.exit_code == 0
        assert _json(result)["result"]["added"] == 1
        media_import, items_by_type = synchroniser.synchronise.call_args.args
        assert media_import is movie_import
        assert set(items_by_type) == {MediaType.MOVIE, MediaType.MOVIE_SET}
        assert [item.title for item in items_by_type[MediaType.MOVIE]] == ["A"]
        assert items_by_type[MediaType.MOVIE_SET] == []

    def test_sync_failure(self, mock_db, movie_import, items_file):
        with (
            patch("mediaimport.usecases.import_list.get_import", return_value=movie_import),
            patch("mediaimport.cli.commands.media_import.ImportSynchroniser") as synchroniser_cls,
        ):
            synchroniser = synchroniser_cls.return_value
            synchroniser.synchronise.return_value = False
            synchroniser.last_result = SyncResult(error="Synchronisation cancelled")
            result = runner.invoke(
                app,
                ["import", "sync", SOURCE, "--types", "movie,set", "--items", str(items_file), "--json"],
            )

        assert result.exit_code == 1
        assert _json(result) == {
            "status": "error",
            "code": "SYNC_FAILED",
            "message": "Synchronisation cancelled",
        }


class TestImportRemoveAndEnable:
    def test_remove(self, mock_db, movie_import):
        summary = {"media_import": str(movie_import), "removed": {"movie": 2, "set": 1}, "deleted": True}
        with (
            patch("mediaimport.usecases.import_list.get_import", return_value=movie_import),
            patch("mediaimport.usecases.import_remove.remove_import", return_value=summary) as remove,
        ):
            result = runner.invoke(app, ["import", "remove", SOURCE, "--types", "movie,set"])

        assert result.exit_code == 0
        assert "movie: 2" in result.stdout
        remove.assert_called_once_with(mock_db, media_import=movie_import)

    def test_disable(self, mock_db, movie_import):
        with (
            patch("mediaimport.usecases.import_list.get_import", return_value=movie_import),
            patch(
                "mediaimport.usecases.import_remove.set_imported_items_enabled",
                return_value={"media_import": str(movie_import), "enabled": False},
            ) as set_enabled,
        ):
            result = runner.invoke(app, ["import", "disable", SOURCE, "--types", "movie,set", "--json"])

        assert result.exit_code == 0
        assert _json(result)["enabled"] is False
        set_enabled.assert_called_once_with(mock_db, media_import=movie_import, enable=False)

    def test_enable_unknown_import(self, mock_db):
        with patch(
            "mediaimport.usecases.import_list.get_import",
            side_effect=ImportNotFoundError("No import of 'movie'"),
        ):
            result = runner.invoke(app, ["import", "enable", SOURCE, "--types", "movie"])

        assert result.exit_code == 1
