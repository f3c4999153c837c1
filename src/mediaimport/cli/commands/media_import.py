"""
Import CLI commands.

Surfaces import management (add, list, remove, enable, disable) and
synchronisation of an import from a JSON file of incoming items.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn

import typer
from pydantic import ValidationError as PayloadValidationError

from ...infra.exceptions import ImportNotFoundError, ValidationError
from ...infra.uow import session
from ...shared.schemas import ImportPayload
from ...shared.types import MediaImportTrigger, MediaType, media_types_from_string
from ...usecases import import_add as _uc_import_add
from ...usecases import import_list as _uc_import_list
from ...usecases import import_remove as _uc_import_remove
from ...usecases.import_sync import ImportSynchroniser

app = typer.Typer(name="import", help="Import management and synchronisation operations")


def _parse_media_types(value: str) -> list[MediaType]:
    try:
        return list(media_types_from_string(value))
    except ValueError:
        available = ", ".join(media_type.value for media_type in MediaType)
        raise typer.BadParameter(f"Unknown media type in '{value}'. Available: {available}") from None


def _fail(json_output: bool, code: str, message: str) -> NoReturn:
    if json_output:
        typer.echo(json.dumps({"status": "error", "code": code, "message": message}, indent=2))
    else:
        typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


@app.command("add")
def add_import(
    source: str = typer.Argument(..., help="Source identifier (e.g. upnp://server-uuid/)"),
    types: str = typer.Option(..., "--types", help="Comma-separated media types (e.g. tvshow,season,episode)"),
    name: str = typer.Option("", "--name", help="Friendly name of the source"),
    importer: str = typer.Option("", "--importer", help="Identifier of the importer feeding the source"),
    trigger: MediaImportTrigger = typer.Option(MediaImportTrigger.AUTO, "--trigger", help="Synchronisation trigger"),
    update_items: bool = typer.Option(True, "--update-items/--no-update-items", help="Update metadata of imported items"),
    playback_from_source: bool = typer.Option(
        True, "--playback-from-source/--no-playback-from-source", help="Take playback state from the source"
    ),
    playback_on_source: bool = typer.Option(
        True, "--playback-on-source/--no-playback-on-source", help="Report playback state to the source"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Create an import of a group of media types from a source.

    Examples:
        mediaimport import add upnp://server/ --types movie,set --name "Living room"
        mediaimport import add upnp://server/ --types tvshow,season,episode --no-update-items
    """
    media_types = _parse_media_types(types)
    with session() as db:
        try:
            result = _uc_import_add.add_import(
                db,
                source_identifier=source,
                media_types=media_types,
                friendly_name=name,
                importer_id=importer,
                trigger=trigger,
                update_items=update_items,
                update_playback_from_source=playback_from_source,
                update_playback_on_source=playback_on_source,
            )
        except ValidationError as e:
            _fail(json_output, "VALIDATION_ERROR", str(e))

    if json_output:
        typer.echo(json.dumps({"status": "ok", "import": result}, indent=2))
    else:
        typer.echo("Import created:")
        typer.echo(f"  Source: {result['source_identifier']}")
        typer.echo(f"  Media types: {', '.join(result['media_types'])}")
        if result["friendly_name"]:
            typer.echo(f"  Name: {result['friendly_name']}")


@app.command("list")
def list_imports(
    source: str | None = typer.Option(None, "--source", help="Only list imports of this source"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """List imports, optionally of one source.

    Examples:
        mediaimport import list
        mediaimport import list --source upnp://server/ --json
    """
    with session() as db:
        result = _uc_import_list.list_imports(db, source_identifier=source)

    if json_output:
        typer.echo(json.dumps({"status": "ok", "total": len(result), "imports": result}, indent=2))
        return

    if not result:
        typer.echo("No imports found")
        return
    typer.echo("Imports:")
    for entry in result:
        label = entry["friendly_name"] or entry["source_identifier"]
        typer.echo(f"  {label} ({', '.join(entry['media_types'])})")
        typer.echo(f"      Source: {entry['source_identifier']}")
        typer.echo(f"      Last synced: {entry['last_synced'] or 'never'}")
    typer.echo(f"\nTotal: {len(result)} imports")


@app.command("sync")
def sync_import(
    source: str = typer.Argument(..., help="Source identifier"),
    types: str = typer.Option(..., "--types", help="Comma-separated media types of the import"),
    items_file: Path = typer.Option(
        ..., "--items", exists=True, dir_okay=False, help="JSON file with the items reported by the source"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Synchronise the library with the items a source reported.

    The items file holds either a list of items or an object with "items"
    and, optionally, "media_types" naming the media types reported in full.

    Examples:
        mediaimport import sync upnp://server/ --types movie,set --items movies.json
    """
    media_types = _parse_media_types(types)
    try:
        with session() as db:
            media_import = _uc_import_list.get_import(
                db, source_identifier=source, media_types=media_types
            )
    except ImportNotFoundError as e:
        _fail(json_output, "IMPORT_NOT_FOUND", str(e))

    try:
        data = json.loads(items_file.read_text(encoding="utf-8"))
        if isinstance(data, list):
            data = {"items": data}
        payload = ImportPayload.model_validate(data)
    except (json.JSONDecodeError, PayloadValidationError) as e:
        _fail(json_output, "INVALID_PAYLOAD", str(e))

    synchroniser = ImportSynchroniser()
    succeeded = synchroniser.synchronise(
        media_import, payload.items_by_type(media_import.media_types)
    )
    result = synchroniser.last_result.to_dict() if synchroniser.last_result else {}

    if not succeeded:
        _fail(json_output, "SYNC_FAILED", result.get("error") or f"Synchronisation of {media_import} failed")

    if json_output:
        typer.echo(json.dumps({"status": "ok", "import": str(media_import), "result": result}, indent=2))
    else:
        typer.echo(f"Synchronised {media_import}:")
        for key in ("added", "updated", "removed", "unchanged", "failed"):
            typer.echo(f"  {key.capitalize()}: {result[key]}")


def _load_import(db, source: str, types: str, json_output: bool):
    try:
        return _uc_import_list.get_import(
            db, source_identifier=source, media_types=_parse_media_types(types)
        )
    except ImportNotFoundError as e:
        _fail(json_output, "IMPORT_NOT_FOUND", str(e))


@app.command("remove")
def remove_import(
    source: str = typer.Argument(..., help="Source identifier"),
    types: str = typer.Option(..., "--types", help="Comma-separated media types of the import"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Remove an import together with every item it produced.

    Parents still holding items from elsewhere are only detached from the import.
    """
    with session() as db:
        media_import = _load_import(db, source, types, json_output)
        result = _uc_import_remove.remove_import(db, media_import=media_import)

    if json_output:
        typer.echo(json.dumps({"status": "ok", **result}, indent=2))
    else:
        typer.echo(f"Removed {result['media_import']}:")
        for media_type, count in result["removed"].items():
            typer.echo(f"  {media_type}: {count}")


def _set_enabled(source: str, types: str, enable: bool, json_output: bool) -> None:
    with session() as db:
        media_import = _load_import(db, source, types, json_output)
        result = _uc_import_remove.set_imported_items_enabled(
            db, media_import=media_import, enable=enable
        )

    if json_output:
        typer.echo(json.dumps({"status": "ok", **result}, indent=2))
    else:
        state = "Enabled" if enable else "Disabled"
        typer.echo(f"{state} items of {result['media_import']}")


@app.command("enable")
def enable_import(
    source: str = typer.Argument(..., help="Source identifier"),
    types: str = typer.Option(..., "--types", help="Comma-separated media types of the import"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Show the items of an import again, e.g. when its source is back online."""
    _set_enabled(source, types, True, json_output)


@app.command("disable")
def disable_import(
    source: str = typer.Argument(..., help="Source identifier"),
    types: str = typer.Option(..., "--types", help="Comma-separated media types of the import"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Hide the items of an import without removing them."""
    _set_enabled(source, types, False, json_output)
