"""
Root Typer application of the ``mediaimport`` command.

Import operations live under ``mediaimport import``; ``init-db`` prepares
an empty library database.
"""

from __future__ import annotations

import typer

from ..infra import db as db_module
from ..infra.logging import configure_logging
from .commands import media_import

app = typer.Typer(help="mediaimport operator CLI", no_args_is_help=True)
app.add_typer(
    media_import.app,
    name="import",
    help="Import management and synchronisation operations",
)


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override LOG_LEVEL for this run"),
    console_log: bool = typer.Option(
        False, "--console-log", help="Render log events for a terminal instead of JSON"
    ),
):
    """Synchronise a media library with its import sources."""
    configure_logging(log_level, json_output=False if console_log else None)


@app.command("init-db")
def init_db():
    """Create the library tables in the configured database."""
    db_module.create_all()
    typer.echo("Library tables created")


def cli():
    app()
