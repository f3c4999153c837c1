"""Allows running ``python -m mediaimport``."""

from .cli.main import cli

cli()
