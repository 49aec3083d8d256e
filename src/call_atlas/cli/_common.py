"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ..config import AtlasConfig, load_config
from ..definition import Definition
from ..exceptions import CallAtlasError
from ..persistence import load_definition

console = Console()
err_console = Console(stderr=True)


def resolve_config(config: Optional[Path] = None, **overrides) -> AtlasConfig:
    """Build configuration from CLI options, exiting with a message when invalid."""
    try:
        return load_config(config_file=config, **overrides)
    except CallAtlasError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2)


def load_definitions(files: list[Path]) -> list[Definition]:
    """Load every file or exit with the first error."""
    definitions = []
    for path in files:
        try:
            definitions.append(load_definition(path))
        except CallAtlasError as e:
            err_console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
    return definitions
