"""``call-atlas info``: summarize the sources of definition files."""

from pathlib import Path

import typer
from rich.table import Table

from ..definition import Definition
from . import app
from ._common import console, load_definitions


def _source_table(definition: Definition) -> Table:
    table = Table(title=definition.title or definition.id, title_justify="left")
    table.add_column("Source", style="cyan")
    table.add_column("Modules")
    table.add_column("Dependencies", justify="right")
    table.add_column("Calls", justify="right")

    for source in definition.sources:
        calls = sum(len(d.method_ids) for d in source.dependencies)
        table.add_row(
            source.source_name,
            " / ".join(source.modules) or "[dim]-[/dim]",
            str(len(source.dependencies)),
            str(calls),
        )
    return table


@app.command()
def info(
    files: list[Path] = typer.Argument(
        ..., help="Definition JSON files", exists=True, dir_okay=False, readable=True
    ),
) -> None:
    """Show the sources and dependency counts of each definition."""
    for definition in load_definitions(files):
        console.print(_source_table(definition))
        if definition.definition_group:
            console.print(f"[dim]group: {definition.definition_group}[/dim]")
        console.print()
