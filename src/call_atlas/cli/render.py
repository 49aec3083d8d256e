"""``call-atlas render``: print the DOT graph of one or more definitions."""

import json
from pathlib import Path
from typing import Optional

import typer

from ..definition import DefinitionStore
from ..exceptions import CallAtlasError
from ..logging_config import setup_logging
from ..modules import ChainedClassifier, ModuleStore, SourceModulesClassifier
from ..render import render_definition
from . import app
from ._common import err_console, load_definitions, resolve_config


@app.command()
def render(
    files: list[Path] = typer.Argument(
        ...,
        help="Definition JSON files; more than one are combined",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    module_store: Optional[Path] = typer.Option(
        None, "--module-store", "-m", help="Module classification file (JSON)"
    ),
    compound: bool = typer.Option(False, "--compound", help="One edge per module pair"),
    concentrate: bool = typer.Option(False, "--concentrate", help="Merge parallel edges"),
    only_module: bool = typer.Option(False, "--only-module", help="Draw modules only"),
    metadata: Optional[Path] = typer.Option(
        None, "--metadata", help="Also write the element metadata to this JSON file"
    ),
    config: Optional[Path] = typer.Option(None, "-c", "--config", help="Config file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Render definitions as Graphviz DOT on stdout.

    [bold cyan]Examples:[/bold cyan]

      call-atlas render login.json | dot -Tsvg > login.svg

      call-atlas render a.json b.json --only-module
    """
    settings = resolve_config(
        config=config,
        module_store_path=str(module_store) if module_store else None,
        verbose=verbose,
    )
    setup_logging(verbose=settings.verbose, quiet=settings.quiet)

    store = DefinitionStore()
    bit_ids = store.set(*load_definitions(files))
    definition = store.get(sum(bit_ids))

    try:
        classifier = ChainedClassifier(
            ModuleStore(settings.module_store_path), SourceModulesClassifier(definition)
        )
        dot, records = render_definition(
            definition,
            classifier,
            compound=compound or settings.compound,
            concentrate=concentrate or settings.concentrate,
            only_module=only_module or settings.only_module,
        )
    except CallAtlasError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    typer.echo(dot, nl=False)

    if metadata is not None:
        metadata.write_text(
            json.dumps(records, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )
        err_console.print(f"[dim]Metadata written to {metadata}[/dim]")
