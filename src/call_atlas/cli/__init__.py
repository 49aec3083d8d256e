"""CLI entry point: registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="call-atlas",
    help="Call Atlas - runtime call graphs grouped by module",
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
) -> None:
    """
    Browse and render call graphs recorded by [bold]call_atlas.trace[/bold].

    [bold cyan]Examples:[/bold cyan]

      call-atlas render traces/login.json > login.dot

      call-atlas render traces/*.json --compound --module-store modules.json

      call-atlas serve traces/
    """
    if version:
        console.print(f"[bold cyan]Call Atlas[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


# Import subcommands to register them
from .info import info as _info  # noqa: F401, E402
from .render import render as _render  # noqa: F401, E402
from .serve import serve as _serve  # noqa: F401, E402
