"""``call-atlas serve``: HTTP API over a directory of definitions."""

import threading
import webbrowser
from pathlib import Path
from typing import Optional

import typer

from ..definition import DefinitionStore
from ..exceptions import PersistenceError
from ..logging_config import setup_logging
from ..modules import ModuleStore
from . import app
from ._common import console, err_console, resolve_config


@app.command()
def serve(
    definition_dir: Optional[Path] = typer.Argument(
        None,
        help="Directory of definition JSON files (default: from config)",
        file_okay=False,
        dir_okay=True,
    ),
    module_store: Optional[Path] = typer.Option(
        None, "--module-store", "-m", help="Module classification file (JSON)"
    ),
    host: Optional[str] = typer.Option(None, help="Host to bind to"),
    port: Optional[int] = typer.Option(None, help="Port to listen on"),
    no_browser: bool = typer.Option(False, "--no-browser", help="Don't open browser"),
    config: Optional[Path] = typer.Option(None, "-c", "--config", help="Config file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Serve stored definitions while they load in the background."""
    import uvicorn

    from ..server.app import create_app
    from ..server.loader import DefinitionLoader

    settings = resolve_config(
        config=config,
        definition_dir=str(definition_dir) if definition_dir else None,
        module_store_path=str(module_store) if module_store else None,
        host=host,
        port=port,
        open_browser=False if no_browser else None,
        verbose=verbose,
    )
    setup_logging(verbose=settings.verbose, quiet=settings.quiet)

    if settings.definition_dir is None:
        err_console.print("[red]No definition directory given[/red]")
        raise typer.Exit(2)
    if not Path(settings.definition_dir).is_dir():
        err_console.print(f"[red]Not a directory:[/red] {settings.definition_dir}")
        raise typer.Exit(2)

    try:
        modules = ModuleStore(settings.module_store_path)
    except PersistenceError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    store = DefinitionStore()
    loader = DefinitionLoader(settings.definition_dir, store)
    loader.start()
    console.print(
        f"[bold]Loading[/bold] {loader.total} definition file(s) from {settings.definition_dir}"
    )

    url = f"http://{settings.host}:{settings.port}"
    if settings.open_browser:
        threading.Timer(1.0, lambda: webbrowser.open(url)).start()

    console.print(f"[bold]API[/bold] → [link={url}]{url}[/link]")
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    asgi_app = create_app(store, modules, loader=loader, per_page=settings.per_page)
    try:
        uvicorn.run(
            asgi_app,
            host=settings.host,
            port=settings.port,
            log_config=None,
            log_level="info" if settings.verbose else "warning",
        )
    except KeyboardInterrupt:
        pass
    finally:
        loader.stop()
        console.print("\n[dim]Stopped.[/dim]")
