"""Command-line interface for Apply Desk."""

import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from apply_desk.config import settings

app = typer.Typer(
    name="apply-desk",
    help="Apply Desk: live autofill sessions for job applications",
    add_completion=False,
)
console = Console()


@app.command()
def serve(
    host: str = typer.Option(settings.api_host, help="Bind address"),
    port: int = typer.Option(settings.api_port, help="Bind port"),
    reload: bool = typer.Option(settings.reload, help="Restart on code changes"),
    seed_file: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Seed document for the store"),
) -> None:
    """Run the API and frame stream server."""
    import uvicorn

    if seed_file is not None:
        # Inherited by the reloader's worker process
        os.environ["SEED_FILE"] = str(seed_file.resolve())
        settings.seed_file = os.environ["SEED_FILE"]

    console.print(f"[bold]Apply Desk[/bold] listening on {host}:{port}")
    uvicorn.run(
        "apply_desk.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )


@app.command()
def config() -> None:
    """Print the effective configuration, secrets omitted."""
    table = Table(title="Apply Desk Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    rows = [
        ("Debug", settings.debug),
        ("Log level", settings.log_level),
        ("Bind", f"{settings.api_host}:{settings.api_port}"),
        ("Headless", settings.browser_headless),
        ("Viewport", "x".join(str(v) for v in settings.viewport_size)),
        ("Navigation timeout (ms)", settings.browser_navigation_timeout),
        ("Focus timeout (ms)", settings.focus_timeout),
        ("Frame interval (s)", settings.frame_interval_seconds),
        ("Resume dir", settings.resume_dir),
        ("Seed file", settings.seed_file or "-"),
    ]
    for name, value in rows:
        table.add_row(name, str(value))

    console.print(table)


@app.command()
def seed(path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Seed document to check")) -> None:
    """Load a seed document and summarise what it contains."""
    from apply_desk.store.memory import InMemoryStore

    try:
        store = InMemoryStore.from_seed(path)
    except ValueError as e:
        console.print(f"[red]Invalid seed file:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title=f"Seed: {path.name}")
    table.add_column("Record", style="cyan")
    table.add_column("Count", style="green", justify="right")
    for name, count in store.counts().items():
        table.add_row(name, str(count))
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from apply_desk import __version__
    console.print(f"Apply Desk v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
