"""
CLI for the pantry cache.

Commands:
    pantry put KEY VALUE - Store a value (JSON, or a plain string)
    pantry get KEY - Print a stored value
    pantry exists KEY - Check whether a valid record exists
    pantry rm KEY - Delete a key from both roots
    pantry clear - Delete every record
    pantry config - Show current configuration
    pantry version - Print version
"""

from __future__ import annotations

from typing import Annotated, Any, Optional

import orjson
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from pantry import __version__
from pantry.config import Settings, clear_settings_cache, get_settings
from pantry.exceptions import ConfigurationError, InvalidKeyError
from pantry.locator import validate_key
from pantry.logging import setup_logging
from pantry.pantry import Pantry
from pantry.types import Expiry, RecordState

app = typer.Typer(
    name="pantry",
    help="Pantry - persistent key-value cache with expiry",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def _load_settings() -> Settings:
    """Load settings, converting validation failures to ConfigurationError."""
    try:
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        raise ConfigurationError(
            "Configuration is invalid", {"errors": e.error_count()}
        ) from e


def _open_pantry() -> Pantry:
    """Build the store handle from settings, exiting on bad configuration."""
    try:
        settings = _load_settings()
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {e}. Run 'pantry config' for details.")
        raise typer.Exit(1)

    setup_logging(log_level=settings.LOG_LEVEL, log_file=settings.LOG_FILE)
    return Pantry.from_settings(settings)


def _parse_value(raw: str, as_string: bool) -> Any:
    """Interpret a command-line value as JSON, falling back to the raw string."""
    if as_string:
        return raw
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError:
        return raw


def _check_key(key: str) -> None:
    try:
        validate_key(key)
    except InvalidKeyError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)


@app.command()
def put(
    key: Annotated[str, typer.Argument(help="Cache key")],
    value: Annotated[str, typer.Argument(help="Value to store (parsed as JSON if possible)")],
    expires_in: Annotated[
        Optional[float],
        typer.Option("--expires-in", "-e", help="Seconds until the record expires"),
    ] = None,
    as_string: Annotated[
        bool,
        typer.Option("--string", "-s", help="Store VALUE as a string, never as JSON"),
    ] = False,
) -> None:
    """Store a value under KEY."""
    _check_key(key)
    pantry = _open_pantry()
    expires = Expiry.seconds(expires_in) if expires_in is not None else pantry.default_expiry

    if not pantry.pack(key, _parse_value(value, as_string), expires=expires):
        error_console.print(f"[red]Error:[/red] Could not store '{key}'")
        raise typer.Exit(1)

    console.print(f"[green]Stored[/green] {key}")


@app.command()
def get(key: Annotated[str, typer.Argument(help="Cache key")]) -> None:
    """Print the value stored under KEY as JSON."""
    _check_key(key)
    pantry = _open_pantry()
    envelope = pantry.read_envelope(key)
    if envelope is None:
        error_console.print(f"[yellow]Not found:[/yellow] {key}")
        raise typer.Exit(1)

    console.print_json(orjson.dumps(envelope.storage).decode("utf-8"))


@app.command()
def exists(key: Annotated[str, typer.Argument(help="Cache key")]) -> None:
    """Check whether KEY holds a valid record (expired records are evicted)."""
    _check_key(key)
    pantry = _open_pantry()
    state = pantry.state(key)
    found = pantry.exists(key)

    if state is RecordState.EXPIRED:
        console.print(f"{key}: [yellow]expired[/yellow] (evicted)")
    elif found:
        console.print(f"{key}: [green]valid[/green]")
    else:
        console.print(f"{key}: [dim]absent[/dim]")

    if not found:
        raise typer.Exit(1)


@app.command()
def rm(key: Annotated[str, typer.Argument(help="Cache key")]) -> None:
    """Delete KEY from both the primary and the legacy root."""
    _check_key(key)
    pantry = _open_pantry()
    if not pantry.expire(key):
        error_console.print(f"[red]Error:[/red] Could not fully remove '{key}'")
        raise typer.Exit(1)
    console.print(f"[green]Removed[/green] {key}")


@app.command()
def clear(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Don't ask for confirmation"),
    ] = False,
) -> None:
    """Delete every record in both roots."""
    pantry = _open_pantry()
    if not yes:
        typer.confirm("Delete all cached records?", abort=True)
    if not pantry.remove_all():
        error_console.print("[red]Error:[/red] Some cache directories could not be removed")
        raise typer.Exit(1)
    console.print("[green]Cache cleared[/green]")


@app.command()
def config() -> None:
    """Show current configuration."""
    console.print()
    console.print("[bold]Pantry Configuration[/bold]")
    console.print()

    try:
        settings = _load_settings()
    except ConfigurationError as e:
        error_console.print(f"[red]{e}.[/red]")
        cause = e.__cause__
        if isinstance(cause, ValidationError):
            for error in cause.errors():
                loc = ".".join(str(part) for part in error["loc"])
                error_console.print(f"  - {loc}: {error['msg']}")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for name, value in settings.display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(name, display_value)

    console.print(table)
    console.print()
    console.print(f"[bold]Primary directory:[/bold] {settings.primary_dir}")
    console.print(f"[bold]Legacy directory:[/bold] {settings.legacy_dir}")
    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"pantry version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
