"""CLI interface for Hide My Email using Typer."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from hme.client import HME_SERVICE
from hme.config import ConfigStore
from hme.exceptions import (
    AuthError,
    ClaimError,
    GenerationError,
    HmeError,
    ParseError,
    ValidationError,
)
from hme.manager import HideMyEmailManager
from hme.models import AliasRecord
from hme.session import SessionManager

app = typer.Typer(help="Generate iCloud Hide My Email addresses from your terminal")
console = Console()

T = TypeVar("T")


def _run(store: ConfigStore, action: Callable[[HideMyEmailManager], Awaitable[T]]) -> T:
    """Open a validated manager, run one action with it and close the session."""

    async def runner() -> T:
        manager = await SessionManager(store).open_manager()
        try:
            return await action(manager)
        finally:
            await manager.client.aclose()

    return asyncio.run(runner())


def _handle_error(e: HmeError) -> None:
    """Handle common exceptions with user-friendly messages."""
    if isinstance(e, ParseError):
        console.print(f"[red]Invalid session cookie: {e.message}[/red]")
    elif isinstance(e, AuthError):
        console.print(f"[red]Session check failed: {e.message}[/red]")
    elif isinstance(e, GenerationError):
        console.print(f"[red]Generate failed: {e.message}[/red]")
    elif isinstance(e, ClaimError):
        console.print(f"[red]Claim failed: {e.message}[/red]")
    elif isinstance(e, ValidationError):
        console.print(f"[red]{e.message}[/red]")
    else:
        console.print(f"[red]Error: {e.message}[/red]")
    raise typer.Exit(1)


def _print_record(record: AliasRecord) -> None:
    console.print(f"[green bold]{record.address}[/green bold]")
    console.print(f"  Label: {record.label}")
    if record.note:
        console.print(f"  Note: {record.note}")
    if record.forward_to_email:
        console.print(f"  Forwards to: {record.forward_to_email}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Generate iCloud Hide My Email addresses from your terminal."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


@app.command()
def validate() -> None:
    """Check that the configured iCloud session is live."""
    store = ConfigStore()

    async def action(manager: HideMyEmailManager) -> Optional[str]:
        return manager.client.service_url(HME_SERVICE)

    try:
        url = _run(store, action)
    except HmeError as e:
        _handle_error(e)
        return

    console.print("[green]Session is valid.[/green]")
    console.print(f"  Hide My Email service: {url}")


@app.command()
def generate(
    label: str = typer.Option(..., "--label", "-l", help="Label shown for the new alias"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Optional note"),
) -> None:
    """Generate a new alias and claim it immediately."""
    store = ConfigStore()
    if not label.strip():
        _handle_error(ValidationError())
    resolved_note = note if note is not None else store.get_config().default_note

    async def action(manager: HideMyEmailManager) -> AliasRecord:
        return await manager.generate_and_claim(label, resolved_note)

    try:
        record = _run(store, action)
    except HmeError as e:
        _handle_error(e)
        return

    _print_record(record)


@app.command()
def reserve(
    label: str = typer.Option(..., "--label", "-l", help="Label shown for the new alias"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Optional note"),
) -> None:
    """Generate an alias, confirm it, then claim it."""
    store = ConfigStore()
    if not label.strip():
        _handle_error(ValidationError())
    resolved_note = note if note is not None else store.get_config().default_note

    async def action(manager: HideMyEmailManager) -> Optional[AliasRecord]:
        alias = await manager.generate()
        console.print(f"Generated [bold]{alias.address}[/bold]")
        if not Confirm.ask("Claim this alias?", default=True, console=console):
            return None
        return await manager.claim(alias, label, resolved_note)

    try:
        record = _run(store, action)
    except HmeError as e:
        _handle_error(e)
        return

    if record is None:
        console.print("[yellow]Alias left unclaimed.[/yellow]")
        return
    _print_record(record)


@app.command("list")
def list_aliases(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include deactivated aliases"),
    limit: int = typer.Option(50, "--limit", help="Maximum number of aliases to show"),
) -> None:
    """List aliases on the account."""
    store = ConfigStore()

    try:
        result = _run(store, lambda manager: manager.list_aliases())
    except HmeError as e:
        _handle_error(e)
        return

    aliases = [a for a in result.aliases if show_all or a.is_active]
    if not aliases:
        console.print("[yellow]No aliases found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Alias", style="cyan")
    table.add_column("Label")
    table.add_column("Note")
    table.add_column("Status")

    for alias in aliases[:limit]:
        status = "[green]active[/green]" if alias.is_active else "[red]inactive[/red]"
        table.add_row(alias.address, alias.label, alias.note, status)

    console.print(table)
    if result.selected_forward_to:
        console.print(f"Forwarding to: {result.selected_forward_to}")


if __name__ == "__main__":
    app()
