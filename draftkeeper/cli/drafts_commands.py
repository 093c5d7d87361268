"""Draft store inspection and maintenance commands."""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime

import typer
from rich.table import Table

from draftkeeper.core.models import ContextKey
from draftkeeper.utils.helpers import now_ms, preview

from .core import app, console, make_persistence, make_store

drafts_app = typer.Typer(help="Inspect and maintain stored drafts")
app.add_typer(drafts_app, name="drafts")


@contextmanager
def _persistence_context():
    from draftkeeper.config.loader import load_config

    config = load_config()
    store = make_store(config)
    try:
        yield make_persistence(config, store)
    finally:
        store.close()


def _context(conversation: str, thread: str | None) -> ContextKey:
    try:
        return ContextKey(conversation, thread)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def _format_ms(value: int | None) -> str:
    if value is None:
        return "-"
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M:%S")


@drafts_app.command("list")
def drafts_list() -> None:
    """List stored drafts."""
    with _persistence_context() as persistence:
        drafts = persistence.get_all()

    if not drafts:
        console.print("No drafts stored.")
        return

    now = now_ms()
    table = Table(title="Drafts")
    table.add_column("Key", style="cyan")
    table.add_column("Preview")
    table.add_column("Saved")
    table.add_column("Deletes in", justify="right")

    for context, record in drafts.items():
        if record.pending_deletion_at is None:
            deletes_in = "-"
        else:
            deletes_in = f"{max(0, record.pending_deletion_at - now) // 1000}s"
        table.add_row(
            context.storage_key,
            preview(record.plain_text, 40),
            _format_ms(record.timestamp),
            deletes_in,
        )
    console.print(table)


@drafts_app.command("show")
def drafts_show(
    conversation: str = typer.Argument(..., help="Conversation id"),
    thread: str | None = typer.Option(None, "--thread", "-t", help="Thread id"),
) -> None:
    """Print one draft record as JSON."""
    context = _context(conversation, thread)
    with _persistence_context() as persistence:
        record = persistence.get(context)
    if record is None:
        console.print(f"[yellow]No draft for {context}[/yellow]")
        raise typer.Exit(1)
    console.print_json(json.dumps(record.to_wire(), ensure_ascii=False))


@drafts_app.command("delete")
def drafts_delete(
    conversation: str = typer.Argument(..., help="Conversation id"),
    thread: str | None = typer.Option(None, "--thread", "-t", help="Thread id"),
) -> None:
    """Delete one draft."""
    context = _context(conversation, thread)
    with _persistence_context() as persistence:
        removed = persistence.delete(context)
    if not removed:
        console.print(f"[yellow]No draft for {context}[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Deleted draft {context}")


@drafts_app.command("undo")
def drafts_undo(
    conversation: str = typer.Argument(..., help="Conversation id"),
    thread: str | None = typer.Option(None, "--thread", "-t", help="Thread id"),
) -> None:
    """Cancel the pending deletion of a draft."""
    context = _context(conversation, thread)
    with _persistence_context() as persistence:
        restored = persistence.cancel_pending_deletion(context)
    if not restored:
        console.print(f"[yellow]No pending deletion for {context}[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Kept draft {context}")


@drafts_app.command("sweep")
def drafts_sweep() -> None:
    """Delete drafts whose grace period has expired."""
    from draftkeeper.drafts.sweeper import PendingDeletionSweeper

    with _persistence_context() as persistence:
        removed = PendingDeletionSweeper(persistence, clock=now_ms).sweep()
    console.print(f"Swept {len(removed)} expired draft(s)")


@drafts_app.command("clear")
def drafts_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete every stored draft."""
    if not yes and not typer.confirm("Delete all drafts?"):
        raise typer.Exit()
    with _persistence_context() as persistence:
        removed = persistence.clear()
    console.print(f"[green]✓[/green] Cleared {removed} draft(s)")


@app.command("similarity")
def similarity_command(
    first: str = typer.Argument(..., help="Draft text"),
    second: str = typer.Argument(..., help="Sent text"),
) -> None:
    """Score how closely a sent message matches a draft (0-100)."""
    from draftkeeper.drafts.similarity import similarity

    console.print(str(similarity(first, second)))
