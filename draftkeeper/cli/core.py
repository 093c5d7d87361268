"""Shared CLI application context and setup helpers."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import typer
from loguru import logger
from rich.console import Console

from draftkeeper import __logo__, __version__

if TYPE_CHECKING:
    from draftkeeper.config.schema import Config
    from draftkeeper.drafts.persistence import DraftPersistence
    from draftkeeper.storage.draft_store import SqliteDraftStore

app = typer.Typer(
    name="draftkeeper",
    help=f"{__logo__} draftkeeper - unsent message draft keeper",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"{__logo__} draftkeeper v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
    log_level: str | None = typer.Option(None, "--log-level", help="Override logging.level"),
) -> None:
    """draftkeeper - unsent message draft keeper."""
    from draftkeeper.config.loader import load_config

    level = (log_level or load_config().logging.level).upper()
    logger.remove()
    logger.add(sys.stderr, level=level)


@app.command()
def onboard() -> None:
    """Initialize draftkeeper configuration."""
    from draftkeeper.config.loader import get_config_path, save_config
    from draftkeeper.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config, config_path)
    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print(f"  Drafts database: [cyan]{config.storage.resolved_db_path}[/cyan]")


def make_store(config: Config) -> SqliteDraftStore:
    """Create the SQLite draft store from config."""
    from draftkeeper.storage.draft_store import SqliteDraftStore

    return SqliteDraftStore(config.storage.resolved_db_path)


def make_persistence(config: Config, store: SqliteDraftStore) -> DraftPersistence:
    """Wrap a store in the guarded persistence layer used by the manager."""
    from draftkeeper.drafts.persistence import DraftPersistence

    return DraftPersistence(store, lookup_timeout_ms=config.drafts.editor_timeout_ms)
