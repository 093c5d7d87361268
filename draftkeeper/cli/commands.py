"""CLI commands for draftkeeper."""

from . import drafts_commands  # noqa: F401
from .core import app

__all__ = ["app"]
