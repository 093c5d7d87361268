"""Persistent storage helpers."""

from draftkeeper.storage.draft_store import SqliteDraftStore

__all__ = ["SqliteDraftStore"]
