"""Port interfaces between the draft lifecycle core and its host."""

from __future__ import annotations

from typing import Any, Protocol

from draftkeeper.core.models import ContextKey, DraftRecord, EditorResponse


class DraftStorePort(Protocol):
    """Durable key-value store of draft records keyed by context."""

    def get_all(self) -> dict[ContextKey, DraftRecord]:
        """Return every stored record."""

    def get(self, context: ContextKey) -> DraftRecord | None:
        """Return the record for one context, if any."""

    def set(self, context: ContextKey, record: DraftRecord) -> None:
        """Replace the whole record for one context."""

    def delete(self, context: ContextKey) -> bool:
        """Remove the record for one context. Returns True if one existed."""

    def clear(self) -> int:
        """Remove every record. Returns the number removed."""

    def count(self) -> int:
        """Number of stored records."""


class EditorPort(Protocol):
    """Read/write access to the host's live rich-text surface."""

    async def read_state(self) -> EditorResponse:
        """Return the current editor content or a failure value on timeout."""

    async def write_state(self, rich_content: Any) -> EditorResponse:
        """Replace the editor content (``None`` empties it) or return a failure value on timeout."""


class SettingsPort(Protocol):
    """Host-owned user settings."""

    def get(self, name: str) -> bool:
        """Return a boolean setting by name."""


class ParentTimestampLookup(Protocol):
    """Best-effort lookup of a thread's parent message timestamp."""

    async def __call__(self, thread_id: str) -> int | None:
        """Return epoch-ms or None when every fallback misses."""


class DraftCountNotifier(Protocol):
    """Fire-and-forget UI hook for the stored draft count."""

    def __call__(self, count: int) -> None:
        """Publish the current number of stored drafts."""
