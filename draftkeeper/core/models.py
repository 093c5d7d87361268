"""Domain models for the draft lifecycle core."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Literal, TypeAlias

Marker: TypeAlias = Literal["sent", "manual_delete", "channel_switch", "idle", "timeout"]
FinalizeOutcome: TypeAlias = Literal["deleted", "noop", "persisted", "pending_deletion"]
EpochMs: TypeAlias = int

THREAD_SEPARATOR = "::thread::"


@dataclass(frozen=True, slots=True)
class ContextKey:
    """Conversation identity (plus optional thread) that partitions drafts."""

    conversation_id: str
    thread_id: str | None = None

    def __post_init__(self) -> None:
        if not self.conversation_id:
            raise ValueError("conversation_id must not be empty")
        for part in (self.conversation_id, self.thread_id or ""):
            if THREAD_SEPARATOR in part:
                raise ValueError(f"context ids must not contain {THREAD_SEPARATOR!r}: {part!r}")

    @property
    def storage_key(self) -> str:
        if self.thread_id:
            return f"{self.conversation_id}{THREAD_SEPARATOR}{self.thread_id}"
        return self.conversation_id

    @property
    def is_thread(self) -> bool:
        return bool(self.thread_id)

    @classmethod
    def from_storage_key(cls, key: str) -> ContextKey:
        conversation_id, sep, thread_id = key.partition(THREAD_SEPARATOR)
        if sep and thread_id:
            return cls(conversation_id, thread_id)
        return cls(key)

    def __str__(self) -> str:
        return self.storage_key


@dataclass(frozen=True, slots=True, kw_only=True)
class DraftContent:
    """One capture of the live editor, bound to the context active at capture time."""

    context: ContextKey
    plain_text: str
    rich_content: Any
    timestamp: EpochMs

    @property
    def is_empty(self) -> bool:
        return not self.plain_text.strip()


@dataclass(frozen=True, slots=True, kw_only=True)
class DraftRecord:
    """Durable representation of one unsent message for one context."""

    rich_content: Any
    plain_text: str
    timestamp: EpochMs
    thread_id: str | None = None
    parent_message_timestamp: EpochMs | None = None
    pending_deletion_at: EpochMs | None = None

    @property
    def is_pending_deletion(self) -> bool:
        return self.pending_deletion_at is not None

    def without_pending_deletion(self) -> DraftRecord:
        return replace(self, pending_deletion_at=None)

    def to_wire(self) -> dict[str, Any]:
        """Persisted camelCase shape."""
        return {
            "richContent": self.rich_content,
            "plainText": self.plain_text,
            "timestamp": self.timestamp,
            "threadId": self.thread_id,
            "parentMessageTimestamp": self.parent_message_timestamp,
            "pendingDeletionAt": self.pending_deletion_at,
        }

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> DraftRecord:
        if not isinstance(payload, dict):
            raise ValueError("draft record payload must be an object")
        text = payload.get("plainText")
        if not isinstance(text, str):
            raise ValueError("draft record is missing plainText")
        return cls(
            rich_content=payload.get("richContent"),
            plain_text=text,
            timestamp=int(payload.get("timestamp") or 0),
            thread_id=payload.get("threadId") or None,
            parent_message_timestamp=_optional_int(payload.get("parentMessageTimestamp")),
            pending_deletion_at=_optional_int(payload.get("pendingDeletionAt")),
        )


@dataclass(slots=True, kw_only=True)
class ProcessingEntry:
    """Held content of a context whose editor went empty and whose fate is undecided."""

    content: DraftContent
    entered_at: EpochMs
    context_at_entry: ContextKey


@dataclass(frozen=True, slots=True, kw_only=True)
class EditorResponse:
    """Result of one round trip to the host editor surface."""

    success: bool
    plain_text: str = ""
    rich_content: Any = None
    error: str | None = None

    @property
    def has_content(self) -> bool:
        return self.success and bool(self.plain_text.strip())

    @classmethod
    def timeout(cls) -> EditorResponse:
        return cls(success=False, error="timeout")

    @classmethod
    def failure(cls, error: str) -> EditorResponse:
        return cls(success=False, error=error)


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)
