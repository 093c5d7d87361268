"""Deferred delete-or-keep decision for contexts whose editor went empty.

An empty editor is ambiguous: the message may have been sent, the user may have
wiped the text on purpose, or the host may have cleared the surface while
navigating away. The entry is held until a marker resolves it:

1. a message was just sent        -> delete the record
2. ``manual_delete``              -> nothing left to do
3. the context is no longer active -> keep as a normal draft
4. otherwise (idle or timeout)    -> pending deletion, or delete when
                                     accidental-deletion assistance is off
"""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from draftkeeper.core.models import (
    ContextKey,
    DraftContent,
    EpochMs,
    FinalizeOutcome,
    Marker,
    ProcessingEntry,
)
from draftkeeper.drafts.persistence import DraftPersistence
from draftkeeper.drafts.session_state import SessionState
from draftkeeper.drafts.timers import PURPOSE_PROCESSING_TIMEOUT, TimerTable
from draftkeeper.telemetry.base import NoopTelemetry, TelemetryPort


class ProcessingDisambiguator:
    def __init__(
        self,
        persistence: DraftPersistence,
        timers: TimerTable,
        state: SessionState,
        *,
        active_context: Callable[[], ContextKey | None],
        assistance_enabled: Callable[[], bool],
        clock: Callable[[], EpochMs],
        processing_timeout_ms: int = 3000,
        idle_threshold_ms: int = 1000,
        pending_deletion_grace_ms: int = 60000,
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self._persistence = persistence
        self._timers = timers
        self._state = state
        self._active_context = active_context
        self._assistance_enabled = assistance_enabled
        self._clock = clock
        self._processing_timeout_ms = processing_timeout_ms
        self._idle_threshold_ms = idle_threshold_ms
        self._grace_ms = pending_deletion_grace_ms
        self._telemetry = telemetry or NoopTelemetry()
        self._entries: dict[ContextKey, ProcessingEntry] = {}

    def enter(self, context: ContextKey, content: DraftContent) -> ProcessingEntry:
        entry = ProcessingEntry(
            content=content,
            entered_at=self._clock(),
            context_at_entry=context,
        )
        self._entries[context] = entry

        async def _on_timeout() -> None:
            await self.finalize(context, "timeout")

        self._timers.schedule(
            PURPOSE_PROCESSING_TIMEOUT, context, self._processing_timeout_ms, _on_timeout
        )
        logger.debug(f"Draft for {context} is processing (editor became empty)")
        return entry

    def has(self, context: ContextKey) -> bool:
        return context in self._entries

    def get(self, context: ContextKey) -> ProcessingEntry | None:
        return self._entries.get(context)

    @property
    def contexts(self) -> list[ContextKey]:
        return list(self._entries)

    def discard(self, context: ContextKey) -> bool:
        """Drop an entry without resolving it (the user is typing again)."""
        entry = self._entries.pop(context, None)
        self._timers.cancel(PURPOSE_PROCESSING_TIMEOUT, context)
        if entry is not None:
            logger.debug(f"Discarded processing draft for {context}: user typing again")
        return entry is not None

    async def finalize(self, context: ContextKey, marker: Marker) -> FinalizeOutcome | None:
        entry = self._entries.pop(context, None)
        self._timers.cancel(PURPOSE_PROCESSING_TIMEOUT, context)
        if entry is None:
            return None

        outcome = await self._resolve(context, entry, marker)
        self._telemetry.incr(
            "processing_finalized", labels=(("marker", marker), ("outcome", outcome))
        )
        logger.debug(f"Finalized processing draft for {context}: marker={marker} outcome={outcome}")
        return outcome

    async def _resolve(
        self, context: ContextKey, entry: ProcessingEntry, marker: Marker
    ) -> FinalizeOutcome:
        if self._state.just_sent:
            self._persistence.delete(context)
            return "deleted"

        if marker == "manual_delete":
            return "noop"

        if self._active_context() != context:
            await self._persistence.save(entry.content)
            return "persisted"

        if self._assistance_enabled():
            deadline = self._clock() + self._grace_ms
            await self._persistence.save(entry.content, pending_deletion_at=deadline)
            return "pending_deletion"

        self._persistence.delete(context)
        return "deleted"

    async def check_idle(self) -> int:
        """Finalize entries idle past the threshold in the still-active context."""
        now = self._clock()
        active = self._active_context()
        finalized = 0
        for context, entry in list(self._entries.items()):
            if context != active:
                continue
            if now - entry.entered_at > self._idle_threshold_ms:
                if await self.finalize(context, "idle") is not None:
                    finalized += 1
        return finalized

    async def finalize_inactive(self, marker: Marker) -> int:
        """Finalize every entry whose context is no longer the active one."""
        active = self._active_context()
        finalized = 0
        for context in list(self._entries):
            if context == active:
                continue
            if await self.finalize(context, marker) is not None:
                finalized += 1
        return finalized

    def clear(self) -> None:
        for context in list(self._entries):
            self._timers.cancel(PURPOSE_PROCESSING_TIMEOUT, context)
        self._entries.clear()
