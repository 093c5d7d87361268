"""Draft lifecycle orchestrator.

Wires the memory cache, debounced persistence, send detection, processing
disambiguation and the pending-deletion sweeper together, and sequences context
switches as "flush old, then restore new".
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from draftkeeper.config.schema import DraftsConfig
from draftkeeper.core.models import ContextKey, DraftContent, DraftRecord, EditorResponse, EpochMs
from draftkeeper.core.ports import (
    DraftCountNotifier,
    DraftStorePort,
    EditorPort,
    ParentTimestampLookup,
    SettingsPort,
)
from draftkeeper.drafts.cache import MemoryCache, PersistenceDebouncer
from draftkeeper.drafts.persistence import DraftPersistence
from draftkeeper.drafts.processing import ProcessingDisambiguator
from draftkeeper.drafts.send_detector import SendSignalDetector
from draftkeeper.drafts.session_state import SessionState
from draftkeeper.drafts.sweeper import PendingDeletionSweeper
from draftkeeper.drafts.timers import (
    PURPOSE_RESTORE,
    PURPOSE_RESTORE_SETTLE,
    PURPOSE_TRANSITION_END,
    TimerTable,
)
from draftkeeper.telemetry.base import NoopTelemetry, TelemetryPort
from draftkeeper.utils.helpers import now_ms, preview

ASSISTANCE_SETTING = "accidental_deletion_assistance"


class DraftLifecycleManager:
    """Keeps one unsent draft per conversation context alive across navigation.

    Inbound signals: :meth:`context_changed`, :meth:`content_changed`,
    :meth:`message_sent` and :meth:`manual_delete_requested`. Call :meth:`start`
    to run the idle check and the pending-deletion sweep, :meth:`stop` to cancel
    every loop and timer.
    """

    def __init__(
        self,
        store: DraftStorePort,
        editor: EditorPort,
        *,
        config: DraftsConfig | None = None,
        settings: SettingsPort | None = None,
        parent_lookup: ParentTimestampLookup | None = None,
        notify_count: DraftCountNotifier | None = None,
        telemetry: TelemetryPort | None = None,
        clock: Callable[[], EpochMs] | None = None,
    ) -> None:
        self.config = config or DraftsConfig()
        self._editor = editor
        self._settings = settings
        self._telemetry = telemetry or NoopTelemetry()
        self._clock = clock or now_ms

        self._current: ContextKey | None = None
        self._switch_lock = asyncio.Lock()
        self._restore_generation = 0
        self._running = False
        self._idle_task: asyncio.Task[None] | None = None
        self._sweep_task: asyncio.Task[None] | None = None

        self.state = SessionState(self._clock)
        self.timers = TimerTable()
        self.cache = MemoryCache()
        self.persistence = DraftPersistence(
            store,
            parent_lookup=parent_lookup,
            notify_count=notify_count,
            telemetry=self._telemetry,
            lookup_timeout_ms=self.config.editor_timeout_ms,
        )
        self.debouncer = PersistenceDebouncer(
            self.cache,
            self.persistence,
            self.timers,
            self.state,
            debounce_ms=self.config.save_debounce_ms,
        )
        self.processing = ProcessingDisambiguator(
            self.persistence,
            self.timers,
            self.state,
            active_context=lambda: self._current,
            assistance_enabled=self._assistance_enabled,
            clock=self._clock,
            processing_timeout_ms=self.config.processing_timeout_ms,
            idle_threshold_ms=self.config.idle_threshold_ms,
            pending_deletion_grace_ms=self.config.pending_deletion_grace_ms,
            telemetry=self._telemetry,
        )
        self.detector = SendSignalDetector(
            self.cache,
            self.debouncer,
            self.persistence,
            self.processing,
            self.state,
            active_context=lambda: self._current,
            similarity_threshold=self.config.similarity_threshold,
            just_sent_suppress_ms=self.config.just_sent_suppress_ms,
            arm_timeout_ms=self.config.send_arm_timeout_ms,
            telemetry=self._telemetry,
        )
        self.sweeper = PendingDeletionSweeper(
            self.persistence, clock=self._clock, telemetry=self._telemetry
        )

    @property
    def current_context(self) -> ContextKey | None:
        return self._current

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._idle_task = asyncio.create_task(
            self._periodic("idle-check", self.config.idle_check_interval_ms, self.processing.check_idle)
        )
        self._sweep_task = asyncio.create_task(
            self._periodic("sweep", self.config.sweep_interval_ms, self._sweep_async)
        )
        logger.info("Draft lifecycle manager started")

    async def stop(self) -> None:
        self._running = False
        for task in (self._idle_task, self._sweep_task):
            if task is None:
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._idle_task = None
        self._sweep_task = None

        self._restore_generation += 1
        await self.timers.cancel_all()
        self.processing.clear()
        self.state.disarm()
        self.state.restoring = False
        logger.info("Draft lifecycle manager stopped")

    async def _periodic(
        self, name: str, interval_ms: int, fn: Callable[[], Awaitable[Any]]
    ) -> None:
        while self._running:
            await asyncio.sleep(interval_ms / 1000.0)
            try:
                await fn()
            except Exception as e:
                logger.error(f"Draft {name} loop iteration failed: {e}")

    async def _sweep_async(self) -> None:
        self.sweeper.sweep()

    # ── Inbound signals ──────────────────────────────────────────────

    async def context_changed(
        self, previous: ContextKey | None, current: ContextKey | None
    ) -> bool:
        logger.debug(f"Context changed: {previous or 'none'} -> {current or 'none'}")
        return await self.switch_context(current)

    async def content_changed(self) -> None:
        """Capture the live editor after any modification of the surface."""
        context = self._current
        if context is None:
            logger.debug("Ignoring content change: no active context yet")
            return
        if self.state.capture_suppressed:
            logger.debug(f"Ignoring content change in {context}: capture suppressed")
            return

        live = await self._editor.read_state()
        if not live.success:
            self._record_editor_failure("read", live)
            return
        if self._current != context or self.state.capture_suppressed:
            logger.debug(f"Dropping stale capture for {context}")
            return

        if live.plain_text.strip():
            if self.processing.has(context):
                self.processing.discard(context)
            self.debouncer.capture(self._content_from(context, live))
            return

        if self.cache.has_content_for(context):
            self.content_became_empty(context)

    def content_became_empty(self, context: ContextKey) -> None:
        held = self.cache.clear()
        self.debouncer.cancel()
        if held is None or held.context != context:
            return
        self.processing.enter(context, held)
        self.detector.arm()

    async def message_sent(self, sent_text: str | None = None) -> bool:
        return await self.detector.fire(sent_text)

    async def manual_delete_requested(self, context: ContextKey) -> bool:
        """Explicit delete from the drafts panel."""
        if self.cache.holds(context):
            self.cache.clear()
            self.debouncer.cancel()
        removed = self.persistence.delete(context)
        if self.processing.has(context):
            await self.processing.finalize(context, "manual_delete")
        return removed

    # ── Context transitions ──────────────────────────────────────────

    async def switch_context(self, new_context: ContextKey | None) -> bool:
        async with self._switch_lock:
            if new_context == self._current:
                return False

            old_context = self._current
            token = self.state.begin_transition()
            self._restore_generation += 1
            self.timers.cancel(PURPOSE_RESTORE, None)
            self.timers.cancel(PURPOSE_RESTORE_SETTLE, None)
            self.timers.cancel(PURPOSE_TRANSITION_END, None)
            self.state.restoring = False

            if (
                old_context is not None
                and self.cache.has_content_for(old_context)
                and not self.state.just_sent
            ):
                logger.debug(f"Flushing in-memory draft for {old_context} before switch")
                await self.debouncer.flush_now(old_context)
            self.debouncer.cancel()
            self.cache.clear()

            self._current = new_context
            await self.processing.finalize_inactive("channel_switch")
            self.state.clear_just_sent()

            if new_context is None:
                self.state.end_transition(token)
                return True

            async def _restore() -> None:
                await self._restore_after_delay(new_context, token)

            self.timers.schedule(PURPOSE_RESTORE, None, self.config.restore_delay_ms, _restore)
            return True

    async def _restore_after_delay(self, context: ContextKey, token: int) -> None:
        if self._current != context:
            logger.debug(f"Skipping restore for {context}: context changed again")
            self.state.end_transition(token)
            return

        restored = await self.restore(context)
        if not restored:
            self.state.end_transition(token)
            return

        async def _end() -> None:
            self.state.end_transition(token)

        self.timers.schedule(
            PURPOSE_TRANSITION_END, None, self.config.transition_settle_ms, _end
        )

    async def restore(self, context: ContextKey) -> bool:
        """Write the stored draft for ``context`` into an empty editor.

        A context switch while the editor is being read or written makes the
        restore stale. A stale write that already reached the editor is undone.
        """
        generation = self._restore_generation
        if context != self._current:
            logger.warning(f"Restore cancelled for {context}: not the active context")
            return False

        live = await self._editor.read_state()
        if not live.success:
            self._record_editor_failure("read", live)
            return False
        if live.has_content:
            logger.debug(f"Restore skipped for {context}: editor already has content")
            return False
        if not self._restore_is_current(context, generation):
            logger.debug(f"Restore for {context} superseded while reading the editor")
            return False

        record = self.persistence.get(context)
        if record is None or record.rich_content is None:
            logger.debug(f"No draft to restore for {context}")
            return False
        if record.is_pending_deletion:
            logger.debug(f"Restore skipped for {context}: draft is pending deletion")
            return False

        self.state.restoring = True
        result = await self._editor.write_state(record.rich_content)
        if not self._restore_is_current(context, generation):
            await self._undo_stale_restore(context, result)
            return False
        if not result.success:
            self.state.restoring = False
            self._record_editor_failure("write", result)
            return False

        async def _settled() -> None:
            await self._capture_restored(context, generation)

        self.timers.schedule(
            PURPOSE_RESTORE_SETTLE, None, self.config.restore_settle_ms, _settled
        )
        self._telemetry.incr("draft_restored")
        age_s = max(0, self._clock() - record.timestamp) // 1000
        logger.info(f"Draft restored for {context}: '{preview(record.plain_text)}' (age {age_s}s)")
        return True

    def _restore_is_current(self, context: ContextKey, generation: int) -> bool:
        return self._current == context and self._restore_generation == generation

    async def _undo_stale_restore(self, context: ContextKey, written: EditorResponse) -> None:
        if not written.success:
            return
        logger.warning(f"Restore for {context} landed after a context switch; clearing editor")
        cleared = await self._editor.write_state(None)
        if not cleared.success:
            self._record_editor_failure("write", cleared)
            return
        # a switch still in progress schedules its own restore
        current = self._current
        if current is not None and not self._switch_lock.locked():
            await self.restore(current)

    async def _capture_restored(self, context: ContextKey, generation: int) -> None:
        if not self._restore_is_current(context, generation):
            return
        self.state.restoring = False
        live = await self._editor.read_state()
        if not live.success:
            self._record_editor_failure("read", live)
            return
        if self._restore_is_current(context, generation) and live.has_content:
            self.debouncer.capture(self._content_from(context, live))

    # ── Draft management ─────────────────────────────────────────────

    async def flush(self) -> bool:
        """Force-flush whatever the memory cache holds."""
        entry = self.cache.entry
        if entry is None:
            return False
        return await self.debouncer.flush_now(entry.context)

    def get_draft(self, context: ContextKey) -> DraftRecord | None:
        return self.persistence.get(context)

    def list_drafts(self) -> dict[ContextKey, DraftRecord]:
        return self.persistence.get_all()

    def cancel_pending_deletion(self, context: ContextKey) -> bool:
        return self.persistence.cancel_pending_deletion(context)

    def clear_all_drafts(self) -> int:
        self._restore_generation += 1
        self.timers.cancel(PURPOSE_RESTORE_SETTLE, None)
        self.state.restoring = False
        self.cache.clear()
        self.debouncer.cancel()
        self.processing.clear()
        return self.persistence.clear()

    def sweep(self) -> list[ContextKey]:
        return self.sweeper.sweep()

    def stats(self) -> dict[str, Any]:
        now = self._clock()
        drafts = self.persistence.get_all()
        current = self._current
        return {
            "current_context": current.storage_key if current else None,
            "context": "thread" if current and current.is_thread else "main",
            "total_drafts": len(drafts),
            "processing": [c.storage_key for c in self.processing.contexts],
            "send_detector": self.state.snapshot(),
            "drafts": [
                {
                    "key": context.storage_key,
                    "is_thread": context.is_thread,
                    "text_length": len(record.plain_text),
                    "preview": preview(record.plain_text, 50),
                    "age_ms": now - record.timestamp,
                    "pending_deletion_at": record.pending_deletion_at,
                }
                for context, record in drafts.items()
            ],
        }

    # ── Internals ────────────────────────────────────────────────────

    def _content_from(self, context: ContextKey, live: EditorResponse) -> DraftContent:
        return DraftContent(
            context=context,
            plain_text=live.plain_text,
            rich_content=live.rich_content,
            timestamp=self._clock(),
        )

    def _assistance_enabled(self) -> bool:
        default = self.config.accidental_deletion_assistance
        if self._settings is None:
            return default
        try:
            return bool(self._settings.get(ASSISTANCE_SETTING))
        except Exception as e:
            logger.warning(f"Reading setting {ASSISTANCE_SETTING} failed: {e}")
            return default

    def _record_editor_failure(self, op: str, response: EditorResponse) -> None:
        if response.error == "timeout":
            self._telemetry.incr("editor_timeout", labels=(("op", op),))
        logger.debug(f"Editor {op} failed: {response.error}")
