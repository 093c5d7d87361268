"""Memory cache of the latest capture and the debounced flush into the store."""

from __future__ import annotations

from loguru import logger

from draftkeeper.core.models import ContextKey, DraftContent
from draftkeeper.drafts.persistence import DraftPersistence
from draftkeeper.drafts.session_state import SessionState
from draftkeeper.drafts.timers import PURPOSE_FLUSH, TimerTable


class MemoryCache:
    """Holds zero or one capture, bound to the context active when it was taken."""

    def __init__(self) -> None:
        self._entry: DraftContent | None = None

    @property
    def entry(self) -> DraftContent | None:
        return self._entry

    def capture(self, content: DraftContent) -> None:
        self._entry = content

    def clear(self) -> DraftContent | None:
        entry, self._entry = self._entry, None
        return entry

    def holds(self, context: ContextKey) -> bool:
        return self._entry is not None and self._entry.context == context

    def text_for(self, context: ContextKey) -> str:
        if not self.holds(context):
            return ""
        return self._entry.plain_text

    def has_content_for(self, context: ContextKey) -> bool:
        return bool(self.text_for(context).strip())


class PersistenceDebouncer:
    """Coalesces captures into one delayed write of the cache entry."""

    def __init__(
        self,
        cache: MemoryCache,
        persistence: DraftPersistence,
        timers: TimerTable,
        state: SessionState,
        *,
        debounce_ms: int = 500,
    ) -> None:
        self._cache = cache
        self._persistence = persistence
        self._timers = timers
        self._state = state
        self._debounce_ms = debounce_ms

    def capture(self, content: DraftContent) -> None:
        self._cache.capture(content)
        self.schedule_flush()

    def schedule_flush(self) -> None:
        self._timers.schedule(PURPOSE_FLUSH, None, self._debounce_ms, self._on_flush_timer)

    def cancel(self) -> bool:
        return self._timers.cancel(PURPOSE_FLUSH, None)

    @property
    def flush_pending(self) -> bool:
        return self._timers.is_pending(PURPOSE_FLUSH, None)

    async def flush_now(self, context: ContextKey) -> bool:
        """Write the cache entry for ``context`` now. Returns True if a write happened."""
        self.cancel()
        entry = self._cache.entry
        if entry is None or entry.context != context:
            return False
        if entry.is_empty:
            return False
        if self._state.just_sent:
            logger.debug(f"Skipping flush for {context}: message was just sent")
            return False
        return await self._persistence.save(entry, guard=lambda: not self._state.just_sent)

    async def _on_flush_timer(self) -> None:
        entry = self._cache.entry
        if entry is None:
            return
        await self.flush_now(entry.context)
