"""Two-stage (ARM/FIRE) correlation of "message sent" signals with the held draft."""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from draftkeeper.core.models import ContextKey
from draftkeeper.drafts.cache import MemoryCache, PersistenceDebouncer
from draftkeeper.drafts.persistence import DraftPersistence
from draftkeeper.drafts.processing import ProcessingDisambiguator
from draftkeeper.drafts.session_state import SessionState
from draftkeeper.drafts.similarity import similarity
from draftkeeper.telemetry.base import NoopTelemetry, TelemetryPort
from draftkeeper.utils.helpers import preview


class SendSignalDetector:
    """Decides whether a send signal refers to the draft currently being tracked.

    ARM happens when the editor empties through ordinary typing and lapses on its
    own after ``arm_timeout_ms``. FIRE is honoured in either state: any of the
    independent delivery signals may trigger it, and firing twice is harmless
    because the first fire already emptied the cache and the store.
    """

    def __init__(
        self,
        cache: MemoryCache,
        debouncer: PersistenceDebouncer,
        persistence: DraftPersistence,
        processing: ProcessingDisambiguator,
        state: SessionState,
        *,
        active_context: Callable[[], ContextKey | None],
        similarity_threshold: int = 60,
        just_sent_suppress_ms: int = 500,
        arm_timeout_ms: int = 3000,
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self._cache = cache
        self._debouncer = debouncer
        self._persistence = persistence
        self._processing = processing
        self._state = state
        self._active_context = active_context
        self._threshold = similarity_threshold
        self._suppress_ms = just_sent_suppress_ms
        self._arm_timeout_ms = arm_timeout_ms
        self._telemetry = telemetry or NoopTelemetry()

    def arm(self) -> None:
        self._state.arm(self._arm_timeout_ms)
        logger.debug("Send detector armed")

    def disarm(self) -> None:
        self._state.disarm()

    @property
    def armed(self) -> bool:
        return self._state.armed

    async def fire(self, sent_text: str | None = None) -> bool:
        """Handle one send signal. Returns True if the tracked draft was cleared."""
        context = self._active_context()
        cached_text = self._cache.text_for(context) if context is not None else ""

        if sent_text and cached_text.strip():
            score = similarity(cached_text, sent_text)
            if score < self._threshold:
                logger.debug(
                    f"Send signal ignored: similarity {score} < {self._threshold} "
                    f"(draft='{preview(cached_text)}', sent='{preview(sent_text)}')"
                )
                self._telemetry.incr("send_fire_ignored")
                return False

        self._state.mark_just_sent(self._suppress_ms)
        self._cache.clear()
        self._debouncer.cancel()
        if context is not None:
            self._persistence.delete(context)
            await self._processing.finalize(context, "sent")
        self._state.disarm()

        self._telemetry.incr("send_fire_cleared")
        logger.debug(f"Send signal cleared draft for {context}")
        return True
