"""Guarded access to the draft store.

Store failures are logged and absorbed here: reads degrade to "empty" and
writes are dropped, so a broken store never interrupts capture.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from loguru import logger

from draftkeeper.core.errors import DraftStoreError
from draftkeeper.core.models import ContextKey, DraftContent, DraftRecord, EpochMs
from draftkeeper.core.ports import DraftCountNotifier, DraftStorePort, ParentTimestampLookup
from draftkeeper.telemetry.base import NoopTelemetry, TelemetryPort
from draftkeeper.utils.helpers import preview


class DraftPersistence:
    """Whole-record writes of draft content, with lookup and notification side effects."""

    def __init__(
        self,
        store: DraftStorePort,
        *,
        parent_lookup: ParentTimestampLookup | None = None,
        notify_count: DraftCountNotifier | None = None,
        telemetry: TelemetryPort | None = None,
        lookup_timeout_ms: int = 2000,
    ) -> None:
        self._store = store
        self._parent_lookup = parent_lookup
        self._notify_count = notify_count
        self._telemetry = telemetry or NoopTelemetry()
        self._lookup_timeout_s = max(0.001, lookup_timeout_ms / 1000.0)
        # bumped by every write, delete and clear; a save only lands if its
        # generation is still current after the parent lookup
        self._generations: dict[ContextKey, int] = {}
        self._epoch = 0

    def supersede(self, context: ContextKey) -> None:
        """Invalidate any save for ``context`` that is still in flight."""
        self._generations[context] = self._generations.get(context, 0) + 1

    def _generation(self, context: ContextKey) -> tuple[int, int]:
        return self._epoch, self._generations.get(context, 0)

    async def save(
        self,
        content: DraftContent,
        *,
        pending_deletion_at: EpochMs | None = None,
        guard: Callable[[], bool] | None = None,
    ) -> bool:
        """Persist non-empty content as the record for its context.

        ``guard`` is re-checked after the parent-timestamp lookup suspends; a
        False result drops the write.
        """
        if content.is_empty:
            logger.debug(f"Skipping save for {content.context}: draft is empty")
            return False

        context = content.context
        self.supersede(context)
        generation = self._generation(context)
        parent_ts = None
        if context.thread_id:
            parent_ts = await self.lookup_parent_timestamp(context.thread_id)

        if self._generation(context) != generation:
            logger.debug(f"Dropping save for {context}: superseded during lookup")
            return False
        if guard is not None and not guard():
            logger.debug(f"Dropping save for {context}: state changed during lookup")
            return False

        record = DraftRecord(
            rich_content=content.rich_content,
            plain_text=content.plain_text,
            timestamp=content.timestamp,
            thread_id=context.thread_id,
            parent_message_timestamp=parent_ts,
            pending_deletion_at=pending_deletion_at,
        )
        try:
            self._store.set(context, record)
        except DraftStoreError as e:
            logger.warning(f"Failed to save draft for {context}: {e}")
            self._telemetry.incr("store_error", labels=(("op", "set"),))
            return False

        if pending_deletion_at is None:
            self._telemetry.incr("draft_saved")
            logger.info(f"Draft saved for {context}: '{preview(content.plain_text)}'")
        else:
            self._telemetry.incr("draft_pending_deletion")
            logger.info(f"Draft saved for {context} with pending deletion at {pending_deletion_at}")
        self.publish_count()
        return True

    def delete(self, context: ContextKey) -> bool:
        self.supersede(context)
        try:
            removed = self._store.delete(context)
        except DraftStoreError as e:
            logger.warning(f"Failed to delete draft for {context}: {e}")
            self._telemetry.incr("store_error", labels=(("op", "delete"),))
            return False
        if removed:
            self._telemetry.incr("draft_deleted")
            logger.info(f"Draft deleted for {context}")
            self.publish_count()
        return removed

    def get(self, context: ContextKey) -> DraftRecord | None:
        try:
            return self._store.get(context)
        except DraftStoreError as e:
            logger.warning(f"Failed to read draft for {context}: {e}")
            self._telemetry.incr("store_error", labels=(("op", "get"),))
            return None

    def get_all(self) -> dict[ContextKey, DraftRecord]:
        try:
            return self._store.get_all()
        except DraftStoreError as e:
            logger.warning(f"Failed to read drafts: {e}")
            self._telemetry.incr("store_error", labels=(("op", "get_all"),))
            return {}

    def put(self, context: ContextKey, record: DraftRecord) -> bool:
        """Replace a record verbatim."""
        self.supersede(context)
        try:
            self._store.set(context, record)
        except DraftStoreError as e:
            logger.warning(f"Failed to write draft for {context}: {e}")
            self._telemetry.incr("store_error", labels=(("op", "set"),))
            return False
        self.publish_count()
        return True

    def cancel_pending_deletion(self, context: ContextKey) -> bool:
        """Take a record out of its grace period so the sweeper keeps it."""
        record = self.get(context)
        if record is None or not record.is_pending_deletion:
            return False
        if not self.put(context, record.without_pending_deletion()):
            return False
        logger.info(f"Pending deletion cancelled for {context}")
        return True

    def clear(self) -> int:
        self._epoch += 1
        self._generations.clear()
        try:
            removed = self._store.clear()
        except DraftStoreError as e:
            logger.warning(f"Failed to clear drafts: {e}")
            self._telemetry.incr("store_error", labels=(("op", "clear"),))
            return 0
        logger.info(f"All drafts cleared ({removed})")
        self.publish_count()
        return removed

    def count(self) -> int:
        try:
            return self._store.count()
        except DraftStoreError as e:
            logger.warning(f"Failed to count drafts: {e}")
            return 0

    def publish_count(self) -> None:
        count = self.count()
        self._telemetry.gauge("drafts_stored", float(count))
        if self._notify_count is None:
            return
        try:
            self._notify_count(count)
        except Exception as e:
            logger.warning(f"Draft count notifier failed: {e}")

    async def lookup_parent_timestamp(self, thread_id: str) -> EpochMs | None:
        if self._parent_lookup is None:
            return None
        try:
            result = await asyncio.wait_for(
                self._parent_lookup(thread_id), timeout=self._lookup_timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning(f"Parent timestamp lookup timed out for thread {thread_id}")
            return None
        except Exception as e:
            logger.warning(f"Parent timestamp lookup failed for thread {thread_id}: {e}")
            return None
        if result is None:
            logger.debug(f"No parent timestamp found for thread {thread_id}")
            return None
        return int(result)
