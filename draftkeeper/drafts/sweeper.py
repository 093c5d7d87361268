"""Periodic removal of drafts whose pending-deletion grace period has expired."""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from draftkeeper.core.models import ContextKey, EpochMs
from draftkeeper.drafts.persistence import DraftPersistence
from draftkeeper.telemetry.base import NoopTelemetry, TelemetryPort
from draftkeeper.utils.helpers import preview


class PendingDeletionSweeper:
    def __init__(
        self,
        persistence: DraftPersistence,
        *,
        clock: Callable[[], EpochMs],
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self._persistence = persistence
        self._clock = clock
        self._telemetry = telemetry or NoopTelemetry()

    def sweep(self) -> list[ContextKey]:
        """Delete expired records once. Returns the contexts removed."""
        now = self._clock()
        removed: list[ContextKey] = []
        for context, record in self._persistence.get_all().items():
            if record.pending_deletion_at is None or record.pending_deletion_at > now:
                continue
            logger.debug(f"Deleting expired draft {context}: '{preview(record.plain_text)}'")
            if self._persistence.delete(context):
                removed.append(context)

        if removed:
            self._telemetry.incr("draft_swept", len(removed))
            logger.info(f"Swept {len(removed)} expired draft(s)")
        return removed
