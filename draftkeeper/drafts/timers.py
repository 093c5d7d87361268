"""One table for every one-shot timer in the draft lifecycle."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import TypeAlias

from loguru import logger

TimerSlot: TypeAlias = tuple[str, Hashable]
TimerCallback: TypeAlias = Callable[[], Awaitable[None]]

PURPOSE_FLUSH = "flush"
PURPOSE_RESTORE = "restore"
PURPOSE_RESTORE_SETTLE = "restore_settle"
PURPOSE_TRANSITION_END = "transition_end"
PURPOSE_PROCESSING_TIMEOUT = "processing_timeout"


@dataclass(slots=True)
class _Timer:
    token: int
    task: asyncio.Task[None]


class TimerTable:
    """Timers keyed by ``(purpose, key)``.

    Scheduling into an occupied slot cancels the previous timer and issues a new
    token. A timer only runs its callback if its token is still the slot's current
    token when it wakes, so a superseded timer that fires late does nothing.
    """

    def __init__(self) -> None:
        self._slots: dict[TimerSlot, _Timer] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._next_token = 0

    def schedule(
        self, purpose: str, key: Hashable, delay_ms: int, callback: TimerCallback
    ) -> int:
        slot = (purpose, key)
        self.cancel(purpose, key)
        self._next_token += 1
        token = self._next_token
        task = asyncio.create_task(self._run(slot, token, max(0, delay_ms) / 1000.0, callback))
        self._slots[slot] = _Timer(token=token, task=task)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return token

    def cancel(self, purpose: str, key: Hashable) -> bool:
        timer = self._slots.pop((purpose, key), None)
        if timer is None:
            return False
        timer.task.cancel()
        return True

    def is_pending(self, purpose: str, key: Hashable) -> bool:
        return (purpose, key) in self._slots

    def is_current(self, purpose: str, key: Hashable, token: int) -> bool:
        timer = self._slots.get((purpose, key))
        return timer is not None and timer.token == token

    async def cancel_all(self) -> None:
        self._slots.clear()
        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(
        self, slot: TimerSlot, token: int, delay_s: float, callback: TimerCallback
    ) -> None:
        try:
            await asyncio.sleep(delay_s)
        except asyncio.CancelledError:
            return

        timer = self._slots.get(slot)
        if timer is None or timer.token != token:
            return
        del self._slots[slot]

        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Timer {slot[0]}:{slot[1]} failed: {e}")

    def __len__(self) -> int:
        return len(self._slots)
