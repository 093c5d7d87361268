"""Process-wide flags shared by the draft lifecycle components."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from draftkeeper.core.models import EpochMs


@dataclass(frozen=True, slots=True, kw_only=True)
class SendDetectorState:
    """Read-only snapshot of the ARM/FIRE flags."""

    armed: bool
    armed_at: EpochMs | None
    just_sent: bool
    just_sent_until: EpochMs | None


class SessionState:
    """Named, timestamped flags whose expiry is evaluated on read.

    ``armed`` and ``just_sent`` expire on their own once the clock passes their
    deadline. ``transitioning`` is owned by whoever holds the current transition
    token; ending a transition with a stale token is ignored.
    """

    def __init__(self, clock: Callable[[], EpochMs]) -> None:
        self._clock = clock
        self._armed_at: EpochMs | None = None
        self._armed_until: EpochMs | None = None
        self._just_sent_until: EpochMs | None = None
        self._transition_token = 0
        self._transitioning = False
        self.restoring = False

    # ── ARM ──────────────────────────────────────────────────────────

    def arm(self, timeout_ms: int) -> None:
        now = self._clock()
        self._armed_at = now
        self._armed_until = now + timeout_ms

    def disarm(self) -> None:
        self._armed_at = None
        self._armed_until = None

    @property
    def armed(self) -> bool:
        if self._armed_until is None:
            return False
        if self._clock() >= self._armed_until:
            self.disarm()
            return False
        return True

    # ── Just sent ────────────────────────────────────────────────────

    def mark_just_sent(self, suppress_ms: int) -> None:
        self._just_sent_until = self._clock() + suppress_ms

    def clear_just_sent(self) -> None:
        self._just_sent_until = None

    @property
    def just_sent(self) -> bool:
        if self._just_sent_until is None:
            return False
        if self._clock() >= self._just_sent_until:
            self._just_sent_until = None
            return False
        return True

    # ── Context transitions ──────────────────────────────────────────

    def begin_transition(self) -> int:
        self._transition_token += 1
        self._transitioning = True
        return self._transition_token

    def end_transition(self, token: int) -> bool:
        if token != self._transition_token:
            return False
        self._transitioning = False
        return True

    @property
    def transitioning(self) -> bool:
        return self._transitioning

    @property
    def capture_suppressed(self) -> bool:
        return self._transitioning or self.restoring or self.just_sent

    def snapshot(self) -> SendDetectorState:
        armed = self.armed
        just_sent = self.just_sent
        return SendDetectorState(
            armed=armed,
            armed_at=self._armed_at,
            just_sent=just_sent,
            just_sent_until=self._just_sent_until,
        )
