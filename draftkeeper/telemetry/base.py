"""Base telemetry port protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TelemetryPort(Protocol):
    """Protocol for telemetry backends.

    - Counters: lifecycle events (saves, deletes, restores, ignored sends)
    - Gauges: point-in-time values (stored draft count)
    """

    def incr(self, name: str, value: int = 1, labels: tuple[tuple[str, str], ...] = ()) -> None:
        """Increase a named counter by ``value`` with optional labels.

        Args:
            name: Metric name (e.g., "draft_saved")
            value: Amount to increment (default 1)
            labels: Optional label tuples (e.g., (("marker", "idle"),))
        """

    def gauge(self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()) -> None:
        """Set a gauge value.

        Args:
            name: Metric name (e.g., "drafts_stored")
            value: Current value
            labels: Optional label tuples
        """


class NoopTelemetry:
    """Telemetry sink that discards everything."""

    def incr(self, name: str, value: int = 1, labels: tuple[tuple[str, str], ...] = ()) -> None:
        return None

    def gauge(self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()) -> None:
        return None
