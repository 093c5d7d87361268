"""In-process telemetry sink used by tests and the CLI."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TypeAlias

Labels: TypeAlias = tuple[tuple[str, str], ...]


def metric_key(name: str, labels: Labels = ()) -> str:
    """``draft_saved`` or ``processing_finalized{marker=idle,outcome=deleted}``."""
    if not labels:
        return name
    return name + "{" + ",".join(f"{k}={v}" for k, v in labels) + "}"


@dataclass
class InMemoryTelemetry:
    counters: Counter[str] = field(default_factory=Counter)
    gauges: dict[str, float] = field(default_factory=dict)

    def incr(self, name: str, value: int = 1, labels: Labels = ()) -> None:
        self.counters[metric_key(name, labels)] += value

    def gauge(self, name: str, value: float, labels: Labels = ()) -> None:
        self.gauges[metric_key(name, labels)] = value

    def get_counter(self, name: str, labels: Labels = ()) -> int:
        return self.counters[metric_key(name, labels)]

    def get_gauge(self, name: str, labels: Labels = ()) -> float | None:
        return self.gauges.get(metric_key(name, labels))
