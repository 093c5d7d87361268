"""Telemetry backends for draftkeeper observability."""

from draftkeeper.telemetry.base import NoopTelemetry, TelemetryPort
from draftkeeper.telemetry.inmemory import InMemoryTelemetry

__all__ = [
    "InMemoryTelemetry",
    "NoopTelemetry",
    "TelemetryPort",
]
