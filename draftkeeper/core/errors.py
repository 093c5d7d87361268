"""Error types raised across the draft lifecycle core."""

from __future__ import annotations


class DraftStoreError(RuntimeError):
    """The persistent store rejected a read or write (corruption, quota, I/O)."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class EditorBridgeError(RuntimeError):
    """The host editor answered a request with an explicit error."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
