"""Typed core domain primitives."""

from draftkeeper.core.errors import DraftStoreError, EditorBridgeError
from draftkeeper.core.models import (
    ContextKey,
    DraftContent,
    DraftRecord,
    EditorResponse,
    ProcessingEntry,
)

__all__ = [
    "ContextKey",
    "DraftContent",
    "DraftRecord",
    "DraftStoreError",
    "EditorBridgeError",
    "EditorResponse",
    "ProcessingEntry",
]
