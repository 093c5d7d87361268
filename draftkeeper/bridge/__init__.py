"""Host editor bridge."""

from draftkeeper.bridge.editor import EditorBridge, EditorChannel

__all__ = ["EditorBridge", "EditorChannel"]
