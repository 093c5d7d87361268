"""Utility helpers."""

from draftkeeper.utils.helpers import ensure_dir, get_data_path, now_ms, preview

__all__ = ["ensure_dir", "get_data_path", "now_ms", "preview"]
