"""Utility functions for draftkeeper."""

import os
import time
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the draftkeeper data directory.

    Respects DRAFTKEEPER_HOME environment variable; falls back to ~/.draftkeeper.
    """
    home = os.environ.get("DRAFTKEEPER_HOME", "").strip()
    if home:
        return ensure_dir(Path(home))
    return ensure_dir(Path.home() / ".draftkeeper")


def get_operational_data_path() -> Path:
    """Get the long-lived operational data directory (~/.draftkeeper/data)."""
    return ensure_dir(get_data_path() / "data")


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def truncate_string(s: str, max_len: int = 100, suffix: str = "...") -> str:
    """Truncate a string to max length, adding suffix if truncated."""
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix


def preview(text: str, max_len: int = 30) -> str:
    """Single-line preview of draft text for logs and tables."""
    return truncate_string(" ".join((text or "").split()), max_len)
