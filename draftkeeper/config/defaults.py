"""Centralized opinionated defaults for generated/migrated config files."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

DEFAULT_DRAFTS: dict[str, Any] = {
    "save_debounce_ms": 500,
    "restore_delay_ms": 300,
    "restore_settle_ms": 150,
    "transition_settle_ms": 200,
    "processing_timeout_ms": 3000,
    "idle_check_interval_ms": 500,
    "idle_threshold_ms": 1000,
    "pending_deletion_grace_ms": 60000,
    "sweep_interval_ms": 10000,
    "just_sent_suppress_ms": 500,
    "send_arm_timeout_ms": 3000,
    "similarity_threshold": 60,
    "editor_timeout_ms": 2000,
    "accidental_deletion_assistance": True,
}

DEFAULT_STORAGE: dict[str, Any] = {
    "db_path": "",
}

DEFAULT_LOGGING: dict[str, Any] = {
    "level": "INFO",
}


def default_drafts() -> dict[str, Any]:
    """Return a copied drafts payload."""
    return dict(DEFAULT_DRAFTS)


def default_storage() -> dict[str, Any]:
    """Return a copied storage payload."""
    return dict(DEFAULT_STORAGE)


def default_logging() -> dict[str, Any]:
    """Return a copied logging payload."""
    return dict(DEFAULT_LOGGING)


def apply_missing_defaults(snake_config: dict[str, Any]) -> None:
    """Inject missing config defaults without overriding existing user values."""
    if not isinstance(snake_config, dict):
        return

    sections = {
        "drafts": default_drafts(),
        "storage": default_storage(),
        "logging": default_logging(),
    }
    for name, seeded in sections.items():
        current = snake_config.setdefault(name, {})
        if not isinstance(current, dict):
            snake_config[name] = deepcopy(seeded)
            continue
        for k, v in seeded.items():
            current.setdefault(k, v)
