"""Configuration schema using Pydantic."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings

from draftkeeper.config.defaults import DEFAULT_DRAFTS, DEFAULT_LOGGING, DEFAULT_STORAGE


class DraftsConfig(BaseModel):
    """Timing constants and behaviour switches for the draft lifecycle."""

    model_config = ConfigDict(extra="ignore")

    save_debounce_ms: int = Field(default=int(DEFAULT_DRAFTS["save_debounce_ms"]), ge=0)
    restore_delay_ms: int = Field(default=int(DEFAULT_DRAFTS["restore_delay_ms"]), ge=0)
    restore_settle_ms: int = Field(default=int(DEFAULT_DRAFTS["restore_settle_ms"]), ge=0)
    transition_settle_ms: int = Field(default=int(DEFAULT_DRAFTS["transition_settle_ms"]), ge=0)
    processing_timeout_ms: int = Field(default=int(DEFAULT_DRAFTS["processing_timeout_ms"]), ge=1)
    idle_check_interval_ms: int = Field(default=int(DEFAULT_DRAFTS["idle_check_interval_ms"]), ge=1)
    idle_threshold_ms: int = Field(default=int(DEFAULT_DRAFTS["idle_threshold_ms"]), ge=0)
    pending_deletion_grace_ms: int = Field(
        default=int(DEFAULT_DRAFTS["pending_deletion_grace_ms"]), ge=0
    )
    sweep_interval_ms: int = Field(default=int(DEFAULT_DRAFTS["sweep_interval_ms"]), ge=1)
    just_sent_suppress_ms: int = Field(default=int(DEFAULT_DRAFTS["just_sent_suppress_ms"]), ge=0)
    send_arm_timeout_ms: int = Field(default=int(DEFAULT_DRAFTS["send_arm_timeout_ms"]), ge=0)
    similarity_threshold: int = Field(
        default=int(DEFAULT_DRAFTS["similarity_threshold"]), ge=0, le=100
    )
    editor_timeout_ms: int = Field(default=int(DEFAULT_DRAFTS["editor_timeout_ms"]), ge=1)
    accidental_deletion_assistance: bool = bool(DEFAULT_DRAFTS["accidental_deletion_assistance"])

    @model_validator(mode="after")
    def _validate_windows(self) -> "DraftsConfig":
        if self.idle_check_interval_ms > self.processing_timeout_ms:
            raise ValueError("drafts.idleCheckIntervalMs must not exceed drafts.processingTimeoutMs")
        return self


class StorageConfig(BaseModel):
    """Durable draft store settings."""

    model_config = ConfigDict(extra="ignore")

    db_path: str = str(DEFAULT_STORAGE["db_path"])

    @property
    def resolved_db_path(self) -> Path:
        """Configured path, or drafts.db under the operational data dir when unset."""
        if self.db_path.strip():
            return Path(self.db_path).expanduser()
        from draftkeeper.utils.helpers import get_operational_data_path

        return get_operational_data_path() / "drafts.db"


class LoggingConfig(BaseModel):
    """Log sink settings."""

    model_config = ConfigDict(extra="ignore")

    level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = str(DEFAULT_LOGGING["level"])


class Config(BaseSettings):
    """Root configuration for draftkeeper."""
    model_config = ConfigDict(
        extra="ignore", populate_by_name=True, env_prefix="DRAFTKEEPER_", env_nested_delimiter="__"
    )

    config_version: int = 1
    drafts: DraftsConfig = Field(default_factory=DraftsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
