"""Configuration management for Pane Sweeper."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LOG_FILE_PATH = "system/closed-panes-history.md"


class SweepSettings(BaseModel):
    """Snapshot of the user-editable settings consulted by every sweep."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    enabled: bool = Field(default=True, description="Whether inactive panes are closed at all.")
    inactive_timeout_minutes: int = Field(
        default=1440,
        description="Minutes without activity after which a pane becomes evictable.",
    )
    check_interval_seconds: int = Field(
        default=60,
        description="Seconds between scheduled sweeps.",
    )
    log_history: bool = Field(default=True, description="Record closed panes in the history log.")
    log_to_file: bool = Field(
        default=False,
        description="Mirror each history entry to a Markdown file.",
    )
    log_file_path: str = Field(
        default=DEFAULT_LOG_FILE_PATH,
        description="Path of the Markdown mirror, relative to the vault root.",
    )
    max_history_entries: int = Field(
        default=1000,
        description="Upper bound on the number of retained history entries.",
    )

    @field_validator("inactive_timeout_minutes", "check_interval_seconds", "max_history_entries")
    @classmethod
    def _validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be >= 1")
        return value

    @field_validator("log_file_path")
    @classmethod
    def _normalize_log_file_path(cls, value: str) -> str:
        normalized = value.strip().replace("\\", "/")
        return normalized or DEFAULT_LOG_FILE_PATH

    @property
    def inactive_timeout(self) -> timedelta:
        return timedelta(minutes=self.inactive_timeout_minutes)

    @property
    def check_interval(self) -> timedelta:
        return timedelta(seconds=self.check_interval_seconds)


class RuntimeSettings(BaseSettings):
    """Process configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    data_file: Path = Field(
        default=Path("./pane-sweeper.yaml"), validation_alias="PANE_SWEEPER_DATA_FILE"
    )
    vault_root: Path = Field(default=Path("."), validation_alias="PANE_SWEEPER_VAULT_ROOT")
    log_level: str = Field(default="INFO", validation_alias="PANE_SWEEPER_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "PANE_SWEEPER_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    def resolve_log_file(self, settings: SweepSettings) -> Path:
        """Return the absolute location of the Markdown mirror for ``settings``."""

        candidate = Path(settings.log_file_path).expanduser()
        if candidate.is_absolute():
            return candidate
        return self.vault_root / candidate


@lru_cache(maxsize=1)
def get_settings() -> RuntimeSettings:
    """Return cached runtime settings instance."""

    settings = RuntimeSettings()
    settings.data_file = settings.data_file.expanduser().resolve()
    settings.vault_root = settings.vault_root.expanduser().resolve()
    return settings


__all__ = ["DEFAULT_LOG_FILE_PATH", "RuntimeSettings", "SweepSettings", "get_settings"]
