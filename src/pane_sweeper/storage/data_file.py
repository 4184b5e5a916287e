"""YAML data file backing the settings store and persisted history."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..config import SweepSettings

logger = logging.getLogger(__name__)

SETTINGS_KEY = "settings"
HISTORY_KEY = "closed_panes_history"


class DataFileError(RuntimeError):
    """Raised when the data file exists but cannot be parsed."""


class DataFile:
    """A YAML mapping stored on disk; sections are replaced independently."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            document = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise DataFileError(f"Failed to parse YAML in {self._path}: {exc}") from exc
        if document is None:
            return {}
        if not isinstance(document, dict):
            raise DataFileError(f"Data file {self._path} must contain a mapping")
        return document

    def section(self, key: str, default: Any = None) -> Any:
        return self.load().get(key, default)

    def update(self, **sections: Any) -> None:
        """Replace the given top-level sections, keeping all others."""

        with self._lock:
            document = self.load()
            document.update(sections)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            staging = self._path.with_name(f".{self._path.name}.tmp")
            staging.write_text(
                yaml.safe_dump(document, sort_keys=False, allow_unicode=True),
                encoding="utf-8",
            )
            os.replace(staging, self._path)


@dataclass(slots=True)
class SettingsUpdate:
    accepted: dict[str, Any] = field(default_factory=dict)
    rejected: dict[str, str] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.accepted)


class SettingsStore:
    """Holds the current :class:`SweepSettings` snapshot.

    Invalid values are rejected field by field and the previous valid value
    stays in effect.
    """

    def __init__(
        self,
        data_file: DataFile | None = None,
        *,
        initial: SweepSettings | None = None,
    ) -> None:
        self._data_file = data_file
        self._settings = initial or SweepSettings()

    @classmethod
    def load(cls, data_file: DataFile) -> "SettingsStore":
        store = cls(data_file)
        stored = data_file.section(SETTINGS_KEY) or {}
        if not isinstance(stored, dict):
            logger.warning(
                "Ignoring malformed settings section",
                extra={"path": str(data_file.path)},
            )
            return store
        result = store._apply(stored)
        for name, reason in result.rejected.items():
            logger.warning(
                "Ignoring stored setting",
                extra={"setting": name, "reason": reason, "path": str(data_file.path)},
            )
        return store

    @property
    def settings(self) -> SweepSettings:
        return self._settings

    def update(self, **changes: Any) -> SettingsUpdate:
        result = self._apply(changes)
        for name, reason in result.rejected.items():
            logger.warning(
                "Rejected setting change",
                extra={"setting": name, "value": changes.get(name), "reason": reason},
            )
        if result.changed:
            self.save()
        return result

    def save(self) -> None:
        if self._data_file is None:
            return
        try:
            self._data_file.update(**{SETTINGS_KEY: self._settings.model_dump()})
        except (OSError, DataFileError):
            logger.exception(
                "Failed to persist settings",
                extra={"path": str(self._data_file.path)},
            )

    def _apply(self, changes: dict[str, Any]) -> SettingsUpdate:
        result = SettingsUpdate()
        current = self._settings
        for name, value in changes.items():
            if name not in SweepSettings.model_fields:
                result.rejected[name] = "unknown setting"
                continue
            if isinstance(value, str) and SweepSettings.model_fields[name].annotation is int:
                value = value.strip()
            candidate = {**current.model_dump(), name: value}
            try:
                updated = SweepSettings.model_validate(candidate)
            except ValidationError as exc:
                errors = exc.errors()
                result.rejected[name] = errors[0]["msg"] if errors else str(exc)
                continue
            if getattr(updated, name) != getattr(current, name):
                result.accepted[name] = getattr(updated, name)
            current = updated
        self._settings = current
        return result


__all__ = [
    "DataFile",
    "DataFileError",
    "HISTORY_KEY",
    "SETTINGS_KEY",
    "SettingsStore",
    "SettingsUpdate",
]
