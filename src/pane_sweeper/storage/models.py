"""Data models for closed-pane history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class ClosedTabEntry:
    timestamp: datetime
    display_name: str
    inactive_minutes: float
    file_path: str | None = None

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "display_name": self.display_name,
            "inactive_minutes": round(self.inactive_minutes, 4),
        }
        if self.file_path:
            record["file_path"] = self.file_path
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ClosedTabEntry":
        timestamp_raw = record["timestamp"]
        timestamp = (
            timestamp_raw
            if isinstance(timestamp_raw, datetime)
            else datetime.fromisoformat(str(timestamp_raw))
        )
        return cls(
            timestamp=timestamp,
            display_name=str(record["display_name"]),
            inactive_minutes=float(record["inactive_minutes"]),
            file_path=record.get("file_path") or None,
        )


__all__ = ["ClosedTabEntry"]
