"""Bounded, ordered history of closed panes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Callable, Iterable

from ..config import SweepSettings
from .data_file import HISTORY_KEY, DataFile, DataFileError
from .mirror import DurableMirror
from .models import ClosedTabEntry

logger = logging.getLogger(__name__)

EMPTY_HISTORY_TEXT = "No closed panes history."


@dataclass(slots=True)
class HistoryGroup:
    day: date
    entries: list[ClosedTabEntry]


def format_history_line(entry: ClosedTabEntry) -> str:
    line = (
        f"- `{entry.timestamp.strftime('%H:%M:%S')}` - **{entry.display_name}** "
        f"(inactive for {entry.inactive_minutes:.1f} minutes)"
    )
    if entry.file_path:
        line += f" - `{entry.file_path}`"
    return line


def group_by_day(entries: Iterable[ClosedTabEntry]) -> list[HistoryGroup]:
    """Group entries by calendar date, newest date first, oldest entry first within a date."""

    grouped: dict[date, list[ClosedTabEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.timestamp.date(), []).append(entry)
    return [
        HistoryGroup(day=day, entries=sorted(grouped[day], key=lambda item: item.timestamp))
        for day in sorted(grouped, reverse=True)
    ]


def render_history(entries: Iterable[ClosedTabEntry]) -> str:
    entries = list(entries)
    if not entries:
        return EMPTY_HISTORY_TEXT

    lines = ["# Closed Panes History", "", f"Total entries: {len(entries)}", "", "---", ""]
    for group in group_by_day(entries):
        lines.append(f"## {group.day.isoformat()}")
        lines.append("")
        lines.extend(format_history_line(entry) for entry in group.entries)
        lines.append("")
    return "\n".join(lines) + "\n"


class HistoryLog:
    """In-memory closed-pane log with optional persistence and Markdown mirror.

    Settings are read through ``settings_provider`` on every call, so a new
    ``max_history_entries`` applies on the next append.
    """

    def __init__(
        self,
        settings_provider: Callable[[], SweepSettings],
        *,
        data_file: DataFile | None = None,
        mirror: DurableMirror | None = None,
        resolve_log_file: Callable[[SweepSettings], Path] | None = None,
    ) -> None:
        self._settings_provider = settings_provider
        self._data_file = data_file
        self._mirror = mirror or DurableMirror()
        self._resolve_log_file = resolve_log_file or (lambda settings: Path(settings.log_file_path))
        self._entries: list[ClosedTabEntry] = []

    def load(self) -> int:
        """Replace the in-memory log with the persisted entries."""

        if self._data_file is None:
            return 0
        records = self._data_file.section(HISTORY_KEY) or []
        if not isinstance(records, list):
            logger.warning("Ignoring malformed history section", extra={"path": str(self._data_file.path)})
            return 0

        entries: list[ClosedTabEntry] = []
        for record in records:
            try:
                entries.append(ClosedTabEntry.from_record(record))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping invalid history record", extra={"record": record, "error": str(exc)})
        self._entries = entries
        self._trim(self._settings_provider().max_history_entries)
        logger.debug("Loaded history entries", extra={"count": len(self._entries)})
        return len(self._entries)

    async def append(self, entry: ClosedTabEntry) -> bool:
        """Record ``entry``; returns ``False`` when history logging is disabled."""

        settings = self._settings_provider()
        if not settings.log_history:
            return False

        self._entries.append(entry)
        self._trim(settings.max_history_entries)
        await self.save()

        if settings.log_to_file:
            await self._mirror.write(self._resolve_log_file(settings), entry)
        return True

    async def save(self) -> None:
        if self._data_file is None:
            return
        self._trim(self._settings_provider().max_history_entries)
        records = [entry.to_record() for entry in self._entries]
        try:
            await asyncio.to_thread(self._data_file.update, **{HISTORY_KEY: records})
        except (OSError, DataFileError):
            logger.exception("Failed to persist history", extra={"path": str(self._data_file.path)})

    def clear(self) -> None:
        self._entries = []

    def entries(self) -> tuple[ClosedTabEntry, ...]:
        """Entries in the order they were appended."""

        return tuple(self._entries)

    def recent(self) -> list[ClosedTabEntry]:
        """Entries most recent first."""

        return list(reversed(self._entries))

    def groups(self) -> list[HistoryGroup]:
        return group_by_day(self._entries)

    def export_text(self) -> str:
        return render_history(self._entries)

    def view(self) -> dict[str, Any]:
        return {
            "total": len(self._entries),
            "groups": [
                {
                    "date": group.day.isoformat(),
                    "entries": [entry.to_record() for entry in group.entries],
                }
                for group in self.groups()
            ],
            "text": self.export_text(),
        }

    def _trim(self, capacity: int) -> None:
        overflow = len(self._entries) - capacity
        if overflow > 0:
            del self._entries[:overflow]

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "EMPTY_HISTORY_TEXT",
    "HistoryGroup",
    "HistoryLog",
    "format_history_line",
    "group_by_day",
    "render_history",
]
