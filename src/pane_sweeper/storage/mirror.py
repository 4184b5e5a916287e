"""Append-only Markdown mirror of the closed-pane history."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from .models import ClosedTabEntry

logger = logging.getLogger(__name__)

LOG_HEADER = (
    "# Closed Panes Log\n\n"
    "This file logs panes that were closed automatically after a period of inactivity.\n\n"
    "---\n\n"
)


def format_mirror_line(entry: ClosedTabEntry) -> str:
    stamp = entry.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    line = f"- `{stamp}` - **{entry.display_name}** (inactive for {entry.inactive_minutes:.1f} minutes)"
    if entry.file_path:
        line += f" - `{entry.file_path}`"
    return line + "\n"


class TextSinkProtocol(Protocol):
    """Path-addressed text storage used by the mirror."""

    def exists(self, path: Path) -> bool:
        ...

    def container_exists(self, path: Path) -> bool:
        ...

    def create_container(self, path: Path) -> None:
        ...

    def create(self, path: Path, content: str) -> None:
        ...

    def append(self, path: Path, content: str) -> None:
        ...


class FileTextSink:
    """Local filesystem sink.

    ``create`` raises :class:`FileExistsError` when the target is already
    present. The content is staged in a sibling file and hard-linked into
    place so a concurrent reader never sees a file without its header.
    """

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def container_exists(self, path: Path) -> bool:
        return path.is_dir()

    def create_container(self, path: Path) -> None:
        path.mkdir(parents=True)

    def create(self, path: Path, content: str) -> None:
        staging = path.with_name(f".{path.name}.{uuid4().hex}.tmp")
        staging.write_text(content, encoding="utf-8")
        try:
            os.link(staging, path)
        except FileExistsError:
            raise
        except OSError:
            # no hard links on this filesystem; exclusive create keeps the race signal
            with path.open("x", encoding="utf-8") as handle:
                handle.write(content)
        finally:
            staging.unlink(missing_ok=True)

    def append(self, path: Path, content: str) -> None:
        payload = content.encode("utf-8")
        fd = os.open(path, os.O_WRONLY | os.O_APPEND)
        try:
            while payload:
                written = os.write(fd, payload)
                payload = payload[written:]
        finally:
            os.close(fd)


class DurableMirror:
    """Writes one line per history entry, creating the file with a header."""

    def __init__(self, sink: TextSinkProtocol | None = None) -> None:
        self._sink = sink or FileTextSink()

    async def write(self, path: Path, entry: ClosedTabEntry) -> bool:
        """Mirror ``entry`` to ``path``; failures are logged and reported as ``False``."""

        try:
            await asyncio.to_thread(self.write_line, Path(path), format_mirror_line(entry))
        except Exception:
            logger.exception("Error writing to history log file", extra={"path": str(path)})
            return False
        return True

    def write_line(self, path: Path, line: str) -> None:
        if self._sink.exists(path):
            self._sink.append(path, line)
            return

        self._ensure_container(path.parent)
        try:
            self._sink.create(path, LOG_HEADER + line)
            logger.debug("Created history log file", extra={"path": str(path)})
        except FileExistsError:
            self._sink.append(path, line)

    def _ensure_container(self, folder: Path) -> None:
        if self._sink.container_exists(folder):
            return
        try:
            self._sink.create_container(folder)
            logger.debug("Created history log folder", extra={"path": str(folder)})
        except FileExistsError:
            pass
        except OSError:
            logger.exception("Error creating history log folder", extra={"path": str(folder)})


__all__ = ["DurableMirror", "FileTextSink", "LOG_HEADER", "TextSinkProtocol", "format_mirror_line"]
