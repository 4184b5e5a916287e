"""In-memory workspace for embedding hosts and for tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal
from uuid import uuid4

from .host import (
    ContentCallback,
    FocusCallback,
    PaneGoneError,
    WorkspaceError,
)


@dataclass(eq=False)
class Container:
    name: str
    parent: "Container | None" = None


@dataclass(eq=False)
class MemoryPane:
    display_name: str
    kind: str = "markdown"
    file_path: str | None = None
    pinned: bool = False
    parent: Container | None = None
    id: str = field(default_factory=lambda: uuid4().hex)


class _Subscription:
    def __init__(self, listeners: list, callback) -> None:
        self._listeners = listeners
        self._callback = callback

    def release(self) -> None:
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


class InMemoryWorkspace:
    """Workspace with one main split and left/right sidebars."""

    def __init__(self) -> None:
        self.main_root = Container("main")
        self.left_sidebar = Container("left-sidebar")
        self.right_sidebar = Container("right-sidebar")
        self.side_roots = (self.left_sidebar, self.right_sidebar)
        self._tab_group = Container("tabs", parent=self.main_root)
        self._panes: list[MemoryPane] = []
        self._focused: MemoryPane | None = None
        self._focus_listeners: list[FocusCallback] = []
        self._content_listeners: list[ContentCallback] = []
        self.closed: list[MemoryPane] = []
        self.close_failures: set[str] = set()

    def add_pane(
        self,
        display_name: str,
        *,
        area: Literal["main", "left", "right"] = "main",
        kind: str = "markdown",
        file_path: str | None = None,
        pinned: bool = False,
    ) -> MemoryPane:
        roots = {"main": self._tab_group, "left": self.left_sidebar, "right": self.right_sidebar}
        parent = Container(f"{area}-leaf", parent=roots[area])
        pane = MemoryPane(
            display_name=display_name,
            kind=kind,
            file_path=file_path,
            pinned=pinned,
            parent=parent,
        )
        self._panes.append(pane)
        return pane

    def iter_panes(self) -> Iterable[MemoryPane]:
        return list(self._panes)

    def focused_pane(self) -> MemoryPane | None:
        return self._focused

    def focus(self, pane: MemoryPane | None) -> None:
        self._focused = pane
        for callback in list(self._focus_listeners):
            callback(pane)

    def open_file(self, pane: MemoryPane, path: str) -> None:
        pane.file_path = path
        pane.display_name = path.rsplit("/", 1)[-1]
        self._focused = pane
        for callback in list(self._content_listeners):
            callback(pane, path)

    def remove(self, pane: MemoryPane) -> None:
        """Drop a pane as if the user closed it."""

        if pane in self._panes:
            self._panes.remove(pane)
        if self._focused is pane:
            self._focused = None

    async def close_pane(self, pane: MemoryPane) -> None:
        if pane not in self._panes:
            raise PaneGoneError(f"Pane {pane.id} is no longer open")
        if pane.id in self.close_failures:
            raise WorkspaceError(f"Host refused to close pane {pane.id}")
        self.remove(pane)
        self.closed.append(pane)

    def on_focus_changed(self, callback: FocusCallback) -> _Subscription:
        self._focus_listeners.append(callback)
        return _Subscription(self._focus_listeners, callback)

    def on_content_opened(self, callback: ContentCallback) -> _Subscription:
        self._content_listeners.append(callback)
        return _Subscription(self._content_listeners, callback)

    @property
    def listener_count(self) -> int:
        return len(self._focus_listeners) + len(self._content_listeners)


__all__ = ["Container", "InMemoryWorkspace", "MemoryPane"]
