"""Contracts for the host workspace that owns the panes."""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Protocol, Sequence


class WorkspaceError(RuntimeError):
    """Base class for failures reported by the host workspace."""


class ScopeResolutionError(WorkspaceError):
    """Raised when the structural root of a pane cannot be determined."""


class PaneGoneError(WorkspaceError):
    """Raised when a pane handle no longer refers to a live pane."""


class ContainerProtocol(Protocol):
    """A split, tab group or sidebar that can hold panes or other containers."""

    parent: Optional["ContainerProtocol"]


class PaneProtocol(Protocol):
    """The subset of pane state read by the sweeper."""

    id: str
    pinned: bool
    display_name: str
    file_path: str | None
    kind: str
    parent: ContainerProtocol | None


class SubscriptionProtocol(Protocol):
    """Handle returned by event registration; releasing it stops delivery."""

    def release(self) -> None:
        ...


FocusCallback = Callable[[Optional[PaneProtocol]], None]
ContentCallback = Callable[[Optional[PaneProtocol], Optional[str]], None]


class WorkspaceProtocol(Protocol):
    """Host operations the sweeper depends on."""

    main_root: ContainerProtocol
    side_roots: Sequence[ContainerProtocol]

    def iter_panes(self) -> Iterable[PaneProtocol]:
        ...

    def focused_pane(self) -> PaneProtocol | None:
        ...

    async def close_pane(self, pane: PaneProtocol) -> None:
        ...

    def on_focus_changed(self, callback: FocusCallback) -> SubscriptionProtocol:
        ...

    def on_content_opened(self, callback: ContentCallback) -> SubscriptionProtocol:
        ...


def describe_pane(pane: PaneProtocol) -> str:
    """Return the label used for a pane in logs, history and summaries."""

    if pane.file_path:
        return pane.file_path.rsplit("/", 1)[-1]
    return pane.display_name or pane.kind or "unknown"


__all__ = [
    "ContainerProtocol",
    "ContentCallback",
    "FocusCallback",
    "PaneGoneError",
    "PaneProtocol",
    "ScopeResolutionError",
    "SubscriptionProtocol",
    "WorkspaceError",
    "WorkspaceProtocol",
    "describe_pane",
]
