"""Decides which panes belong to the main workspace area."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from ..workspace import PaneProtocol, ScopeResolutionError, WorkspaceProtocol

logger = logging.getLogger(__name__)

_MAX_DEPTH = 64


class ScopeFilter:
    """Classify panes by the root their container chain leads to.

    The check walks ``parent`` links instead of looking at the pane kind,
    since sidebars can host any view. When the walk fails the pane is treated
    as unmanaged.
    """

    def __init__(self, workspace: WorkspaceProtocol) -> None:
        self._workspace = workspace

    def resolve_root(self, pane: PaneProtocol):
        node = pane.parent
        if node is None:
            raise ScopeResolutionError(f"Pane {pane.id} is not attached to any container")
        seen: set[int] = set()
        for _ in range(_MAX_DEPTH):
            if id(node) in seen:
                raise ScopeResolutionError(f"Container cycle above pane {pane.id}")
            seen.add(id(node))
            parent = node.parent
            if parent is None:
                return node
            node = parent
        raise ScopeResolutionError(f"Container chain above pane {pane.id} is too deep")

    def is_managed(self, pane: PaneProtocol) -> bool:
        try:
            root = self.resolve_root(pane)
            main_root = self._workspace.main_root
            side_roots = self._workspace.side_roots
        except Exception:
            logger.exception(
                "Could not resolve pane root; leaving pane unmanaged",
                extra={"pane_id": getattr(pane, "id", None)},
            )
            return False

        if any(root is side for side in side_roots):
            return False
        return root is main_root

    def managed(self, panes: Iterable[PaneProtocol] | None = None) -> Iterator[PaneProtocol]:
        """Yield the managed panes in host enumeration order."""

        source = self._workspace.iter_panes() if panes is None else panes
        for pane in source:
            if self.is_managed(pane):
                yield pane

    def focused(self) -> PaneProtocol | None:
        """Return the focused pane when it is managed."""

        try:
            pane = self._workspace.focused_pane()
        except Exception:
            logger.exception("Could not read the focused pane")
            return None
        if pane is not None and self.is_managed(pane):
            return pane
        return None


__all__ = ["ScopeFilter"]
