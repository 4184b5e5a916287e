"""Last-activity bookkeeping keyed by stable pane identifiers."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from ..workspace import PaneProtocol


class ActivityTracker:
    """Map pane ids to the instant the pane was last used.

    Entries are keyed by ``pane.id`` so the tracker never holds the pane
    itself. ``reconcile`` drops ids the host no longer enumerates.
    """

    def __init__(self) -> None:
        self._last_activity: dict[str, datetime] = {}

    def touch(self, pane: PaneProtocol, instant: datetime) -> None:
        self._last_activity[pane.id] = instant

    def seed(self, pane: PaneProtocol, instant: datetime) -> bool:
        """Record ``instant`` only if the pane has no record yet."""

        if pane.id in self._last_activity:
            return False
        self._last_activity[pane.id] = instant
        return True

    def last_activity(self, pane: PaneProtocol) -> datetime | None:
        return self._last_activity.get(pane.id)

    def forget(self, pane: PaneProtocol) -> None:
        self._last_activity.pop(pane.id, None)

    def reconcile(self, live_panes: Iterable[PaneProtocol]) -> int:
        """Discard records for panes that are no longer enumerated."""

        live_ids = {pane.id for pane in live_panes}
        stale = [pane_id for pane_id in self._last_activity if pane_id not in live_ids]
        for pane_id in stale:
            del self._last_activity[pane_id]
        return len(stale)

    def __contains__(self, pane: PaneProtocol) -> bool:
        return pane.id in self._last_activity

    def __len__(self) -> int:
        return len(self._last_activity)


__all__ = ["ActivityTracker"]
