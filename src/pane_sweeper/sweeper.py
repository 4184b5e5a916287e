"""Sweep engine and the manager that schedules it."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Protocol

from .config import SweepSettings
from .storage import ClosedTabEntry, HistoryLog, SettingsStore
from .tracking import ActivityTracker, ScopeFilter
from .workspace import (
    PaneGoneError,
    PaneProtocol,
    SubscriptionProtocol,
    WorkspaceProtocol,
    describe_pane,
)

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _split_duration(duration: timedelta) -> tuple[int, int]:
    total = max(int(duration.total_seconds()), 0)
    return total // 60, total % 60


class Classification(str, Enum):
    PROTECTED = "protected"
    ACTIVE = "active"
    UNTRACKED = "untracked"
    EVICTABLE = "evictable"


@dataclass(slots=True)
class PaneDecision:
    pane: PaneProtocol
    classification: Classification
    reason: str
    last_activity: datetime | None = None
    inactive_for: timedelta = timedelta(0)


@dataclass(slots=True)
class SweepResult:
    started_at: datetime
    skipped: bool = False
    evaluated: int = 0
    counts: dict[str, int] = field(default_factory=dict)
    closed: list[ClosedTabEntry] = field(default_factory=list)
    failed: list[ClosedTabEntry] = field(default_factory=list)

    def summary(self) -> str:
        if self.skipped:
            return "Pane sweeping is disabled"
        if not self.closed:
            return "No inactive panes to close"
        names = ", ".join(entry.display_name for entry in self.closed)
        return f"Closed {len(self.closed)} inactive pane(s): {names}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "skipped": self.skipped,
            "evaluated": self.evaluated,
            "counts": dict(self.counts),
            "closed": [entry.to_record() for entry in self.closed],
            "failed": [entry.to_record() for entry in self.failed],
            "summary": self.summary(),
        }


class SweepEngine:
    """Classify managed panes and close the ones past the inactivity timeout."""

    def __init__(
        self,
        workspace: WorkspaceProtocol,
        *,
        scope: ScopeFilter,
        tracker: ActivityTracker,
        history: HistoryLog,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._workspace = workspace
        self._scope = scope
        self._tracker = tracker
        self._history = history
        self._clock = clock

    def classify(
        self,
        pane: PaneProtocol,
        *,
        focused: PaneProtocol | None,
        now: datetime,
        timeout: timedelta,
    ) -> PaneDecision:
        """Apply the precedence pinned, focused, untracked, active, evictable."""

        if pane.pinned:
            return PaneDecision(pane, Classification.PROTECTED, "pinned")
        if focused is not None and pane.id == focused.id:
            return PaneDecision(pane, Classification.PROTECTED, "focused")

        last_activity = self._tracker.last_activity(pane)
        if last_activity is None:
            return PaneDecision(pane, Classification.UNTRACKED, "no activity record")

        inactive_for = now - last_activity
        if inactive_for < timeout:
            return PaneDecision(pane, Classification.ACTIVE, "recent", last_activity, inactive_for)
        return PaneDecision(pane, Classification.EVICTABLE, "inactive", last_activity, inactive_for)

    def evaluate(
        self,
        settings: SweepSettings,
        *,
        now: datetime | None = None,
        panes: list[PaneProtocol] | None = None,
    ) -> list[PaneDecision]:
        """Classify every managed pane without side effects.

        ``panes`` must already be filtered to managed panes when given.
        """

        now = now or self._clock()
        focused = self._scope.focused()
        decisions: list[PaneDecision] = []
        for pane in self._scope.managed() if panes is None else panes:
            try:
                decisions.append(
                    self.classify(pane, focused=focused, now=now, timeout=settings.inactive_timeout)
                )
            except Exception:
                logger.exception(
                    "Could not classify pane; skipping it this sweep",
                    extra={"pane_id": getattr(pane, "id", None)},
                )
        return decisions

    async def sweep(self, settings: SweepSettings) -> SweepResult:
        now = self._clock()
        result = SweepResult(started_at=now)
        if not settings.enabled:
            result.skipped = True
            return result

        managed = list(self._scope.managed())
        decisions = self.evaluate(settings, now=now, panes=managed)
        self._tracker.reconcile(managed)
        result.evaluated = len(decisions)

        evictable: list[PaneDecision] = []
        for decision in decisions:
            kind = decision.classification
            result.counts[kind.value] = result.counts.get(kind.value, 0) + 1
            if kind is Classification.UNTRACKED:
                self._tracker.touch(decision.pane, now)
            elif kind is Classification.EVICTABLE:
                evictable.append(decision)
            logger.debug(
                "Classified pane",
                extra={
                    "pane": describe_pane(decision.pane),
                    "classification": kind.value,
                    "reason": decision.reason,
                    "inactive_seconds": int(decision.inactive_for.total_seconds()),
                },
            )

        logger.debug(
            "Sweep summary",
            extra={"evaluated": result.evaluated, "counts": dict(result.counts)},
        )

        for decision in evictable:
            entry = self._build_entry(decision)
            if entry is None:
                continue
            minutes, _ = _split_duration(decision.inactive_for)
            logger.info(
                "Closing inactive pane",
                extra={"pane": entry.display_name, "inactive_minutes": minutes},
            )
            await self._history.append(entry)
            if await self._close(decision.pane, entry):
                result.closed.append(entry)
            else:
                result.failed.append(entry)

        if result.closed:
            logger.info("Closed inactive panes", extra={"count": len(result.closed)})
        return result

    def _build_entry(self, decision: PaneDecision) -> ClosedTabEntry | None:
        pane = decision.pane
        try:
            return ClosedTabEntry(
                timestamp=self._clock(),
                display_name=describe_pane(pane),
                inactive_minutes=decision.inactive_for.total_seconds() / 60,
                file_path=pane.file_path,
            )
        except Exception:
            logger.exception(
                "Could not read pane state; skipping eviction",
                extra={"pane_id": getattr(pane, "id", None)},
            )
            return None

    async def _close(self, pane: PaneProtocol, entry: ClosedTabEntry) -> bool:
        try:
            await self._workspace.close_pane(pane)
        except PaneGoneError:
            logger.debug("Pane already closed", extra={"pane": entry.display_name})
        except Exception:
            logger.exception("Failed to close pane", extra={"pane": entry.display_name})
            return False
        self._tracker.forget(pane)
        return True


@dataclass(slots=True)
class PaneStatus:
    display_name: str
    file_path: str | None
    is_active: bool
    is_pinned: bool
    tracked: bool
    last_activity: datetime | None
    inactive_for: timedelta
    will_close: bool

    def flags(self) -> list[str]:
        flags = []
        if self.is_active:
            flags.append("ACTIVE")
        if self.is_pinned:
            flags.append("PINNED")
        if self.will_close:
            flags.append("WILL_CLOSE")
        return flags


@dataclass(slots=True)
class StatusReport:
    generated_at: datetime
    settings: SweepSettings
    panes: list[PaneStatus]

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "settings": {
                "enabled": self.settings.enabled,
                "inactive_timeout_minutes": self.settings.inactive_timeout_minutes,
                "check_interval_seconds": self.settings.check_interval_seconds,
            },
            "panes": [
                {
                    "display_name": status.display_name,
                    "file_path": status.file_path,
                    "active": status.is_active,
                    "pinned": status.is_pinned,
                    "tracked": status.tracked,
                    "last_activity": status.last_activity.isoformat() if status.last_activity else None,
                    "inactive_seconds": int(status.inactive_for.total_seconds()),
                    "will_close": status.will_close,
                }
                for status in self.panes
            ],
        }

    def render(self) -> str:
        settings = self.settings
        lines = [
            "=== Pane Status ===",
            (
                f"Settings: enabled={settings.enabled}, timeout={settings.inactive_timeout_minutes} min, "
                f"check interval={settings.check_interval_seconds} s"
            ),
            f"Current time: {self.generated_at.strftime('%H:%M:%S')}",
            f"Total panes: {len(self.panes)}",
        ]
        for status in self.panes:
            minutes, seconds = _split_duration(status.inactive_for)
            last = status.last_activity.strftime("%H:%M:%S") if status.last_activity else "untracked"
            line = f"  - {status.display_name}: inactive {minutes}m {seconds}s (last: {last})"
            flags = status.flags()
            if flags:
                line += f" [{', '.join(flags)}]"
            lines.append(line)
        lines.append("=== End Status ===")
        return "\n".join(lines)


class NotifierProtocol(Protocol):
    def notify(self, message: str) -> None:
        ...


class LogNotifier:
    """Surfaces user-facing messages through a dedicated logger."""

    def __init__(self, logger_name: str = "pane_sweeper.notifications") -> None:
        self._logger = logging.getLogger(logger_name)

    def notify(self, message: str) -> None:
        self._logger.info(message)


class PaneSweeper:
    """Owns the tracker, the event subscriptions and the periodic ticker."""

    def __init__(
        self,
        workspace: WorkspaceProtocol,
        settings_store: SettingsStore,
        *,
        history: HistoryLog | None = None,
        tracker: ActivityTracker | None = None,
        notifier: NotifierProtocol | None = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._workspace = workspace
        self._settings_store = settings_store
        self._clock = clock
        self._scope = ScopeFilter(workspace)
        self._tracker = tracker if tracker is not None else ActivityTracker()
        self._history = (
            history if history is not None else HistoryLog(lambda: settings_store.settings)
        )
        self._notifier = notifier or LogNotifier()
        self._engine = SweepEngine(
            workspace,
            scope=self._scope,
            tracker=self._tracker,
            history=self._history,
            clock=clock,
        )
        self._sweep_lock = asyncio.Lock()
        self._lifecycle_lock = asyncio.Lock()
        self._subscriptions: list[SubscriptionProtocol] = []
        self._ticker: asyncio.Task[None] | None = None
        self._ticker_stop: asyncio.Event | None = None
        self._started = False

    @property
    def settings(self) -> SweepSettings:
        return self._settings_store.settings

    @property
    def settings_store(self) -> SettingsStore:
        return self._settings_store

    @property
    def history(self) -> HistoryLog:
        return self._history

    @property
    def tracker(self) -> ActivityTracker:
        return self._tracker

    @property
    def scope(self) -> ScopeFilter:
        return self._scope

    @property
    def running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    async def start(self) -> None:
        async with self._lifecycle_lock:
            if self._started:
                return
            self._history.load()
            self._started = True

            now = self._clock()
            seeded = sum(1 for pane in self._scope.managed() if self._tracker.seed(pane, now))
            logger.debug("Initialized pane tracking", extra={"count": seeded})

            self._subscriptions = [
                self._workspace.on_focus_changed(self._on_focus_changed),
                self._workspace.on_content_opened(self._on_content_opened),
            ]
            self._start_ticker()

    async def stop(self) -> None:
        async with self._lifecycle_lock:
            self._started = False
            await self._stop_ticker()
            for subscription in self._subscriptions:
                try:
                    subscription.release()
                except Exception:
                    logger.exception("Failed to release workspace subscription")
            self._subscriptions = []

    async def update_settings(self) -> None:
        """Restart the schedule so the current settings take effect."""

        async with self._lifecycle_lock:
            logger.debug("Settings changed; restarting sweep schedule")
            await self._stop_ticker()
            if self._started:
                self._start_ticker()

    async def sweep(self) -> SweepResult:
        async with self._sweep_lock:
            return await self._engine.sweep(self.settings)

    async def manual_sweep(self) -> SweepResult:
        """Sweep now and surface a summary to the user."""

        logger.debug("Manual sweep triggered")
        result = await self.sweep()
        self._notifier.notify(result.summary())
        return result

    def status(self) -> StatusReport:
        settings = self.settings
        now = self._clock()
        focused = self._scope.focused()
        panes: list[PaneStatus] = []
        for decision in self._engine.evaluate(settings, now=now):
            pane = decision.pane
            panes.append(
                PaneStatus(
                    display_name=describe_pane(pane),
                    file_path=pane.file_path,
                    is_active=focused is not None and pane.id == focused.id,
                    is_pinned=bool(pane.pinned),
                    tracked=pane in self._tracker,
                    last_activity=self._tracker.last_activity(pane),
                    inactive_for=self._inactive_for(pane, now),
                    will_close=decision.classification is Classification.EVICTABLE,
                )
            )
        return StatusReport(generated_at=now, settings=settings, panes=panes)

    def _inactive_for(self, pane: PaneProtocol, now: datetime) -> timedelta:
        last_activity = self._tracker.last_activity(pane)
        return now - last_activity if last_activity is not None else timedelta(0)

    def _on_focus_changed(self, pane: PaneProtocol | None) -> None:
        if pane is None or not self._scope.is_managed(pane):
            return
        self._tracker.touch(pane, self._clock())
        logger.debug(
            "Focused pane changed",
            extra={"pane": describe_pane(pane), "pinned": bool(pane.pinned)},
        )

    def _on_content_opened(self, pane: PaneProtocol | None, path: str | None) -> None:
        target = pane if pane is not None else self._scope.focused()
        if target is None or not self._scope.is_managed(target):
            return
        self._tracker.touch(target, self._clock())
        logger.debug("Content opened in pane", extra={"pane": describe_pane(target), "path": path})

    def _start_ticker(self) -> None:
        settings = self.settings
        if not settings.enabled:
            logger.debug("Sweeping is disabled; periodic sweep not started")
            return
        self._ticker_stop = asyncio.Event()
        self._ticker = asyncio.create_task(
            self._run_ticker(settings.check_interval.total_seconds(), self._ticker_stop)
        )
        logger.debug(
            "Started periodic sweep",
            extra={
                "interval_seconds": settings.check_interval_seconds,
                "timeout_minutes": settings.inactive_timeout_minutes,
            },
        )

    async def _stop_ticker(self) -> None:
        ticker, stop_event = self._ticker, self._ticker_stop
        self._ticker = None
        self._ticker_stop = None
        if ticker is None or stop_event is None:
            return
        stop_event.set()
        await ticker

    async def _run_ticker(self, interval: float, stop_event: asyncio.Event) -> None:
        while True:
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
                return
            except asyncio.TimeoutError:
                pass
            try:
                await self.sweep()
            except Exception:
                logger.exception("Error in periodic sweep")


__all__ = [
    "Classification",
    "LogNotifier",
    "NotifierProtocol",
    "PaneDecision",
    "PaneStatus",
    "PaneSweeper",
    "StatusReport",
    "SweepEngine",
    "SweepResult",
]
