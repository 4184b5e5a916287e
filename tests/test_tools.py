from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pane_sweeper.config import SweepSettings
from pane_sweeper.storage import ClosedTabEntry, DataFile, HistoryLog, SettingsStore
from pane_sweeper.sweeper import PaneSweeper
from pane_sweeper.tools import register_tools
from pane_sweeper.workspace import InMemoryWorkspace

START = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


class StubTool:
    def __init__(self, fn, name):
        self.fn = fn
        self.name = name


class StubServer:
    def __init__(self) -> None:
        self._tools: dict[str, StubTool] = {}

    def tool(self, *args, **kwargs):
        provided_name = None
        if args and isinstance(args[0], str):
            provided_name = args[0]
        provided_name = kwargs.get("name", provided_name)

        def decorator(fn):
            tool_name = provided_name or fn.__name__
            tool = StubTool(fn, tool_name)
            self._tools[tool_name] = tool
            return tool

        return decorator


class StubLogger:
    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict]] = []

    def info(self, message, extra=None):
        self.records.append(("info", message, extra or {}))

    def warning(self, message, extra=None):
        self.records.append(("warning", message, extra or {}))

    def debug(self, message, extra=None):
        self.records.append(("debug", message, extra or {}))


class StubContext:
    def __init__(self) -> None:
        self.logger = StubLogger()


class FakeClock:
    def __init__(self) -> None:
        self.now = START

    def __call__(self) -> datetime:
        return self.now


def build(tmp_path: Path | None = None, **settings):
    workspace = InMemoryWorkspace()
    clock = FakeClock()
    data_file = DataFile(tmp_path / "data.yaml") if tmp_path is not None else None
    store = SettingsStore(data_file, initial=SweepSettings(**settings))
    history = HistoryLog(lambda: store.settings, data_file=data_file)
    sweeper = PaneSweeper(workspace, store, history=history, clock=clock)
    server = StubServer()
    handles = register_tools(server, sweeper=sweeper, settings_store=store)
    return server, handles, sweeper, workspace, clock


def test_registers_all_commands() -> None:
    server, *_ = build()

    assert set(server._tools) == {
        "sweep_now",
        "pane_status",
        "view_history",
        "clear_history",
        "export_history",
        "update_settings",
    }


def test_sweep_now_reports_summary() -> None:
    _, handles, sweeper, workspace, clock = build(inactive_timeout_minutes=1)
    idle = workspace.add_pane("idle.md", file_path="notes/idle.md")
    sweeper.tracker.touch(idle, START)
    clock.now = START + timedelta(minutes=3)
    context = StubContext()

    payload = asyncio.run(handles.sweep_now.fn(context=context))

    assert payload["summary"] == "Closed 1 inactive pane(s): idle.md"
    assert payload["closed"][0]["file_path"] == "notes/idle.md"
    assert context.logger.records[-1][1] == "Manual sweep finished"


def test_sweep_now_with_nothing_to_close() -> None:
    _, handles, *_ = build()

    payload = asyncio.run(handles.sweep_now.fn())

    assert payload["summary"] == "No inactive panes to close"
    assert payload["closed"] == []


def test_pane_status_includes_rendered_text() -> None:
    _, handles, sweeper, workspace, _ = build()
    pane = workspace.add_pane("note.md", pinned=True)
    sweeper.tracker.touch(pane, START)

    payload = handles.pane_status.fn()

    assert payload["panes"][0]["pinned"] is True
    assert "[PINNED]" in payload["text"]


def test_clear_history_requires_confirmation(tmp_path: Path) -> None:
    _, handles, sweeper, *_ = build(tmp_path)
    entry = ClosedTabEntry(timestamp=START, display_name="old.md", inactive_minutes=5.0)
    asyncio.run(sweeper.history.append(entry))

    prompt = asyncio.run(handles.clear_history.fn())
    assert prompt["cleared"] is False
    assert len(sweeper.history) == 1

    done = asyncio.run(handles.clear_history.fn(confirm=True))
    assert done == {"cleared": True, "removed": 1, "message": "History cleared"}
    assert len(sweeper.history) == 0
    assert DataFile(tmp_path / "data.yaml").section("closed_panes_history") == []


def test_view_history_most_recent_first() -> None:
    _, handles, sweeper, *_ = build()
    for minute in (1, 2):
        entry = ClosedTabEntry(
            timestamp=START + timedelta(minutes=minute),
            display_name=f"pane-{minute}.md",
            inactive_minutes=1.0,
        )
        asyncio.run(sweeper.history.append(entry))

    payload = handles.view_history.fn()

    assert [item["display_name"] for item in payload["recent"]] == ["pane-2.md", "pane-1.md"]
    assert payload["total"] == 2


def test_export_history_dumps_to_diagnostics_logger(caplog) -> None:
    caplog.set_level("INFO", logger="pane_sweeper.diagnostics")
    _, handles, sweeper, *_ = build()
    entry = ClosedTabEntry(timestamp=START, display_name="old.md", inactive_minutes=5.0)
    asyncio.run(sweeper.history.append(entry))

    payload = handles.export_history.fn()

    assert "**old.md** (inactive for 5.0 minutes)" in payload["text"]
    assert any(record.getMessage() == payload["text"] for record in caplog.records)


def test_update_settings_rejects_invalid_values(tmp_path: Path) -> None:
    _, handles, sweeper, *_ = build(tmp_path)

    payload = asyncio.run(
        handles.update_settings.fn(inactive_timeout_minutes="abc", check_interval_seconds="30")
    )

    assert payload["accepted"] == {"check_interval_seconds": 30}
    assert "inactive_timeout_minutes" in payload["rejected"]
    assert sweeper.settings.inactive_timeout_minutes == 1440
    assert sweeper.settings.check_interval_seconds == 30
    assert DataFile(tmp_path / "data.yaml").section("settings")["check_interval_seconds"] == 30
