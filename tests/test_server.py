from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path

from pane_sweeper.config import RuntimeSettings
from pane_sweeper.server import build_sweeper, create_server
from pane_sweeper.storage import ClosedTabEntry, DataFile
from pane_sweeper.workspace import InMemoryWorkspace


def make_settings(tmp_path: Path) -> RuntimeSettings:
    settings = RuntimeSettings()
    settings.data_file = tmp_path / "data.yaml"
    settings.vault_root = tmp_path / "vault"
    return settings


def test_build_sweeper_loads_persisted_state(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    entry = ClosedTabEntry(
        timestamp=datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc),
        display_name="old.md",
        inactive_minutes=30.0,
    )
    DataFile(settings.data_file).update(
        settings={"inactive_timeout_minutes": 45, "log_to_file": True},
        closed_panes_history=[entry.to_record()],
    )

    sweeper = build_sweeper(InMemoryWorkspace(), settings)
    sweeper.history.load()

    assert sweeper.settings.inactive_timeout_minutes == 45
    assert sweeper.history.recent() == [entry]


def test_mirror_lands_under_vault_root(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    DataFile(settings.data_file).update(settings={"log_to_file": True})
    sweeper = build_sweeper(InMemoryWorkspace(), settings)
    entry = ClosedTabEntry(
        timestamp=datetime(2025, 1, 1, 9, 0, 5),
        display_name="old.md",
        inactive_minutes=30.0,
    )

    assert asyncio.run(sweeper.history.append(entry)) is True

    mirror = tmp_path / "vault" / "system" / "closed-panes-history.md"
    text = mirror.read_text(encoding="utf-8")
    assert text.startswith("# Closed Panes Log\n")
    assert text.endswith("- `2025-01-01 09:00:05` - **old.md** (inactive for 30.0 minutes)\n")


def test_create_server_exposes_sweeper_and_status(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    workspace = InMemoryWorkspace()
    workspace.add_pane("note.md")

    server = create_server(workspace, settings)

    assert server.sweeper.settings_store is server.settings_store
    assert server.tool_handles.sweep_now is not None

    payload = json.loads(server.status_resource(None))
    assert payload["running"] is False
    assert payload["history_entries"] == 0
    assert payload["data_file"] == str(settings.data_file)
    assert [pane["display_name"] for pane in payload["status"]["panes"]] == ["note.md"]
    assert payload["request_id"] is None
