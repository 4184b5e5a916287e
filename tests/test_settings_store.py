from __future__ import annotations

from pathlib import Path

import pytest

from pane_sweeper.config import SweepSettings
from pane_sweeper.storage import DataFile, DataFileError, SettingsStore


def test_invalid_values_keep_previous_setting(caplog) -> None:
    caplog.set_level("WARNING", logger="pane_sweeper.storage.data_file")
    store = SettingsStore(initial=SweepSettings(inactive_timeout_minutes=30))

    outcome = store.update(inactive_timeout_minutes="soon", check_interval_seconds=0)

    assert store.settings.inactive_timeout_minutes == 30
    assert store.settings.check_interval_seconds == 60
    assert set(outcome.rejected) == {"inactive_timeout_minutes", "check_interval_seconds"}
    assert not outcome.changed
    assert any("Rejected setting change" in record.getMessage() for record in caplog.records)


def test_valid_fields_apply_even_when_others_are_rejected() -> None:
    store = SettingsStore()

    outcome = store.update(inactive_timeout_minutes=" 15 ", max_history_entries=-3, volume=11)

    assert store.settings.inactive_timeout_minutes == 15
    assert store.settings.max_history_entries == 1000
    assert outcome.accepted == {"inactive_timeout_minutes": 15}
    assert outcome.rejected["volume"] == "unknown setting"
    assert "max_history_entries" in outcome.rejected


def test_unchanged_values_are_not_reported() -> None:
    store = SettingsStore()

    outcome = store.update(enabled=True, check_interval_seconds=60)

    assert outcome.accepted == {}
    assert not outcome.changed


def test_settings_round_trip_through_data_file(tmp_path: Path) -> None:
    data_file = DataFile(tmp_path / "data.yaml")
    data_file.update(closed_panes_history=[])
    store = SettingsStore.load(data_file)

    store.update(enabled=False, check_interval_seconds="120", log_file_path="logs/closed.md")

    reloaded = SettingsStore.load(data_file)
    assert reloaded.settings.enabled is False
    assert reloaded.settings.check_interval_seconds == 120
    assert reloaded.settings.log_file_path == "logs/closed.md"
    assert data_file.section("closed_panes_history") == []


def test_load_ignores_invalid_stored_values(tmp_path: Path, caplog) -> None:
    caplog.set_level("WARNING", logger="pane_sweeper.storage.data_file")
    data_file = DataFile(tmp_path / "data.yaml")
    data_file.update(settings={"inactive_timeout_minutes": "never", "max_history_entries": 5})

    store = SettingsStore.load(data_file)

    assert store.settings.inactive_timeout_minutes == 1440
    assert store.settings.max_history_entries == 5
    assert any("Ignoring stored setting" in record.getMessage() for record in caplog.records)


def test_missing_data_file_loads_defaults(tmp_path: Path) -> None:
    store = SettingsStore.load(DataFile(tmp_path / "missing.yaml"))
    assert store.settings == SweepSettings()


def test_corrupt_data_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "data.yaml"
    path.write_text("settings: [unclosed", encoding="utf-8")

    with pytest.raises(DataFileError):
        DataFile(path).load()


def test_non_mapping_data_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "data.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(DataFileError):
        DataFile(path).load()
