"""Pane Sweeper diagnostics CLI."""

from __future__ import annotations

import argparse
import asyncio
import json

from pane_sweeper.config import RuntimeSettings
from pane_sweeper.storage import DataFile, DataFileError, HistoryLog, SettingsStore


def load_data_file(settings: RuntimeSettings) -> DataFile:
    data_file = DataFile(settings.data_file)
    try:
        data_file.load()
    except DataFileError as exc:
        print(f"Data file unreadable: {exc}")
        raise SystemExit(1)
    return data_file


def load_history(data_file: DataFile) -> tuple[SettingsStore, HistoryLog]:
    store = SettingsStore.load(data_file)
    history = HistoryLog(lambda: store.settings, data_file=data_file)
    history.load()
    return store, history


def cmd_history(args: argparse.Namespace) -> None:
    data_file = load_data_file(RuntimeSettings())
    _, history = load_history(data_file)
    if args.json:
        print(json.dumps([entry.to_record() for entry in history.recent()], indent=2))
    else:
        print(history.export_text(), end="")


def cmd_settings(args: argparse.Namespace) -> None:
    data_file = load_data_file(RuntimeSettings())
    store = SettingsStore.load(data_file)
    print(json.dumps(store.settings.model_dump(), indent=2))


def cmd_clear(args: argparse.Namespace) -> None:
    data_file = load_data_file(RuntimeSettings())
    _, history = load_history(data_file)
    if not args.yes:
        print(f"Refusing to clear {len(history)} entries without --yes")
        raise SystemExit(2)
    removed = len(history)
    history.clear()
    asyncio.run(history.save())
    print(f"Cleared {removed} entries")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pane Sweeper diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_history = sub.add_parser("history", help="Print closed pane history")
    p_history.add_argument("--json", action="store_true", help="Output JSON, most recent first")
    p_history.set_defaults(func=cmd_history)

    p_settings = sub.add_parser("settings", help="Show effective sweep settings")
    p_settings.set_defaults(func=cmd_settings)

    p_clear = sub.add_parser("clear", help="Clear persisted closed pane history")
    p_clear.add_argument("--yes", action="store_true", help="Confirm clearing the history")
    p_clear.set_defaults(func=cmd_clear)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
