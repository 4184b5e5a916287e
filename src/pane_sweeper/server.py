"""FastMCP server bootstrap for Pane Sweeper."""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastmcp import Context, FastMCP

from . import __version__
from .config import RuntimeSettings, get_settings
from .storage import DataFile, HistoryLog, SettingsStore
from .sweeper import NotifierProtocol, PaneSweeper
from .tools import register_tools
from .workspace import WorkspaceProtocol


def configure_logging(level: str) -> None:
    """Configure root logging for the Pane Sweeper server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def build_sweeper(
    workspace: WorkspaceProtocol,
    settings: Optional[RuntimeSettings] = None,
    *,
    notifier: NotifierProtocol | None = None,
) -> PaneSweeper:
    """Wire the settings store, history log and sweeper around a host workspace."""

    settings = settings or get_settings()
    data_file = DataFile(settings.data_file)
    settings_store = SettingsStore.load(data_file)
    history = HistoryLog(
        lambda: settings_store.settings,
        data_file=data_file,
        resolve_log_file=settings.resolve_log_file,
    )
    return PaneSweeper(workspace, settings_store, history=history, notifier=notifier)


def create_server(
    workspace: WorkspaceProtocol,
    settings: Optional[RuntimeSettings] = None,
    sweeper: PaneSweeper | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server exposing the sweeper commands.

    The host owns the event loop and is expected to ``await sweeper.start()``
    once it runs and ``await sweeper.stop()`` during shutdown.
    """

    settings = settings or get_settings()
    sweeper = sweeper or build_sweeper(workspace, settings)
    settings_store = sweeper.settings_store

    server = FastMCP(
        name="Pane Sweeper",
        version=__version__,
        instructions=(
            "Pane Sweeper closes workspace panes that have been inactive longer than the "
            "configured timeout, skipping pinned and focused panes, and keeps a history "
            "of what it closed. Use the tools to trigger sweeps and manage that history."
        ),
    )

    handles = register_tools(server, sweeper=sweeper, settings_store=settings_store)

    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing sweeper state."""

        report = sweeper.status()
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "data_file": str(settings.data_file),
            "running": sweeper.running,
            "history_entries": len(sweeper.history),
            "status": report.to_dict(),
            "request_id": getattr(context, "request_id", None),
        }
        return json.dumps(payload)

    server.resource(
        "resource://pane-sweeper/status",
        name="pane_sweeper_status",
        description="Provides the current pane activity status and sweep settings.",
        mime_type="application/json",
    )(status_resource)

    setattr(server, "sweeper", sweeper)
    setattr(server, "settings_store", settings_store)
    setattr(server, "tool_handles", handles)
    setattr(server, "status_resource", status_resource)
    return server


__all__ = ["build_sweeper", "configure_logging", "create_server"]
