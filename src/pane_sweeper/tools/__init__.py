"""Tool registration for Pane Sweeper."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastmcp import Context, FastMCP

from ..storage import SettingsStore
from ..sweeper import PaneSweeper

diagnostics_logger = logging.getLogger("pane_sweeper.diagnostics")


@dataclass(slots=True)
class ToolHandles:
    sweep_now: Any
    pane_status: Any
    view_history: Any
    clear_history: Any
    export_history: Any
    update_settings: Any


def register_tools(
    server: FastMCP,
    *,
    sweeper: PaneSweeper,
    settings_store: SettingsStore,
) -> ToolHandles:
    """Register the user-facing commands on the server."""

    async def _sweep_now(context: Context | None = None) -> dict[str, Any]:
        """Close inactive panes now and summarize what was closed."""

        result = await sweeper.manual_sweep()
        _emit_log(
            context,
            "info",
            "Manual sweep finished",
            extra={"closed": len(result.closed), "failed": len(result.failed), "skipped": result.skipped},
        )
        return result.to_dict()

    def _pane_status(context: Context | None = None) -> dict[str, Any]:
        """Report per-pane activity, pin and close flags."""

        report = sweeper.status()
        _emit_log(context, "debug", "Built pane status", extra={"count": len(report.panes)})
        payload = report.to_dict()
        payload["text"] = report.render()
        return payload

    def _view_history(context: Context | None = None) -> dict[str, Any]:
        """Return closed panes most recent first together with the grouped view."""

        history = sweeper.history
        view = history.view()
        view["recent"] = [entry.to_record() for entry in history.recent()]
        _emit_log(context, "debug", "Viewed history", extra={"count": view["total"]})
        return view

    async def _clear_history(confirm: bool = False, context: Context | None = None) -> dict[str, Any]:
        """Remove every history entry; requires confirm=true."""

        history = sweeper.history
        if not confirm:
            return {
                "cleared": False,
                "entries": len(history),
                "message": "Clear history? This will remove all saved closed pane entries. "
                "Call again with confirm=true to proceed.",
            }

        removed = len(history)
        history.clear()
        await history.save()
        _emit_log(context, "warning", "History cleared", extra={"removed": removed})
        return {"cleared": True, "removed": removed, "message": "History cleared"}

    def _export_history(context: Context | None = None) -> dict[str, Any]:
        """Render the history as text and write it to the diagnostics log."""

        text = sweeper.history.export_text()
        diagnostics_logger.info(text)
        _emit_log(context, "debug", "Exported history", extra={"entries": len(sweeper.history)})
        return {"text": text}

    async def _update_settings(
        enabled: bool | None = None,
        inactive_timeout_minutes: int | str | None = None,
        check_interval_seconds: int | str | None = None,
        log_history: bool | None = None,
        log_to_file: bool | None = None,
        log_file_path: str | None = None,
        max_history_entries: int | str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Change sweep settings; invalid values are rejected and the old value kept."""

        requested = {
            "enabled": enabled,
            "inactive_timeout_minutes": inactive_timeout_minutes,
            "check_interval_seconds": check_interval_seconds,
            "log_history": log_history,
            "log_to_file": log_to_file,
            "log_file_path": log_file_path,
            "max_history_entries": max_history_entries,
        }
        changes = {key: value for key, value in requested.items() if value is not None}
        outcome = settings_store.update(**changes)
        if outcome.changed:
            await sweeper.update_settings()

        _emit_log(
            context,
            "info" if not outcome.rejected else "warning",
            "Settings updated",
            extra={"accepted": sorted(outcome.accepted), "rejected": sorted(outcome.rejected)},
        )
        return {
            "accepted": outcome.accepted,
            "rejected": outcome.rejected,
            "settings": settings_store.settings.model_dump(),
        }

    tool_sweep = server.tool(
        name="sweep_now",
        description="Check for inactive panes now, close them, and return a summary.",
        annotations={"destructiveHint": True},
    )(_sweep_now)

    tool_status = server.tool(
        name="pane_status",
        description="Show tracked panes with their inactivity and ACTIVE/PINNED/WILL_CLOSE flags.",
    )(_pane_status)

    tool_view = server.tool(
        name="view_history",
        description="Show closed pane history grouped by date.",
    )(_view_history)

    tool_clear = server.tool(
        name="clear_history",
        description="Clear closed pane history. Pass confirm=true after reviewing the prompt.",
    )(_clear_history)

    tool_export = server.tool(
        name="export_history",
        description="Export closed pane history as text and dump it to the diagnostics log.",
    )(_export_history)

    tool_settings = server.tool(
        name="update_settings",
        description="Update sweep settings such as the inactivity timeout or check interval.",
    )(_update_settings)

    return ToolHandles(
        sweep_now=tool_sweep,
        pane_status=tool_status,
        view_history=tool_view,
        clear_history=tool_clear,
        export_history=tool_export,
        update_settings=tool_settings,
    )


__all__ = ["register_tools", "ToolHandles"]

logger = logging.getLogger(__name__)


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)
