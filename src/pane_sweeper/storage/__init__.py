"""Storage abstractions for Pane Sweeper."""

from .data_file import DataFile, DataFileError, SettingsStore, SettingsUpdate
from .history import HistoryLog, render_history
from .mirror import DurableMirror, FileTextSink, TextSinkProtocol
from .models import ClosedTabEntry

__all__ = [
    "ClosedTabEntry",
    "DataFile",
    "DataFileError",
    "DurableMirror",
    "FileTextSink",
    "HistoryLog",
    "SettingsStore",
    "SettingsUpdate",
    "TextSinkProtocol",
    "render_history",
]
