"""Pane scope and activity tracking."""

from .activity import ActivityTracker
from .scope import ScopeFilter

__all__ = ["ActivityTracker", "ScopeFilter"]
