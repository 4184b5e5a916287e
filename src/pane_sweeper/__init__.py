"""Pane Sweeper: closes workspace panes that have gone unused for too long."""

__version__ = "0.1.0"

__all__ = ["__version__"]
