"""Host workspace contracts and the in-memory implementation."""

from .host import (
    ContainerProtocol,
    PaneGoneError,
    PaneProtocol,
    ScopeResolutionError,
    SubscriptionProtocol,
    WorkspaceError,
    WorkspaceProtocol,
    describe_pane,
)
from .memory import Container, InMemoryWorkspace, MemoryPane

__all__ = [
    "Container",
    "ContainerProtocol",
    "InMemoryWorkspace",
    "MemoryPane",
    "PaneGoneError",
    "PaneProtocol",
    "ScopeResolutionError",
    "SubscriptionProtocol",
    "WorkspaceError",
    "WorkspaceProtocol",
    "describe_pane",
]
