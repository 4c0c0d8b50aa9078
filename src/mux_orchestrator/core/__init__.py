"""Core orchestration functionality."""

from .enums import PaneOutcome
from .orchestrator import (
    PaneCapture,
    PaneResult,
    PaneStatus,
    SessionOrchestrator,
    WindowStatus,
    ensure_log_directory,
    log_directory,
)
from .resolution import PaneLocation, require_pane, resolve

__all__ = [
    "PaneCapture",
    "PaneLocation",
    "PaneOutcome",
    "PaneResult",
    "PaneStatus",
    "SessionOrchestrator",
    "WindowStatus",
    "ensure_log_directory",
    "log_directory",
    "require_pane",
    "resolve",
]
