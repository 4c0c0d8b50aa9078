"""Shared enums for mux-orchestrator."""

from enum import Enum


class PaneOutcome(Enum):
    """Result of applying an operation to one pane of a batch."""

    RESTARTED = "restarted"
    SKIPPED = "skipped"
    FAILED = "failed"
