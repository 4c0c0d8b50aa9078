"""
Tmux adapter for mux-orchestrator.

This package provides the command-execution surface the orchestration
engine drives:
- Session, window and pane creation
- Key dispatch and output capture
- Live topology listing
"""

from .service import (
    DEFAULT_CAPTURE_LINES,
    INTERRUPT_KEY,
    CommandResult,
    CreatedPane,
    LivePane,
    LiveWindow,
    MultiplexerAdapter,
    TmuxService,
    get_tmux_service,
    reset_tmux_service,
    session_target,
    window_target,
)

__all__ = [
    "DEFAULT_CAPTURE_LINES",
    "INTERRUPT_KEY",
    "CommandResult",
    "CreatedPane",
    "LivePane",
    "LiveWindow",
    "MultiplexerAdapter",
    "TmuxService",
    "get_tmux_service",
    "reset_tmux_service",
    "session_target",
    "window_target",
]
