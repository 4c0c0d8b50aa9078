"""Logging utilities for tmux operations."""

from typing import Any

from ..utils.logging import LogContext, get_logger

tmux_logger = get_logger("mux_orchestrator.tmux", LogContext.TMUX)


def log_tmux_command(args: list[str], returncode: int, stderr: list[str]) -> None:
    """Log a completed tmux invocation."""
    if returncode == 0:
        tmux_logger.debug("tmux command completed", argv=args)
    else:
        tmux_logger.debug(
            "tmux command failed",
            argv=args,
            returncode=returncode,
            stderr=" ".join(stderr),
        )


def log_session_operation(
    operation: str, session_name: str, status: str, context: dict[str, Any] | None = None
) -> None:
    """Log session operation."""
    message = f"Session {operation} {status} - {session_name}"
    if context:
        message += f" - {context}"

    if status == "error":
        tmux_logger.error(message, operation=operation, session=session_name)
    else:
        tmux_logger.info(message, operation=operation, session=session_name)


def log_session_attach(session_name: str, window_index: int | None = None) -> None:
    """Log session attachment."""
    message = f"Session attach - {session_name}"
    if window_index is not None:
        message += f" (window: {window_index})"
    tmux_logger.info(message, session=session_name)


def log_layout_setup(session_name: str, window_name: str, layout: str) -> None:
    """Log a layout applied to a window."""
    tmux_logger.info(
        f"Layout applied - {session_name}:{window_name} ({layout})",
        session=session_name,
        window=window_name,
        layout=layout,
    )
