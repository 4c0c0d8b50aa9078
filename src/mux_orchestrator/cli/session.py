"""CLI commands operating on the configured tmux session."""

import sys

import click

from ..config.loader import load_config
from ..config.models import SessionSpec
from ..core.enums import PaneOutcome
from ..core.orchestrator import SessionOrchestrator
from ..tmux.service import DEFAULT_CAPTURE_LINES, get_tmux_service
from ..utils.logging import LogContext, get_logger
from .utils import (
    CliError,
    error_handler,
    output_json,
    quiet_echo,
    success_message,
    verbose_echo,
    wants_json,
    warning_message,
)

logger = get_logger(__name__, LogContext.CLI)


def _load_spec(ctx: click.Context) -> SessionSpec:
    obj = ctx.obj or {}
    spec = load_config(obj.get("config"), cli_overrides={"session": obj.get("session")})
    verbose_echo(ctx, f"Session {spec.session_name} rooted at {spec.project_root}")
    return spec


def _get_orchestrator() -> SessionOrchestrator:
    return SessionOrchestrator(get_tmux_service())


def _require_running(orchestrator: SessionOrchestrator, spec: SessionSpec) -> None:
    if not orchestrator.exists(spec.session_name):
        raise CliError(f'Session "{spec.session_name}" is not running.')


@click.command()
@click.option("--detach", "-d", is_flag=True, help="Start without attaching")
@click.pass_context
@error_handler
def start(ctx: click.Context, detach: bool) -> None:
    """Start the session if it is not running, then attach to it."""
    spec = _load_spec(ctx)
    orchestrator = _get_orchestrator()

    if orchestrator.exists(spec.session_name):
        if detach:
            quiet_echo(ctx, f'Session "{spec.session_name}" already running.')
            return
    else:
        orchestrator.bootstrap(spec)
        if detach:
            success_message(f'Session "{spec.session_name}" started (detached).')
            return

    sys.exit(orchestrator.attach(spec))


@click.command()
@click.pass_context
@error_handler
def stop(ctx: click.Context) -> None:
    """Kill the session."""
    spec = _load_spec(ctx)
    orchestrator = _get_orchestrator()

    if not orchestrator.exists(spec.session_name):
        quiet_echo(ctx, f'Session "{spec.session_name}" is not running.')
        return

    orchestrator.kill(spec.session_name)
    success_message(f'Session "{spec.session_name}" stopped.')


@click.command()
@click.pass_context
@error_handler
def status(ctx: click.Context) -> None:
    """Show running windows and panes."""
    spec = _load_spec(ctx)
    orchestrator = _get_orchestrator()

    if not orchestrator.exists(spec.session_name):
        if wants_json(ctx):
            output_json({"session": spec.session_name, "running": False, "windows": []})
        else:
            click.echo(f'Session "{spec.session_name}" is not running.')
        return

    windows = orchestrator.status(spec)

    if wants_json(ctx):
        output_json(
            {
                "session": spec.session_name,
                "running": True,
                "windows": [
                    {
                        "index": w.index,
                        "name": w.name,
                        "active": w.active,
                        "panes": [
                            {
                                "index": p.index,
                                "name": p.name,
                                "id": p.pane_id,
                                "active": p.active,
                            }
                            for p in w.panes
                        ],
                    }
                    for w in windows
                ],
            }
        )
        return

    click.echo(f"Session: {spec.session_name}")
    for window in windows:
        active = " (active)" if window.active else ""
        click.echo(f"  Window [{window.index}] {window.name}{active}")
        for pane in window.panes:
            active = " (active)" if pane.active else ""
            click.echo(f"    [{pane.index}] {pane.name}{active}")


@click.command()
@click.argument("pane", required=False)
@click.option(
    "--lines",
    "-n",
    type=click.IntRange(min=1),
    default=DEFAULT_CAPTURE_LINES,
    show_default=True,
    help="Number of lines to capture",
)
@click.pass_context
@error_handler
def logs(ctx: click.Context, pane: str | None, lines: int) -> None:
    """Capture pane output (all panes if PANE is omitted)."""
    spec = _load_spec(ctx)
    orchestrator = _get_orchestrator()
    _require_running(orchestrator, spec)

    if pane:
        output = orchestrator.capture(spec, pane, lines)
        if wants_json(ctx):
            output_json([{"pane": pane, "output": output}])
        else:
            click.echo(f"=== {pane} ===")
            click.echo(output)
        return

    captures = orchestrator.capture_all(spec, lines)
    if wants_json(ctx):
        output_json(
            [{"pane": c.pane_name, "output": c.output, "error": c.error} for c in captures]
        )
        return

    for capture in captures:
        click.echo(f"=== {capture.pane_name} ===")
        if capture.error:
            click.echo(click.style(f"Error: {capture.error}", fg="red"), err=True)
        else:
            click.echo(capture.output)
        click.echo()


@click.command()
@click.argument("pane", required=False)
@click.pass_context
@error_handler
def restart(ctx: click.Context, pane: str | None) -> None:
    """Restart a pane, or all panes if PANE is omitted."""
    spec = _load_spec(ctx)
    orchestrator = _get_orchestrator()
    _require_running(orchestrator, spec)

    results = [orchestrator.restart(spec, pane)] if pane else orchestrator.restart_all(spec)

    if wants_json(ctx):
        output_json(
            [
                {"pane": r.pane_name, "outcome": r.outcome.value, "message": r.message}
                for r in results
            ]
        )
    else:
        for result in results:
            if result.outcome is PaneOutcome.RESTARTED:
                success_message(f'Restarted pane "{result.pane_name}".')
            elif result.outcome is PaneOutcome.SKIPPED:
                warning_message(result.message)
            else:
                click.echo(
                    click.style(
                        f'Failed to restart pane "{result.pane_name}": {result.message}',
                        fg="red",
                    ),
                    err=True,
                )

    if any(r.outcome is PaneOutcome.FAILED for r in results):
        sys.exit(1)


@click.command(context_settings={"ignore_unknown_options": True})
@click.argument("pane")
@click.argument("words", nargs=-1, type=click.UNPROCESSED)
@click.option("--keys", is_flag=True, help="Send raw keys (e.g. C-c, C-d) without Enter")
@click.pass_context
@error_handler
def send(ctx: click.Context, pane: str, words: tuple[str, ...], keys: bool) -> None:
    """Send a command to PANE (runs with Enter), or raw keys with --keys.

    Put -- before a command that itself contains --keys.

    \b
    Examples:
      mux send api npm run migrate
      mux send api --keys C-c
      mux send api -- grep --keys notes.txt
    """
    spec = _load_spec(ctx)
    orchestrator = _get_orchestrator()
    _require_running(orchestrator, spec)

    if keys:
        if not words:
            raise CliError("No keys specified.")
        orchestrator.send_raw_keys(spec, pane, list(words))
        verbose_echo(ctx, f"Sent keys {' '.join(words)} to {pane}")
    else:
        command = " ".join(words)
        if not command:
            raise CliError("No command specified.")
        orchestrator.send_keys(spec, pane, command)
        verbose_echo(ctx, f"Sent command to {pane}: {command}")

    logger.debug("send completed", pane=pane, raw=keys)
