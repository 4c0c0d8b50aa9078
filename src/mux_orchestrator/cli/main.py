"""Main CLI entry point for mux."""

import os
from pathlib import Path

import click

from .. import __version__
from ..utils.logging import setup_logging
from .session import logs, restart, send, start, status, stop


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="mux")
@click.option("--config", "-c", help="Configuration file path")
@click.option("--session", "-s", help="Override the session name")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option("--log-level", help="Override the logging level")
@click.pass_context
def main(
    ctx: click.Context,
    config: str | None,
    session: str | None,
    verbose: bool,
    quiet: bool,
    json: bool,
    log_level: str | None,
) -> None:
    """mux - declarative tmux session manager.

    Reads the session layout from .muxrc, mux.yaml or the "mux" key of
    package.json (searched from the current directory upwards) and keeps
    a tmux session of that shape running.

    Run without a command to start the session if needed and attach to it.
    """
    if verbose and quiet:
        raise click.UsageError("Cannot use both --verbose and --quiet options")

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["session"] = session
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["json"] = json

    level = log_level or os.environ.get("MUX_LOG_LEVEL") or ("DEBUG" if verbose else "WARNING")
    log_file = os.environ.get("MUX_LOG_FILE")
    setup_logging(level, Path(log_file) if log_file else None)

    if ctx.invoked_subcommand is None:
        ctx.invoke(start)


main.add_command(start)
main.add_command(stop)
main.add_command(status)
main.add_command(logs)
main.add_command(restart)
main.add_command(send)


if __name__ == "__main__":
    main()
