"""
Tmux adapter.

This module translates orchestration intents (create a session, split a
window, send keys, capture output) into tmux invocations and parses their
tabular replies into LivePane and LiveWindow records.

Targets follow tmux addressing: ``=session`` and ``=session:window`` (the
``=`` asks for an exact session name), or the opaque ids tmux hands out
(``@1`` for a window, ``%3`` for a pane).
"""

import shutil
import subprocess  # nosec B404
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

import libtmux
from libtmux import exc as libtmux_exc

from ..utils.logging import AdapterError
from .logging_utils import log_tmux_command, tmux_logger

# Same record separator libtmux uses for its own format strings
FIELD_SEPARATOR = "␞"

# Pane user option holding the declared pane name
PANE_TAG_OPTION = "@mux_pane"

CREATED_FORMAT = FIELD_SEPARATOR.join(["#{window_id}", "#{pane_id}"])
WINDOW_FORMAT = FIELD_SEPARATOR.join(
    ["#{window_index}", "#{window_name}", "#{window_active}"]
)
PANE_FORMAT = FIELD_SEPARATOR.join(
    [
        "#{pane_id}",
        "#{window_index}",
        "#{pane_index}",
        "#{" + PANE_TAG_OPTION + "}",
        "#{pane_title}",
        "#{pane_active}",
    ]
)

DEFAULT_CAPTURE_LINES = 100
INTERRUPT_KEY = "C-c"
SUBMIT_KEY = "Enter"


@dataclass(frozen=True)
class CreatedPane:
    """Ids of a pane just created by new-session, new-window or split-window."""

    window_id: str
    pane_id: str


@dataclass(frozen=True)
class LiveWindow:
    """Snapshot of a window in a running session."""

    index: int
    name: str
    active: bool


@dataclass(frozen=True)
class LivePane:
    """Snapshot of a pane in a running session."""

    pane_id: str
    window_index: int
    index: int
    title: str
    active: bool
    tag: str = ""


@dataclass
class CommandResult:
    """Outcome of a single tmux invocation."""

    args: list[str]
    returncode: int
    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return "\n".join(self.stdout)


def session_target(session_name: str) -> str:
    """Build a target matching exactly one session.

    A bare name is also matched as a prefix or pattern by tmux, so ``demo``
    would find ``demo-api``.
    """
    return f"={session_name}"


def window_target(session_name: str, window_index: int) -> str:
    """Build a ``=session:window`` target."""
    return f"{session_target(session_name)}:{window_index}"


class MultiplexerAdapter(ABC):
    """Capabilities the orchestration engine needs from a multiplexer."""

    @abstractmethod
    def has_session(self, session_name: str) -> bool: ...

    @abstractmethod
    def new_session(self, session_name: str, start_directory: str) -> CreatedPane: ...

    @abstractmethod
    def kill_session(self, session_name: str) -> None: ...

    @abstractmethod
    def rename_window(self, target: str, name: str) -> None: ...

    @abstractmethod
    def new_window(
        self, session_name: str, name: str, start_directory: str
    ) -> CreatedPane: ...

    @abstractmethod
    def split_window(self, target: str, start_directory: str) -> CreatedPane: ...

    @abstractmethod
    def select_layout(self, target: str, layout: str) -> None: ...

    @abstractmethod
    def select_window(self, target: str) -> None: ...

    @abstractmethod
    def tag_pane(self, target: str, name: str) -> None: ...

    @abstractmethod
    def send_keys(self, target: str, command: str) -> None: ...

    @abstractmethod
    def send_raw_keys(self, target: str, keys: Sequence[str]) -> None: ...

    @abstractmethod
    def list_windows(self, session_name: str) -> list[LiveWindow]: ...

    @abstractmethod
    def list_panes(self, target: str) -> list[LivePane]: ...

    @abstractmethod
    def capture_pane(self, target: str, lines: int = DEFAULT_CAPTURE_LINES) -> str: ...

    @abstractmethod
    def attach(self, session_name: str) -> int: ...


class TmuxService(MultiplexerAdapter):
    """MultiplexerAdapter backed by the tmux binary through libtmux."""

    def __init__(self, server: libtmux.Server | None = None):
        """Initialize tmux service.

        Args:
            server: libtmux server to issue commands through; the default
                socket is used when omitted
        """
        self._server = server if server is not None else libtmux.Server()

    def run(self, *args: str) -> CommandResult:
        """Run a tmux command and return its result without checking it.

        Raises:
            AdapterError: If tmux could not be spawned
        """
        argv = [str(a) for a in args]
        try:
            proc = self._server.cmd(*argv)
        except libtmux_exc.TmuxCommandNotFound as e:
            raise AdapterError("tmux binary not found in PATH", command=argv) from e
        except OSError as e:
            raise AdapterError(f"Failed to run tmux: {e}", command=argv) from e

        result = CommandResult(
            args=argv,
            returncode=proc.returncode if proc.returncode is not None else 0,
            stdout=list(proc.stdout),
            stderr=list(proc.stderr),
        )
        log_tmux_command(argv, result.returncode, result.stderr)
        return result

    def run_checked(self, *args: str, target: str | None = None) -> CommandResult:
        """Run a tmux command, raising AdapterError on a non-zero exit."""
        result = self.run(*args)
        if not result.ok:
            detail = " ".join(result.stderr) or f"exit code {result.returncode}"
            raise AdapterError(
                f"tmux {args[0]} failed for {target}: {detail}",
                target=target,
                command=result.args,
                stderr=" ".join(result.stderr),
            )
        return result

    def _created(self, result: CommandResult, target: str) -> CreatedPane:
        line = result.stdout[0] if result.stdout else ""
        window_id, _, pane_id = line.strip().partition(FIELD_SEPARATOR)
        if not window_id or not pane_id:
            raise AdapterError(
                f"tmux {result.args[0]} did not report the new pane for {target}",
                target=target,
                command=result.args,
            )
        return CreatedPane(window_id=window_id, pane_id=pane_id)

    def has_session(self, session_name: str) -> bool:
        return self.run("has-session", "-t", session_target(session_name)).ok

    def new_session(self, session_name: str, start_directory: str) -> CreatedPane:
        """Create a detached session and report its first window and pane."""
        result = self.run_checked(
            "new-session", "-d", "-s", session_name, "-c", start_directory,
            "-P", "-F", CREATED_FORMAT,
            target=session_name,
        )
        return self._created(result, session_name)

    def kill_session(self, session_name: str) -> None:
        self.run_checked(
            "kill-session", "-t", session_target(session_name), target=session_name
        )

    def rename_window(self, target: str, name: str) -> None:
        self.run_checked("rename-window", "-t", target, name, target=target)

    def new_window(
        self, session_name: str, name: str, start_directory: str
    ) -> CreatedPane:
        """Append a window to the session and report its first pane."""
        result = self.run_checked(
            "new-window", "-d", "-t", f"{session_target(session_name)}:", "-n", name,
            "-c", start_directory, "-P", "-F", CREATED_FORMAT,
            target=session_name,
        )
        return self._created(result, session_name)

    def split_window(self, target: str, start_directory: str) -> CreatedPane:
        """Split the target pane; the new pane is placed right after it."""
        result = self.run_checked(
            "split-window", "-t", target, "-c", start_directory,
            "-P", "-F", CREATED_FORMAT,
            target=target,
        )
        return self._created(result, target)

    def select_layout(self, target: str, layout: str) -> None:
        self.run_checked("select-layout", "-t", target, layout, target=target)

    def select_window(self, target: str) -> None:
        self.run_checked("select-window", "-t", target, target=target)

    def tag_pane(self, target: str, name: str) -> None:
        """Record the declared pane name on the live pane."""
        self.run_checked(
            "set-option", "-p", "-t", target, PANE_TAG_OPTION, name, target=target
        )

    def send_keys(self, target: str, command: str) -> None:
        """Type a command into a pane and submit it."""
        self.run_checked("send-keys", "-t", target, command, SUBMIT_KEY, target=target)

    def send_raw_keys(self, target: str, keys: Sequence[str]) -> None:
        """Send literal text or key names to a pane without submitting."""
        if isinstance(keys, str):
            keys = [keys]
        self.run_checked("send-keys", "-t", target, *keys, target=target)

    def list_windows(self, session_name: str) -> list[LiveWindow]:
        result = self.run_checked(
            "list-windows",
            "-t",
            session_target(session_name),
            "-F",
            WINDOW_FORMAT,
            target=session_name,
        )
        windows = []
        for line in result.stdout:
            if not line:
                continue
            index, rest = line.split(FIELD_SEPARATOR, 1)
            name, _, active = rest.rpartition(FIELD_SEPARATOR)
            windows.append(LiveWindow(index=int(index), name=name, active=active == "1"))
        return sorted(windows, key=lambda w: w.index)

    def list_panes(self, target: str) -> list[LivePane]:
        result = self.run_checked("list-panes", "-t", target, "-F", PANE_FORMAT, target=target)
        panes = []
        for line in result.stdout:
            if not line:
                continue
            pane_id, window_index, index, tag, rest = line.split(FIELD_SEPARATOR, 4)
            # Titles are set by whatever runs in the pane, so split from the right
            title, _, active = rest.rpartition(FIELD_SEPARATOR)
            panes.append(
                LivePane(
                    pane_id=pane_id,
                    window_index=int(window_index),
                    index=int(index),
                    title=title,
                    active=active == "1",
                    tag=tag,
                )
            )
        return sorted(panes, key=lambda p: p.index)

    def capture_pane(self, target: str, lines: int = DEFAULT_CAPTURE_LINES) -> str:
        result = self.run_checked(
            "capture-pane", "-t", target, "-p", "-S", f"-{lines}", target=target
        )
        return result.output

    def attach(self, session_name: str) -> int:
        """Attach the current terminal and block until the client detaches."""
        tmux_bin = shutil.which("tmux")
        if not tmux_bin:
            raise AdapterError("tmux binary not found in PATH", target=session_name)

        argv = [tmux_bin]
        if self._server.socket_name:
            argv += ["-L", self._server.socket_name]
        elif self._server.socket_path:
            argv += ["-S", str(self._server.socket_path)]
        argv += ["attach-session", "-t", session_target(session_name)]

        tmux_logger.debug("Attaching to session", session=session_name)
        return subprocess.call(argv)  # nosec B603


# Global tmux service instance
_tmux_service: TmuxService | None = None


def get_tmux_service() -> TmuxService:
    """Get the global tmux service instance.

    Returns:
        TmuxService instance
    """
    global _tmux_service
    if _tmux_service is None:
        _tmux_service = TmuxService()
    return _tmux_service


def reset_tmux_service() -> None:
    """Drop the global tmux service so the next call builds a fresh one."""
    global _tmux_service
    _tmux_service = None
