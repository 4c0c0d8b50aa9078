"""Pytest configuration and shared fixtures for mux-orchestrator tests."""

import itertools
import logging
from collections.abc import Generator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from mux_orchestrator.tmux.service import (
    CreatedPane,
    LivePane,
    LiveWindow,
    MultiplexerAdapter,
    reset_tmux_service,
)
from mux_orchestrator.utils.logging import AdapterError

MUX_ENV_VARS = (
    "MUX_CONFIG",
    "MUX_SESSION",
    "MUX_LOG_LEVEL",
    "MUX_LOG_FILE",
    "MUX_LOG_ROOT",
)


@pytest.fixture(scope="function", autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep MUX_* variables from the developer's shell out of the tests."""
    for name in MUX_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MUX_LOG_ROOT", str(tmp_path / "log-root"))

    yield

    reset_tmux_service()


@pytest.fixture
def temp_log_file(tmp_path) -> Generator[Path, None, None]:
    """Provide a temporary log file for testing."""
    yield tmp_path / "logs" / "mux.log"


@pytest.fixture
def reset_logging():
    """Reset logging configuration around a test."""
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.NOTSET)

    yield

    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    root_logger.setLevel(original_level)
    for handler in original_handlers:
        root_logger.addHandler(handler)


@dataclass
class FakePane:
    pane_id: str
    cwd: str
    tag: str = ""
    title: str = ""
    sent: list[str] = field(default_factory=list)
    raw: list[list[str]] = field(default_factory=list)


@dataclass
class FakeWindow:
    window_id: str
    index: int
    name: str
    panes: list[FakePane] = field(default_factory=list)
    layout: str | None = None


class FakeTmux(MultiplexerAdapter):
    """In-memory stand-in for tmux that records what the engine asks of it."""

    def __init__(self) -> None:
        self.sessions: dict[str, list[FakeWindow]] = {}
        self.selected: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.failures: dict[tuple[str, str], str] = {}
        self.attached: list[str] = []
        self.attach_exit_code = 0
        self._window_ids = itertools.count(1)
        self._pane_ids = itertools.count(1)

    # Test helpers

    def fail(self, method: str, target: str, message: str = "no such pane") -> None:
        """Make ``method`` raise AdapterError when called with ``target``."""
        self.failures[(method, target)] = message

    def windows(self, session: str) -> list[FakeWindow]:
        return self.sessions[session]

    def pane_at(self, session: str, window_pos: int, pane_pos: int) -> FakePane:
        return self.sessions[session][window_pos].panes[pane_pos]

    def close_pane(self, session: str, window_pos: int, pane_pos: int) -> FakePane:
        """Simulate a pane closed by hand outside mux."""
        return self.sessions[session][window_pos].panes.pop(pane_pos)

    def add_session(self, session: str, layout: list[list[str]], tags: bool = False):
        """Create a session directly, as if made by someone else."""
        self.sessions[session] = []
        for index, pane_names in enumerate(layout):
            window = FakeWindow(f"@{next(self._window_ids)}", index, f"win{index}")
            for name in pane_names:
                pane = FakePane(f"%{next(self._pane_ids)}", "/", tag=name if tags else "")
                window.panes.append(pane)
            self.sessions[session].append(window)
        self.selected[session] = self.sessions[session][0].window_id

    # Lookup

    def _record(self, method: str, target: str, *args) -> None:
        self.calls.append((method, target, *args))
        if (method, target) in self.failures:
            raise AdapterError(self.failures[(method, target)], target=target)

    def _session(self, name: str) -> list[FakeWindow]:
        if name not in self.sessions:
            raise AdapterError(f"can't find session: {name}", target=name)
        return self.sessions[name]

    def _window(self, target: str) -> tuple[str, FakeWindow]:
        for session, windows in self.sessions.items():
            for window in windows:
                if target == window.window_id or target == f"={session}:{window.index}":
                    return session, window
                if any(p.pane_id == target for p in window.panes):
                    return session, window
        raise AdapterError(f"can't find window: {target}", target=target)

    def _pane(self, target: str) -> tuple[FakeWindow, FakePane]:
        for session, windows in self.sessions.items():
            for window in windows:
                for pane in window.panes:
                    if target == pane.pane_id:
                        return window, pane
        raise AdapterError(f"can't find pane: {target}", target=target)

    # MultiplexerAdapter

    def has_session(self, session_name: str) -> bool:
        self.calls.append(("has_session", session_name))
        return session_name in self.sessions

    def new_session(self, session_name: str, start_directory: str) -> CreatedPane:
        self._record("new_session", session_name, start_directory)
        if session_name in self.sessions:
            raise AdapterError(f"duplicate session: {session_name}", target=session_name)
        window = FakeWindow(f"@{next(self._window_ids)}", 0, "bash")
        pane = FakePane(f"%{next(self._pane_ids)}", start_directory)
        window.panes.append(pane)
        self.sessions[session_name] = [window]
        self.selected[session_name] = window.window_id
        return CreatedPane(window.window_id, pane.pane_id)

    def kill_session(self, session_name: str) -> None:
        self._record("kill_session", session_name)
        self._session(session_name)
        del self.sessions[session_name]

    def rename_window(self, target: str, name: str) -> None:
        self._record("rename_window", target, name)
        self._window(target)[1].name = name

    def new_window(self, session_name: str, name: str, start_directory: str) -> CreatedPane:
        self._record("new_window", session_name, name, start_directory)
        windows = self._session(session_name)
        index = max((w.index for w in windows), default=-1) + 1
        window = FakeWindow(f"@{next(self._window_ids)}", index, name)
        pane = FakePane(f"%{next(self._pane_ids)}", start_directory)
        window.panes.append(pane)
        windows.append(window)
        return CreatedPane(window.window_id, pane.pane_id)

    def split_window(self, target: str, start_directory: str) -> CreatedPane:
        self._record("split_window", target, start_directory)
        window, pane = self._pane(target)
        new_pane = FakePane(f"%{next(self._pane_ids)}", start_directory)
        window.panes.insert(window.panes.index(pane) + 1, new_pane)
        return CreatedPane(window.window_id, new_pane.pane_id)

    def select_layout(self, target: str, layout: str) -> None:
        self._record("select_layout", target, layout)
        self._window(target)[1].layout = layout

    def select_window(self, target: str) -> None:
        self._record("select_window", target)
        session, window = self._window(target)
        self.selected[session] = window.window_id

    def tag_pane(self, target: str, name: str) -> None:
        self._record("tag_pane", target, name)
        self._pane(target)[1].tag = name

    def send_keys(self, target: str, command: str) -> None:
        self._record("send_keys", target, command)
        self._pane(target)[1].sent.append(command)

    def send_raw_keys(self, target: str, keys: Sequence[str]) -> None:
        self._record("send_raw_keys", target, list(keys))
        self._pane(target)[1].raw.append(list(keys))

    def list_windows(self, session_name: str) -> list[LiveWindow]:
        self._record("list_windows", session_name)
        selected = self.selected.get(session_name)
        return [
            LiveWindow(index=w.index, name=w.name, active=w.window_id == selected)
            for w in self._session(session_name)
        ]

    def list_panes(self, target: str) -> list[LivePane]:
        self._record("list_panes", target)
        _, window = self._window(target)
        return [
            LivePane(
                pane_id=p.pane_id,
                window_index=window.index,
                index=i,
                title=p.title,
                active=i == 0,
                tag=p.tag,
            )
            for i, p in enumerate(window.panes)
        ]

    def capture_pane(self, target: str, lines: int = 100) -> str:
        self._record("capture_pane", target, lines)
        _, pane = self._pane(target)
        return "\n".join(pane.sent[-lines:])

    def attach(self, session_name: str) -> int:
        self._record("attach", session_name)
        self._session(session_name)
        self.attached.append(session_name)
        return self.attach_exit_code


@pytest.fixture
def fake_tmux():
    """A fresh in-memory tmux."""
    return FakeTmux()
