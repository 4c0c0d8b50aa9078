"""
Session orchestration engine.

The SessionOrchestrator turns a SessionSpec into a live tmux session and
applies restart, send and capture operations to single panes of a running
session without touching their siblings.

Live topology is never cached across operations. Every pane operation lists
the panes of its window immediately before acting, then picks the live pane
for the declared slot:

1. the pane id recorded when this orchestrator bootstrapped the session;
2. otherwise the pane tagged with the declared name at bootstrap;
3. otherwise, only in an untagged window, the pane at the declared position.

Single-target operations propagate every error. Batch operations
(restart_all, capture_all) report per-pane failures and keep going.
"""

import os
import shlex
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from ..config.models import PaneSpec, SessionSpec, WindowSpec
from ..tmux.logging_utils import (
    log_layout_setup,
    log_session_attach,
    log_session_operation,
)
from ..tmux.service import (
    DEFAULT_CAPTURE_LINES,
    INTERRUPT_KEY,
    CreatedPane,
    LivePane,
    LiveWindow,
    MultiplexerAdapter,
    get_tmux_service,
    window_target,
)
from ..utils.logging import (
    AdapterError,
    LogContext,
    StaleTopologyWarning,
    audit_log,
    get_logger,
)
from .enums import PaneOutcome
from .resolution import PaneLocation, require_pane

logger = get_logger(__name__, LogContext.SESSION)

DEFAULT_LOG_ROOT = "/tmp"


def log_directory(session_name: str, root: str | Path | None = None) -> Path:
    """Scratch directory tied to a session name."""
    root = root or os.environ.get("MUX_LOG_ROOT") or DEFAULT_LOG_ROOT
    return Path(root) / f"mux-{session_name}"


def ensure_log_directory(session_name: str, root: str | Path | None = None) -> Path:
    """Create the session's scratch directory if it is missing."""
    path = log_directory(session_name, root)
    path.mkdir(parents=True, exist_ok=True)
    return path


@dataclass
class PaneResult:
    """Outcome of restarting one pane."""

    pane_name: str
    outcome: PaneOutcome
    message: str = ""


@dataclass
class PaneCapture:
    """Captured output of one pane, or the error that prevented it."""

    pane_name: str
    output: str = ""
    error: str | None = None


@dataclass
class PaneStatus:
    """A live pane labelled with its declared name."""

    index: int
    name: str
    pane_id: str
    active: bool


@dataclass
class WindowStatus:
    """A live window labelled with its declared name."""

    index: int
    name: str
    active: bool
    panes: list[PaneStatus] = field(default_factory=list)


class SessionOrchestrator:
    """Materializes a SessionSpec in tmux and operates on its panes."""

    def __init__(
        self,
        adapter: MultiplexerAdapter | None = None,
        log_root: str | Path | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            adapter: Multiplexer adapter; the global tmux service by default
            log_root: Parent of the per-session scratch directory
        """
        self.adapter = adapter if adapter is not None else get_tmux_service()
        self.log_root = log_root
        # (session, window position, pane position) -> pane id, for panes
        # created by this instance
        self._pane_ids: dict[tuple[str, int, int], str] = {}

    # Existence and teardown

    def exists(self, session_name: str) -> bool:
        return self.adapter.has_session(session_name)

    @audit_log("kill session")
    def kill(self, session_name: str) -> None:
        self.adapter.kill_session(session_name)
        self._forget(session_name)
        log_session_operation("kill", session_name, "success")

    def attach(self, spec: SessionSpec) -> int:
        """Focus the configured window and attach; returns tmux's exit code."""
        focused = self.select_focus_window(spec)
        log_session_attach(
            spec.session_name, spec.focus_window_index if focused else None
        )
        return self.adapter.attach(spec.session_name)

    def select_focus_window(self, spec: SessionSpec) -> bool:
        """Select ``focus_window_index`` if the session has such a window.

        An out-of-range index is ignored with a warning.
        """
        windows = self.adapter.list_windows(spec.session_name)
        index = spec.focus_window_index
        if not 0 <= index < len(windows):
            logger.warning(
                "Focus window index out of range, leaving selection unchanged",
                session=spec.session_name,
                focus_window_index=index,
                window_count=len(windows),
            )
            return False
        self.adapter.select_window(window_target(spec.session_name, windows[index].index))
        return True

    # Bootstrap

    @audit_log("bootstrap session")
    def bootstrap(self, spec: SessionSpec) -> None:
        """Create the session described by ``spec``.

        The session must not exist yet; callers check exists() first.

        Raises:
            AdapterError: If any tmux invocation fails
        """
        session = spec.session_name
        log_session_operation("create", session, "starting")
        self._forget(session)

        created = self.adapter.new_session(session, spec.project_root)
        ensure_log_directory(session, self.log_root)

        for window_index, window in enumerate(spec.windows):
            self._build_window(spec, window_index, window, created)

        self.select_focus_window(spec)
        log_session_operation("create", session, "success")

    def _build_window(
        self,
        spec: SessionSpec,
        window_index: int,
        window: WindowSpec,
        created: CreatedPane,
    ) -> None:
        session = spec.session_name
        first = window.panes[0]
        first_directory = spec.pane_directory(first)

        if window_index == 0:
            # Reuse the window that came with the session; it started in the
            # project root, so move its first pane explicitly
            self.adapter.rename_window(created.window_id, window.name)
            self.adapter.send_keys(created.pane_id, f"cd {shlex.quote(first_directory)}")
        else:
            created = self.adapter.new_window(session, window.name, first_directory)

        window_id = created.window_id
        pane_id = created.pane_id
        self._register(session, window_index, 0, pane_id, first)
        self.adapter.send_keys(pane_id, first.command)

        for pane_index, pane in enumerate(window.panes[1:], start=1):
            # Splitting the newest pane keeps live order equal to declared order
            pane_id = self.adapter.split_window(pane_id, spec.pane_directory(pane)).pane_id
            self._register(session, window_index, pane_index, pane_id, pane)
            self.adapter.send_keys(pane_id, pane.command)

        layout = window.default_layout()
        self.adapter.select_layout(window_id, layout)
        log_layout_setup(session, window.name, layout)

    def _register(
        self, session: str, window_index: int, pane_index: int, pane_id: str, pane: PaneSpec
    ) -> None:
        self._pane_ids[(session, window_index, pane_index)] = pane_id
        try:
            self.adapter.tag_pane(pane_id, pane.name)
        except AdapterError as e:
            # tmux before 3.0 has no pane options; lookups fall back to position
            logger.warning(
                "Could not tag pane with its name",
                pane=pane.name,
                pane_id=pane_id,
                error=e.message,
            )

    def _forget(self, session: str) -> None:
        for key in [k for k in self._pane_ids if k[0] == session]:
            del self._pane_ids[key]

    # Live lookup

    def _live_window(self, spec: SessionSpec, window_index: int) -> LiveWindow | None:
        windows = self.adapter.list_windows(spec.session_name)
        if window_index < len(windows):
            return windows[window_index]
        return None

    def live_pane(self, spec: SessionSpec, location: PaneLocation) -> LivePane:
        """Find the live pane for a declared slot.

        Raises:
            StaleTopologyWarning: If the slot has no live counterpart
            AdapterError: If tmux cannot list the session
        """
        session = spec.session_name
        pane_spec = spec.windows[location.window_index].panes[location.pane_index]
        stale = StaleTopologyWarning(
            pane_spec.name, location.window_index, location.pane_index
        )

        window = self._live_window(spec, location.window_index)
        if window is None:
            raise stale
        panes = self.adapter.list_panes(window_target(session, window.index))

        known_id = self._pane_ids.get((session, location.window_index, location.pane_index))
        if known_id:
            for pane in panes:
                if pane.pane_id == known_id:
                    return pane

        if any(pane.tag for pane in panes):
            tagged = [pane for pane in panes if pane.tag == pane_spec.name]
            if len(tagged) == 1:
                return tagged[0]
            raise stale

        if location.pane_index < len(panes):
            return panes[location.pane_index]
        raise stale

    # Pane lifecycle

    def send_keys(self, spec: SessionSpec, pane_name: str, command: str) -> LivePane:
        """Type ``command`` into the named pane and submit it."""
        pane = self.live_pane(spec, require_pane(spec, pane_name))
        self.adapter.send_keys(pane.pane_id, command)
        logger.info("Command sent", session=spec.session_name, pane=pane_name)
        return pane

    def send_raw_keys(
        self, spec: SessionSpec, pane_name: str, keys: str | Sequence[str]
    ) -> LivePane:
        """Send keys to the named pane without submitting them."""
        if isinstance(keys, str):
            keys = [keys]
        pane = self.live_pane(spec, require_pane(spec, pane_name))
        self.adapter.send_raw_keys(pane.pane_id, list(keys))
        logger.info("Keys sent", session=spec.session_name, pane=pane_name)
        return pane

    def capture(
        self, spec: SessionSpec, pane_name: str, lines: int = DEFAULT_CAPTURE_LINES
    ) -> str:
        """Return the last ``lines`` lines of the named pane."""
        pane = self.live_pane(spec, require_pane(spec, pane_name))
        return self.adapter.capture_pane(pane.pane_id, lines)

    def restart(self, spec: SessionSpec, pane_name: str) -> PaneResult:
        """Interrupt the named pane and run its declared command again.

        A pane missing from the live session is skipped, not recreated.

        Raises:
            UnknownPaneError: If no pane has this name
            AdapterError: If tmux rejects the interrupt or the command
        """
        location = require_pane(spec, pane_name)
        return self._restart_at(spec, location)

    def _restart_at(self, spec: SessionSpec, location: PaneLocation) -> PaneResult:
        pane_spec = spec.windows[location.window_index].panes[location.pane_index]
        try:
            pane = self.live_pane(spec, location)
        except StaleTopologyWarning as w:
            logger.warning(
                f"{w.message}, skipping",
                session=spec.session_name,
                pane=pane_spec.name,
            )
            return PaneResult(pane_spec.name, PaneOutcome.SKIPPED, f"{w.message}, skipping.")

        self.adapter.send_raw_keys(pane.pane_id, [INTERRUPT_KEY])
        self.adapter.send_keys(pane.pane_id, pane_spec.command)
        logger.info("Pane restarted", session=spec.session_name, pane=pane_spec.name)
        return PaneResult(pane_spec.name, PaneOutcome.RESTARTED)

    def restart_all(self, spec: SessionSpec) -> list[PaneResult]:
        """Restart every declared pane; never raises for a single pane."""
        results = []
        for window_index, pane_index, _, pane in spec.iter_panes():
            try:
                result = self._restart_at(spec, PaneLocation(window_index, pane_index))
            except AdapterError as e:
                logger.error(
                    "Pane restart failed",
                    session=spec.session_name,
                    pane=pane.name,
                    error=e.message,
                )
                result = PaneResult(pane.name, PaneOutcome.FAILED, e.message)
            results.append(result)
        return results

    def capture_all(
        self, spec: SessionSpec, lines: int = DEFAULT_CAPTURE_LINES
    ) -> list[PaneCapture]:
        """Capture every live pane of every declared window."""
        captures = []
        windows = self.adapter.list_windows(spec.session_name)
        for window_index, window in enumerate(spec.windows):
            if window_index >= len(windows):
                captures.extend(
                    PaneCapture(p.name, error="window not found in tmux session")
                    for p in window.panes
                )
                continue

            try:
                panes = self.adapter.list_panes(
                    window_target(spec.session_name, windows[window_index].index)
                )
            except AdapterError as e:
                captures.extend(PaneCapture(p.name, error=e.message) for p in window.panes)
                continue

            for position, pane in enumerate(panes):
                name = _declared_name(window, position, pane)
                try:
                    captures.append(
                        PaneCapture(name, self.adapter.capture_pane(pane.pane_id, lines))
                    )
                except AdapterError as e:
                    captures.append(PaneCapture(name, error=e.message))
        return captures

    def status(self, spec: SessionSpec) -> list[WindowStatus]:
        """List live windows and panes, labelled with declared names."""
        statuses = []
        for position, window in enumerate(self.adapter.list_windows(spec.session_name)):
            declared = spec.windows[position] if position < len(spec.windows) else None
            status = WindowStatus(
                index=window.index,
                name=declared.name if declared else window.name,
                active=window.active,
            )
            panes = self.adapter.list_panes(window_target(spec.session_name, window.index))
            for pane_position, pane in enumerate(panes):
                status.panes.append(
                    PaneStatus(
                        index=pane.index,
                        name=_declared_name(declared, pane_position, pane),
                        pane_id=pane.pane_id,
                        active=pane.active,
                    )
                )
            statuses.append(status)
        return statuses


def _declared_name(window: WindowSpec | None, position: int, pane: LivePane) -> str:
    """Name for a live pane: its tag, else the declared pane at its position."""
    if pane.tag:
        return pane.tag
    if window is not None and position < len(window.panes):
        return window.panes[position].name
    return f"pane-{position}"
