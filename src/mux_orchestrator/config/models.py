"""Configuration models describing the desired session shape."""

import os

from pydantic import BaseModel, ConfigDict, Field


class PaneSpec(BaseModel):
    """A single pane: a name, the command it runs, and where it runs it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1, description="Pane name, unique within its window")
    command: str = Field(
        alias="cmd", min_length=1, description="Shell command line, sent verbatim"
    )
    working_directory: str | None = Field(
        default=None,
        alias="cwd",
        description="Working directory relative to the project root",
    )


class WindowSpec(BaseModel):
    """An ordered, named group of panes sharing one tmux window."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1, description="Window name")
    panes: tuple[PaneSpec, ...] = Field(min_length=1, description="Panes in order")
    layout: str | None = Field(default=None, description="tmux layout name")

    def default_layout(self) -> str:
        """Layout to apply: the explicit one, else chosen by pane count."""
        if self.layout:
            return self.layout
        if len(self.panes) == 2:
            return "even-horizontal"
        return "tiled"


class SessionSpec(BaseModel):
    """The full declared session: name, windows and project root."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    session_name: str = Field(alias="session", min_length=1, description="Session name")
    windows: tuple[WindowSpec, ...] = Field(min_length=1, description="Windows in order")
    focus_window_index: int = Field(
        default=0, alias="focus", description="Window selected on attach"
    )
    project_root: str = Field(description="Absolute path the config was found in")

    def pane_directory(self, pane: PaneSpec) -> str:
        """Resolve a pane's working directory against the project root."""
        if pane.working_directory:
            return os.path.join(self.project_root, pane.working_directory)
        return self.project_root

    def iter_panes(self):
        """Yield ``(window_index, pane_index, window, pane)`` in declared order."""
        for window_index, window in enumerate(self.windows):
            for pane_index, pane in enumerate(window.panes):
                yield window_index, pane_index, window, pane
