"""Mapping pane names from the configuration to window/pane positions."""

from dataclasses import dataclass

from ..config.models import SessionSpec
from ..utils.logging import UnknownPaneError


@dataclass(frozen=True)
class PaneLocation:
    """Declared position of a pane: window order and order within the window."""

    window_index: int
    pane_index: int


def resolve(spec: SessionSpec, pane_name: str) -> PaneLocation | None:
    """Find the first declared pane called ``pane_name``.

    Windows are scanned in declared order, so a name repeated in a later
    window is shadowed by the earlier one. Only the configuration is
    consulted; the live session is never queried here.
    """
    for window_index, window in enumerate(spec.windows):
        for pane_index, pane in enumerate(window.panes):
            if pane.name == pane_name:
                return PaneLocation(window_index, pane_index)
    return None


def require_pane(spec: SessionSpec, pane_name: str) -> PaneLocation:
    """Like resolve(), but raise UnknownPaneError when nothing matches."""
    location = resolve(spec, pane_name)
    if location is None:
        raise UnknownPaneError(pane_name)
    return location
