"""mux-orchestrator: keep a declared tmux session of windows and panes running."""

__version__ = "0.1.0"

from .config.models import PaneSpec, SessionSpec, WindowSpec
from .core.orchestrator import SessionOrchestrator

__all__ = ["PaneSpec", "SessionSpec", "SessionOrchestrator", "WindowSpec", "__version__"]
