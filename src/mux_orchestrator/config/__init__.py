"""Configuration management module."""

from .loader import find_config_file, load_config, parse_config
from .models import PaneSpec, SessionSpec, WindowSpec

__all__ = [
    "PaneSpec",
    "SessionSpec",
    "WindowSpec",
    "find_config_file",
    "load_config",
    "parse_config",
]
