"""Configuration discovery, loading and validation."""

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..utils.logging import ConfigurationError, LogContext, get_logger
from .models import SessionSpec

logger = get_logger(__name__, LogContext.CONFIG)

ENV_PREFIX = "MUX_"

# Checked in this order in every directory while walking up
CONFIG_FILENAMES = (".muxrc", "mux.yaml", "mux.yml")
PACKAGE_JSON = "package.json"
PACKAGE_JSON_KEY = "mux"

DEFAULT_WINDOW_NAME = "main"


def find_config_file(
    custom_path: str | None = None, start: Path | None = None
) -> tuple[Path, dict[str, Any]]:
    """Find the configuration and return its path with the raw mapping.

    An explicit path wins. Otherwise every directory from ``start`` up to
    the filesystem root is searched for ``.muxrc``, ``mux.yaml``,
    ``mux.yml`` and finally a ``mux`` key in ``package.json``.
    """
    custom_path = custom_path or os.environ.get(f"{ENV_PREFIX}CONFIG")
    if custom_path:
        path = Path(custom_path).expanduser()
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {custom_path}")
        return path.resolve(), load_config_file(path)

    directory = (start or Path.cwd()).resolve()
    while True:
        for filename in CONFIG_FILENAMES:
            path = directory / filename
            if path.is_file():
                return path, load_config_file(path)

        package_json = directory / PACKAGE_JSON
        if package_json.is_file():
            data = load_package_json(package_json)
            if data.get(PACKAGE_JSON_KEY):
                return package_json, data[PACKAGE_JSON_KEY]

        if directory.parent == directory:
            break
        directory = directory.parent

    raise ConfigurationError(
        'No mux config found. Add a .muxrc file or a "mux" key in package.json'
    )


def load_config_file(config_path: Path) -> dict[str, Any]:
    """Load a YAML (or JSON) configuration file."""
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file {config_path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to read config file {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    return data


def load_package_json(path: Path) -> dict[str, Any]:
    """Load package.json, returning an empty mapping if it is not an object."""
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to read {path}: {e}")
    return data if isinstance(data, dict) else {}


def load_env_vars() -> dict[str, Any]:
    """Load configuration overrides from environment variables."""
    config: dict[str, Any] = {}

    session = os.environ.get(f"{ENV_PREFIX}SESSION")
    if session:
        config["session"] = session

    return config


def _normalize_windows(raw: dict[str, Any]) -> list[Any]:
    """Return the windows list, wrapping a flat ``panes`` list in one window."""
    windows = raw.get("windows")
    if windows is None and "panes" in raw:
        panes = raw["panes"]
        if not isinstance(panes, list) or not panes:
            raise ConfigurationError("mux config needs at least one pane")
        return [{"name": DEFAULT_WINDOW_NAME, "panes": panes}]

    if not isinstance(windows, list) or not windows:
        raise ConfigurationError("mux config needs at least one window")
    return windows


def _check_window(index: int, window: Any) -> None:
    if not isinstance(window, dict):
        raise ConfigurationError(f"window {index} must be a mapping")
    if not window.get("name"):
        raise ConfigurationError(f'window {index} missing "name"')

    panes = window.get("panes")
    if not isinstance(panes, list) or not panes:
        raise ConfigurationError(f'window "{window["name"]}" needs at least one pane')

    seen = set()
    for pane_index, pane in enumerate(panes):
        if not isinstance(pane, dict):
            raise ConfigurationError(f"pane {pane_index} must be a mapping")
        if not pane.get("name"):
            raise ConfigurationError(f'pane {pane_index} missing "name"')
        if not (pane.get("cmd") or pane.get("command")):
            raise ConfigurationError(f'pane {pane_index} missing "cmd"')
        if not isinstance(pane["name"], str):
            raise ConfigurationError(f'pane {pane_index} "name" must be a string')
        if pane["name"] in seen:
            raise ConfigurationError(
                f'window "{window["name"]}" has duplicate pane "{pane["name"]}"'
            )
        seen.add(pane["name"])


def parse_config(raw: dict[str, Any], root: str | Path) -> SessionSpec:
    """Validate a raw configuration mapping and build a SessionSpec.

    Args:
        raw: Mapping read from the config file
        root: Directory the config was found in

    Returns:
        The validated SessionSpec

    Raises:
        ConfigurationError: If the mapping does not describe a valid session
    """
    if not isinstance(raw, dict):
        raise ConfigurationError("mux config must be a mapping")

    root = str(Path(root).resolve())
    windows = _normalize_windows(raw)
    for index, window in enumerate(windows):
        _check_window(index, window)

    data = {
        "session": raw.get("session") or os.path.basename(root),
        "windows": windows,
        "focus": raw.get("focus", raw.get("focus_window_index", 0)),
        "project_root": root,
    }

    try:
        return SessionSpec.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def load_config(
    config_path: str | None = None,
    start: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> SessionSpec:
    """Discover, load and validate the session configuration.

    Precedence order (highest to lowest):
    1. CLI flag overrides
    2. Environment variables
    3. Configuration file
    """
    path, raw = find_config_file(config_path, start)
    logger.debug("Configuration file found", path=str(path))

    raw = dict(raw)
    raw.update(load_env_vars())
    if cli_overrides:
        raw.update({k: v for k, v in cli_overrides.items() if v is not None})

    spec = parse_config(raw, path.parent)
    logger.info(
        "Configuration loaded",
        path=str(path),
        session=spec.session_name,
        window_count=len(spec.windows),
    )
    return spec
