"""Settings files, directories, and layered settings resolution.

* **Directories** -- :func:`get_config_dir`, :func:`get_cache_dir` and
  :func:`get_data_dir` follow the XDG base-directory variables on Linux and
  the BSDs and use ``~/.loginflow/`` elsewhere.
* **Settings file** -- one :class:`~loginflow.models.Settings` document,
  ``config.json`` in the config directory, replaced atomically on save.
* **Resolution** -- :func:`resolve_settings` layers the settings file, a
  project-local ``loginflow.json``, ``LOGINFLOW_*`` environment variables
  and explicit overrides.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from loginflow.exceptions import ConfigError
from loginflow.models import Settings

_APP_NAME = "loginflow"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "loginflow.json"

ENV_PREFIX = "LOGINFLOW_"
"""Prefix of environment variables that override settings fields."""

_ENV_FIELDS = (
    "api_base_url",
    "base_path",
    "user_key",
    "user_secret",
    "company_id",
    "login_fallback",
    "header_prefix",
    "credentials_url",
    "login_notice",
)

# kind -> (XDG variable, default under $HOME, subdirectory of ~/.loginflow)
_DIRS = {
    "config": ("XDG_CONFIG_HOME", (".config",), ""),
    "cache": ("XDG_CACHE_HOME", (".cache",), "cache"),
    "data": ("XDG_DATA_HOME", (".local", "share"), "logs"),
}


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_segments, fallback_sub = _DIRS[kind]
    if _is_xdg_platform():
        root = os.environ.get(env_var) or str(Path.home().joinpath(*home_segments))
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback_sub:
            path = path / fallback_sub
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json`` (``~/.config/loginflow`` by default)."""
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Directory for the persisted login-mode cache. Safe to delete."""
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Directory for crash logs."""
    return _app_dir("data")


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* via a sibling temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


# --- Settings file ---


def _settings_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _read_json(path: Path, label: str) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {label} at {path}: expected a JSON object")
    return data


def load_settings() -> Settings:
    """Load the user settings file.

    Returns:
        The deserialised :class:`~loginflow.models.Settings`, or a default
        instance when the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = _settings_path()
    if not path.is_file():
        return Settings()
    data = _read_json(path, "settings")
    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: Settings) -> None:
    """Persist *settings* atomically to the user settings file."""
    data = settings.model_dump(mode="json")
    _atomic_write(_settings_path(), json.dumps(data, indent=2) + "\n")


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local overrides from ``./loginflow.json``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a valid JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    return _read_json(path, "project config")


def _env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for field in _ENV_FIELDS:
        value = os.environ.get(f"{ENV_PREFIX}{field.upper()}")
        if value:
            overrides[field] = value
    return overrides


def resolve_settings(overrides: Optional[dict[str, Any]] = None) -> Settings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. *overrides* (CLI flags)
        2. Environment variables (``LOGINFLOW_API_BASE_URL``, ``LOGINFLOW_USER_KEY``, ...)
        3. Project config (``./loginflow.json``)
        4. User settings (``~/.config/loginflow/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer is malformed or the merged result fails
            validation.
    """
    merged = load_settings().model_dump(mode="json")

    project = load_project_config()
    if project:
        merged.update(project)

    merged.update(_env_overrides())

    if overrides:
        merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return Settings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc

