"""Configuration loading and validation for the TaskTerm TUI."""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
import re
import tomllib
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigValidationError

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "taskterm"
CONFIG_PATH = CONFIG_DIR / "config.toml"

NAMESPACE_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

ConfigData = dict[str, dict[str, Any]]


def _clean_text(value: Any, label: str) -> str:
    """Return ``value`` stripped; reject non-strings and blanks."""
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string.")
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{label} must not be empty.")
    return cleaned


class AppConfig(BaseModel):
    """Application metadata."""

    title: str = "TaskTerm"

    @field_validator("title", mode="before")
    @classmethod
    def _check_title(cls, value: Any) -> str:
        return _clean_text(value, "title")


class StorageConfig(BaseModel):
    """Where task records are kept."""

    backend: Literal["json", "memory"] = "json"
    directory: str = "~/.local/share/taskterm"
    namespace: str = "todos"

    @field_validator("backend", mode="before")
    @classmethod
    def _lower_backend(cls, value: Any) -> str:
        return _clean_text(value, "backend").lower()

    @field_validator("directory", mode="before")
    @classmethod
    def _check_directory(cls, value: Any) -> str:
        return _clean_text(value, "directory")

    @field_validator("namespace", mode="before")
    @classmethod
    def _check_namespace(cls, value: Any) -> str:
        namespace = _clean_text(value, "namespace")
        if not NAMESPACE_PATTERN.match(namespace):
            raise ValueError("namespace may only contain letters, digits, '.', '_' and '-'.")
        return namespace


class UIConfig(BaseModel):
    """Rendering options."""

    hint_delay_seconds: float = Field(default=1.0, ge=0.0, le=30.0)
    show_stats: bool = True


class KeybindsConfig(BaseModel):
    """Key for each app action; see ``TaskTermApp.DEFAULT_ACTION_DESCRIPTIONS``."""

    clear_completed: str = "ctrl+x"
    focus_new_todo: str = "ctrl+n"
    quit: str = "ctrl+q"

    @field_validator("*", mode="before")
    @classmethod
    def _check_key(cls, value: Any) -> str:
        return _clean_text(value, "keybind")


class LoggingConfig(BaseModel):
    """Log level, format and optional file output."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/taskterm/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _check_level(cls, value: Any) -> str:
        level = _clean_text(value, "level").upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {level!r}.")
        return level

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _check_log_file_path(cls, value: Any) -> str:
        return _clean_text(value, "log_file_path")


SECTIONS: dict[str, type[BaseModel]] = {
    "app": AppConfig,
    "storage": StorageConfig,
    "ui": UIConfig,
    "keybinds": KeybindsConfig,
    "logging": LoggingConfig,
}

DEFAULT_CONFIG: ConfigData = {
    name: model().model_dump() for name, model in SECTIONS.items()
}


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Create the config directory if needed and return it."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create config directory %s: %s", directory, exc)
    return directory


def _restrict_to_owner(path: Path) -> None:
    if os.name != "posix":
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning("Unable to enforce 0600 permissions for %s: %s", path, exc)


def _read_toml(path: Path) -> dict[str, Any]:
    """Parse ``path``; an unreadable or malformed file counts as empty."""
    if not path.exists():
        return {}
    _restrict_to_owner(path)
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        LOGGER.warning("Failed to parse config at %s: %s", path, exc)
        return {}


def _validate_section(name: str, user_values: Any) -> dict[str, Any]:
    """Validate one section over its defaults, falling back to the defaults."""
    defaults = DEFAULT_CONFIG[name]
    if user_values is None:
        return deepcopy(defaults)
    if not isinstance(user_values, dict):
        LOGGER.warning("Config section [%s] must be a table; using defaults.", name)
        return deepcopy(defaults)
    try:
        return SECTIONS[name].model_validate({**defaults, **user_values}).model_dump()
    except ValidationError as exc:
        LOGGER.warning("Config section [%s] is invalid, using defaults: %s", name, exc)
        return deepcopy(defaults)
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigValidationError(f"Unable to validate [{name}]: {exc}") from exc


def load_config(config_path: Path | None = None) -> ConfigData:
    """Load the TOML config and validate it section by section.

    A section that fails validation is replaced by its defaults; the other
    sections keep the user's values. Unknown sections are ignored.
    """
    target_path = config_path or CONFIG_PATH
    ensure_config_dir(target_path.parent)
    raw_data = _read_toml(target_path)
    for name in raw_data.keys() - SECTIONS.keys():
        LOGGER.warning("Ignoring unknown config section [%s].", name)
    return {name: _validate_section(name, raw_data.get(name)) for name in SECTIONS}
