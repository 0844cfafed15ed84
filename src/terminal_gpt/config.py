"""Configuration management for terminal-gpt."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

_logger = logging.getLogger(__name__)

DATA_DIR = Path.home() / ".terminal-gpt"
CONFIG_FILENAME = "terminal_gpt.yaml"
USER_CONFIG_PATH = DATA_DIR / "config.yaml"

DEFAULT_SYSTEM_PROMPT = (
    "You are a terminal-based ChatGPT CLI assistant. You run entirely inside a "
    "command-line interface and do not have a GUI. You are a knowledgeable, "
    "pragmatic software engineer who explains concepts clearly, writes concise "
    "and well-commented code, and offers practical advice. You understand that "
    "the user may paste commands, scripts, or errors, and you respond with "
    "relevant technical solutions. When outputting code, always use fenced code "
    "blocks with the appropriate language identifier. Avoid unnecessary fluff "
    "and respect the limitations of a CLI environment."
)


class ConfigError(ValueError):
    """Raised for unknown config keys or values that fail validation."""


class RetryConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=2.0, ge=0)  # seconds: 2, 4, 8


class AppConfig(BaseModel):
    model: str = "gpt-4o-mini"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    api_url: str = "https://api.openai.com/v1/chat/completions"
    api_key_env: str = "OPENAI_API_KEY"
    env_mode: Literal["env", "dotenv"] = "env"
    autosave: bool = False
    sessions_dir: str = str(DATA_DIR / "sessions")
    timeout: float = 120
    verbose: bool = False
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @property
    def sessions_path(self) -> Path:
        return Path(self.sessions_dir).expanduser()

    def snapshot(self) -> AppConfig:
        """Immutable copy handed to a single turn."""
        return self.model_copy(deep=True)


def find_config(config_path: str | Path | None = None) -> Path | None:
    """Resolve which config file to use.

    Search order (first match wins):
      1. Explicit ``--config`` path
      2. ``./terminal_gpt.yaml`` in the current directory
      3. ``~/.terminal-gpt/config.yaml``
    """
    if config_path is not None:
        return Path(config_path)
    for p in (Path.cwd() / CONFIG_FILENAME, USER_CONFIG_PATH):
        if p.exists():
            return p
    return None


def load_config(
    config_path: str | Path | None = None,
) -> tuple[AppConfig, Path]:
    """Load configuration from YAML.

    Returns (config, resolved_path).  When no file is found the defaults
    are written to ``~/.terminal-gpt/config.yaml`` so the user has a file
    to edit.  An explicit path that does not exist is an error.
    """
    resolved = find_config(config_path)
    if resolved is None:
        config = AppConfig()
        save_config(config, USER_CONFIG_PATH)
        _logger.debug("Wrote default config to %s", USER_CONFIG_PATH)
        return _apply_env(config), USER_CONFIG_PATH.resolve()

    if not resolved.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(resolved) as f:
        raw: dict[str, Any] = yaml.safe_load(f) or {}
    return _apply_env(AppConfig.model_validate(raw)), resolved.resolve()


def _apply_env(config: AppConfig) -> AppConfig:
    if os.environ.get("VERBOSE") == "1":
        config.verbose = True
    return config


def save_config(config: AppConfig, path: str | Path) -> Path:
    """Write *config* as YAML, creating parent directories."""
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(), f, sort_keys=False, allow_unicode=True)
    return path


def load_api_key(config: AppConfig) -> str | None:
    """Read the API key, loading ``.env`` first in dotenv mode."""
    if config.env_mode == "dotenv":
        load_dotenv(find_dotenv(usecwd=True))
    return os.environ.get(config.api_key_env) or None


def coerce_value(raw: str) -> Any:
    """Interpret a ``/set`` argument: booleans, numbers, JSON, else string."""
    value = raw.strip()
    if value == "true":
        return True
    if value == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if (value.startswith("[") and value.endswith("]")) or (
        value.startswith("{") and value.endswith("}")
    ):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass
    return value


def set_config_value(config: AppConfig, key: str, raw: str) -> AppConfig:
    """Return a copy of *config* with *key* set from the string *raw*.

    Dotted keys reach into nested sections (``retry.max_retries``).
    When the coerced value does not fit the field, the plain string is
    tried instead, so ``/set model 4`` names a model "4".
    """
    data = config.model_dump()
    section = data
    parts = key.split(".")
    for part in parts[:-1]:
        if not isinstance(section.get(part), dict):
            raise ConfigError(f"Unknown key '{key}'. Keys: {', '.join(_keys(data))}")
        section = section[part]
    if parts[-1] not in section or isinstance(section[parts[-1]], dict):
        raise ConfigError(f"Unknown key '{key}'. Keys: {', '.join(_keys(data))}")
    value = coerce_value(raw)
    section[parts[-1]] = value
    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        error = e
    if not isinstance(value, str):
        section[parts[-1]] = raw.strip()
        try:
            return AppConfig.model_validate(data)
        except ValidationError:
            pass
    raise ConfigError(f"Invalid value for '{key}': {error.errors()[0]['msg']}") from error


def _keys(data: dict[str, Any], prefix: str = "") -> list[str]:
    keys: list[str] = []
    for name, value in data.items():
        if isinstance(value, dict):
            keys.extend(_keys(value, f"{prefix}{name}."))
        else:
            keys.append(f"{prefix}{name}")
    return keys
