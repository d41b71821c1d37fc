#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Configuration constants and settings for pmx.

Defaults live at module level (overridable through environment variables).
``load_config`` layers the optional YAML config files on top of them and
returns an immutable :class:`PMXConfig` that callers thread explicitly into
sessions.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pmx.debug_logger import get_logger


PMX_DIR_NAME = ".pmx"
CONFIG_FILE_NAME = "config.yaml"
GLOBAL_CONFIG_PATH = Path.home() / PMX_DIR_NAME / CONFIG_FILE_NAME

DEFAULT_MODEL = os.getenv("PMX_MODEL", "gpt-4o-mini")
DEFAULT_OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

# Tool output limits
MAX_READ_CHARS = 10_000
LIST_LIMIT = 500
SEARCH_MATCH_LIMIT = 200
MAX_FILE_BYTES = 1_000_000

# Session budgets (turns, seconds)
INVESTIGATION_MAX_TURNS = 10
INVESTIGATION_MAX_SECONDS = 180.0
FEATURE_MAX_TURNS = 10
FEATURE_MAX_SECONDS = 600.0
REPL_MAX_TURNS = 30
REPL_MAX_SECONDS = 900.0

LOG_RETENTION_LIMIT = 10


class ConfigError(ValueError):
    """Raised when a config file cannot be parsed."""


@dataclass(frozen=True)
class PMXConfig:
    """Resolved configuration for one pmx process."""

    model: str = DEFAULT_MODEL
    provider: Optional[str] = None
    openai_api_key: str = ""
    ollama_base_url: str = DEFAULT_OLLAMA_BASE_URL
    temperature: float = 0.1
    max_read_chars: int = MAX_READ_CHARS
    list_limit: int = LIST_LIMIT
    search_match_limit: int = SEARCH_MATCH_LIMIT
    max_file_bytes: int = MAX_FILE_BYTES
    investigation_max_turns: int = INVESTIGATION_MAX_TURNS
    investigation_max_seconds: float = INVESTIGATION_MAX_SECONDS
    feature_max_turns: int = FEATURE_MAX_TURNS
    feature_max_seconds: float = FEATURE_MAX_SECONDS
    repl_max_turns: int = REPL_MAX_TURNS
    repl_max_seconds: float = REPL_MAX_SECONDS
    debug: bool = False
    log_retention: int = LOG_RETENTION_LIMIT


_FIELD_TYPES = {f.name: f.type for f in fields(PMXConfig)}
# Limits and budgets; zero or negative values are rejected like malformed ones.
_POSITIVE_FIELDS = {
    name for name, kind in _FIELD_TYPES.items() if kind in ("int", "float") and name != "temperature"
}


def read_config_file(path: Path) -> Dict[str, Any]:
    """Read a YAML config file and return its mapping (empty when missing).

    Raises:
        ConfigError: If the file exists but is not a YAML mapping.
    """
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def _coerce(name: str, value: Any) -> Any:
    field_type = _FIELD_TYPES[name]
    if value is None:
        return None
    if field_type == "bool":
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    if field_type == "int":
        number = int(value)
    elif field_type == "float":
        number = float(value)
    else:
        return str(value)
    if name in _POSITIVE_FIELDS and not number > 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return number


def _apply_mapping(cfg: PMXConfig, data: Dict[str, Any], source: str) -> PMXConfig:
    logger = get_logger()
    updates: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in _FIELD_TYPES:
            logger.warning(f"Ignoring unknown config key '{key}' in {source}")
            continue
        try:
            updates[key] = _coerce(key, value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid value for '{key}' in {source}: {value!r}")
    return replace(cfg, **updates) if updates else cfg


def _env_overrides() -> Dict[str, Any]:
    env_map = {
        "PMX_MODEL": "model",
        "PMX_LLM_PROVIDER": "provider",
        "OPENAI_API_KEY": "openai_api_key",
        "OLLAMA_BASE_URL": "ollama_base_url",
        "PMX_MAX_TURNS": "investigation_max_turns",
        "PMX_MAX_SECONDS": "investigation_max_seconds",
        "PMX_DEBUG": "debug",
    }
    overrides = {}
    for env_name, key in env_map.items():
        raw = os.getenv(env_name)
        if raw is not None and raw.strip():
            overrides[key] = raw.strip()
    return overrides


def load_config(
    root: Optional[Path] = None,
    global_path: Optional[Path] = None,
    **overrides: Any,
) -> PMXConfig:
    """Build the effective configuration.

    Precedence (lowest first): defaults, global config file, project config
    file (``<root>/.pmx/config.yaml``), environment variables, ``overrides``
    (command-line flags). ``None`` overrides are ignored.
    """
    logger = get_logger()
    cfg = PMXConfig()

    sources = [global_path or GLOBAL_CONFIG_PATH]
    if root is not None:
        sources.append(Path(root) / PMX_DIR_NAME / CONFIG_FILE_NAME)

    for path in sources:
        try:
            cfg = _apply_mapping(cfg, read_config_file(path), str(path))
        except ConfigError as e:
            logger.error(str(e))
            print(f"[pmx] {e} (using defaults)")

    cfg = _apply_mapping(cfg, _env_overrides(), "environment")
    cli = {k: v for k, v in overrides.items() if v is not None}
    if cli:
        cfg = _apply_mapping(cfg, cli, "command line")
    return cfg
