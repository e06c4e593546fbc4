"""
Configuration loader.

- Reads env vars (LOGKEEPER_*)
- Optional YAML / JSON config file, validated with jsonschema
- Provides strongly-typed Settings and builds the per-run KeeperConfig

Precedence: override dict > config file > environment > defaults.
"""

from __future__ import annotations
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
import yaml

from keeper.config import DEFAULT_ARCHIVE_NAME, UNBOUNDED, KeeperConfig
from keeper.errors import ConfigurationError

ENV_PREFIX = "LOGKEEPER_"
DEFAULT_AGE = "1 month"

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "path": {"type": "string", "minLength": 1},
        "age": {"type": ["string", "integer"]},
        "archive_name": {"type": "string", "minLength": 1},
        "max_entries": {"type": "integer", "minimum": -1},
        "log_level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL",
                                                "debug", "info", "warning", "error", "critical"]},
        "log_file": {"type": ["string", "null"]},
    },
}


@dataclass(frozen=True)
class Settings:
    PATH: str
    AGE: str
    ARCHIVE_NAME: str
    MAX_ENTRIES: int

    # Logging
    LOG_LEVEL: str
    LOG_FILE: Optional[str]

    def keeper_config(self) -> KeeperConfig:
        if not self.PATH:
            raise ConfigurationError(f"Missing log path: set {ENV_PREFIX}PATH or pass --path")
        return KeeperConfig(
            pattern=self.PATH,
            age_threshold=self.AGE,
            archive_name=self.ARCHIVE_NAME,
            max_archive_entries=self.MAX_ENTRIES,
        )


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(ENV_PREFIX + name, default)


def _to_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def load_config_file(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Config file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            if p.suffix.lower() in {".yaml", ".yml"}:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Invalid config file {p}: {e}") from e

    data = data or {}
    try:
        jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ConfigurationError(f"Invalid config file {p}: {e.message}") from e
    return data


def load_settings(override: dict | None = None, config_file: str | None = None) -> Settings:
    o = {k: v for k, v in (override or {}).items() if v is not None}
    f = load_config_file(config_file) if config_file else {}

    def pick(key: str, env_name: str, default: Any = None) -> Any:
        if key in o:
            return o[key]
        if key in f:
            return f[key]
        return _env(env_name, default)

    return Settings(
        PATH=pick("path", "PATH", "") or "",
        AGE=str(pick("age", "AGE", DEFAULT_AGE)),
        ARCHIVE_NAME=pick("archive_name", "ARCHIVE_NAME", DEFAULT_ARCHIVE_NAME),
        MAX_ENTRIES=_to_int(pick("max_entries", "MAX_ENTRIES", UNBOUNDED), "max_entries"),
        LOG_LEVEL=str(pick("log_level", "LOG_LEVEL", "INFO")).upper(),
        LOG_FILE=pick("log_file", "LOG_FILE"),
    )
