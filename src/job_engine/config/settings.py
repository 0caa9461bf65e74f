"""
Top-level Settings object and process-wide accessors.
"""

from __future__ import annotations

import dataclasses
import os
import tomllib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from ..errors import InvalidConfigError
from .engine import EngineConfig
from .logging import LoggingConfig
from .storage import StorageConfig


def _optional_seconds(raw: str) -> float | None:
    return None if raw.strip().lower() in ("none", "off", "") else float(raw)


# (variable suffix, section, key, parser)
_ENV_VARS: tuple[tuple[str, str, str, Callable[[str], Any]], ...] = (
    ("QUEUE_SIZE", "engine", "queue_size", int),
    ("MAX_ATTEMPTS", "engine", "max_attempts", int),
    ("BASE_DELAY", "engine", "base_delay", float),
    ("ATTEMPT_TIMEOUT", "engine", "attempt_timeout", _optional_seconds),
    ("ARTIFACTS_DIR", "engine", "artifacts_dir", Path),
    ("LOG_LEVEL", "logging", "level", str.upper),
    ("LOG_FORMAT", "logging", "format", str.lower),
    ("STORAGE_BACKEND", "storage", "backend", str.lower),
    ("DATABASE_URL", "storage", "dsn", str),
)

_SECTIONS: dict[str, type] = {
    "engine": EngineConfig,
    "logging": LoggingConfig,
    "storage": StorageConfig,
}


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _read_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


_READERS: dict[str, Callable[[Path], dict[str, Any]]] = {
    ".yaml": _read_yaml,
    ".yml": _read_yaml,
    ".toml": _read_toml,
}


@dataclass
class Settings:
    """
    Everything the engine needs to start: engine limits, diagnostic
    logging and the job record store.

    Built from environment variables, a YAML/TOML file, or directly.
    """

    engine: EngineConfig = field(default_factory=EngineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @classmethod
    def from_env(cls, prefix: str = "JOB_ENGINE_") -> Settings:
        """
        Build settings from ``<prefix>*`` environment variables.

        Example:
            JOB_ENGINE_QUEUE_SIZE=10
            JOB_ENGINE_MAX_ATTEMPTS=3
            JOB_ENGINE_ATTEMPT_TIMEOUT=none
            JOB_ENGINE_STORAGE_BACKEND=postgres
            JOB_ENGINE_DATABASE_URL=postgresql://...

        Raises:
            InvalidConfigError: If a variable doesn't parse or a section
                rejects the resulting value
        """
        sections: dict[str, dict[str, Any]] = {name: {} for name in _SECTIONS}
        try:
            for suffix, section, key, parse in _ENV_VARS:
                raw = os.getenv(prefix + suffix)
                if raw:
                    sections[section][key] = parse(raw)
            return cls._build(sections)
        except ValueError as e:
            raise InvalidConfigError(f"Invalid environment configuration: {e}", cause=e) from e

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Build settings from a ``.yaml``/``.yml`` or ``.toml`` file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the extension is not supported
            InvalidConfigError: If the content fails validation
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        reader = _READERS.get(path.suffix.lower())
        if reader is None:
            raise ValueError(f"Unsupported config file format: {path.suffix}")
        return cls.from_dict(reader(path))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Validate ``data`` against CONFIG_SCHEMA and build settings from it."""
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise InvalidConfigError(f"Configuration validation failed: {e.message}", cause=e) from e

        try:
            return cls._build(data)
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(f"Configuration validation failed: {e}", cause=e) from e

    @classmethod
    def _build(cls, data: dict[str, Any]) -> Settings:
        return cls(**{name: section(**(data.get(name) or {})) for name, section in _SECTIONS.items()})

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view (paths as strings), e.g. for logging at startup."""

        def plain(value: Any) -> Any:
            if isinstance(value, dict):
                return {k: plain(v) for k, v in value.items()}
            if isinstance(value, Path):
                return str(value)
            return value

        return plain(dataclasses.asdict(self))


# =============================================================================
# Process-wide settings
# =============================================================================

_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, read from the environment on first use."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None, **sections: Any) -> Settings:
    """
    Install process-wide settings.

    Args:
        settings: Settings to install; the current (or env-derived)
            settings are kept when omitted
        **sections: Replacement section objects, e.g. ``engine=EngineConfig(...)``
    """
    global _global_settings
    _global_settings = settings or get_settings()

    for name, value in sections.items():
        if name not in _SECTIONS:
            raise ValueError(f"Unknown settings section: {name}")
        setattr(_global_settings, name, value)
    return _global_settings


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load a ``.env`` file into the environment before ``Settings.from_env``.

    Returns:
        True if a file was found and loaded
    """
    env_path = path or find_dotenv(usecwd=True)
    return bool(env_path) and load_dotenv(env_path, override=override)


__all__ = ["Settings", "get_settings", "configure", "load_env"]
