"""
Configuration system for job-engine.

This package provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable loading
- YAML/TOML file loading
- Sensible defaults with override capability
"""

from .base import LogFormat, LogLevel, StorageBackendType
from .engine import EngineConfig
from .logging import LoggingConfig
from .settings import Settings, configure, get_settings, load_env
from .storage import StorageConfig

__all__ = [
    # Types
    "StorageBackendType",
    "LogLevel",
    "LogFormat",
    # Section configs
    "EngineConfig",
    "LoggingConfig",
    "StorageConfig",
    # Master config
    "Settings",
    # Global functions
    "get_settings",
    "configure",
    "load_env",
]
