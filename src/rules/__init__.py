"""Configuration rules for symmap."""

from rules.config import (
    CONFIG_FILENAME,
    ConfigError,
    EngineConfig,
    SymMapConfig,
    load_config,
    resolve_output_dir,
)

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "EngineConfig",
    "SymMapConfig",
    "load_config",
    "resolve_output_dir",
]
