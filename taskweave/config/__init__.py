"""Configuration module."""

from taskweave.config.loader import (
    build_agent_from_config,
    build_memory_from_config,
    load_config,
    save_default_config,
)
from taskweave.config.schema import Config

__all__ = [
    "Config",
    "build_agent_from_config",
    "build_memory_from_config",
    "load_config",
    "save_default_config",
]
