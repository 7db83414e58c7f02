"""
Configuration management for the manifest runner.

Provides type-safe configuration loading and validation with support
for multiple configuration sources and priority-based merging.
"""

from ..exceptions import ConfigError
from .loader import ConfigLoader, create_default_config, load_config
from .models import ManifestDefaults, RunnerConfig

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "ManifestDefaults",
    "RunnerConfig",
    "create_default_config",
    "load_config",
]
