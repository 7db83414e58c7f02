"""
Configuration loader for the manifest runner.

Handles loading from multiple sources with proper priority:
CLI Args > Environment Variables > Config File > Defaults
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigError
from .models import RunnerConfig


class ConfigLoader:
    """Builds a RunnerConfig from the YAML file, MANIFEST_RUNNER_* variables
    and command line overrides, later sources winning."""

    DEFAULT_CONFIG_DIR = Path.home() / ".config" / "manifest-runner"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
    ENV_PREFIX = "MANIFEST_RUNNER_"
    CONFIG_PATH_ENV = "MANIFEST_RUNNER_CONFIG_PATH"

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self._get_config_path_from_env()

    @classmethod
    def _get_config_path_from_env(cls) -> Path:
        """Get configuration path from environment variable or default."""
        env_path = os.environ.get(cls.CONFIG_PATH_ENV)
        if env_path:
            return Path(env_path).expanduser()
        return cls.DEFAULT_CONFIG_FILE

    def load(self) -> RunnerConfig:
        """
        Load configuration from all sources and merge.

        Returns:
            Validated RunnerConfig object

        Raises:
            ConfigError: If configuration is invalid
        """
        config_dict: dict[str, Any] = {}

        if self.config_path.exists():
            file_config = self._load_file(self.config_path)
            config_dict = self._deep_merge(config_dict, file_config)

        env_config = self._load_from_env()
        config_dict = self._deep_merge(config_dict, env_config)

        try:
            return RunnerConfig.model_validate(config_dict)
        except ValidationError as e:
            raise ConfigError(
                f"Configuration validation failed: {e}",
                context={"config_path": str(self.config_path)},
                cause=e,
            ) from e

    def _load_file(self, path: Path) -> dict[str, Any]:
        """
        Load configuration from YAML file.

        Raises:
            ConfigError: If file cannot be read or parsed
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}", cause=e) from e
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}", cause=e) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    def _load_from_env(self) -> dict[str, Any]:
        """
        Collect MANIFEST_RUNNER_* variables.

        A double underscore descends into a nested section, so
        MANIFEST_RUNNER_MANIFEST__LABEL sets manifest.label.

        Raises:
            ConfigError: If one variable sets a section that another one
                descends into
        """
        config: dict[str, Any] = {}

        for key, value in sorted(os.environ.items()):
            if not key.startswith(self.ENV_PREFIX) or key == self.CONFIG_PATH_ENV:
                continue

            *sections, field = key[len(self.ENV_PREFIX) :].lower().split("__")
            target = config
            for section in sections:
                target = target.setdefault(section, {})
                if not isinstance(target, dict):
                    raise ConfigError(
                        f"{key} descends into {section!r}, which is set to a value",
                        context={"variable": key},
                    )
            target[field] = self._convert_env_value(value)

        return config

    def _convert_env_value(self, value: str) -> Any:
        """
        Convert environment variable string to appropriate type.

        Only unambiguous literals are converted; "8088" stays a string
        so that port numbers and names keep their declared type.
        """
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False
        return value

    def _deep_merge(
        self, base: dict[str, Any], update: dict[str, Any]
    ) -> dict[str, Any]:
        merged = dict(base)
        for key, value in update.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def merge_cli_args(
        self,
        config: RunnerConfig,
        cli_args: dict[str, Any],
    ) -> RunnerConfig:
        """Apply command line options on top of a loaded config. None means unset."""
        given = self._filter_none_values(cli_args)
        if not given:
            return config

        try:
            return RunnerConfig.model_validate(
                self._deep_merge(config.model_dump(), given)
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid command line option: {e}", cause=e) from e

    def _filter_none_values(self, data: dict[str, Any]) -> dict[str, Any]:
        given = {}
        for key, value in data.items():
            if isinstance(value, dict):
                value = self._filter_none_values(value) or None
            if value is not None:
                given[key] = value
        return given

    def create_default_config(self, force: bool = False) -> Path:
        """
        Create default configuration file with comments.

        Raises:
            ConfigError: If file exists and force=False
        """
        if self.config_path.exists() and not force:
            raise ConfigError(
                f"Configuration file already exists at {self.config_path}. "
                "Use --force to overwrite."
            )

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w") as f:
                f.write(self._get_default_config_yaml())
        except OSError as e:
            raise ConfigError(
                f"Cannot write config file {self.config_path}: {e}", cause=e
            ) from e

        return self.config_path

    def _get_default_config_yaml(self) -> str:
        """Get default configuration as commented YAML."""
        return """\
# Manifest Runner Configuration
# =============================

# Manifest file name, written to the current directory
manifest_filename: sa-wrapper.json

# Supervisor control binary, invoked as '<binary> load <manifest>'
supervisor_binary: ../launchctl

# Program used to print the manifest after loading
display_binary: cat

# Seconds to wait after a successful load
wait_seconds: 2.0

# DEBUG, INFO, WARNING, ERROR or CRITICAL
log_level: INFO

# Test manifest values
manifest:
  user_name: nobody
  group_name: nogroup
  label: test.sa-wrapper

  # Resolved against the current directory; .out and .err are appended
  # for the standard output and error paths
  program_name: test-wrapper

  # Injected as LD_PRELOAD
  preload_library: sa-wrapper.so

  # Pre-bound listening socket handed to the program
  socket_name: MyService
  socket_service: "8088"

  enable_globbing: true
  working_directory: /
  root_directory: /
  stdin_path: /dev/null
"""


def load_config(
    config_path: Optional[Path] = None,
    cli_args: Optional[dict[str, Any]] = None,
) -> RunnerConfig:
    """Load the runner configuration, applying command line overrides last."""
    loader = ConfigLoader(config_path)
    config = loader.load()

    if cli_args:
        config = loader.merge_cli_args(config, cli_args)

    return config


def create_default_config(
    config_path: Optional[Path] = None,
    force: bool = False,
) -> Path:
    """Create default configuration file."""
    loader = ConfigLoader(config_path)
    return loader.create_default_config(force=force)
