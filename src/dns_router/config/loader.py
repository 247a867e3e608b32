"""Configuration loader for the DNS router.

This module handles loading configuration from YAML/JSON files and environment
variables, with validation performed by the schema dataclasses.
"""

import json
import os
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .schema import LoggingConfig, RouterConfig, ServerConfig

ENV_PREFIX = "DNS_ROUTER_"

# Sections that map onto a nested dataclass
SECTIONS = {"server": ServerConfig, "logging": LoggingConfig}


class ConfigLoader:
    """Configuration loader: defaults, then file, then environment."""

    def __init__(self, config_file: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_file: Path to configuration file (YAML or JSON)
        """
        self.config_file = config_file
        self._config: Optional[RouterConfig] = None

    def load_config(self) -> RouterConfig:
        """Load configuration from file and environment variables.

        Returns:
            Loaded and validated router configuration

        Raises:
            FileNotFoundError: If config file is specified but not found
            ValueError: If configuration is invalid
            yaml.YAMLError: If YAML parsing fails
            json.JSONDecodeError: If JSON parsing fails
        """
        config_dict = self._get_default_config_dict()

        if self.config_file:
            file_config = self._load_from_file(self.config_file)
            config_dict = self._merge_configs(config_dict, file_config)

        config_dict = self._apply_env_overrides(config_dict)

        self._config = self._dict_to_config(config_dict)
        return self._config

    def get_config(self) -> Optional[RouterConfig]:
        """Get current configuration."""
        return self._config

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, "r", encoding="utf-8") as f:
            content = f.read()

        if path.suffix.lower() == ".json":
            result = json.loads(content)
        else:
            # YAML is a superset of JSON, so it also covers extension-less files
            result = yaml.safe_load(content)

        return result if isinstance(result, dict) else {}

    def _get_default_config_dict(self) -> Dict[str, Any]:
        """Get default configuration as dictionary."""
        return {
            "server": asdict(ServerConfig()),
            "logging": asdict(LoggingConfig()),
        }

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> RouterConfig:
        """Convert dictionary to configuration object.

        Raises:
            ValueError: If configuration is invalid or has unknown options
        """
        known = {f.name for f in fields(RouterConfig) if f.init}
        unknown = set(config_dict) - known
        if unknown:
            raise ValueError(f"Unknown configuration option(s): {sorted(unknown)}")

        kwargs = dict(config_dict)
        for section, section_class in SECTIONS.items():
            values = kwargs.get(section) or {}
            section_known = {f.name for f in fields(section_class)}
            section_unknown = set(values) - section_known
            if section_unknown:
                raise ValueError(
                    f"Unknown {section} option(s): {sorted(section_unknown)}"
                )
            kwargs[section] = section_class(**values)

        return RouterConfig(**kwargs)

    def _merge_configs(
        self, base: Dict[str, Any], override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Merge two configuration dictionaries (nested dicts are merged)."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration.

        Environment variables use the format DNS_ROUTER_<SECTION>_<KEY>, e.g.
        DNS_ROUTER_SERVER_PORT=5353. Top-level keys are set directly:
        DNS_ROUTER_TIMEOUT=5000, DNS_ROUTER_UPSTREAM=1.1.1.1,8.8.8.8
        """
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            name = env_key[len(ENV_PREFIX) :].lower()

            if name == "upstream":
                # Comma-separated servers form one racing group
                config_dict["upstream"] = [
                    s.strip() for s in env_value.split(",") if s.strip()
                ]
                continue

            if name == "timeout":
                config_dict["timeout"] = self._convert_env_value(env_value)
                continue

            section, _, config_key = name.partition("_")
            if section in SECTIONS and config_key:
                config_dict.setdefault(section, {})[config_key] = (
                    self._convert_env_value(env_value)
                )

        return config_dict

    def _convert_env_value(self, value: str) -> Any:
        """Convert environment variable value to appropriate Python type."""
        if value.lower() in ("true", "yes", "on"):
            return True
        elif value.lower() in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value


def load_config_from_file(
    config_file: Optional[str] = None,
) -> Tuple[RouterConfig, ConfigLoader]:
    """Convenience function to load configuration.

    Returns:
        Tuple of (loaded config, config loader instance)
    """
    loader = ConfigLoader(config_file)
    config = loader.load_config()
    return config, loader
