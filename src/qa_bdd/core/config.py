import os
import yaml
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .exceptions import ConfigurationError

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ConfigManager:
    """Manages configuration for QA BDD"""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else self._get_default_config_path()
        self._config = self._load_config()

    def _get_default_config_path(self) -> Path:
        """Get default configuration path"""
        # Check environment variable first
        if env_path := os.getenv("QA_BDD_CONFIG"):
            return Path(env_path)

        locations = [
            Path.cwd() / "qa-bdd.yaml",
            Path.cwd() / ".qa-bdd" / "config.yaml",
            Path.home() / ".qa-bdd" / "config.yaml",
        ]

        for location in locations:
            if location.exists():
                return location

        return Path.home() / ".qa-bdd" / "config.yaml"

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file, layered over the defaults"""
        config = self._get_default_config()
        if not self.config_path.exists():
            return config

        with open(self.config_path, 'r') as f:
            if self.config_path.suffix in ('.yaml', '.yml'):
                loaded = yaml.safe_load(f)
            elif self.config_path.suffix == '.json':
                loaded = json.load(f)
            else:
                raise ConfigurationError(f"Unsupported config format: {self.config_path.suffix}")

        if loaded is None:
            return config
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {self.config_path}")

        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
        return config

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration"""
        return {
            "general": {
                "log_level": "INFO",
            },
            "parser": {
                "default_language": "en",
                "strict": False,
            },
            "executor": {
                "step_timeout": 30.0,
                "hook_timeout": 30.0,
                "tag_filter": None,
                "fail_fast": False,
                "keep_going": False,
                "slow_mo": 0,
                "cancel_on_timeout": False,
                "suggestion_limit": 3,
            },
            "reporter": {
                "formats": ["html", "json"],
                "output_dir": "test-results",
            },
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation"""
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation"""
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def save(self) -> None:
        """Save configuration to file"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w') as f:
            if self.config_path.suffix == '.json':
                json.dump(self._config, f, indent=2)
            else:
                yaml.dump(self._config, f, default_flow_style=False)

    def get_module_config(self, module_name: str) -> Dict[str, Any]:
        """Get configuration for a specific module"""
        return self.get(module_name, {})


def configure_logging(level: Union[str, int] = "INFO", verbose: bool = False) -> None:
    """Apply the project log format to the root logger"""
    if verbose:
        level = logging.DEBUG
    elif isinstance(level, str):
        name = level.upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ConfigurationError(f"Unknown log level: {name}")

    logging.basicConfig(level=level, format=LOG_FORMAT)
