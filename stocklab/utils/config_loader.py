# stocklab/utils/config_loader.py
"""
Configuration loading utilities with environment variable support.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from ..core.errors import ConfigurationError
from ..models.config import AppConfig


DEFAULT_CONFIG_PATH = "configs/config.yaml"


def substitute_env_vars(config_str: str) -> str:
    """
    Substitute environment variables in config string.

    Args:
        config_str: Configuration string with ${VAR_NAME} placeholders

    Returns:
        Configuration string with environment variables substituted
    """
    pattern = r'\$\{([^}]+)\}'

    def replacer(match):
        var_name = match.group(1)
        # VAR_NAME:default_value
        if ':' in var_name:
            var_name, default_value = var_name.split(':', 1)
            return os.getenv(var_name, default_value)
        return os.getenv(var_name, match.group(0))  # Keep original if not found

    return re.sub(pattern, replacer, config_str)


def _read_yaml_mapping(config_path: str) -> Dict[str, Any]:
    """Read YAML file into a mapping with environment substitution."""
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, 'r', encoding='utf-8') as f:
        config_content = f.read()

    try:
        config_data = yaml.safe_load(substitute_env_vars(config_content))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        raise ConfigurationError("Configuration file must contain a YAML mapping")

    return config_data


def _merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries where override wins."""
    merged = dict(base)
    for key, value in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = _merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    config_path: Optional[str] = None,
    base_config_path: Optional[str] = None,
) -> AppConfig:
    """
    Load configuration from YAML with environment variable substitution.

    Sections missing from the file keep their built-in defaults. When
    base_config_path exists, config_path is merged over it.

    Args:
        config_path: Path to configuration file, DEFAULT_CONFIG_PATH when omitted
        base_config_path: Optional file supplying shared settings

    Returns:
        Parsed configuration object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If the file is invalid YAML or holds invalid values
    """
    config_data = _read_yaml_mapping(config_path or DEFAULT_CONFIG_PATH)

    if base_config_path and Path(base_config_path).exists():
        config_data = _merge_dicts(_read_yaml_mapping(base_config_path), config_data)

    try:
        return AppConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Error loading configuration: {e}")


def save_config(config: AppConfig, config_path: str = DEFAULT_CONFIG_PATH) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration object to save
        config_path: Target path
    """
    path_obj = Path(config_path)
    path_obj.parent.mkdir(parents=True, exist_ok=True)

    with open(path_obj, 'w', encoding='utf-8') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, indent=2, sort_keys=False)


def get_default_config() -> AppConfig:
    """
    Get default configuration for development/testing.

    Returns:
        Default configuration object
    """
    default_config = {
        "backtest": {
            "initial_capital": 1_000_000.0,
            "fixed_amount": 100_000.0,
            "period_type": "daily",
            "preset": "optimized",
        },
        "scanner": {
            "daily_lookback_days": 90,
            "weekly_lookback_days": 270,
        },
        "optimizer": {
            "max_workers": 4,
            "min_trades": 3,
            "train_years": 3,
            "test_years": 1,
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": None,
        }
    }

    return AppConfig(**default_config)
