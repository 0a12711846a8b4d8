"""
Utility functions for stocklab.
"""

from .config_loader import get_default_config, load_config, save_config, substitute_env_vars
from .logging_config import ColoredFormatter, set_logger_level, setup_logging, setup_logging_from_config

__all__ = [
    "get_default_config",
    "load_config",
    "save_config",
    "substitute_env_vars",
    "ColoredFormatter",
    "set_logger_level",
    "setup_logging",
    "setup_logging_from_config",
]
