"""
Configuration management for alignseg.
"""

from .config_loader import ConfigLoader, get_config, reload_config, DEFAULT_CONFIG_PATH

__all__ = [
    'ConfigLoader',
    'get_config',
    'reload_config',
    'DEFAULT_CONFIG_PATH',
]
