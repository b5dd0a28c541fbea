"""
Configuration module initialization.
"""

from config.settings import Config, config, get_config, reload_config

__all__ = ["Config", "config", "get_config", "reload_config"]
