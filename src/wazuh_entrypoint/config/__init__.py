"""Configuration loading for the entrypoint"""

from .manager import BootstrapConfig, ConfigManager, load_env_file, parse_env_file

__all__ = ["BootstrapConfig", "ConfigManager", "load_env_file", "parse_env_file"]
