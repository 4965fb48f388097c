"""Ad Sync - Configuration Module.

This module provides secure configuration management with
Fernet encryption for provider credentials, plus logging setup.
"""

from .config_manager import AppConfig, ConfigError, ConfigManager
from .logging_setup import configure_logging

__all__ = ["AppConfig", "ConfigManager", "ConfigError", "configure_logging"]
