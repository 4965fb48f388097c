"""Shared dependencies for API routers."""

from typing import Optional

import httpx
from fastapi import HTTPException

from config import AppConfig, ConfigError, ConfigManager

API_VERSION = "0.1.0"

# Global instances - set by main.py lifespan
_config_manager: Optional[ConfigManager] = None
_http_client: Optional[httpx.AsyncClient] = None


def set_config_manager(config_manager: Optional[ConfigManager]) -> None:
    """Set the global config manager instance (called from main.py lifespan)."""
    global _config_manager
    _config_manager = config_manager


def set_http_client(http_client: Optional[httpx.AsyncClient]) -> None:
    """Set the shared HTTP client (called from main.py lifespan)."""
    global _http_client
    _http_client = http_client


def get_config() -> ConfigManager:
    """Dependency for getting the config manager."""
    if _config_manager is None:
        raise HTTPException(status_code=503, detail="Config not initialized")
    return _config_manager


def get_app_config() -> AppConfig:
    """Dependency for getting the loaded application configuration."""
    try:
        return get_config().get_config()
    except ConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))


def get_http_client() -> httpx.AsyncClient:
    """Dependency for getting the shared provider HTTP client."""
    if _http_client is None:
        raise HTTPException(status_code=503, detail="HTTP client not initialized")
    return _http_client
