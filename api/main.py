"""FastAPI application for Ad Sync.

This module provides the main application setup and router configuration.
All route handlers are organized in the api/routers/ directory.
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import API_VERSION, set_config_manager, set_http_client
from api.routers import sync_router, system_router
from config import AppConfig, ConfigError, ConfigManager, configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    config_manager = ConfigManager()
    try:
        config = config_manager.get_config()
    except ConfigError as e:
        logger.warning(f"Using default configuration: {e}")
        config = AppConfig()

    configure_logging(config.log_level)
    http_client = httpx.AsyncClient(timeout=config.http_timeout_seconds)
    set_config_manager(config_manager)
    set_http_client(http_client)
    logger.info("Ad Sync API started")

    yield

    logger.info("Ad Sync API shutting down")
    await http_client.aclose()
    set_http_client(None)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="Ad Sync",
        description="API for syncing advertising metrics from Google Ads, TikTok and LinkedIn",
        version=API_VERSION,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(system_router)
    application.include_router(sync_router)
    return application


app = create_app()
