"""System router for Ad Sync.

This module provides the service health endpoint.
"""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import API_VERSION, get_config
from api.schemas.system import HealthResponse
from config import ConfigManager
from services.client_factory import PROVIDERS

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/health", response_model=HealthResponse)
async def health_check(config: ConfigManager = Depends(get_config)):
    """Check API health and whether a stored configuration exists."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        configured=config.is_configured(),
        providers=list(PROVIDERS),
    )
