"""Ad Sync - API Module.

This module provides the FastAPI application for the
ad metrics sync REST API.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
