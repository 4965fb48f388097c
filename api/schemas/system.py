"""System and health check schema models."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    version: str
    configured: bool
    providers: list[str]
