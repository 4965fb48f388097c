"""Sync request/response schema models."""

from typing import Any, Optional

from pydantic import BaseModel, Field, SecretStr


class SyncRequest(BaseModel):
    """Request model for syncing one ad account."""

    account_id: str = Field(..., min_length=1, description="Provider ad account ID")
    access_token: SecretStr = Field(..., description="OAuth access token")
    refresh_token: Optional[SecretStr] = Field(None, description="Enables one token refresh")
    timeframe_days: int = Field(30, ge=1, le=365)
    login_customer_id: Optional[str] = Field(None, description="Google Ads manager account")
    include_raw: bool = Field(False, description="Include raw provider rows")


class SyncResponse(BaseModel):
    """Response model for a successful sync."""

    provider: str
    account_id: str
    rows_written: int
    pages_written: int
    duration_ms: int
    metrics: list[dict[str, Any]]


class SyncErrorDetail(BaseModel):
    """Error body for a failed sync."""

    provider: str
    account_id: str
    error: Optional[str] = None
    error_category: Optional[str] = None
    reconnect_required: bool = False
    http_status: Optional[int] = None
    request_id: Optional[str] = None
