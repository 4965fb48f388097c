"""Sync router for Ad Sync API.

This module provides the endpoint that fetches normalized metrics for one
ad account of a provider. Provider failures map onto HTTP statuses:

- auth failures: 401 with ``reconnect_required``
- rate limits: 429
- anything else: 502
"""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_app_config, get_http_client
from api.schemas.sync import SyncErrorDetail, SyncRequest, SyncResponse
from config import AppConfig
from services.client_factory import PROVIDERS, create_client
from services.metrics_sync import InMemoryMetricsWriter, MetricsSyncService, SyncResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["Sync"])

_FAILURE_STATUS = {"auth": 401, "rate_limit": 429}


def _failure_response(result: SyncResult) -> HTTPException:
    detail = SyncErrorDetail(
        provider=result.provider_id,
        account_id=result.account_id,
        error=result.error,
        error_category=result.error_category,
        reconnect_required=result.reconnect_required,
        http_status=result.http_status,
        request_id=result.request_id,
    )
    return HTTPException(
        status_code=_FAILURE_STATUS.get(result.error_category or "", 502),
        detail=detail.model_dump(),
    )


@router.post("/{provider}", response_model=SyncResponse)
async def sync_provider(
    provider: str,
    request: SyncRequest,
    config: AppConfig = Depends(get_app_config),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """Fetch normalized daily metrics for one ad account.

    Blocks until every page has been fetched or the call chain fails.
    """
    if provider not in PROVIDERS:
        raise HTTPException(status_code=404, detail=f"Unknown provider '{provider}'")

    refresh_token = request.refresh_token.get_secret_value() if request.refresh_token else None
    try:
        client = create_client(
            provider,
            request.access_token.get_secret_value(),
            config,
            refresh_token=refresh_token,
            login_customer_id=request.login_customer_id,
            http_client=http_client,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    writer = InMemoryMetricsWriter()
    try:
        result = await MetricsSyncService().sync(
            client, request.account_id, request.timeframe_days, writer
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not result.success:
        raise _failure_response(result)

    return SyncResponse(
        provider=provider,
        account_id=request.account_id,
        rows_written=result.rows_written,
        pages_written=result.pages_written,
        duration_ms=result.duration_ms,
        metrics=[m.to_dict(include_raw=request.include_raw) for m in writer.metrics],
    )
