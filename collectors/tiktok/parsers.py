"""Pure parsing functions for TikTok Business API responses."""

import logging
from typing import Any, Mapping, Optional

from collectors.errors import ErrorDetails
from collectors.models import AdAccount, NormalizedMetric
from collectors.normalize import coerce_number, normalize_date, optional_str, positive_or_none
from collectors.pagination import Page
from collectors.tiktok.schemas import TIKTOK_SUCCESS_CODE

logger = logging.getLogger(__name__)

PROVIDER_ID = "tiktok"


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def is_tiktok_success(payload: Any) -> bool:
    """Return True for a body whose ``code`` is absent or 0."""
    if not isinstance(payload, dict):
        return False
    code = payload.get("code")
    return code is None or _as_int(code) == TIKTOK_SUCCESS_CODE


def extract_tiktok_error(payload: Any, headers: Mapping[str, str]) -> ErrorDetails:
    """Extract the flat numeric ``code``, ``message`` and ``request_id``."""
    request_id = headers.get("x-tt-logid")
    if not isinstance(payload, dict):
        text = payload.strip() if isinstance(payload, str) else ""
        return ErrorDetails(message=text or None, request_id=request_id)

    code = payload.get("code")
    numeric = _as_int(code)
    return ErrorDetails(
        code=numeric if numeric is not None else optional_str(code),
        message=optional_str(payload.get("message")),
        request_id=optional_str(payload.get("request_id")) or request_id,
    )


def extract_report_page(payload: Any) -> Page:
    """Decode rows and the continuation marker of a report page.

    The continuation is the ``data.cursor`` string when present. Without a
    cursor, ``page_info.has_more`` advances to the next page number. An
    explicit ``has_more: false`` always ends pagination.
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        return Page()

    rows = data.get("list")
    rows = [r for r in rows if isinstance(r, dict)] if isinstance(rows, list) else []

    page_info = data.get("page_info") if isinstance(data.get("page_info"), dict) else {}
    has_more = page_info.get("has_more")
    if has_more is False:
        return Page(rows=rows)

    cursor = optional_str(data.get("cursor"))
    if cursor:
        return Page(rows=rows, next_cursor=cursor)

    page = _as_int(page_info.get("page"))
    total_page = _as_int(page_info.get("total_page"))
    if has_more and page is not None and (total_page is None or page < total_page):
        return Page(rows=rows, next_cursor=page + 1)
    return Page(rows=rows)


def parse_metric_row(row: dict, account_id: Optional[str] = None) -> Optional[NormalizedMetric]:
    """Map a ``report/integrated/get`` row to a NormalizedMetric.

    Returns:
        The metric, or None when ``stat_time_day`` is missing or invalid.
    """
    dimensions = row.get("dimensions") if isinstance(row.get("dimensions"), dict) else {}
    day = normalize_date(dimensions.get("stat_time_day"))
    if day is None:
        logger.debug(f"Dropping TikTok row without stat_time_day: {row}")
        return None

    metrics = row.get("metrics") if isinstance(row.get("metrics"), dict) else {}
    return NormalizedMetric(
        provider_id=PROVIDER_ID,
        date=day,
        spend=coerce_number(metrics.get("spend")),
        impressions=coerce_number(metrics.get("impressions")),
        clicks=coerce_number(metrics.get("clicks")),
        conversions=coerce_number(metrics.get("conversion")),
        revenue=positive_or_none(coerce_number(metrics.get("total_complete_payment"))),
        campaign_id=optional_str(dimensions.get("campaign_id")),
        campaign_name=optional_str(dimensions.get("campaign_name")),
        account_id=account_id,
        raw_payload=row,
    )


def parse_advertiser(candidate: Any) -> Optional[AdAccount]:
    """Build an AdAccount from an ``advertiser/info`` entry."""
    if not isinstance(candidate, dict):
        return None
    advertiser_id = optional_str(candidate.get("advertiser_id"))
    if not advertiser_id:
        return None

    return AdAccount(
        id=advertiser_id,
        name=optional_str(candidate.get("name")) or f"TikTok advertiser {advertiser_id}",
        provider_id=PROVIDER_ID,
        currency_code=optional_str(candidate.get("currency")),
        status=optional_str(candidate.get("status")),
        timezone=optional_str(candidate.get("timezone")),
    )
