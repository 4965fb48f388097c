"""Pure parsing functions for LinkedIn Marketing API responses."""

import logging
from typing import Any, Mapping, Optional

from collectors.errors import ErrorDetails
from collectors.linkedin.schemas import ACCOUNT_URN_PREFIX, CAMPAIGN_URN_PREFIX
from collectors.models import AdAccount, NormalizedMetric
from collectors.normalize import (
    coerce_number,
    normalize_currency,
    normalize_date,
    optional_str,
    positive_or_none,
)
from collectors.pagination import Page

logger = logging.getLogger(__name__)

PROVIDER_ID = "linkedin"


def strip_urn(value: Any, prefix: str) -> Optional[str]:
    """Return the id part of a URN ("urn:li:sponsoredAccount:123" -> "123")."""
    text = optional_str(value)
    if text and text.startswith(prefix):
        text = text[len(prefix) :]
    return text or None


def extract_linkedin_error(payload: Any, headers: Mapping[str, str]) -> ErrorDetails:
    """Extract ``code``/``serviceErrorCode``, ``message`` and body ``status``."""
    request_id = headers.get("x-li-uuid") or headers.get("x-restli-id")
    if not isinstance(payload, dict):
        text = payload.strip() if isinstance(payload, str) else ""
        return ErrorDetails(message=text or None, request_id=request_id)

    status = payload.get("status")
    return ErrorDetails(
        code=optional_str(payload.get("code")) or optional_str(payload.get("serviceErrorCode")),
        message=optional_str(payload.get("message")),
        request_id=request_id,
        http_status=status if isinstance(status, int) and not isinstance(status, bool) else None,
    )


def extract_elements_page(payload: Any, page_size: int) -> Page:
    """Decode an offset-paginated ``elements`` collection.

    The next offset is ``start + len(elements)``. A short page, or reaching
    ``paging.total``, ends pagination.
    """
    if not isinstance(payload, dict):
        return Page()

    elements = payload.get("elements")
    rows = [e for e in elements if isinstance(e, dict)] if isinstance(elements, list) else []
    if len(rows) < page_size:
        return Page(rows=rows)

    paging = payload.get("paging") if isinstance(payload.get("paging"), dict) else {}
    start = paging.get("start") if isinstance(paging.get("start"), int) else 0
    next_start = start + len(rows)

    total = paging.get("total")
    if isinstance(total, int) and next_start >= total:
        return Page(rows=rows)
    return Page(rows=rows, next_cursor=next_start)


def parse_metric_row(row: dict, account_id: Optional[str] = None) -> Optional[NormalizedMetric]:
    """Map an ``adAnalytics`` element to a NormalizedMetric.

    Returns:
        The metric, or None when ``dateRange.start`` is missing or invalid.
    """
    date_range = row.get("dateRange") if isinstance(row.get("dateRange"), dict) else {}
    day = normalize_date(date_range.get("start"))
    if day is None:
        logger.debug(f"Dropping LinkedIn row without dateRange.start: {row}")
        return None

    pivots = row.get("pivotValues")
    campaign_id = None
    if isinstance(pivots, list) and pivots:
        campaign_id = strip_urn(pivots[0], CAMPAIGN_URN_PREFIX)

    return NormalizedMetric(
        provider_id=PROVIDER_ID,
        date=day,
        spend=normalize_currency(row.get("costInLocalCurrency")),
        impressions=coerce_number(row.get("impressions")),
        clicks=coerce_number(row.get("clicks")),
        conversions=coerce_number(row.get("externalWebsiteConversions")),
        revenue=positive_or_none(normalize_currency(row.get("conversionValueInLocalCurrency"))),
        campaign_id=campaign_id,
        account_id=account_id,
        raw_payload=row,
    )


def parse_ad_account(element: Any) -> Optional[AdAccount]:
    """Build an AdAccount from an ``adAccounts`` element."""
    if not isinstance(element, dict):
        return None
    account_id = strip_urn(element.get("id"), ACCOUNT_URN_PREFIX)
    if not account_id:
        return None

    return AdAccount(
        id=account_id,
        name=optional_str(element.get("name")) or f"LinkedIn Account {account_id}",
        provider_id=PROVIDER_ID,
        currency_code=optional_str(element.get("currency")),
        status=optional_str(element.get("status")),
    )
