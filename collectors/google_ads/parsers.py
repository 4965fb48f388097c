"""Pure parsing functions for Google Ads API responses.

This module contains stateless functions for extracting error details and
transforming search rows into NormalizedMetric and AdAccount records. All
functions are pure with no side effects or API calls.
"""

import logging
from typing import Any, Mapping, Optional

from collectors.errors import ErrorDetails
from collectors.models import AdAccount, NormalizedMetric
from collectors.normalize import (
    coerce_number,
    normalize_cost,
    normalize_date,
    optional_str,
    positive_or_none,
)
from collectors.pagination import Page

logger = logging.getLogger(__name__)

PROVIDER_ID = "google"


def extract_google_error(payload: Any, headers: Mapping[str, str]) -> ErrorDetails:
    """Extract code, message and request id from a Google Ads error body.

    The provider code lives in ``error.details[].errors[].errorCode``, a
    one-key mapping such as ``{"authenticationError": "OAUTH_TOKEN_EXPIRED"}``.
    When no detail code exists the gRPC status (``error.status``) is used.

    Args:
        payload: Parsed JSON body, or raw text when the body was not JSON.
        headers: Response headers.

    Returns:
        ErrorDetails for the classifier.
    """
    if not isinstance(payload, dict):
        text = payload.strip() if isinstance(payload, str) else ""
        return ErrorDetails(message=text or None, request_id=headers.get("request-id"))

    error = payload.get("error") or {}
    if not isinstance(error, dict):
        return ErrorDetails(message=str(error), request_id=headers.get("request-id"))

    code: Optional[str] = None
    request_id: Optional[str] = headers.get("request-id")

    for detail in error.get("details") or []:
        if not isinstance(detail, dict):
            continue
        if detail.get("requestId"):
            request_id = detail["requestId"]
        for err in detail.get("errors") or []:
            error_code = err.get("errorCode") if isinstance(err, dict) else None
            if code is None and isinstance(error_code, dict):
                code = next((str(v) for v in error_code.values() if v), None)

    return ErrorDetails(
        code=code or optional_str(error.get("status")),
        message=optional_str(error.get("message")),
        request_id=request_id,
    )


def extract_search_page(payload: Any) -> Page:
    """Decode one ``googleAds:search`` page."""
    if not isinstance(payload, dict):
        return Page()
    results = payload.get("results")
    rows = [r for r in results if isinstance(r, dict)] if isinstance(results, list) else []
    return Page(rows=rows, next_cursor=optional_str(payload.get("nextPageToken")))


def parse_metric_row(row: dict, account_id: Optional[str] = None) -> Optional[NormalizedMetric]:
    """Map a campaign-level search row to a NormalizedMetric.

    Returns:
        The metric, or None when the row has no usable ``segments.date``.

    Example:
        >>> parse_metric_row({"segments": {"date": "2024-03-01"},
        ...                   "metrics": {"costMicros": "1234560"}}).spend
        1.23456
    """
    segments = row.get("segments") if isinstance(row.get("segments"), dict) else {}
    day = normalize_date(segments.get("date"))
    if day is None:
        logger.debug(f"Dropping Google Ads row without date: {row}")
        return None

    metrics = row.get("metrics") if isinstance(row.get("metrics"), dict) else {}
    campaign = row.get("campaign") if isinstance(row.get("campaign"), dict) else {}

    cost_micros = metrics.get("costMicros", metrics.get("cost_micros"))
    revenue = coerce_number(metrics.get("conversionsValue", metrics.get("conversions_value")))

    return NormalizedMetric(
        provider_id=PROVIDER_ID,
        date=day,
        spend=normalize_cost(cost_micros),
        impressions=coerce_number(metrics.get("impressions")),
        clicks=coerce_number(metrics.get("clicks")),
        conversions=coerce_number(metrics.get("conversions")),
        revenue=positive_or_none(revenue),
        campaign_id=optional_str(campaign.get("id")),
        campaign_name=optional_str(campaign.get("name")),
        account_id=account_id,
        raw_payload=row,
    )


def parse_customer_summary(rows: list[dict], customer_id: str) -> AdAccount:
    """Build an AdAccount from a ``FROM customer LIMIT 1`` search."""
    customer = rows[0].get("customer") if rows and isinstance(rows[0], dict) else None
    if not isinstance(customer, dict):
        return AdAccount(id=customer_id, name=f"Customer {customer_id}", provider_id=PROVIDER_ID)

    resolved_id = optional_str(customer.get("id")) or customer_id
    return AdAccount(
        id=resolved_id,
        name=optional_str(customer.get("descriptiveName")) or f"Customer {resolved_id}",
        provider_id=PROVIDER_ID,
        currency_code=optional_str(customer.get("currencyCode")),
        manager=bool(customer.get("manager")),
    )


def parse_customer_client(row: dict, manager_id: str) -> Optional[AdAccount]:
    """Build an AdAccount from a ``customer_client`` row of a manager account.

    ``clientCustomer`` is a resource name such as ``customers/1234567890``.
    """
    client = row.get("customerClient")
    if not isinstance(client, dict):
        return None

    resource = optional_str(client.get("clientCustomer")) or ""
    parts = resource.split("/")
    client_id = parts[1] if len(parts) > 1 and parts[1] else None
    if not client_id:
        return None

    return AdAccount(
        id=client_id,
        name=optional_str(client.get("descriptiveName")) or f"Customer {client_id}",
        provider_id=PROVIDER_ID,
        currency_code=optional_str(client.get("currencyCode")),
        manager=bool(client.get("manager")),
        login_customer_id=manager_id,
        manager_customer_id=manager_id,
    )
