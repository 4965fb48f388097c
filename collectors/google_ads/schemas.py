"""Type definitions and constants for the Google Ads REST API.

Reference:
    https://developers.google.com/google-ads/api/docs/common-errors
"""

from typing import Optional, TypedDict

from collectors.errors import ErrorCodeSets

GOOGLE_API_VERSION = "v15"
GOOGLE_API_BASE = f"https://googleads.googleapis.com/{GOOGLE_API_VERSION}"
DEVELOPER_TOKEN_ENV = "GOOGLE_ADS_DEVELOPER_TOKEN"

GOOGLE_ADS_CODE_SETS = ErrorCodeSets(
    auth=frozenset(
        {
            "AUTHENTICATION_ERROR",
            "AUTHORIZATION_ERROR",
            "OAUTH_TOKEN_INVALID",
            "OAUTH_TOKEN_EXPIRED",
            "OAUTH_TOKEN_REVOKED",
            "CUSTOMER_NOT_ENABLED",
            "USER_PERMISSION_DENIED",
            "DEVELOPER_TOKEN_NOT_APPROVED",
            "DEVELOPER_TOKEN_PROHIBITED",
            "UNAUTHENTICATED",
        }
    ),
    rate_limit=frozenset(
        {
            "RATE_EXCEEDED",
            "RESOURCE_EXHAUSTED",
            "RESOURCE_TEMPORARILY_EXHAUSTED",
            "QUOTA_ERROR",
        }
    ),
    transient=frozenset({"INTERNAL_ERROR", "TRANSIENT_ERROR", "UNAVAILABLE", "DEADLINE_EXCEEDED"}),
)

DEVELOPER_TOKEN_ERROR_CODES = frozenset(
    {"DEVELOPER_TOKEN_NOT_APPROVED", "DEVELOPER_TOKEN_PROHIBITED", "DEVELOPER_TOKEN_INVALID"}
)


class GoogleAdsMetricsBlock(TypedDict, total=False):
    """``metrics`` block of a search row (camelCase or snake_case keys)."""

    costMicros: str
    cost_micros: str
    impressions: str
    clicks: str
    conversions: float
    conversionsValue: float
    conversions_value: float


class GoogleAdsCampaign(TypedDict, total=False):
    id: str
    name: str
    status: str


class GoogleAdsCustomer(TypedDict, total=False):
    id: str
    descriptiveName: str
    currencyCode: str
    manager: bool


class GoogleAdsCustomerClient(TypedDict, total=False):
    clientCustomer: str
    descriptiveName: str
    currencyCode: str
    manager: bool
    level: str


class GoogleAdsResult(TypedDict, total=False):
    """One row of a ``googleAds:search`` response."""

    segments: dict
    metrics: GoogleAdsMetricsBlock
    campaign: GoogleAdsCampaign
    customer: GoogleAdsCustomer
    customerClient: GoogleAdsCustomerClient


class GoogleAdsSearchResponse(TypedDict, total=False):
    results: list[GoogleAdsResult]
    nextPageToken: Optional[str]
    fieldMask: str
