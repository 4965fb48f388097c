"""Type definitions and constants for the LinkedIn Marketing API.

Reference:
    https://learn.microsoft.com/en-us/linkedin/marketing/
"""

from typing import Optional, TypedDict

from collectors.errors import ErrorCodeSets

LINKEDIN_API_BASE = "https://api.linkedin.com/rest"
LINKEDIN_PROFILE_URL = "https://api.linkedin.com/v2/me"
LINKEDIN_API_VERSION = "202401"
RESTLI_PROTOCOL_VERSION = "2.0.0"

ACCOUNT_URN_PREFIX = "urn:li:sponsoredAccount:"
CAMPAIGN_URN_PREFIX = "urn:li:sponsoredCampaign:"

LINKEDIN_CODE_SETS = ErrorCodeSets(
    auth=frozenset(
        {"UNAUTHORIZED", "INVALID_ACCESS_TOKEN", "EXPIRED_ACCESS_TOKEN", "ACCESS_DENIED"}
    ),
    rate_limit=frozenset({"TOO_MANY_REQUESTS", "THROTTLED"}),
    transient=frozenset({"INTERNAL_SERVER_ERROR", "SERVICE_UNAVAILABLE"}),
)

ANALYTICS_FIELDS = [
    "dateRange",
    "pivotValues",
    "costInLocalCurrency",
    "impressions",
    "clicks",
    "externalWebsiteConversions",
    "conversionValueInLocalCurrency",
]


class LinkedInDate(TypedDict):
    year: int
    month: int
    day: int


class LinkedInDateRange(TypedDict, total=False):
    start: LinkedInDate
    end: LinkedInDate


class LinkedInAnalyticsRow(TypedDict, total=False):
    """One element of ``adAnalytics?q=analytics``."""

    dateRange: LinkedInDateRange
    pivotValues: list[str]
    costInLocalCurrency: str
    impressions: int
    clicks: int
    externalWebsiteConversions: int
    conversionValueInLocalCurrency: str


class LinkedInPaging(TypedDict, total=False):
    start: int
    count: int
    total: int


class LinkedInErrorResponse(TypedDict, total=False):
    status: int
    code: str
    serviceErrorCode: int
    message: Optional[str]
