"""Type definitions and constants for the TikTok Business API.

TikTok reports most failures as HTTP 200 with a non-zero ``code`` in the
body, so these codes matter as much as the HTTP status.

Reference:
    https://business-api.tiktok.com/portal/docs?id=1737172488964097
"""

from typing import Optional, TypedDict

from collectors.errors import ErrorCodeSets

TIKTOK_API_BASE = "https://business-api.tiktok.com/open_api/v1.3"

TIKTOK_SUCCESS_CODE = 0

# 40100 is documented as both "permission denied" and "rate limit exceeded";
# it is treated as a rate limit.
TIKTOK_CODE_SETS = ErrorCodeSets(
    auth=frozenset({40001, 40002, 40003, 40004}),
    rate_limit=frozenset({40100, 40101, 40102}),
    transient=frozenset({50000, 50001, 50002, 50300, 50400}),
)

REPORT_DIMENSIONS = ["campaign_id", "campaign_name", "stat_time_day"]
REPORT_METRICS = ["spend", "impressions", "clicks", "conversion", "total_complete_payment"]
REPORT_PAGE_SIZE = 200


class TikTokReportRow(TypedDict, total=False):
    """One row of ``report/integrated/get``."""

    dimensions: dict
    metrics: dict


class TikTokPageInfo(TypedDict, total=False):
    page: int
    page_size: int
    total_number: int
    total_page: int
    has_more: bool


class TikTokReportData(TypedDict, total=False):
    list: list[TikTokReportRow]
    page_info: TikTokPageInfo
    cursor: Optional[str]


class TikTokResponse(TypedDict, total=False):
    code: int
    message: str
    request_id: str
    data: TikTokReportData
