"""Google Ads module for the ad platform collectors."""

from collectors.google_ads.client import GoogleAdsAdapter, GoogleAdsClient, build_metrics_query
from collectors.google_ads.parsers import (
    extract_google_error,
    parse_customer_client,
    parse_customer_summary,
    parse_metric_row,
)
from collectors.google_ads.schemas import GOOGLE_ADS_CODE_SETS, GOOGLE_API_BASE

__all__ = [
    "GoogleAdsClient",
    "GoogleAdsAdapter",
    "build_metrics_query",
    "extract_google_error",
    "parse_metric_row",
    "parse_customer_summary",
    "parse_customer_client",
    "GOOGLE_ADS_CODE_SETS",
    "GOOGLE_API_BASE",
]
