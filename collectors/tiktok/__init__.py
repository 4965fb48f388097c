"""TikTok Ads module for the ad platform collectors."""

from collectors.tiktok.client import TikTokAdapter, TikTokAdsClient
from collectors.tiktok.parsers import (
    extract_report_page,
    extract_tiktok_error,
    parse_advertiser,
    parse_metric_row,
)
from collectors.tiktok.schemas import TIKTOK_API_BASE, TIKTOK_CODE_SETS

__all__ = [
    "TikTokAdsClient",
    "TikTokAdapter",
    "extract_report_page",
    "extract_tiktok_error",
    "parse_advertiser",
    "parse_metric_row",
    "TIKTOK_API_BASE",
    "TIKTOK_CODE_SETS",
]
