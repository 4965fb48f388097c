"""LinkedIn Ads module for the ad platform collectors."""

from collectors.linkedin.client import LinkedInAdapter, LinkedInAdsClient, build_analytics_query
from collectors.linkedin.parsers import (
    extract_elements_page,
    extract_linkedin_error,
    parse_ad_account,
    parse_metric_row,
)
from collectors.linkedin.schemas import LINKEDIN_API_BASE, LINKEDIN_CODE_SETS

__all__ = [
    "LinkedInAdsClient",
    "LinkedInAdapter",
    "build_analytics_query",
    "extract_elements_page",
    "extract_linkedin_error",
    "parse_ad_account",
    "parse_metric_row",
    "LINKEDIN_API_BASE",
    "LINKEDIN_CODE_SETS",
]
