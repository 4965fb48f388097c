"""Tests for provider error classification.

Run with: pytest tests/test_errors.py -v
"""

import pytest

from collectors.errors import (
    AuthError,
    ClassifiedError,
    FatalError,
    RateLimitError,
    TransientError,
    classify_error,
)
from collectors.google_ads.client import GoogleAdsAdapter
from collectors.linkedin.client import LinkedInAdapter
from collectors.tiktok.client import TikTokAdapter


def google_error(code_key: str, code_value: str, status: int = 400, message: str = "failed"):
    return {
        "error": {
            "code": status,
            "message": message,
            "status": "INVALID_ARGUMENT",
            "details": [
                {
                    "@type": "type.googleapis.com/google.ads.googleads.v15.errors.GoogleAdsFailure",
                    "errors": [{"errorCode": {code_key: code_value}, "message": message}],
                    "requestId": "req-123",
                }
            ],
        }
    }


class TestGoogleClassification:
    """Tests for Google Ads error payloads."""

    def test_expired_token_is_auth(self):
        """Test OAUTH_TOKEN_EXPIRED classifies as a non-retryable auth error."""
        error = GoogleAdsAdapter("dev").classify(
            401, google_error("authenticationError", "OAUTH_TOKEN_EXPIRED", 401), {}
        )
        assert isinstance(error, AuthError)
        assert error.is_auth_error is True
        assert error.is_retryable is False
        assert error.provider_error_code == "OAUTH_TOKEN_EXPIRED"
        assert error.request_id == "req-123"

    def test_auth_code_with_5xx_is_not_retryable(self):
        """Test auth errors stay non-retryable even on a 5xx status."""
        error = GoogleAdsAdapter("dev").classify(
            500, google_error("authorizationError", "USER_PERMISSION_DENIED", 500), {}
        )
        assert error.is_auth_error is True
        assert error.is_retryable is False

    def test_quota_error_is_rate_limit(self):
        """Test RESOURCE_EXHAUSTED is a retryable rate limit."""
        error = GoogleAdsAdapter("dev").classify(
            429, google_error("quotaError", "RESOURCE_EXHAUSTED", 429), {"Retry-After": "7"}
        )
        assert isinstance(error, RateLimitError)
        assert error.is_retryable is True
        assert error.retry_after_ms == 7000

    def test_internal_error_is_transient(self):
        """Test INTERNAL_ERROR on a 4xx is still retryable."""
        error = GoogleAdsAdapter("dev").classify(
            400, google_error("internalError", "INTERNAL_ERROR"), {}
        )
        assert isinstance(error, TransientError)

    def test_unknown_4xx_is_fatal(self):
        """Test an unclassified 400 is fatal."""
        error = GoogleAdsAdapter("dev").classify(
            400, google_error("queryError", "PROHIBITED_RESOURCE_TYPE_IN_SELECT_CLAUSE"), {}
        )
        assert isinstance(error, FatalError)
        assert error.is_retryable is False
        assert error.category == "fatal"

    def test_request_id_header_fallback(self):
        """Test the request-id header is used when the body has none."""
        payload = {"error": {"code": 500, "message": "boom", "status": "INTERNAL"}}
        error = GoogleAdsAdapter("dev").classify(500, payload, {"request-id": "hdr-1"})
        assert error.request_id == "hdr-1"
        assert error.is_retryable is True


class TestTikTokClassification:
    """Tests for TikTok flat-code payloads."""

    def test_http_200_with_auth_code(self):
        """Test HTTP 200 with code 40003 is an auth error."""
        error = TikTokAdapter().classify(
            200, {"code": 40003, "message": "Access token expired", "request_id": "tt-1"}, {}
        )
        assert isinstance(error, AuthError)
        assert error.is_retryable is False
        assert error.provider_error_code == 40003
        assert error.request_id == "tt-1"
        assert error.http_status == 200

    def test_40100_is_rate_limit(self):
        """Test 40100 is treated as a rate limit."""
        error = TikTokAdapter().classify(200, {"code": 40100, "message": "Too many"}, {})
        assert isinstance(error, RateLimitError)
        assert error.is_retryable is True

    def test_transient_code(self):
        """Test 50002 on HTTP 200 is retryable."""
        error = TikTokAdapter().classify(200, {"code": 50002, "message": "Busy"}, {})
        assert isinstance(error, TransientError)

    def test_string_code_matches(self):
        """Test codes are compared by string form."""
        error = TikTokAdapter().classify(200, {"code": "40001", "message": "bad"}, {})
        assert error.is_auth_error is True

    def test_is_success_requires_zero_code(self):
        """Test success needs 2xx and code 0 or absent."""
        adapter = TikTokAdapter()
        assert adapter.is_success(200, {"code": 0, "data": {}}) is True
        assert adapter.is_success(200, {"data": {}}) is True
        assert adapter.is_success(200, {"code": 40002}) is False
        assert adapter.is_success(500, {"code": 0}) is False


class TestLinkedInClassification:
    """Tests for LinkedIn status/message payloads."""

    def test_401_is_auth(self):
        """Test a 401 with INVALID_ACCESS_TOKEN is an auth error."""
        error = LinkedInAdapter().classify(
            401,
            {"status": 401, "code": "INVALID_ACCESS_TOKEN", "message": "Invalid access token"},
            {"x-li-uuid": "li-9"},
        )
        assert isinstance(error, AuthError)
        assert error.request_id == "li-9"
        assert str(error) == "Invalid access token"

    def test_429_is_rate_limit(self):
        """Test HTTP 429 is a retryable rate limit."""
        error = LinkedInAdapter().classify(429, {"status": 429, "message": "Throttled"}, {})
        assert isinstance(error, RateLimitError)
        assert error.is_retryable is True

    def test_text_body(self):
        """Test a non-JSON body is used as the message."""
        error = LinkedInAdapter().classify(503, "Service Unavailable", {})
        assert isinstance(error, TransientError)
        assert error.message == "Service Unavailable"


class TestClassifiedError:
    """Tests for the ClassifiedError value object."""

    def test_attributes_are_read_only(self):
        """Test classification flags cannot be changed after construction."""
        error = TikTokAdapter().classify(200, {"code": 40003}, {})
        with pytest.raises(AttributeError):
            error.is_auth_error = False

    def test_default_message(self):
        """Test a message is synthesized when the payload has none."""
        error = classify_error(
            "tiktok", 502, "", {}, TikTokAdapter.code_sets, TikTokAdapter().extract_error
        )
        assert "502" in str(error)
        assert isinstance(error, ClassifiedError)

    def test_to_dict(self):
        """Test the JSON-safe view carries the category."""
        error = LinkedInAdapter().classify(429, {"message": "slow down"}, {})
        data = error.to_dict()
        assert data["category"] == "rate_limit"
        assert data["provider"] == "linkedin"
        assert data["http_status"] == 429
