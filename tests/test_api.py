"""Tests for the Ad Sync HTTP API.

Provider traffic goes through an httpx.MockTransport injected with
dependency_overrides; the lifespan is not started.

Run with: pytest tests/test_api.py -v
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_app_config, get_config, get_http_client
from api.main import create_app
from collectors.backoff import RetryConfig
from config import AppConfig, ConfigManager
from tests.conftest import FakeProvider, json_response

SINGLE_ATTEMPT = AppConfig(retry=RetryConfig(max_retries=1, base_delay_ms=1, max_delay_ms=1))

TIKTOK_OK = json_response(
    200,
    {
        "code": 0,
        "data": {
            "list": [
                {
                    "dimensions": {"stat_time_day": "2024-03-01 00:00:00", "campaign_id": "c1"},
                    "metrics": {"spend": "7.5", "impressions": "100", "clicks": "4"},
                }
            ],
            "page_info": {"has_more": False},
        },
    },
)


@pytest.fixture
def make_api(tmp_path):
    """Build a TestClient whose provider calls hit a FakeProvider."""

    def factory(responses):
        provider = FakeProvider(responses)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(provider))
        app = create_app()
        manager = ConfigManager(config_dir=tmp_path / "adsync")
        app.dependency_overrides[get_config] = lambda: manager
        app.dependency_overrides[get_app_config] = lambda: SINGLE_ATTEMPT
        app.dependency_overrides[get_http_client] = lambda: http_client
        return TestClient(app), provider

    return factory


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health(self, make_api):
        client, _ = make_api([])
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["configured"] is False
        assert body["providers"] == ["google", "tiktok", "linkedin"]


class TestSyncEndpoint:
    """Tests for POST /sync/{provider}."""

    def test_success(self, make_api):
        client, provider = make_api([TIKTOK_OK])

        response = client.post(
            "/sync/tiktok",
            json={"account_id": "adv1", "access_token": "act", "timeframe_days": 7},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["rows_written"] == 1
        assert body["pages_written"] == 1
        assert body["metrics"][0]["spend"] == 7.5
        assert "raw_payload" not in body["metrics"][0]
        assert provider.header(0, "Access-Token") == "act"

    def test_include_raw(self, make_api):
        client, _ = make_api([TIKTOK_OK])
        response = client.post(
            "/sync/tiktok",
            json={"account_id": "adv1", "access_token": "act", "include_raw": True},
        )
        assert response.json()["metrics"][0]["raw_payload"]["dimensions"]["campaign_id"] == "c1"

    def test_auth_failure(self, make_api):
        client, _ = make_api([json_response(200, {"code": 40001, "message": "invalid token"})])

        response = client.post("/sync/tiktok", json={"account_id": "adv1", "access_token": "bad"})

        assert response.status_code == 401
        detail = response.json()["detail"]
        assert detail["reconnect_required"] is True
        assert detail["error_category"] == "auth"

    def test_rate_limited(self, make_api):
        client, _ = make_api([json_response(429, {"message": "slow down"})])

        response = client.post("/sync/tiktok", json={"account_id": "adv1", "access_token": "act"})

        assert response.status_code == 429
        assert response.json()["detail"]["error_category"] == "rate_limit"

    def test_fatal_maps_to_bad_gateway(self, make_api):
        client, _ = make_api([json_response(400, {"code": 40002, "message": "bad param"})])

        response = client.post(
            "/sync/linkedin", json={"account_id": "123", "access_token": "AQV"}
        )

        assert response.status_code == 502

    def test_unknown_provider(self, make_api):
        client, provider = make_api([TIKTOK_OK])
        response = client.post("/sync/myspace", json={"account_id": "1", "access_token": "t"})
        assert response.status_code == 404
        assert provider.call_count == 0

    def test_google_without_developer_token(self, make_api, monkeypatch):
        monkeypatch.delenv("GOOGLE_ADS_DEVELOPER_TOKEN", raising=False)
        client, provider = make_api([TIKTOK_OK])

        response = client.post("/sync/google", json={"account_id": "1", "access_token": "ya29"})

        assert response.status_code == 400
        assert "developer token" in response.json()["detail"]
        assert provider.call_count == 0

    def test_request_validation(self, make_api):
        client, _ = make_api([TIKTOK_OK])
        response = client.post(
            "/sync/tiktok",
            json={"account_id": "", "access_token": "act", "timeframe_days": 0},
        )
        assert response.status_code == 422
