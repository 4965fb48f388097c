"""Tests for the TikTok Ads client and its parsers.

Run with: pytest tests/test_tiktok.py -v
"""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from collectors.errors import AuthError, RateLimitError
from collectors.tiktok.client import TikTokAdsClient, build_date_range
from collectors.tiktok.parsers import extract_report_page, parse_advertiser, parse_metric_row
from tests.conftest import json_response


def report_row(day="2024-03-01 00:00:00", campaign_id="c1", spend="10.5", payment="0"):
    return {
        "dimensions": {"stat_time_day": day, "campaign_id": campaign_id, "campaign_name": "Spring"},
        "metrics": {
            "spend": spend,
            "impressions": "1000",
            "clicks": "20",
            "conversion": "2",
            "total_complete_payment": payment,
        },
    }


def report_page(rows, cursor=None, page_info=None):
    data = {"list": rows}
    if cursor is not None:
        data["cursor"] = cursor
    if page_info is not None:
        data["page_info"] = page_info
    return json_response(200, {"code": 0, "message": "OK", "request_id": "r1", "data": data})


def make_client(http_client, sleep, retry, **kwargs):
    return TikTokAdsClient(
        access_token="act.old", http_client=http_client, sleep=sleep, retry_config=retry, **kwargs
    )


class TestParsers:
    """Tests for pure TikTok parsing helpers."""

    def test_date_range_includes_today(self):
        assert build_date_range(7, today=date(2024, 3, 10)) == ("2024-03-04", "2024-03-10")

    def test_metric_row(self):
        metric = parse_metric_row(report_row(payment="99.9"), "adv1")
        assert metric.date == "2024-03-01"
        assert metric.spend == 10.5
        assert metric.conversions == 2.0
        assert metric.revenue == 99.9
        assert metric.campaign_id == "c1"

    def test_zero_revenue_is_none(self):
        assert parse_metric_row(report_row(payment="0")).revenue is None

    def test_row_without_day_dropped(self):
        assert parse_metric_row({"dimensions": {}, "metrics": {"spend": "1"}}) is None

    def test_has_more_false_ends(self):
        page = extract_report_page(
            {"code": 0, "data": {"list": [{}], "cursor": "c2", "page_info": {"has_more": False}}}
        )
        assert page.next_cursor is None

    def test_page_number_fallback(self):
        page = extract_report_page(
            {"data": {"list": [], "page_info": {"has_more": True, "page": 1, "total_page": 3}}}
        )
        assert page.next_cursor == 2

    def test_last_page_number(self):
        page = extract_report_page(
            {"data": {"list": [], "page_info": {"has_more": True, "page": 3, "total_page": 3}}}
        )
        assert page.next_cursor is None

    def test_advertiser_name_fallback(self):
        account = parse_advertiser({"advertiser_id": 7001, "currency": "USD"})
        assert account.id == "7001"
        assert account.name == "TikTok advertiser 7001"
        assert account.currency_code == "USD"
        assert parse_advertiser({"name": "no id"}) is None


@pytest.mark.asyncio
class TestFetchMetrics:
    """Tests for TikTokAdsClient.fetch_metrics."""

    async def test_cursor_pagination(self, provider_factory, fast_retry, no_sleep):
        provider, http_client = provider_factory(
            [
                report_page([report_row(), report_row(day=None)], cursor="cur-2"),
                report_page([report_row(campaign_id="c2")], page_info={"has_more": False}),
            ]
        )
        client = make_client(http_client, no_sleep, fast_retry)
        pages = []

        metrics = await client.fetch_metrics("adv1", 7, sink=pages.append)

        assert [m.campaign_id for m in metrics] == ["c1", "c2"]
        assert all(m.account_id == "adv1" for m in metrics)
        assert [len(p) for p in pages] == [1, 1]
        assert provider.call_count == 2
        assert provider.requests[0].url.path == "/open_api/v1.3/report/integrated/get/"
        assert provider.header(0, "Access-Token") == "act.old"

        first = provider.json_body(0)
        assert first["advertiser_id"] == "adv1"
        assert first["time_granularity"] == "STAT_TIME_DAY"
        assert "cursor" not in first
        assert provider.json_body(1)["cursor"] == "cur-2"

    async def test_page_number_pagination(self, provider_factory, fast_retry, no_sleep):
        provider, http_client = provider_factory(
            [
                report_page([report_row()], page_info={"has_more": True, "page": 1, "total_page": 2}),
                report_page([report_row()], page_info={"has_more": False, "page": 2}),
            ]
        )
        client = make_client(http_client, no_sleep, fast_retry)

        await client.fetch_metrics("adv1", 7)

        assert provider.json_body(1)["page"] == 2

    async def test_default_page_cap(self, provider_factory, fast_retry, no_sleep):
        """Test an endless cursor stops after twenty pages."""
        provider, http_client = provider_factory([report_page([report_row()], cursor="again")])
        client = make_client(http_client, no_sleep, fast_retry)

        metrics = await client.fetch_metrics("adv1", 7)

        assert provider.call_count == 20
        assert len(metrics) == 20

    async def test_logical_auth_error_refreshes(self, provider_factory, fast_retry, no_sleep):
        """Test HTTP 200 with code 40003 triggers one refresh and a replay."""
        provider, http_client = provider_factory(
            [
                json_response(200, {"code": 40003, "message": "Access token expired"}),
                report_page([report_row()], page_info={"has_more": False}),
            ]
        )
        refresh = AsyncMock(return_value="act.new")
        client = make_client(http_client, no_sleep, fast_retry, refresh_access_token=refresh)

        metrics = await client.fetch_metrics("adv1", 7)

        assert len(metrics) == 1
        assert provider.header(1, "Access-Token") == "act.new"
        refresh.assert_awaited_once()

    async def test_auth_error_without_refresh(self, provider_factory, fast_retry, no_sleep):
        provider, http_client = provider_factory(
            [
                json_response(
                    200,
                    {"code": 40001, "message": "invalid token"},
                    headers={"x-tt-logid": "log-9"},
                )
            ]
        )
        client = make_client(http_client, no_sleep, fast_retry)

        with pytest.raises(AuthError) as exc_info:
            await client.fetch_metrics("adv1", 7)

        assert exc_info.value.provider_error_code == 40001
        assert exc_info.value.request_id == "log-9"

    async def test_rate_limit_exhausts(self, provider_factory, fast_retry, no_sleep):
        provider, http_client = provider_factory(
            [json_response(200, {"code": 40100, "message": "Too many requests"})]
        )
        observed = []
        client = make_client(http_client, no_sleep, fast_retry, on_rate_limit=observed.append)

        with pytest.raises(RateLimitError):
            await client.fetch_metrics("adv1", 7)

        assert provider.call_count == 3
        assert len(observed) == 3

    async def test_empty_advertiser(self, provider_factory, fast_retry, no_sleep):
        provider, http_client = provider_factory([report_page([])])
        client = make_client(http_client, no_sleep, fast_retry)
        with pytest.raises(ValueError):
            await client.fetch_metrics("", 7)


@pytest.mark.asyncio
class TestFetchAdAccounts:
    """Tests for TikTokAdsClient.fetch_ad_accounts."""

    async def test_lists_advertisers(self, provider_factory, fast_retry, no_sleep):
        provider, http_client = provider_factory(
            [
                json_response(
                    200,
                    {
                        "code": 0,
                        "data": {
                            "list": [
                                {"advertiser_id": "1", "name": "Brand", "currency": "USD"},
                                {"name": "missing id"},
                            ]
                        },
                    },
                )
            ]
        )
        client = make_client(http_client, no_sleep, fast_retry)

        accounts = await client.fetch_ad_accounts(["1"])

        assert [(a.id, a.name) for a in accounts] == [("1", "Brand")]
        assert provider.requests[0].method == "POST"
        assert provider.json_body(0)["advertiser_ids"] == ["1"]

    async def test_placeholders_when_empty(self, provider_factory, fast_retry, no_sleep):
        provider, http_client = provider_factory(
            [json_response(200, {"code": 0, "data": {"list": []}})]
        )
        client = make_client(http_client, no_sleep, fast_retry)

        accounts = await client.fetch_ad_accounts(["7001", "7002"])

        assert [a.name for a in accounts] == ["TikTok advertiser 7001", "TikTok advertiser 7002"]

    async def test_no_ids_no_placeholders(self, provider_factory, fast_retry, no_sleep):
        provider, http_client = provider_factory([json_response(200, {"code": 0, "data": {}})])
        client = make_client(http_client, no_sleep, fast_retry)
        assert await client.fetch_ad_accounts() == []
        assert "advertiser_ids" not in provider.json_body(0)


@pytest.mark.asyncio
class TestTikTokHealth:
    """Tests for TikTokAdsClient.check_health."""

    async def test_healthy_with_advertiser(self, provider_factory, fast_retry, no_sleep):
        provider, http_client = provider_factory(
            [
                json_response(200, {"code": 0, "data": {"display_name": "me"}}),
                json_response(200, {"code": 0, "data": {"list": [{"advertiser_id": "1"}]}}),
            ]
        )
        client = make_client(http_client, no_sleep, fast_retry)

        status = await client.check_health("1")

        assert status.healthy is True
        assert provider.requests[0].url.path.endswith("/user/info/")

    async def test_invalid_token(self, provider_factory, fast_retry, no_sleep):
        provider, http_client = provider_factory(
            [json_response(200, {"code": 40001, "message": "invalid"})]
        )
        refresh = AsyncMock(return_value="unused")
        client = make_client(http_client, no_sleep, fast_retry, refresh_access_token=refresh)

        status = await client.check_health()

        assert status.healthy is False
        assert status.token_valid is False
        assert provider.call_count == 1
        refresh.assert_not_awaited()

    async def test_advertiser_not_found(self, provider_factory, fast_retry, no_sleep):
        provider, http_client = provider_factory(
            [
                json_response(200, {"code": 0, "data": {}}),
                json_response(200, {"code": 0, "data": {"list": [{"advertiser_id": "2"}]}}),
            ]
        )
        client = make_client(http_client, no_sleep, fast_retry)

        status = await client.check_health("1")

        assert status.healthy is False
        assert status.token_valid is True
        assert status.account_accessible is False
        assert status.error == "Advertiser not found in accessible accounts"
