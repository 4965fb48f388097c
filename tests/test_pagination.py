"""Tests for the Paginator."""

from typing import Optional

import pytest

from collectors.adapter import ApiRequest
from collectors.errors import FatalError
from collectors.executor import RequestExecutor
from collectors.google_ads.client import GoogleAdsAdapter
from collectors.google_ads.parsers import extract_search_page
from collectors.pagination import PageCursor, Paginator
from collectors.token_gate import CallAttemptState
from tests.conftest import json_response

URL = "https://googleads.googleapis.com/v15/customers/123/googleAds:search"


def build(cursor: Optional[PageCursor]) -> ApiRequest:
    body = {"query": "SELECT campaign.id FROM campaign"}
    if cursor:
        body["pageToken"] = cursor
    return ApiRequest("POST", URL, json=body)


def page(index: int, has_next: bool = True):
    body = {"results": [{"campaign": {"id": str(index)}}]}
    if has_next:
        body["nextPageToken"] = f"token-{index + 1}"
    return json_response(200, body)


def make_paginator(http_client, retry, sleep, max_pages):
    executor = RequestExecutor(GoogleAdsAdapter("dev"), http_client, retry, sleep=sleep)
    return Paginator(executor, max_pages)


@pytest.mark.asyncio
class TestPaginator:
    """Tests for Paginator.iterate/collect."""

    async def test_stops_without_cursor(self, provider_factory, fast_retry, no_sleep):
        provider, client = provider_factory([page(0), page(1), page(2, has_next=False)])
        paginator = make_paginator(client, fast_retry, no_sleep, max_pages=8)
        rows = []

        pages = await paginator.collect(
            build, extract_search_page, CallAttemptState("tok"), rows.extend, operation="search"
        )

        assert pages == 3
        assert [r["campaign"]["id"] for r in rows] == ["0", "1", "2"]
        assert provider.json_body(0).get("pageToken") is None
        assert provider.json_body(1)["pageToken"] == "token-1"
        assert provider.json_body(2)["pageToken"] == "token-2"

    async def test_max_pages_cap(self, provider_factory, fast_retry, no_sleep):
        """Test ten available pages with max_pages=8 fetches exactly eight."""
        provider, client = provider_factory([page(i) for i in range(10)])
        paginator = make_paginator(client, fast_retry, no_sleep, max_pages=8)
        rows = []

        pages = await paginator.collect(
            build, extract_search_page, CallAttemptState("tok"), rows.extend, operation="search"
        )

        assert pages == 8
        assert provider.call_count == 8
        assert len(rows) == 8

    async def test_empty_string_cursor_ends(self, provider_factory, fast_retry, no_sleep):
        provider, client = provider_factory(
            [json_response(200, {"results": [], "nextPageToken": ""})]
        )
        paginator = make_paginator(client, fast_retry, no_sleep, max_pages=8)

        pages = [p async for p in paginator.iterate(
            build, extract_search_page, CallAttemptState("tok"), operation="search"
        )]

        assert len(pages) == 1
        assert provider.call_count == 1

    async def test_failure_keeps_earlier_pages(self, provider_factory, fast_retry, no_sleep):
        """Test a failing page raises after earlier pages reached the sink."""
        provider, client = provider_factory(
            [page(0), json_response(400, {"error": {"code": 400, "message": "bad"}})]
        )
        paginator = make_paginator(client, fast_retry, no_sleep, max_pages=8)
        rows = []

        with pytest.raises(FatalError):
            await paginator.collect(
                build, extract_search_page, CallAttemptState("tok"), rows.extend,
                operation="search",
            )
        assert len(rows) == 1

    async def test_invalid_max_pages(self, provider_factory, fast_retry, no_sleep):
        _, client = provider_factory([page(0)])
        with pytest.raises(ValueError):
            make_paginator(client, fast_retry, no_sleep, max_pages=0)
