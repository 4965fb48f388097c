"""Shared fixtures for the Ad Sync test suite.

Provider HTTP traffic is simulated with httpx.MockTransport; retry sleeps are
replaced by an AsyncMock so tests never wait.
"""

import json
from typing import Any, Callable, Optional, Union
from unittest.mock import AsyncMock

import httpx
import pytest

from collectors.backoff import RetryConfig

ResponseSpec = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeProvider:
    """Replays a scripted list of responses and records every request.

    Each entry is an httpx.Response, an exception to raise (e.g.
    httpx.ConnectError), or a callable receiving the request. The last entry
    repeats once the script is exhausted.
    """

    def __init__(self, responses: list[ResponseSpec]) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests) - 1, len(self.responses) - 1)
        spec = self.responses[index]
        if isinstance(spec, Exception):
            raise spec
        if callable(spec) and not isinstance(spec, httpx.Response):
            return spec(request)
        # Fresh copy; a Response instance is bound to a single request.
        return httpx.Response(spec.status_code, headers=spec.headers, content=spec.content)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def json_body(self, index: int) -> Any:
        return json.loads(self.requests[index].content)

    def header(self, index: int, name: str) -> Optional[str]:
        return self.requests[index].headers.get(name)


def json_response(status_code: int, body: Any, headers: Optional[dict] = None) -> httpx.Response:
    return httpx.Response(status_code, json=body, headers=headers)


@pytest.fixture
def no_sleep():
    """Async sleep replacement that records requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def fast_retry():
    """Retry config without jitter so delays are deterministic."""
    return RetryConfig(max_retries=3, base_delay_ms=100, max_delay_ms=1000, jitter_factor=0)


@pytest.fixture
def provider_factory():
    """Build a FakeProvider plus an httpx.AsyncClient routed through it."""
    def factory(responses: list[ResponseSpec]) -> tuple[FakeProvider, httpx.AsyncClient]:
        provider = FakeProvider(responses)
        client = httpx.AsyncClient(transport=httpx.MockTransport(provider))
        return provider, client

    return factory

