"""Shared fixtures for cloudflare-lb tests."""

import json
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from cloudflare_lb import restapi

BASE_URL = "https://api.cloudflare.test/client/v4"
API_PREFIX = "/client/v4"

INVALID_ID = {
    "success": False,
    "errors": [{"code": 1003, "message": "Invalid ID"}],
    "messages": [],
    "result": None,
}

Responder = Callable[[httpx.Request], httpx.Response]


class FakeApi:
    """Canned Cloudflare API keyed by request path.

    Unknown paths answer with the API's "Invalid ID" failure envelope, the
    way the real API does for an unknown resource identifier. Every request
    is recorded for later assertions.
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, body: str | dict | Responder, status: int = 200) -> None:
        """Register a response for a path relative to the API base URL."""
        self.routes[API_PREFIX + path] = (status, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json=INVALID_ID)
        status, body = route
        if callable(body):
            return body(request)
        if isinstance(body, dict):
            body = json.dumps(body)
        return httpx.Response(
            status,
            text=body,
            headers={"content-type": "application/json"},
        )

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        """Decoded JSON body of the most recent request."""
        return json.loads(self.last_request.content)


@pytest.fixture
def fake_api() -> FakeApi:
    """Empty fake API; tests register their own routes."""
    return FakeApi()


@pytest.fixture
def api_client(fake_api: FakeApi) -> Iterator[restapi.CloudflareRestApiClient]:
    """REST client whose transport is the fake API."""
    client = restapi.CloudflareRestApiClient(
        base_url=BASE_URL,
        api_token="test-token",
        transport=httpx.MockTransport(fake_api),
    )
    yield client
    client.close()
