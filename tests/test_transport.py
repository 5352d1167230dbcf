from __future__ import annotations

import asyncio

import httpx
import pytest

from dashcache.services.errors import TransportError
from dashcache.services.transport import ApiClient, is_temporary


def _client(handler, attempts: int = 1) -> ApiClient:
    return ApiClient("http://backend.test/api/", retry_attempts=attempts, transport=httpx.MockTransport(handler))


def test_url_for_joins_paths() -> None:
    api = ApiClient("http://backend.test/api/")
    assert api.url_for("/clients/3") == "http://backend.test/api/clients/3"
    assert api.url_for("all-data") == "http://backend.test/api/all-data"


def test_error_status_raises_with_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"name": "must not be empty"})

    with pytest.raises(TransportError) as info:
        asyncio.run(_client(handler).post("/clients", {"name": ""}))

    assert info.value.status == 422
    assert info.value.json_body() == {"name": "must not be empty"}


def test_network_failure_has_no_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as info:
        asyncio.run(_client(handler).request("GET", "/all-data"))

    assert info.value.is_network_error
    assert "connection refused" in str(info.value)


def test_snapshot_retries_temporary_failures() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if len(calls) < 2:
            return httpx.Response(503)
        return httpx.Response(200, json={"clients": []})

    assert asyncio.run(_client(handler, attempts=3).fetch_snapshot()) == {"clients": []}
    assert calls == ["/api/all-data", "/api/all-data"]


def test_snapshot_does_not_retry_client_errors() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(404)

    with pytest.raises(TransportError):
        asyncio.run(_client(handler, attempts=3).fetch_snapshot())
    assert len(calls) == 1


def test_snapshot_must_be_an_object() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[1, 2, 3])

    with pytest.raises(TransportError, match="not a JSON object"):
        asyncio.run(_client(handler).fetch_snapshot())


def test_empty_body_returns_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204)

    assert asyncio.run(_client(handler).delete("/tasks/1")) is None


def test_is_temporary() -> None:
    assert is_temporary(TransportError(None, "timeout"))
    assert is_temporary(TransportError(503))
    assert is_temporary(TransportError(429))
    assert not is_temporary(TransportError(400))
    assert not is_temporary(ValueError("nope"))
