"""Tests for the resilient upstream HTTP client."""

from __future__ import annotations

import httpx
import pytest

from marketing_mcp.errors import CircuitOpenError, UpstreamError
from marketing_mcp.http import CircuitBreaker, CircuitState, UpstreamClient


def make_client(handler, **kwargs) -> UpstreamClient:
    options = {
        "timeout": 5.0,
        "max_retries": 2,
        "retry_base_delay": 0.0,
        "retry_max_delay": 0.0,
        "circuit_breaker_threshold": 5,
        "transport": httpx.MockTransport(handler),
    }
    options.update(kwargs)
    return UpstreamClient("test-api", "https://api.example.com/v1", **options)


class TestCircuitBreaker:
    def test_opens_at_threshold(self):
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60)

        breaker.record_failure()
        assert breaker.allow_request()
        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert not breaker.allow_request()

    def test_half_open_after_timeout(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        breaker.record_failure()

        assert breaker.state == CircuitState.HALF_OPEN

    def test_success_closes(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        breaker.record_failure()
        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED


class TestUpstreamClient:
    @pytest.mark.asyncio
    async def test_get_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/partners"
            assert request.url.params["limit"] == "1"
            assert request.headers["User-Agent"].startswith("SODAX-Marketing-MCP")
            return httpx.Response(200, json={"partners": []})

        client = make_client(handler)
        try:
            assert await client.get_json("/partners", params={"limit": 1}) == {"partners": []}
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"ok": True})

        client = make_client(handler)

        assert await client.get_json("/status") == {"ok": True}
        assert len(calls) == 3
        assert client.circuit_state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_transport_error_retried_then_raised(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler, max_retries=1)

        with pytest.raises(UpstreamError, match="ConnectError"):
            await client.get_json("/status")
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_non_transient_status_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        client = make_client(handler)

        with pytest.raises(UpstreamError) as exc_info:
            await client.get_json("/missing")
        assert exc_info.value.status_code == 404
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_auth_failure_does_not_trip_breaker(self):
        client = make_client(lambda r: httpx.Response(401), circuit_breaker_threshold=1)

        for _ in range(3):
            with pytest.raises(UpstreamError, match="HTTP 401"):
                await client.get_json("/private")

        assert client.circuit_state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_open_circuit_fails_fast(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        client = make_client(handler, max_retries=0, circuit_breaker_threshold=2)

        for _ in range(2):
            with pytest.raises(UpstreamError):
                await client.get_json("/flaky")

        with pytest.raises(CircuitOpenError):
            await client.get_json("/flaky")
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = make_client(lambda r: httpx.Response(200, text="<html>"))

        with pytest.raises(UpstreamError, match="invalid JSON"):
            await client.get_json("/page")

    @pytest.mark.asyncio
    async def test_client_reopens_after_close(self):
        client = make_client(lambda r: httpx.Response(200, json=[1]))

        assert await client.get_json("/a") == [1]
        await client.aclose()
        assert await client.get_json("/a") == [1]

    @pytest.mark.asyncio
    async def test_undecodable_body_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip")

        client = make_client(handler, max_retries=2)

        with pytest.raises(UpstreamError, match="DecodingError"):
            await client.get_json("/partners")
        assert len(calls) == 1
