"""
Transport Client Tests.

============================================================
PURPOSE
============================================================
Unit tests for TransportClient.

TEST CATEGORIES:
- Payload tests: JSON and plain-text bodies
- Error mapping tests: HTTP status, connectivity, timeout
- Caching tests: fetch_cached idempotence within TTL
- Logging tests: credential masking

============================================================
"""

import asyncio
import time

import aiohttp
import pytest

from explorer_adapters import (
    EndpointRateLimiter,
    NetworkError,
    RecordNotFoundError,
    RequestTimeoutError,
    ResponseCache,
    SlidingWindowRateLimiter,
    TransportClient,
    UpstreamHTTPError,
)
from explorer_adapters.transport import build_url, mask_params
from tests.explorer_adapters.fakes import INVALID_JSON, FakeResponse, FakeSession


def make_transport(session, clock=time.monotonic, timeout=2.0, min_delay=0.0, window=None):
    return TransportClient(
        cache=ResponseCache(ttl=60, clock=clock),
        rate_limiter=EndpointRateLimiter(min_delay=min_delay),
        window_limiter=window,
        timeout=timeout,
        session=session,
        name="test",
    )


# ============================================================
# PAYLOAD TESTS
# ============================================================

class TestFetchPayloads:
    """Tests for decoding response bodies."""

    @pytest.mark.asyncio
    async def test_fetch_json(self):
        """Test that JSON bodies are decoded."""
        session = FakeSession(lambda url, params: FakeResponse(json_data={"height": 7}))
        transport = make_transport(session)

        payload = await transport.fetch("https://example.test/block/abc")

        assert payload == {"height": 7}
        assert session.urls() == ["https://example.test/block/abc"]

    @pytest.mark.asyncio
    async def test_fetch_text_is_stripped(self):
        """Test that plain-text bodies are returned stripped."""
        session = FakeSession(lambda url, params: FakeResponse(text="840000\n"))
        transport = make_transport(session)

        payload = await transport.fetch("https://example.test/blocks/tip/height", as_text=True)

        assert payload == "840000"

    @pytest.mark.asyncio
    async def test_params_are_forwarded(self):
        """Test that query parameters reach the session."""
        session = FakeSession(lambda url, params: FakeResponse(json_data={}))
        transport = make_transport(session)

        await transport.fetch("https://example.test/api", params={"module": "proxy"})

        assert session.calls == [("https://example.test/api", {"module": "proxy"})]

    @pytest.mark.asyncio
    async def test_invalid_json_is_upstream_error(self):
        """Test that an undecodable body maps to UpstreamHTTPError."""
        session = FakeSession(lambda url, params: FakeResponse(json_data=INVALID_JSON))
        transport = make_transport(session)

        with pytest.raises(UpstreamHTTPError):
            await transport.fetch("https://example.test/x")


# ============================================================
# ERROR MAPPING TESTS
# ============================================================

class TestErrorMapping:
    """Tests for transport failure normalization."""

    @pytest.mark.asyncio
    async def test_not_found_status(self):
        """Test that 404 maps to RecordNotFoundError."""
        session = FakeSession(lambda url, params: FakeResponse(status=404, text="Block not found"))
        transport = make_transport(session)

        with pytest.raises(RecordNotFoundError) as exc_info:
            await transport.fetch("https://example.test/block/abc")

        assert exc_info.value.status_code == 404
        assert exc_info.value.response_body == "Block not found"
        assert isinstance(exc_info.value, UpstreamHTTPError)

    @pytest.mark.asyncio
    async def test_server_error_status(self):
        """Test that 5xx maps to UpstreamHTTPError with the status."""
        session = FakeSession(lambda url, params: FakeResponse(status=503, text="busy"))
        transport = make_transport(session)

        with pytest.raises(UpstreamHTTPError) as exc_info:
            await transport.fetch("https://example.test/x")

        assert exc_info.value.status_code == 503
        assert not isinstance(exc_info.value, RecordNotFoundError)

    @pytest.mark.asyncio
    async def test_undecodable_error_body_keeps_status(self):
        """Test that a non-UTF-8 error body still maps to UpstreamHTTPError."""
        session = FakeSession(
            lambda url, params: FakeResponse(status=502, body=b"\xff\xfe500 oops")
        )
        transport = make_transport(session)

        with pytest.raises(UpstreamHTTPError) as exc_info:
            await transport.fetch("https://example.test/tx/abc")

        assert exc_info.value.status_code == 502
        assert "500 oops" in exc_info.value.response_body

    @pytest.mark.asyncio
    async def test_undecodable_text_payload(self):
        """Test that a non-UTF-8 plain-text body maps to UpstreamHTTPError."""
        session = FakeSession(lambda url, params: FakeResponse(body=b"\xff\xfe840000"))
        transport = make_transport(session)

        with pytest.raises(UpstreamHTTPError) as exc_info:
            await transport.fetch("https://example.test/blocks/tip/height", as_text=True)

        assert isinstance(exc_info.value.original_error, UnicodeDecodeError)

    @pytest.mark.asyncio
    async def test_undecodable_json_payload(self):
        """Test that a non-UTF-8 JSON body maps to UpstreamHTTPError."""
        session = FakeSession(lambda url, params: FakeResponse(body=b'{"a": "\xff"}'))
        transport = make_transport(session)

        with pytest.raises(UpstreamHTTPError):
            await transport.fetch("https://example.test/x")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Test that aiohttp client errors map to NetworkError."""
        session = FakeSession(
            lambda url, params: aiohttp.ClientConnectionError("Connection reset by peer")
        )
        transport = make_transport(session)

        with pytest.raises(NetworkError) as exc_info:
            await transport.fetch("https://example.test/x")

        assert exc_info.value.request_url == "https://example.test/x"
        assert isinstance(exc_info.value.original_error, aiohttp.ClientConnectionError)

    @pytest.mark.asyncio
    async def test_timeout_cancels_request(self):
        """Test a 10ms deadline against a transport that never responds."""
        cancelled = asyncio.Event()

        async def never_respond():
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        session = FakeSession(lambda url, params: never_respond())
        limiter = EndpointRateLimiter(min_delay=1.0)
        transport = TransportClient(
            cache=ResponseCache(),
            rate_limiter=limiter,
            timeout=0.01,
            session=session,
        )

        start = time.monotonic()
        with pytest.raises(RequestTimeoutError) as exc_info:
            await transport.fetch("https://example.test/slow")
        elapsed = time.monotonic() - start

        assert elapsed < 0.5
        assert exc_info.value.timeout_seconds == 0.01
        assert cancelled.is_set()
        # The attempt still counts against the limiter
        assert limiter.last_request("https://example.test/slow") is not None

    @pytest.mark.asyncio
    async def test_timeout_does_not_cancel_siblings(self):
        """Test that one request timing out leaves concurrent requests alone."""
        async def slow():
            await asyncio.sleep(3600)

        async def fast():
            await asyncio.sleep(0.05)
            return FakeResponse(json_data={"ok": True})

        session = FakeSession(lambda url, params: slow() if url.endswith("slow") else fast())
        transport = make_transport(session, timeout=0.02)
        sibling = make_transport(session, timeout=1.0)

        results = await asyncio.gather(
            transport.fetch("https://example.test/slow"),
            sibling.fetch("https://example.test/fast"),
            return_exceptions=True,
        )

        assert isinstance(results[0], RequestTimeoutError)
        assert results[1] == {"ok": True}

    @pytest.mark.asyncio
    async def test_failures_are_counted(self):
        """Test transport statistics."""
        session = FakeSession(lambda url, params: FakeResponse(status=500, text=""))
        transport = make_transport(session)

        with pytest.raises(UpstreamHTTPError):
            await transport.fetch("https://example.test/x")

        stats = transport.get_stats()
        assert stats["requests_made"] == 1
        assert stats["failures"] == 1


# ============================================================
# CACHING TESTS
# ============================================================

class TestFetchCached:
    """Tests for fetch_cached."""

    @pytest.mark.asyncio
    async def test_one_outbound_call_within_ttl(self, fake_clock):
        """Test idempotence within the TTL and refetch after expiry."""
        session = FakeSession(lambda url, params: FakeResponse(json_data={"n": len(session.calls)}))
        transport = make_transport(session, clock=fake_clock)
        url = "https://example.test/block/abc"

        first = await transport.fetch_cached(url, url)
        fake_clock.advance(30)
        second = await transport.fetch_cached(url, url)

        assert first == second
        assert len(session.calls) == 1

        fake_clock.advance(31)
        third = await transport.fetch_cached(url, url)

        assert len(session.calls) == 2
        assert third == {"n": 2}

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, fake_clock):
        """Test that an error leaves the cache empty."""
        session = FakeSession(lambda url, params: FakeResponse(status=500, text="boom"))
        transport = make_transport(session, clock=fake_clock)

        with pytest.raises(UpstreamHTTPError):
            await transport.fetch_cached("k", "https://example.test/x")

        assert transport.cache.get("k") is None


# ============================================================
# RATE LIMIT INTEGRATION
# ============================================================

class TestTransportRateLimiting:
    """Tests for limiter acquisition before sending."""

    @pytest.mark.asyncio
    async def test_limiter_is_keyed_by_full_url(self):
        """Test that the endpoint key includes the query string."""
        session = FakeSession(lambda url, params: FakeResponse(json_data={}))
        limiter = EndpointRateLimiter(min_delay=0.0)
        transport = TransportClient(ResponseCache(), limiter, session=session)

        await transport.fetch("https://example.test/api", params={"action": "balance"})

        assert limiter.last_request("https://example.test/api?action=balance") is not None

    @pytest.mark.asyncio
    async def test_window_limiter_is_consulted(self):
        """Test that the sliding window records each request."""
        session = FakeSession(lambda url, params: FakeResponse(json_data={}))
        window = SlidingWindowRateLimiter(max_requests=5, time_window=60)
        transport = make_transport(session, window=window)

        await transport.fetch("https://example.test/a")
        await transport.fetch("https://example.test/b")

        assert window.remaining() == 3


# ============================================================
# LOGGING TESTS
# ============================================================

class TestHelpers:
    """Tests for URL building and masking."""

    def test_build_url(self):
        """Test URL building."""
        assert build_url("https://x.test/api") == "https://x.test/api"
        assert build_url("https://x.test/api", {"a": "1", "b": "2"}) == "https://x.test/api?a=1&b=2"

    def test_mask_params(self):
        """Test that API keys are masked."""
        masked = mask_params({"module": "account", "apikey": "secret"})

        assert masked == {"module": "account", "apikey": "***"}
        assert mask_params(None) == {}
