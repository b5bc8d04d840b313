"""
Transport Client - HTTP GET with rate limiting, hard timeout and error mapping.

Every outbound request:
1. Acquires the endpoint rate limiter (and the sliding window, if any)
2. Runs under asyncio.wait_for so a stuck request is cancelled
3. Maps failures onto the explorer error taxonomy
"""

import asyncio
import logging
import time
from typing import Any, Optional
from urllib.parse import urlencode

import aiohttp

from explorer_adapters.cache import ResponseCache
from explorer_adapters.exceptions import (
    NetworkError,
    RecordNotFoundError,
    RequestTimeoutError,
    UpstreamHTTPError,
)
from explorer_adapters.rate_limiter import EndpointRateLimiter, SlidingWindowRateLimiter


logger = logging.getLogger(__name__)


SECRET_PARAMS = frozenset({"apikey", "api_key", "key"})


def build_url(url: str, params: Optional[dict[str, Any]] = None) -> str:
    """Full request URL; used as the rate-limit key."""
    if not params:
        return url
    return f"{url}?{urlencode(params)}"


def mask_params(params: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Copy of ``params`` with credentials masked for logging."""
    if not params:
        return {}
    return {
        key: ("***" if key.lower() in SECRET_PARAMS and value else value)
        for key, value in params.items()
    }


class TransportClient:
    """
    Outbound HTTP for one adapter.

    Owns its aiohttp session unless one is injected.
    """

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        cache: ResponseCache,
        rate_limiter: EndpointRateLimiter,
        window_limiter: Optional[SlidingWindowRateLimiter] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
        name: str = "transport",
    ) -> None:
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._window_limiter = window_limiter
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._name = name

        self._requests_made = 0
        self._failures = 0
        self._last_latency_ms: Optional[float] = None

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def rate_limiter(self) -> EndpointRateLimiter:
        return self._rate_limiter

    @property
    def window_limiter(self) -> Optional[SlidingWindowRateLimiter]:
        return self._window_limiter

    @property
    def timeout(self) -> float:
        return self._timeout

    async def fetch(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        as_text: bool = False,
    ) -> Any:
        """
        Fetch a URL and return its decoded payload.

        Args:
            url: Endpoint URL
            params: Query parameters
            as_text: Return the stripped body text instead of parsed JSON

        Raises:
            RequestTimeoutError: Deadline exceeded, request cancelled
            UpstreamHTTPError: Failure status or undecodable body
            NetworkError: Connectivity fault
        """
        request_key = build_url(url, params)

        # The attempt counts against the limiters even if it later times out
        await self._rate_limiter.acquire(request_key)
        if self._window_limiter is not None:
            await self._window_limiter.acquire()

        self._requests_made += 1
        start_time = time.monotonic()
        try:
            return await asyncio.wait_for(
                self._request(url, params, as_text),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            self._failures += 1
            logger.warning(
                f"[{self._name}] Request timeout after {self._timeout}s: "
                f"{url} {mask_params(params)}"
            )
            raise RequestTimeoutError(
                message=f"Request timeout after {self._timeout}s",
                timeout_seconds=self._timeout,
                request_url=url,
                adapter_name=self._name,
            )
        except (UpstreamHTTPError, NetworkError):
            self._failures += 1
            raise
        finally:
            self._last_latency_ms = (time.monotonic() - start_time) * 1000

    async def fetch_cached(
        self,
        key: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        as_text: bool = False,
    ) -> Any:
        """Serve from cache, fetching and populating it on a miss."""
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        payload = await self.fetch(url, params=params, as_text=as_text)
        self._cache.put(key, payload)
        return payload

    async def _request(
        self,
        url: str,
        params: Optional[dict[str, Any]],
        as_text: bool,
    ) -> Any:
        session = await self._get_session()

        try:
            async with session.get(url, params=params) as response:
                if response.status >= 400:
                    body = await response.text(errors="replace")
                    error_cls = RecordNotFoundError if response.status == 404 else UpstreamHTTPError
                    raise error_cls(
                        message=f"HTTP {response.status}",
                        status_code=response.status,
                        adapter_name=self._name,
                        response_body=body[:500],
                        request_url=url,
                    )

                if as_text:
                    try:
                        return (await response.text()).strip()
                    except UnicodeDecodeError as e:
                        raise UpstreamHTTPError(
                            message=f"Undecodable payload: {e}",
                            status_code=response.status,
                            adapter_name=self._name,
                            request_url=url,
                            original_error=e,
                        )

                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise UpstreamHTTPError(
                        message=f"Invalid JSON payload: {e}",
                        status_code=response.status,
                        adapter_name=self._name,
                        request_url=url,
                        original_error=e,
                    )

        except asyncio.TimeoutError:
            raise
        except (aiohttp.ClientError, OSError) as e:
            raise NetworkError(
                message=f"Connection error: {e}",
                request_url=url,
                adapter_name=self._name,
                original_error=e,
            )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json, text/plain",
            "User-Agent": "ChainExplorerCore/1.0",
        }

    def get_stats(self) -> dict[str, Any]:
        """Get transport statistics."""
        return {
            "requests_made": self._requests_made,
            "failures": self._failures,
            "last_latency_ms": self._last_latency_ms,
            "timeout_seconds": self._timeout,
        }

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
