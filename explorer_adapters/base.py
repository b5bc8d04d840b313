"""
Base Ledger Adapter - Shared capability contract for all ledger backends.

All adapters MUST:
- Return NormalizedRecord objects tagged with their record type
- Propagate primary lookup failures unchanged
- Degrade secondary lookups (related transactions, price, activity)
  to empty or UNKNOWN values instead of failing
- Keep cache and rate-limit state private to the instance
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Pattern

import aiohttp

from explorer_adapters.cache import ResponseCache
from explorer_adapters.config import ExplorerSettings, LedgerSettings
from explorer_adapters.exceptions import (
    InvalidInputError,
    LedgerAdapterError,
    UpstreamHTTPError,
)
from explorer_adapters.models import (
    LEDGER_PROFILES,
    MAX_ACTIVITY_TRANSACTIONS,
    MAX_RECORD_TRANSACTIONS,
    AdapterMetadata,
    LedgerId,
    LedgerProfile,
    NetworkStats,
    NormalizedRecord,
    RecordType,
)
from explorer_adapters.rate_limiter import (
    Clock,
    EndpointRateLimiter,
    Sleeper,
    SlidingWindowRateLimiter,
)
from explorer_adapters.router import QueryRouter
from explorer_adapters.transport import TransportClient


logger = logging.getLogger(__name__)


class BaseLedgerAdapter(ABC):
    """
    Abstract base class for all ledger adapters.

    Each adapter must:
    1. Set LEDGER, HASH_PATTERN and (optionally) ADDRESS_PATTERN
    2. Implement the primary lookups (latest/hash/height/transaction/address)
    3. Implement fetch_network_stats() and fetch_address_activity()
    4. Implement metadata()

    The base class supplies price lookup, search dispatch, optional hash lookups and
    failure degradation for the secondary calls.
    """

    LEDGER: LedgerId
    HASH_PATTERN: Pattern[str]
    ADDRESS_PATTERN: Optional[Pattern[str]] = None

    def __init__(
        self,
        config: Optional[ExplorerSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._config = config or ExplorerSettings()
        self._settings: LedgerSettings = self._config.for_ledger(self.LEDGER)
        self._validate_settings(self._settings)

        window_limiter = None
        if self._config.window_max_requests is not None:
            window_limiter = SlidingWindowRateLimiter(
                max_requests=self._config.window_max_requests,
                time_window=self._config.window_seconds,
                clock=clock,
                sleep=sleep,
            )

        self._transport = TransportClient(
            cache=ResponseCache(ttl=self._config.cache_ttl, clock=clock),
            rate_limiter=EndpointRateLimiter(
                min_delay=self._config.rate_limit_delay,
                clock=clock,
                sleep=sleep,
            ),
            window_limiter=window_limiter,
            timeout=self._config.request_timeout,
            session=session,
            name=self.name,
        )
        self._router = QueryRouter(self.HASH_PATTERN, self.ADDRESS_PATTERN)

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this adapter."""
        pass

    @abstractmethod
    def metadata(self) -> AdapterMetadata:
        """Return adapter metadata."""
        pass

    @abstractmethod
    async def fetch_network_stats(self) -> NetworkStats:
        """
        Fetch network figures from the backend.

        Raises:
            LedgerAdapterError: If the backend call fails
        """
        pass

    @abstractmethod
    async def get_latest_block(self) -> NormalizedRecord:
        """Fetch the current tip block."""
        pass

    @abstractmethod
    async def get_block(self, block_hash: str) -> NormalizedRecord:
        """Fetch a block by hash with up to ten related transactions."""
        pass

    @abstractmethod
    async def get_block_by_height(self, height: int) -> NormalizedRecord:
        """Fetch a block by height with up to ten related transactions."""
        pass

    @abstractmethod
    async def get_transaction(self, tx_id: str) -> NormalizedRecord:
        """Fetch a transaction by id."""
        pass

    @abstractmethod
    async def get_address(self, address: str) -> NormalizedRecord:
        """Fetch an address with up to ten recent transactions."""
        pass

    @abstractmethod
    async def fetch_address_activity(self, address: str) -> list[Any]:
        """
        Fetch recent transactions for an address.

        Raises:
            LedgerAdapterError: If the backend call fails
        """
        pass

    def _validate_settings(self, settings: LedgerSettings) -> None:
        """Hook for adapters with required settings. Raise ConfigurationError."""

    # ─────────────────────────────────────────────────────────────
    # Properties
    # ─────────────────────────────────────────────────────────────

    @property
    def ledger(self) -> LedgerId:
        return self.LEDGER

    @property
    def profile(self) -> LedgerProfile:
        return LEDGER_PROFILES[self.LEDGER]

    @property
    def base_url(self) -> str:
        return self._settings.base_url

    @property
    def transport(self) -> TransportClient:
        return self._transport

    @property
    def router(self) -> QueryRouter:
        return self._router

    # ─────────────────────────────────────────────────────────────
    # Search
    # ─────────────────────────────────────────────────────────────

    async def search(self, raw_input: str) -> NormalizedRecord:
        """
        Look up a height, hash, address or "latest".

        Raises:
            InvalidInputError, HashNotFoundError, UpstreamHTTPError,
            NetworkError, RequestTimeoutError
        """
        return await self._router.search(self, raw_input)

    async def find_block_by_hash(self, block_hash: str) -> Optional[NormalizedRecord]:
        """Block for ``block_hash``, or None if the backend has no such block."""
        try:
            return await self.get_block(block_hash)
        except UpstreamHTTPError as e:
            logger.debug(f"[{self.name}] Block lookup missed for {block_hash}: {e.status_code}")
            return None

    async def find_transaction(self, tx_id: str) -> Optional[NormalizedRecord]:
        """Transaction for ``tx_id``, or None if the backend has no such transaction."""
        try:
            return await self.get_transaction(tx_id)
        except UpstreamHTTPError as e:
            logger.debug(f"[{self.name}] Transaction lookup missed for {tx_id}: {e.status_code}")
            return None

    def validate_height(self, height: int) -> int:
        """Reject negative or non-integer heights."""
        if isinstance(height, bool) or not isinstance(height, int) or height < 0:
            raise InvalidInputError(
                f"Block height must be a non-negative integer, got {height!r}",
                query=str(height),
                adapter_name=self.name,
                ledger=self.ledger.value,
            )
        return height

    # ─────────────────────────────────────────────────────────────
    # Best-effort lookups (never raise)
    # ─────────────────────────────────────────────────────────────

    async def get_network_stats(self) -> NetworkStats:
        """Network figures; fields the backend cannot supply are UNKNOWN."""
        try:
            return await self.fetch_network_stats()
        except LedgerAdapterError as e:
            logger.warning(f"[{self.name}] Network stats unavailable: {e}")
            return NetworkStats(ledger=self.ledger)

    async def get_price(self) -> Optional[float]:
        """Spot price in the configured quote currency, or None."""
        price_id = self._settings.price_id or self.ledger.value
        currency = self._config.quote_currency

        try:
            data = await self._transport.fetch_cached(
                f"{price_id}-price",
                self._config.price_url,
                params={"ids": price_id, "vs_currencies": currency},
            )
            price = data[price_id][currency]
            return float(price) if price is not None else None
        except LedgerAdapterError as e:
            logger.warning(f"[{self.name}] Failed to fetch price: {e}")
            return None
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[{self.name}] Unexpected price payload: {e!r}")
            return None

    async def get_address_activity(self, address: str) -> list[Any]:
        """Up to five recent transactions for ``address``; empty on failure."""
        try:
            activity = await self.fetch_address_activity(address)
        except LedgerAdapterError as e:
            logger.warning(f"[{self.name}] Failed to fetch address activity: {e}")
            return []
        return list(activity or [])[:MAX_ACTIVITY_TRANSACTIONS]

    # ─────────────────────────────────────────────────────────────
    # Record helpers
    # ─────────────────────────────────────────────────────────────

    def _record(
        self,
        record_type: RecordType,
        data: Any,
        identifier: Optional[str] = None,
        transactions: Optional[list[Any]] = None,
    ) -> NormalizedRecord:
        if not isinstance(data, dict):
            raise UpstreamHTTPError(
                f"Unexpected {record_type.value} payload type {type(data).__name__}",
                adapter_name=self.name,
                ledger=self.ledger.value,
                response_body=str(data)[:500],
            )
        return NormalizedRecord(
            record_type=record_type,
            ledger=self.ledger,
            data=dict(data),
            transactions=list(transactions or [])[:MAX_RECORD_TRANSACTIONS],
            identifier=identifier,
        )

    async def _with_related(
        self,
        record: NormalizedRecord,
        loader: Callable[[], Awaitable[Any]],
    ) -> NormalizedRecord:
        """Attach related transactions; a failed load leaves the list empty."""
        try:
            related = await loader()
        except LedgerAdapterError as e:
            logger.warning(
                f"[{self.name}] Failed to fetch transactions for "
                f"{record.record_type.value} {record.identifier}: {e}"
            )
            return record.with_transactions([])

        if not isinstance(related, list):
            logger.warning(
                f"[{self.name}] Ignoring non-list transactions payload "
                f"for {record.identifier}"
            )
            return record.with_transactions([])
        return record.with_transactions(related)

    # ─────────────────────────────────────────────────────────────
    # Cache & lifecycle
    # ─────────────────────────────────────────────────────────────

    def get_cache_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        return self._transport.cache.stats()

    def clear_cache(self) -> None:
        """Clear all cache entries."""
        self._transport.cache.clear()
        logger.info(f"[{self.name}] Cache cleared")

    async def close(self) -> None:
        """Close resources."""
        await self._transport.close()

    async def __aenter__(self) -> "BaseLedgerAdapter":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name}, ledger={self.ledger.value})>"
