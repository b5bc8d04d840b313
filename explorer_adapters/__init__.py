"""
Explorer Adapters Package - Unified ledger lookup layer.

Looks up a height, hash, address or "latest" on one of three ledgers and
returns a normalized, tagged record without exposing the backend protocol.

Features:
- One capability contract, three backends (Bitcoin, Ethereum, Litecoin)
- Block-then-transaction disambiguation for hash-shaped input
- Short-lived response cache per adapter
- Per-endpoint rate limiting with hard request timeouts
- Secondary lookups degrade instead of failing

Quick Start:
    from explorer_adapters import AdapterRegistry, ExplorerSettings, LedgerId

    async def lookup():
        async with AdapterRegistry(ExplorerSettings.from_env()) as registry:
            adapter = registry.get(LedgerId.BITCOIN)

            record = await adapter.search("latest")
            if record.is_block:
                print(f"Block #{record.data['height']}")

            # Never raise - degrade to UNKNOWN / None / []
            stats = await adapter.get_network_stats()
            price = await adapter.get_price()

Record types:
- block: block header fields, up to 10 transactions
- transaction: transaction fields
- address: address summary, up to 10 recent transactions
"""

from explorer_adapters.base import BaseLedgerAdapter
from explorer_adapters.cache import ResponseCache
from explorer_adapters.config import ExplorerSettings, LedgerSettings
from explorer_adapters.exceptions import (
    ConfigurationError,
    HashNotFoundError,
    InvalidInputError,
    LedgerAdapterError,
    NetworkError,
    RecordNotFoundError,
    RequestTimeoutError,
    UnsupportedLedgerError,
    UpstreamHTTPError,
)
from explorer_adapters.models import (
    LEDGER_PROFILES,
    UNKNOWN,
    AdapterMetadata,
    CacheEntry,
    LedgerId,
    LedgerProfile,
    NetworkStats,
    NormalizedRecord,
    Query,
    QueryKind,
    RecordType,
)
from explorer_adapters.providers import (
    BlockchairAdapter,
    BlockstreamAdapter,
    EtherscanAdapter,
)
from explorer_adapters.rate_limiter import EndpointRateLimiter, SlidingWindowRateLimiter
from explorer_adapters.registry import (
    AdapterRegistry,
    close_default_registry,
    get_default_registry,
)
from explorer_adapters.router import QueryRouter, parse_height
from explorer_adapters.transport import TransportClient


__version__ = "1.0.0"

__all__ = [
    # Base
    "BaseLedgerAdapter",

    # Models
    "NormalizedRecord",
    "NetworkStats",
    "RecordType",
    "LedgerId",
    "LedgerProfile",
    "LEDGER_PROFILES",
    "AdapterMetadata",
    "Query",
    "QueryKind",
    "CacheEntry",
    "UNKNOWN",

    # Exceptions
    "LedgerAdapterError",
    "InvalidInputError",
    "HashNotFoundError",
    "UpstreamHTTPError",
    "RecordNotFoundError",
    "NetworkError",
    "RequestTimeoutError",
    "UnsupportedLedgerError",
    "ConfigurationError",

    # Infrastructure
    "ResponseCache",
    "EndpointRateLimiter",
    "SlidingWindowRateLimiter",
    "TransportClient",
    "QueryRouter",
    "parse_height",
    "ExplorerSettings",
    "LedgerSettings",

    # Providers
    "BlockstreamAdapter",
    "EtherscanAdapter",
    "BlockchairAdapter",

    # Registry
    "AdapterRegistry",
    "get_default_registry",
    "close_default_registry",
]
