"""
Explorer Adapters - Configuration.

Settings are consumed, not produced, by the adapters:
- Per-ledger base URL, API key and price id
- Price-quote URL
- Cache TTL, rate-limit delay, request timeout

Configuration can be loaded from:
- Default values
- Environment variables (``.env`` supported via python-dotenv)
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from explorer_adapters.exceptions import ConfigurationError
from explorer_adapters.models import LedgerId


logger = logging.getLogger(__name__)


DEFAULT_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"
DEFAULT_CACHE_TTL = 60.0
DEFAULT_RATE_LIMIT_DELAY = 1.0
DEFAULT_REQUEST_TIMEOUT = 10.0


@dataclass
class LedgerSettings:
    """Backend settings for one ledger."""
    base_url: str
    api_key: Optional[str] = None
    price_id: Optional[str] = None
    chain_id: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigurationError("base_url must not be empty", config_key="base_url")
        self.base_url = self.base_url.rstrip("/")


def _default_ledgers() -> dict[LedgerId, LedgerSettings]:
    return {
        LedgerId.BITCOIN: LedgerSettings(
            base_url="https://blockstream.info/api",
            price_id="bitcoin",
        ),
        LedgerId.ETHEREUM: LedgerSettings(
            base_url="https://api.etherscan.io/v2/api",
            price_id="ethereum",
            chain_id=1,
        ),
        LedgerId.LITECOIN: LedgerSettings(
            base_url="https://api.blockchair.com/litecoin",
            price_id="litecoin",
        ),
    }


@dataclass
class ExplorerSettings:
    """
    Settings shared by all adapters.

    ``window_max_requests``/``window_seconds`` enable the sliding-window
    limiter on top of the per-endpoint delay when both are set.
    """
    ledgers: dict[LedgerId, LedgerSettings] = field(default_factory=_default_ledgers)
    price_url: str = DEFAULT_PRICE_URL
    quote_currency: str = "usd"
    cache_ttl: float = DEFAULT_CACHE_TTL
    rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    window_max_requests: Optional[int] = None
    window_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate numeric settings."""
        if self.cache_ttl <= 0:
            raise ConfigurationError("cache_ttl must be positive", config_key="cache_ttl")
        if self.rate_limit_delay < 0:
            raise ConfigurationError(
                "rate_limit_delay must not be negative",
                config_key="rate_limit_delay",
            )
        if self.request_timeout <= 0:
            raise ConfigurationError(
                "request_timeout must be positive",
                config_key="request_timeout",
            )
        if (self.window_max_requests is None) != (self.window_seconds is None):
            raise ConfigurationError(
                "window_max_requests and window_seconds must be set together",
                config_key="window_max_requests",
            )
        if self.window_max_requests is not None and self.window_max_requests < 1:
            raise ConfigurationError(
                "window_max_requests must be at least 1",
                config_key="window_max_requests",
            )
        if self.window_seconds is not None and self.window_seconds <= 0:
            raise ConfigurationError(
                "window_seconds must be positive",
                config_key="window_seconds",
            )

    def for_ledger(self, ledger: LedgerId) -> LedgerSettings:
        """Get backend settings for a ledger."""
        settings = self.ledgers.get(ledger)
        if settings is None:
            raise ConfigurationError(
                f"No settings for ledger {ledger.value}",
                config_key="ledgers",
                ledger=ledger.value,
            )
        return settings

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "ExplorerSettings":
        """
        Build settings from environment variables.

        Recognized variables:
            EXPLORER_BITCOIN_URL, EXPLORER_ETHEREUM_URL, EXPLORER_LITECOIN_URL
            ETHERSCAN_API_KEY, EXPLORER_ETHEREUM_CHAIN_ID
            EXPLORER_PRICE_URL, EXPLORER_QUOTE_CURRENCY
            EXPLORER_CACHE_TTL, EXPLORER_RATE_LIMIT_DELAY, EXPLORER_REQUEST_TIMEOUT
            EXPLORER_WINDOW_MAX_REQUESTS, EXPLORER_WINDOW_SECONDS
        """
        if dotenv:
            load_dotenv()

        ledgers = _default_ledgers()
        for ledger, settings in ledgers.items():
            url = os.getenv(f"EXPLORER_{ledger.name}_URL")
            if url:
                settings.base_url = url.rstrip("/")

        eth = ledgers[LedgerId.ETHEREUM]
        eth.api_key = os.getenv("ETHERSCAN_API_KEY") or None
        chain_id = os.getenv("EXPLORER_ETHEREUM_CHAIN_ID")
        if chain_id:
            eth.chain_id = _parse_int("EXPLORER_ETHEREUM_CHAIN_ID", chain_id)

        window_max = os.getenv("EXPLORER_WINDOW_MAX_REQUESTS")
        window_seconds = os.getenv("EXPLORER_WINDOW_SECONDS")

        return cls(
            ledgers=ledgers,
            price_url=os.getenv("EXPLORER_PRICE_URL", DEFAULT_PRICE_URL),
            quote_currency=os.getenv("EXPLORER_QUOTE_CURRENCY", "usd").lower(),
            cache_ttl=_parse_float(
                "EXPLORER_CACHE_TTL", os.getenv("EXPLORER_CACHE_TTL"), DEFAULT_CACHE_TTL
            ),
            rate_limit_delay=_parse_float(
                "EXPLORER_RATE_LIMIT_DELAY",
                os.getenv("EXPLORER_RATE_LIMIT_DELAY"),
                DEFAULT_RATE_LIMIT_DELAY,
            ),
            request_timeout=_parse_float(
                "EXPLORER_REQUEST_TIMEOUT",
                os.getenv("EXPLORER_REQUEST_TIMEOUT"),
                DEFAULT_REQUEST_TIMEOUT,
            ),
            window_max_requests=(
                _parse_int("EXPLORER_WINDOW_MAX_REQUESTS", window_max) if window_max else None
            ),
            window_seconds=(
                _parse_float("EXPLORER_WINDOW_SECONDS", window_seconds, 0.0)
                if window_seconds else None
            ),
        )


def _parse_float(key: str, raw: Optional[str], default: float) -> float:
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}", config_key=key) from e


def _parse_int(key: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}", config_key=key) from e
