"""
Explorer Data Models - Normalized records returned by every ledger adapter.

Callers branch on ``record_type`` and never need to know which backend
protocol produced the record.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


# Marker for network figures a backend cannot provide.
UNKNOWN = "unknown"

# Bounds on transaction summaries attached to records.
MAX_RECORD_TRANSACTIONS = 10
MAX_ACTIVITY_TRANSACTIONS = 5


class LedgerId(Enum):
    """Supported ledgers. Values double as price-quote ids."""
    BITCOIN = "bitcoin"
    ETHEREUM = "ethereum"
    LITECOIN = "litecoin"

    @classmethod
    def parse(cls, value: Any) -> "LedgerId":
        """Coerce a string or LedgerId. Raises ValueError for unknown ids."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class RecordType(Enum):
    """Discriminant of a normalized record."""
    BLOCK = "block"
    TRANSACTION = "transaction"
    ADDRESS = "address"


class QueryKind(Enum):
    """Classification of a raw search string."""
    LATEST = "latest"
    HASH = "hash"
    HEIGHT = "height"
    ADDRESS = "address"


@dataclass(frozen=True)
class NormalizedRecord:
    """
    A block, transaction or address, regardless of backend.

    ``data`` keeps the backend-specific fields untouched. ``transactions``
    holds up to ten related transaction summaries, newest first.
    """
    record_type: RecordType
    ledger: LedgerId
    data: dict[str, Any]
    transactions: list[Any] = field(default_factory=list)
    identifier: Optional[str] = None

    @property
    def is_block(self) -> bool:
        return self.record_type == RecordType.BLOCK

    @property
    def is_transaction(self) -> bool:
        return self.record_type == RecordType.TRANSACTION

    @property
    def is_address(self) -> bool:
        return self.record_type == RecordType.ADDRESS

    def with_transactions(self, transactions: list[Any]) -> "NormalizedRecord":
        """Copy of this record with a new (bounded) transaction list."""
        return NormalizedRecord(
            record_type=self.record_type,
            ledger=self.ledger,
            data=self.data,
            transactions=list(transactions[:MAX_RECORD_TRANSACTIONS]),
            identifier=self.identifier,
        )

    def to_dict(self) -> dict[str, Any]:
        """Flatten for the presentation layer."""
        result = dict(self.data)
        result["type"] = self.record_type.value
        result["ledger"] = self.ledger.value
        result["transactions"] = list(self.transactions)
        if self.identifier is not None:
            result.setdefault("id", self.identifier)
        return result


@dataclass(frozen=True)
class NetworkStats:
    """Best-effort network figures. Missing values are ``UNKNOWN``."""
    ledger: LedgerId
    block_height: Any = UNKNOWN
    hash_rate: Any = UNKNOWN
    difficulty: Any = UNKNOWN
    gas_price: Any = UNKNOWN
    fetched_at: datetime = field(default_factory=datetime.utcnow)

    def is_known(self, field_name: str) -> bool:
        return getattr(self, field_name) != UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ledger": self.ledger.value,
            "blockHeight": self.block_height,
            "hashRate": self.hash_rate,
            "difficulty": self.difficulty,
            "gasPrice": self.gas_price,
            "fetched_at": self.fetched_at.isoformat(),
        }


@dataclass(frozen=True)
class LedgerProfile:
    """Static facts about a ledger."""
    display_name: str
    symbol: str
    decimals: int
    block_time_seconds: int
    confirmations: int

    def from_base_units(self, amount: Any) -> float:
        """Convert smallest units (satoshi, wei, ...) to whole coins."""
        return int(amount) / 10 ** self.decimals


LEDGER_PROFILES: dict[LedgerId, LedgerProfile] = {
    LedgerId.BITCOIN: LedgerProfile("Bitcoin", "BTC", 8, 600, 6),
    LedgerId.ETHEREUM: LedgerProfile("Ethereum", "ETH", 18, 12, 12),
    LedgerId.LITECOIN: LedgerProfile("Litecoin", "LTC", 8, 150, 6),
}


@dataclass
class AdapterMetadata:
    """Metadata about a ledger adapter."""
    name: str
    display_name: str
    ledger: LedgerId
    profile: LedgerProfile
    base_url: str = ""
    documentation_url: str = ""
    requires_api_key: bool = False
    cache_ttl_seconds: float = 60.0
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "display_name": self.display_name,
            "ledger": self.ledger.value,
            "symbol": self.profile.symbol,
            "decimals": self.profile.decimals,
            "block_time_seconds": self.profile.block_time_seconds,
            "confirmations": self.profile.confirmations,
            "base_url": self.base_url,
            "documentation_url": self.documentation_url,
            "requires_api_key": self.requires_api_key,
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "tags": self.tags,
        }


@dataclass(frozen=True)
class Query:
    """A classified search request. Lives for one search call."""
    raw: str
    ledger: LedgerId
    kind: QueryKind
    height: Optional[int] = None


@dataclass
class CacheEntry:
    """Cached payload with the monotonic time it was stored."""
    key: str
    value: Any
    stored_at: float
    hits: int = 0

    def age_seconds(self, now: float) -> float:
        return now - self.stored_at

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.stored_at >= ttl
