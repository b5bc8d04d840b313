"""
Blockchair Adapter - Litecoin ledger.

Blockchair dashboards bundle a record with its related data:

    GET /dashboards/block/{hash|height}
    {"data": {"<id>": {"block": {...}, "transactions": ["<txid>", ...]}},
     "context": {...}}

An empty ``data`` member means the record does not exist.
"""

import logging
import re
from typing import Any

from explorer_adapters.base import BaseLedgerAdapter
from explorer_adapters.exceptions import RecordNotFoundError, UpstreamHTTPError
from explorer_adapters.models import (
    UNKNOWN,
    AdapterMetadata,
    LedgerId,
    NetworkStats,
    NormalizedRecord,
    RecordType,
)


logger = logging.getLogger(__name__)


class BlockchairAdapter(BaseLedgerAdapter):
    """Litecoin adapter backed by the Blockchair API."""

    LEDGER = LedgerId.LITECOIN
    HASH_PATTERN = re.compile(r"[0-9a-fA-F]{64}")
    ADDRESS_PATTERN = None

    @property
    def name(self) -> str:
        """Unique identifier."""
        return "blockchair"

    def metadata(self) -> AdapterMetadata:
        """Return adapter metadata."""
        return AdapterMetadata(
            name=self.name,
            display_name="Blockchair (Litecoin)",
            ledger=self.ledger,
            profile=self.profile,
            base_url=self.base_url,
            documentation_url="https://blockchair.com/api/docs",
            requires_api_key=False,
            cache_ttl_seconds=self._config.cache_ttl,
            tags=["litecoin", "utxo", "explorer"],
        )

    # ─────────────────────────────────────────────────────────────
    # Payload helpers
    # ─────────────────────────────────────────────────────────────

    def _unwrap_data(self, payload: Any, url: str) -> Any:
        if not isinstance(payload, dict):
            raise UpstreamHTTPError(
                "Blockchair returned a non-object payload",
                adapter_name=self.name,
                ledger=self.ledger.value,
                request_url=url,
                response_body=str(payload)[:500],
            )
        return payload.get("data")

    async def _dashboard(self, kind: str, identifier: str) -> dict[str, Any]:
        url = f"{self.base_url}/dashboards/{kind}/{identifier}"
        data = self._unwrap_data(await self._transport.fetch_cached(url, url), url)

        if not data:
            raise RecordNotFoundError(
                f"{kind.capitalize()} {identifier} not found",
                adapter_name=self.name,
                ledger=self.ledger.value,
                request_url=url,
            )

        if not isinstance(data, dict):
            raise UpstreamHTTPError(
                f"Unexpected {kind} dashboard payload",
                adapter_name=self.name,
                ledger=self.ledger.value,
                request_url=url,
                response_body=str(data)[:500],
            )

        entry = data.get(identifier)
        if entry is None:
            # Keys may differ in case or form (height vs. hash)
            entry = next(iter(data.values()))
        if not isinstance(entry, dict):
            raise UpstreamHTTPError(
                f"Unexpected {kind} dashboard entry",
                adapter_name=self.name,
                ledger=self.ledger.value,
                request_url=url,
            )
        return entry

    async def _fetch_stats(self, cached: bool = True) -> dict[str, Any]:
        url = f"{self.base_url}/stats"
        if cached:
            payload = await self._transport.fetch_cached(url, url)
        else:
            payload = await self._transport.fetch(url)

        stats = self._unwrap_data(payload, url)
        if not isinstance(stats, dict):
            raise UpstreamHTTPError(
                "Blockchair stats payload has no data",
                adapter_name=self.name,
                ledger=self.ledger.value,
                request_url=url,
            )
        return stats

    def _tip_height(self, stats: dict[str, Any]) -> int:
        """Height of the newest block; ``blocks`` counts the genesis block too."""
        try:
            if stats.get("best_block_height") is not None:
                return int(stats["best_block_height"])
            return int(stats["blocks"]) - 1
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamHTTPError(
                "Blockchair stats payload has no block height",
                adapter_name=self.name,
                ledger=self.ledger.value,
                original_error=e,
            )

    def _block_from_entry(self, entry: dict[str, Any], identifier: str) -> NormalizedRecord:
        block = entry.get("block")
        if block is None:
            raise RecordNotFoundError(
                f"Block {identifier} not found",
                adapter_name=self.name,
                ledger=self.ledger.value,
            )
        return self._record(
            RecordType.BLOCK,
            block,
            identifier=str(block.get("hash", identifier)) if isinstance(block, dict) else identifier,
            transactions=entry.get("transactions") or [],
        )

    # ─────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────

    async def fetch_network_stats(self) -> NetworkStats:
        """Height, 24h hash rate and difficulty from /stats."""
        stats = await self._fetch_stats()
        return NetworkStats(
            ledger=self.ledger,
            block_height=self._tip_height(stats),
            hash_rate=stats.get("hashrate_24h", UNKNOWN) or UNKNOWN,
            difficulty=stats.get("difficulty", UNKNOWN) or UNKNOWN,
        )

    async def get_latest_block(self) -> NormalizedRecord:
        """Read the tip height from fresh stats, then load that block."""
        stats = await self._fetch_stats(cached=False)
        return await self.get_block_by_height(self._tip_height(stats))

    async def get_block(self, block_hash: str) -> NormalizedRecord:
        """Block by hash; the dashboard carries its transaction ids."""
        block_hash = block_hash.strip().lower()
        entry = await self._dashboard("block", block_hash)
        return self._block_from_entry(entry, block_hash)

    async def get_block_by_height(self, height: int) -> NormalizedRecord:
        """Block by height."""
        height = self.validate_height(height)
        entry = await self._dashboard("block", str(height))
        return self._block_from_entry(entry, str(height))

    async def get_transaction(self, tx_id: str) -> NormalizedRecord:
        """Transaction by hash, including inputs and outputs."""
        tx_id = tx_id.strip().lower()
        entry = await self._dashboard("transaction", tx_id)
        tx = entry.get("transaction")
        if tx is None:
            raise RecordNotFoundError(
                f"Transaction {tx_id} not found",
                adapter_name=self.name,
                ledger=self.ledger.value,
            )

        data = dict(tx) if isinstance(tx, dict) else tx
        if isinstance(data, dict):
            data["inputs"] = entry.get("inputs", [])
            data["outputs"] = entry.get("outputs", [])
        return self._record(RecordType.TRANSACTION, data, identifier=tx_id)

    async def get_address(self, address: str) -> NormalizedRecord:
        """Address summary with its recent transaction ids."""
        address = address.strip()
        entry = await self._dashboard("address", address)
        return self._record(
            RecordType.ADDRESS,
            entry.get("address") or {},
            identifier=address,
            transactions=entry.get("transactions") or [],
        )

    async def fetch_address_activity(self, address: str) -> list[Any]:
        """Recent transaction ids, newest first."""
        entry = await self._dashboard("address", address.strip())
        txs = entry.get("transactions") or []
        return txs if isinstance(txs, list) else []
