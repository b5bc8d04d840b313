"""
Blockstream (Esplora) Adapter - Bitcoin ledger.

Esplora serves most records as JSON, but the tip and height endpoints
answer with plain text (a height or a block hash):
- /blocks/tip/hash     -> "000000...ab"
- /blocks/tip/height   -> "840000"
- /block-height/{h}    -> "000000...cd"

Those answers move with the chain and are fetched uncached. Blocks,
transactions and address records are cached for the configured TTL.
"""

import logging
import re
from typing import Any

from explorer_adapters.base import BaseLedgerAdapter
from explorer_adapters.exceptions import UpstreamHTTPError
from explorer_adapters.models import (
    UNKNOWN,
    AdapterMetadata,
    LedgerId,
    NetworkStats,
    NormalizedRecord,
    RecordType,
)


logger = logging.getLogger(__name__)


HEX64 = re.compile(r"[0-9a-fA-F]{64}")


class BlockstreamAdapter(BaseLedgerAdapter):
    """Bitcoin adapter backed by the Esplora REST API."""

    LEDGER = LedgerId.BITCOIN
    HASH_PATTERN = HEX64
    ADDRESS_PATTERN = None

    @property
    def name(self) -> str:
        """Unique identifier."""
        return "blockstream"

    def metadata(self) -> AdapterMetadata:
        """Return adapter metadata."""
        return AdapterMetadata(
            name=self.name,
            display_name="Blockstream Esplora (Bitcoin)",
            ledger=self.ledger,
            profile=self.profile,
            base_url=self.base_url,
            documentation_url="https://github.com/Blockstream/esplora/blob/master/API.md",
            requires_api_key=False,
            cache_ttl_seconds=self._config.cache_ttl,
            tags=["bitcoin", "utxo", "esplora"],
        )

    # ─────────────────────────────────────────────────────────────
    # Plain-text endpoints
    # ─────────────────────────────────────────────────────────────

    async def _fetch_text_hash(self, path: str) -> str:
        url = f"{self.base_url}{path}"
        text = await self._transport.fetch(url, as_text=True)
        if not HEX64.fullmatch(text or ""):
            raise UpstreamHTTPError(
                f"Expected a block hash from {path}, got {text[:80]!r}",
                adapter_name=self.name,
                ledger=self.ledger.value,
                request_url=url,
            )
        return text.lower()

    async def _fetch_tip_height(self) -> int:
        url = f"{self.base_url}/blocks/tip/height"
        text = await self._transport.fetch(url, as_text=True)
        try:
            return int(text)
        except (TypeError, ValueError) as e:
            raise UpstreamHTTPError(
                f"Expected a block height, got {str(text)[:80]!r}",
                adapter_name=self.name,
                ledger=self.ledger.value,
                request_url=url,
                original_error=e,
            )

    # ─────────────────────────────────────────────────────────────
    # JSON endpoints
    # ─────────────────────────────────────────────────────────────

    async def _get_json(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        return await self._transport.fetch_cached(url, url)

    async def fetch_network_stats(self) -> NetworkStats:
        """Tip height only; Esplora exposes no hash rate or difficulty."""
        height = await self._fetch_tip_height()
        return NetworkStats(
            ledger=self.ledger,
            block_height=height,
            hash_rate=UNKNOWN,
            difficulty=UNKNOWN,
        )

    async def get_latest_block(self) -> NormalizedRecord:
        """Resolve the tip hash, then load that block."""
        tip_hash = await self._fetch_text_hash("/blocks/tip/hash")
        return await self.get_block(tip_hash)

    async def get_block(self, block_hash: str) -> NormalizedRecord:
        """Block by hash; transactions come from a secondary call."""
        block_hash = block_hash.strip().lower()
        data = await self._get_json(f"/block/{block_hash}")
        record = self._record(RecordType.BLOCK, data, identifier=block_hash)

        return await self._with_related(
            record,
            lambda: self._get_json(f"/block/{block_hash}/txs"),
        )

    async def get_block_by_height(self, height: int) -> NormalizedRecord:
        """Resolve the hash at ``height``, then load that block."""
        height = self.validate_height(height)
        block_hash = await self._fetch_text_hash(f"/block-height/{height}")
        return await self.get_block(block_hash)

    async def get_transaction(self, tx_id: str) -> NormalizedRecord:
        """Transaction by txid."""
        tx_id = tx_id.strip().lower()
        data = await self._get_json(f"/tx/{tx_id}")
        return self._record(RecordType.TRANSACTION, data, identifier=tx_id)

    async def get_address(self, address: str) -> NormalizedRecord:
        """Address summary plus its most recent transactions."""
        address = address.strip()
        data = await self._get_json(f"/address/{address}")
        record = self._record(RecordType.ADDRESS, data, identifier=address)

        return await self._with_related(
            record,
            lambda: self._get_json(f"/address/{address}/txs"),
        )

    async def fetch_address_activity(self, address: str) -> list[Any]:
        """Recent transactions, newest first."""
        txs = await self._get_json(f"/address/{address.strip()}/txs")
        if not isinstance(txs, list):
            raise UpstreamHTTPError(
                "Unexpected address activity payload",
                adapter_name=self.name,
                ledger=self.ledger.value,
                response_body=str(txs)[:500],
            )
        return txs
