"""
Etherscan Adapter - Ethereum ledger (metered, API key required).

Uses the Etherscan API V2 (unified multichain) endpoint. Every call is a
GET with module/action/chainid/apikey parameters and comes back in one of
two envelopes:

- Account module: {"status": "1", "message": "OK", "result": ...}
- Proxy (JSON-RPC): {"jsonrpc": "2.0", "id": 1, "result": ...}

A non-success status or a JSON-RPC error member is an UpstreamHTTPError.
A null JSON-RPC result means the record does not exist.
"""

import asyncio
import logging
import re
from typing import Any, Optional

from explorer_adapters.base import BaseLedgerAdapter
from explorer_adapters.config import LedgerSettings
from explorer_adapters.exceptions import (
    ConfigurationError,
    InvalidInputError,
    RecordNotFoundError,
    UpstreamHTTPError,
)
from explorer_adapters.models import (
    UNKNOWN,
    AdapterMetadata,
    LedgerId,
    NetworkStats,
    NormalizedRecord,
    RecordType,
)
from explorer_adapters.transport import build_url


logger = logging.getLogger(__name__)


# Messages Etherscan sends with status "0" that mean "empty", not "failed"
EMPTY_RESULT_MESSAGES = frozenset({"No transactions found", "No records found"})

# txlist block range covering the whole chain
TXLIST_START_BLOCK = 0
TXLIST_END_BLOCK = 99999999

WEI_PER_GWEI = 10 ** 9


def hex_to_int(value: Any) -> int:
    """Decode a JSON-RPC quantity ("0x1b4") to int."""
    if isinstance(value, int):
        return value
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ValueError(f"Not a hex quantity: {value!r}")
    return int(value, 16)


class EtherscanAdapter(BaseLedgerAdapter):
    """
    Ethereum adapter backed by Etherscan.

    Block lookups request full transaction objects, so a block's related
    transactions arrive with the block itself. Address lookups join the
    balance and transaction-list calls; either failing fails the lookup.
    """

    LEDGER = LedgerId.ETHEREUM
    HASH_PATTERN = re.compile(r"0x[0-9a-fA-F]{64}")
    ADDRESS_PATTERN = re.compile(r"0x[0-9a-fA-F]{40}")

    @property
    def name(self) -> str:
        """Unique identifier."""
        return "etherscan"

    def _validate_settings(self, settings: LedgerSettings) -> None:
        """Fail fast without an API key."""
        if not settings.api_key:
            raise ConfigurationError(
                "Etherscan requires an API key (set ETHERSCAN_API_KEY)",
                adapter_name=self.name,
                config_key="ETHERSCAN_API_KEY",
                ledger=self.LEDGER.value,
            )

    def metadata(self) -> AdapterMetadata:
        """Return adapter metadata."""
        return AdapterMetadata(
            name=self.name,
            display_name="Etherscan (Ethereum)",
            ledger=self.ledger,
            profile=self.profile,
            base_url=self.base_url,
            documentation_url="https://docs.etherscan.io/",
            requires_api_key=True,
            cache_ttl_seconds=self._config.cache_ttl,
            tags=["ethereum", "evm", "explorer"],
        )

    # ─────────────────────────────────────────────────────────────
    # Request envelope
    # ─────────────────────────────────────────────────────────────

    def _build_params(
        self,
        module: str,
        action: str,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, str]:
        query: dict[str, str] = {}
        if self._settings.chain_id is not None:
            query["chainid"] = str(self._settings.chain_id)
        query["module"] = module
        query["action"] = action
        for key, value in (params or {}).items():
            query[key] = str(value)
        query["apikey"] = self._settings.api_key or ""
        return query

    async def _etherscan_request(
        self,
        module: str,
        action: str,
        params: Optional[dict[str, Any]] = None,
        cacheable: bool = False,
    ) -> Any:
        """
        Make an Etherscan request and unwrap its result.

        Only successful results are cached; the cache key leaves out the
        API key.
        """
        query = self._build_params(module, action, params)
        cache_key = None
        if cacheable:
            cache_key = build_url(
                self.base_url,
                {k: v for k, v in query.items() if k != "apikey"},
            )
            cached = self._transport.cache.get(cache_key)
            if cached is not None:
                return cached

        response = await self._transport.fetch(self.base_url, params=query)
        result = self._unwrap(response, action)

        if cache_key is not None and result is not None:
            self._transport.cache.put(cache_key, result)
        return result

    def _unwrap(self, response: Any, action: str) -> Any:
        if not isinstance(response, dict):
            raise UpstreamHTTPError(
                f"Etherscan returned a non-object payload for {action}",
                adapter_name=self.name,
                ledger=self.ledger.value,
                response_body=str(response)[:500],
            )

        # JSON-RPC proxy format
        if "jsonrpc" in response:
            if "error" in response:
                error = response.get("error") or {}
                message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                raise UpstreamHTTPError(
                    f"Etherscan API error: {message}",
                    adapter_name=self.name,
                    ledger=self.ledger.value,
                    response_body=str(response)[:500],
                    context={"action": action},
                )
            return response.get("result")

        # Standard status envelope
        status = str(response.get("status", "0"))
        message = response.get("message", "") or ""

        if status == "1":
            return response.get("result")

        if message in EMPTY_RESULT_MESSAGES:
            return []

        detail = response.get("result")
        raise UpstreamHTTPError(
            f"Etherscan API error: {message or 'unknown error'}"
            + (f" ({detail})" if isinstance(detail, str) and detail else ""),
            adapter_name=self.name,
            ledger=self.ledger.value,
            response_body=str(response)[:500],
            context={"action": action, "status": status},
        )

    def _decode_quantity(self, value: Any, field_name: str) -> int:
        try:
            return hex_to_int(value)
        except ValueError as e:
            raise UpstreamHTTPError(
                f"Invalid {field_name} in Etherscan response: {value!r}",
                adapter_name=self.name,
                ledger=self.ledger.value,
                original_error=e,
            )

    # ─────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────

    async def fetch_network_stats(self) -> NetworkStats:
        """Block number and gas price, fetched together."""
        block_number, gas_price = await asyncio.gather(
            self._etherscan_request("proxy", "eth_blockNumber"),
            self._etherscan_request("proxy", "eth_gasPrice"),
        )

        gas_price_wei = self._decode_quantity(gas_price, "gas price")
        return NetworkStats(
            ledger=self.ledger,
            block_height=self._decode_quantity(block_number, "block number"),
            hash_rate=UNKNOWN,
            difficulty=UNKNOWN,  # proof of stake
            gas_price=gas_price_wei / WEI_PER_GWEI,
        )

    def _block_record(self, block: Any, identifier: str) -> NormalizedRecord:
        if block is None:
            raise RecordNotFoundError(
                f"Block {identifier} not found",
                adapter_name=self.name,
                ledger=self.ledger.value,
            )
        if not isinstance(block, dict):
            return self._record(RecordType.BLOCK, block, identifier=identifier)

        data = {key: value for key, value in block.items() if key != "transactions"}
        if "number" in data:
            data["height"] = self._decode_quantity(data["number"], "block number")

        transactions = block.get("transactions") or []
        return self._record(
            RecordType.BLOCK,
            data,
            identifier=block.get("hash", identifier),
            transactions=transactions,
        )

    async def get_latest_block(self) -> NormalizedRecord:
        """Current tip block."""
        block = await self._etherscan_request(
            "proxy",
            "eth_getBlockByNumber",
            {"tag": "latest", "boolean": "true"},
        )
        return self._block_record(block, "latest")

    async def get_block(self, block_hash: str) -> NormalizedRecord:
        """Block by hash, with its transactions."""
        block_hash = block_hash.strip().lower()
        block = await self._etherscan_request(
            "proxy",
            "eth_getBlockByHash",
            {"blockhash": block_hash, "boolean": "true"},
            cacheable=True,
        )
        return self._block_record(block, block_hash)

    async def get_block_by_height(self, height: int) -> NormalizedRecord:
        """Block by number, with its transactions."""
        height = self.validate_height(height)
        block = await self._etherscan_request(
            "proxy",
            "eth_getBlockByNumber",
            {"tag": hex(height), "boolean": "true"},
            cacheable=True,
        )
        return self._block_record(block, str(height))

    async def get_transaction(self, tx_id: str) -> NormalizedRecord:
        """Transaction by hash."""
        tx_id = tx_id.strip().lower()
        tx = await self._etherscan_request(
            "proxy",
            "eth_getTransactionByHash",
            {"txhash": tx_id},
            cacheable=True,
        )
        if tx is None:
            raise RecordNotFoundError(
                f"Transaction {tx_id} not found",
                adapter_name=self.name,
                ledger=self.ledger.value,
            )
        return self._record(RecordType.TRANSACTION, tx, identifier=tx_id)

    def _check_address(self, address: str) -> str:
        address = address.strip()
        if not self.ADDRESS_PATTERN.fullmatch(address):
            raise InvalidInputError(
                f"Invalid Ethereum address: {address!r}",
                query=address,
                adapter_name=self.name,
                ledger=self.ledger.value,
            )
        return address

    def _txlist(self, address: str, limit: int):
        return self._etherscan_request(
            "account",
            "txlist",
            {
                "address": address,
                "startblock": TXLIST_START_BLOCK,
                "endblock": TXLIST_END_BLOCK,
                "page": 1,
                "offset": limit,
                "sort": "desc",
            },
        )

    async def get_address(self, address: str) -> NormalizedRecord:
        """Balance and latest transactions, fetched together."""
        address = self._check_address(address)
        balance, txs = await asyncio.gather(
            self._etherscan_request("account", "balance", {"address": address, "tag": "latest"}),
            self._txlist(address, 10),
        )

        data: dict[str, Any] = {"address": address, "balance": balance}
        try:
            data["balance_eth"] = self.profile.from_base_units(balance)
        except (TypeError, ValueError):
            logger.warning(f"[{self.name}] Unparseable balance for {address}: {balance!r}")

        return self._record(
            RecordType.ADDRESS,
            data,
            identifier=address,
            transactions=txs if isinstance(txs, list) else [],
        )

    async def fetch_address_activity(self, address: str) -> list[Any]:
        """Five most recent transactions."""
        address = self._check_address(address)
        txs = await self._txlist(address, 5)
        return txs if isinstance(txs, list) else []
