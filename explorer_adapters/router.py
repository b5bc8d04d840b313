"""
Query Router - Classify a raw search string and dispatch it to an adapter.

Classification order (first match wins):
1. "latest"              -> tip block
2. ledger hash pattern   -> block by hash, then transaction by hash
3. all ASCII digits      -> block by height
4. address               -> address lookup (ledger-specific pattern)

Block is always tried before transaction for a hash. A block miss is a
normal branch, not an error; only a miss on both yields HashNotFoundError.
"""

import logging
import re
from typing import TYPE_CHECKING, Optional, Pattern

from explorer_adapters.exceptions import HashNotFoundError, InvalidInputError
from explorer_adapters.models import NormalizedRecord, Query, QueryKind

if TYPE_CHECKING:
    from explorer_adapters.base import BaseLedgerAdapter


logger = logging.getLogger(__name__)


LATEST_LITERAL = "latest"
DIGITS_PATTERN = re.compile(r"^[0-9]+$")


class QueryRouter:
    """
    Classifies search input for one ledger.

    Args:
        hash_pattern: Full-match pattern for block/transaction hashes
        address_pattern: Full-match pattern for addresses. None means any
            unclassified input is treated as an address.
    """

    def __init__(
        self,
        hash_pattern: Pattern[str],
        address_pattern: Optional[Pattern[str]] = None,
    ) -> None:
        self._hash_pattern = hash_pattern
        self._address_pattern = address_pattern

    def classify(self, adapter: "BaseLedgerAdapter", raw_input: str) -> Query:
        """Classify ``raw_input`` for ``adapter``'s ledger."""
        text = (raw_input or "").strip()
        ledger = adapter.ledger

        if not text:
            raise InvalidInputError(
                "Search query is empty",
                query=raw_input,
                adapter_name=adapter.name,
                ledger=ledger.value,
            )

        if text == LATEST_LITERAL:
            return Query(raw=text, ledger=ledger, kind=QueryKind.LATEST)

        if self._hash_pattern.fullmatch(text):
            return Query(raw=text, ledger=ledger, kind=QueryKind.HASH)

        if DIGITS_PATTERN.fullmatch(text):
            return Query(
                raw=text,
                ledger=ledger,
                kind=QueryKind.HEIGHT,
                height=parse_height(text),
            )

        if self._address_pattern is None or self._address_pattern.fullmatch(text):
            return Query(raw=text, ledger=ledger, kind=QueryKind.ADDRESS)

        raise InvalidInputError(
            f"Invalid {ledger.value} query format",
            query=text,
            adapter_name=adapter.name,
            ledger=ledger.value,
        )

    async def search(
        self,
        adapter: "BaseLedgerAdapter",
        raw_input: str,
    ) -> NormalizedRecord:
        """Resolve ``raw_input`` to a tagged record."""
        query = self.classify(adapter, raw_input)
        logger.debug(f"[{adapter.name}] Query {query.raw!r} classified as {query.kind.value}")

        if query.kind == QueryKind.LATEST:
            return await adapter.get_latest_block()

        if query.kind == QueryKind.HASH:
            return await self.resolve_hash(adapter, query.raw)

        if query.kind == QueryKind.HEIGHT:
            return await adapter.get_block_by_height(query.height)

        return await adapter.get_address(query.raw)

    async def resolve_hash(
        self,
        adapter: "BaseLedgerAdapter",
        hash_value: str,
    ) -> NormalizedRecord:
        """Block by hash first, then transaction by the same hash."""
        block = await adapter.find_block_by_hash(hash_value)
        if block is not None:
            return block

        logger.debug(f"[{adapter.name}] No block {hash_value}, trying transaction")

        transaction = await adapter.find_transaction(hash_value)
        if transaction is not None:
            return transaction

        raise HashNotFoundError(
            "Hash not found in blockchain",
            hash_value=hash_value,
            adapter_name=adapter.name,
            ledger=adapter.ledger.value,
        )


def parse_height(text: str) -> int:
    """
    Parse a block height.

    Accepts ASCII digits only; leading zeros are fine. Anything else,
    including a sign, is rejected.
    """
    candidate = text.strip()
    if not DIGITS_PATTERN.fullmatch(candidate):
        raise InvalidInputError(
            f"Block height must be a non-negative integer, got {text!r}",
            query=text,
        )
    return int(candidate)
