"""
Query Router Tests.

============================================================
PURPOSE
============================================================
Unit tests for search classification and hash disambiguation.

TEST CATEGORIES:
- Classification tests: latest / hash / height / address priority
- Disambiguation tests: block before transaction
- Height parsing tests

============================================================
"""

import re
from unittest.mock import AsyncMock, MagicMock

import pytest

from explorer_adapters import (
    HashNotFoundError,
    InvalidInputError,
    LedgerId,
    NetworkError,
    NormalizedRecord,
    QueryKind,
    QueryRouter,
    RecordType,
    parse_height,
)


BTC_HASH = "00000000000000000002a7c4c1e48d76c5a37902165a270156b7a8d72728a054"
ETH_HASH = "0x" + "ab" * 32
ETH_ADDRESS = "0x" + "1f" * 20


def make_record(record_type: RecordType, identifier: str = "x") -> NormalizedRecord:
    return NormalizedRecord(
        record_type=record_type,
        ledger=LedgerId.BITCOIN,
        data={"id": identifier},
        identifier=identifier,
    )


def make_stub_adapter(ledger: LedgerId = LedgerId.BITCOIN) -> MagicMock:
    """Adapter double that records the order of lookups."""
    adapter = MagicMock()
    adapter.ledger = ledger
    adapter.name = "stub"
    adapter.order = []

    def recorder(name, result):
        async def call(*args):
            adapter.order.append((name,) + args)
            if isinstance(result, BaseException):
                raise result
            return result
        return AsyncMock(side_effect=call)

    adapter.recorder = recorder
    adapter.get_latest_block = recorder("latest", make_record(RecordType.BLOCK, "tip"))
    adapter.find_block_by_hash = recorder("block", None)
    adapter.find_transaction = recorder("transaction", None)
    adapter.get_block_by_height = recorder("height", make_record(RecordType.BLOCK, "h"))
    adapter.get_address = recorder("address", make_record(RecordType.ADDRESS, "addr"))
    return adapter


@pytest.fixture
def utxo_router() -> QueryRouter:
    return QueryRouter(re.compile(r"[0-9a-fA-F]{64}"))


@pytest.fixture
def account_router() -> QueryRouter:
    return QueryRouter(
        re.compile(r"0x[0-9a-fA-F]{64}"),
        re.compile(r"0x[0-9a-fA-F]{40}"),
    )


# ============================================================
# CLASSIFICATION TESTS
# ============================================================

class TestClassification:
    """Tests for QueryRouter.classify."""

    def test_latest(self, utxo_router):
        """Test the latest literal."""
        query = utxo_router.classify(make_stub_adapter(), "  latest ")

        assert query.kind == QueryKind.LATEST
        assert query.raw == "latest"

    def test_latest_is_case_sensitive(self, utxo_router):
        """Test that only the exact literal means latest."""
        query = utxo_router.classify(make_stub_adapter(), "Latest")

        assert query.kind == QueryKind.ADDRESS

    def test_hash(self, utxo_router):
        """Test a 64-hex-character hash."""
        assert utxo_router.classify(make_stub_adapter(), BTC_HASH).kind == QueryKind.HASH

    def test_hash_wins_over_digits(self, utxo_router):
        """Test that a 64-digit string is a hash, not a height."""
        query = utxo_router.classify(make_stub_adapter(), "1" * 64)

        assert query.kind == QueryKind.HASH

    def test_height_with_leading_zeros(self, utxo_router):
        """Test that leading zeros parse to the same height."""
        query = utxo_router.classify(make_stub_adapter(), "000123")

        assert query.kind == QueryKind.HEIGHT
        assert query.height == 123

    def test_zero_and_large_heights(self, utxo_router):
        """Test boundary and large values."""
        adapter = make_stub_adapter()

        assert utxo_router.classify(adapter, "0").height == 0
        assert utxo_router.classify(adapter, "98765432109876543210").height == 98765432109876543210

    def test_negative_number_is_address_on_utxo_ledger(self, utxo_router):
        """Test that "-5" is not numeric and falls through to the address path."""
        query = utxo_router.classify(make_stub_adapter(), "-5")

        assert query.kind == QueryKind.ADDRESS

    def test_anything_else_is_address_on_utxo_ledger(self, utxo_router):
        """Test the catch-all address rule."""
        query = utxo_router.classify(make_stub_adapter(), "bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq")

        assert query.kind == QueryKind.ADDRESS

    def test_empty_input_rejected(self, utxo_router):
        """Test that blank input is invalid."""
        with pytest.raises(InvalidInputError):
            utxo_router.classify(make_stub_adapter(), "   ")

    def test_account_ledger_hash_and_address(self, account_router):
        """Test 66-char hashes and 42-char addresses."""
        adapter = make_stub_adapter(LedgerId.ETHEREUM)

        assert account_router.classify(adapter, ETH_HASH).kind == QueryKind.HASH
        assert account_router.classify(adapter, ETH_ADDRESS).kind == QueryKind.ADDRESS

    def test_account_ledger_rejects_unmatched_input(self, account_router):
        """Test that the account ledger has no catch-all address rule."""
        adapter = make_stub_adapter(LedgerId.ETHEREUM)

        with pytest.raises(InvalidInputError, match="Invalid ethereum query format"):
            account_router.classify(adapter, "-5")
        with pytest.raises(InvalidInputError):
            account_router.classify(adapter, "0x1234")

    def test_bare_hex_is_not_an_account_hash(self, account_router):
        """Test that a 64-hex hash without 0x is invalid on the account ledger."""
        with pytest.raises(InvalidInputError):
            account_router.classify(make_stub_adapter(LedgerId.ETHEREUM), "ab" * 32)


# ============================================================
# DISPATCH TESTS
# ============================================================

class TestSearchDispatch:
    """Tests for QueryRouter.search."""

    @pytest.mark.asyncio
    async def test_latest_issues_one_latest_call(self, utxo_router):
        """Test that latest yields a block from exactly one latest call."""
        adapter = make_stub_adapter()

        record = await utxo_router.search(adapter, "latest")

        assert record.record_type == RecordType.BLOCK
        assert adapter.order == [("latest",)]

    @pytest.mark.asyncio
    async def test_height_dispatch(self, utxo_router):
        """Test that digits resolve a block by height."""
        adapter = make_stub_adapter()

        record = await utxo_router.search(adapter, "007")

        assert record.is_block
        assert adapter.order == [("height", 7)]

    @pytest.mark.asyncio
    async def test_address_dispatch(self, utxo_router):
        """Test that the fallback resolves an address."""
        adapter = make_stub_adapter()

        record = await utxo_router.search(adapter, " LQTpS3VaYTjCr4s9Y1t5zbeY26zevf7Fb3 ")

        assert record.is_address
        assert adapter.order == [("address", "LQTpS3VaYTjCr4s9Y1t5zbeY26zevf7Fb3")]


# ============================================================
# DISAMBIGUATION TESTS
# ============================================================

class TestHashDisambiguation:
    """Tests for block-then-transaction hash resolution."""

    @pytest.mark.asyncio
    async def test_block_hit_skips_transaction(self, utxo_router):
        """Test that a found block is returned without a transaction lookup."""
        adapter = make_stub_adapter()
        adapter.find_block_by_hash = adapter.recorder("block", make_record(RecordType.BLOCK, BTC_HASH))

        record = await utxo_router.search(adapter, BTC_HASH)

        assert record.is_block
        assert adapter.order == [("block", BTC_HASH)]

    @pytest.mark.asyncio
    async def test_block_miss_tries_transaction_with_same_hash(self, utxo_router):
        """Test the fallback order and identical argument."""
        adapter = make_stub_adapter()
        adapter.find_transaction = adapter.recorder(
            "transaction", make_record(RecordType.TRANSACTION, BTC_HASH)
        )

        record = await utxo_router.search(adapter, BTC_HASH)

        assert record.is_transaction
        assert adapter.order == [("block", BTC_HASH), ("transaction", BTC_HASH)]

    @pytest.mark.asyncio
    async def test_both_miss_raises_hash_not_found(self, utxo_router):
        """Test that a double miss is HashNotFoundError."""
        adapter = make_stub_adapter()

        with pytest.raises(HashNotFoundError) as exc_info:
            await utxo_router.search(adapter, BTC_HASH)

        assert exc_info.value.hash_value == BTC_HASH
        assert adapter.order == [("block", BTC_HASH), ("transaction", BTC_HASH)]

    @pytest.mark.asyncio
    async def test_transport_fault_propagates(self, utxo_router):
        """Test that connectivity faults are not treated as a miss."""
        adapter = make_stub_adapter()
        adapter.find_block_by_hash = adapter.recorder("block", NetworkError("down"))

        with pytest.raises(NetworkError):
            await utxo_router.search(adapter, BTC_HASH)

        assert adapter.order == [("block", BTC_HASH)]


# ============================================================
# HEIGHT PARSING TESTS
# ============================================================

class TestParseHeight:
    """Tests for parse_height."""

    @pytest.mark.parametrize("text,expected", [
        ("0", 0),
        ("00", 0),
        ("0840000", 840000),
        ("18446744073709551616", 18446744073709551616),
    ])
    def test_valid(self, text, expected):
        """Test valid heights."""
        assert parse_height(text) == expected

    @pytest.mark.parametrize("text", ["-5", "+5", "1.5", "1e3", "", "١٢٣"])
    def test_invalid(self, text):
        """Test that signs, decimals and non-ASCII digits are rejected."""
        with pytest.raises(InvalidInputError):
            parse_height(text)
