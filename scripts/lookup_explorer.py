"""
Lookup script for the explorer adapters.

Resolves a ledger through the registry and runs one search, printing the
normalized record plus network stats and price.

Usage:
    python scripts/lookup_explorer.py bitcoin latest
    python scripts/lookup_explorer.py litecoin 2500000
    python scripts/lookup_explorer.py ethereum 0x<40 hex chars> --stats
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from explorer_adapters import (  # noqa: E402
    AdapterRegistry,
    ExplorerSettings,
    LedgerAdapterError,
    NormalizedRecord,
)


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-5s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def print_banner(text: str) -> None:
    """Print a banner."""
    print("\n" + "=" * 60)
    print(f"  {text}")
    print("=" * 60)


def print_record(record: NormalizedRecord) -> None:
    """Print a record."""
    print(f"  Type: {record.record_type.value}")
    print(f"  Ledger: {record.ledger.value}")
    if record.identifier:
        print(f"  Id: {record.identifier}")
    for key, value in sorted(record.data.items()):
        if isinstance(value, (dict, list)):
            value = json.dumps(value)[:80]
        print(f"  {key}: {value}")
    print(f"  Transactions: {len(record.transactions)}")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Look up a block, transaction or address")
    parser.add_argument("ledger", help="bitcoin, ethereum or litecoin")
    parser.add_argument("query", help='height, hash, address or "latest"')
    parser.add_argument("--stats", action="store_true", help="Also print network stats and price")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = ExplorerSettings.from_env(dotenv=False)

    async with AdapterRegistry(settings) as registry:
        try:
            adapter = registry.get(args.ledger)
        except LedgerAdapterError as e:
            print(f"Error: {e.user_message} ({e.message})")
            return 2

        print_banner(f"{adapter.metadata().display_name}: {args.query}")
        try:
            record = await adapter.search(args.query)
        except LedgerAdapterError as e:
            print(f"Search Error: {e.user_message}")
            logger.debug(f"Search failed: {e}")
            return 1

        print_record(record)

        if args.stats:
            stats, price = await asyncio.gather(
                adapter.get_network_stats(),
                adapter.get_price(),
            )
            print_banner("Network")
            for key, value in stats.to_dict().items():
                print(f"  {key}: {value}")
            print(f"  price: {price if price is not None else 'N/A'}")

        cache = adapter.get_cache_stats()
        print(f"\nCache: {cache['entries']} entries, {cache['hit_rate_percent']:.1f}% hit rate")

    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
