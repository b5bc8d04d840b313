"""
Providers package - Ledger adapter implementations.
"""

from explorer_adapters.providers.bitcoin import BlockstreamAdapter
from explorer_adapters.providers.ethereum import EtherscanAdapter
from explorer_adapters.providers.litecoin import BlockchairAdapter


__all__ = [
    "BlockstreamAdapter",
    "EtherscanAdapter",
    "BlockchairAdapter",
]
