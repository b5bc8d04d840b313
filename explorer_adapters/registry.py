"""
Adapter Registry - Maps a ledger id to its adapter instance.

Features:
- One adapter per ledger, created lazily on first request
- Instances (and their cache/rate-limit state) live for the process
- Unknown ledger ids fail with UnsupportedLedgerError
"""

import logging
from typing import Any, Callable, Optional, Union

import aiohttp

from explorer_adapters.base import BaseLedgerAdapter
from explorer_adapters.config import ExplorerSettings
from explorer_adapters.exceptions import UnsupportedLedgerError
from explorer_adapters.models import AdapterMetadata, LedgerId
from explorer_adapters.providers import (
    BlockchairAdapter,
    BlockstreamAdapter,
    EtherscanAdapter,
)


logger = logging.getLogger(__name__)


AdapterFactory = Callable[[ExplorerSettings, Optional[aiohttp.ClientSession]], BaseLedgerAdapter]


DEFAULT_ADAPTERS: dict[LedgerId, AdapterFactory] = {
    LedgerId.BITCOIN: lambda config, session: BlockstreamAdapter(config, session=session),
    LedgerId.ETHEREUM: lambda config, session: EtherscanAdapter(config, session=session),
    LedgerId.LITECOIN: lambda config, session: BlockchairAdapter(config, session=session),
}


class AdapterRegistry:
    """
    Central registry for ledger adapters.

    Usage:
        registry = AdapterRegistry(ExplorerSettings.from_env())
        adapter = registry.get("bitcoin")
        record = await adapter.search("latest")
    """

    def __init__(
        self,
        config: Optional[ExplorerSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
        factories: Optional[dict[LedgerId, AdapterFactory]] = None,
    ) -> None:
        self._config = config or ExplorerSettings()
        self._session = session
        self._factories: dict[LedgerId, AdapterFactory] = dict(factories or DEFAULT_ADAPTERS)
        self._adapters: dict[LedgerId, BaseLedgerAdapter] = {}

    @property
    def config(self) -> ExplorerSettings:
        return self._config

    def _resolve_id(self, ledger_id: Union[LedgerId, str]) -> LedgerId:
        try:
            ledger = LedgerId.parse(ledger_id)
        except ValueError:
            ledger = None

        if ledger is None or ledger not in self._factories:
            raise UnsupportedLedgerError(
                f"Unsupported cryptocurrency: {ledger_id}",
                ledger=str(ledger_id),
                supported_ledgers=[known.value for known in self._factories],
            )
        return ledger

    def get(self, ledger_id: Union[LedgerId, str]) -> BaseLedgerAdapter:
        """
        Get the adapter for a ledger, creating it on first use.

        Raises:
            UnsupportedLedgerError: Unknown ledger id
            ConfigurationError: Adapter settings are invalid
        """
        ledger = self._resolve_id(ledger_id)

        adapter = self._adapters.get(ledger)
        if adapter is None:
            adapter = self._factories[ledger](self._config, self._session)
            self._adapters[ledger] = adapter
            logger.info(f"Created {adapter.name} adapter for {ledger.value}")
        return adapter

    resolve = get

    def register(self, ledger: LedgerId, factory: AdapterFactory) -> None:
        """Replace the factory for a ledger. Drops any existing instance."""
        if ledger in self._adapters:
            logger.warning(f"Adapter for '{ledger.value}' already created, replacing")
            self._adapters.pop(ledger)
        self._factories[ledger] = factory

    def is_loaded(self, ledger_id: Union[LedgerId, str]) -> bool:
        """Whether the adapter for a ledger has been created."""
        return self._resolve_id(ledger_id) in self._adapters

    def list_ledgers(self) -> list[str]:
        """Supported ledger ids."""
        return [ledger.value for ledger in self._factories]

    def get_all_metadata(self) -> dict[str, AdapterMetadata]:
        """Get metadata for all created adapters."""
        return {ledger.value: adapter.metadata() for ledger, adapter in self._adapters.items()}

    def get_cache_stats(self) -> dict[str, dict[str, Any]]:
        """Get cache statistics for all created adapters."""
        return {
            ledger.value: adapter.get_cache_stats()
            for ledger, adapter in self._adapters.items()
        }

    def clear_all_caches(self) -> None:
        """Clear caches for all adapters."""
        for adapter in self._adapters.values():
            adapter.clear_cache()
        logger.info("Cleared all adapter caches")

    async def close(self) -> None:
        """Close all adapters."""
        for adapter in self._adapters.values():
            await adapter.close()
        self._adapters.clear()
        logger.info("Explorer registry closed")

    async def __aenter__(self) -> "AdapterRegistry":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def __contains__(self, ledger_id: Union[LedgerId, str]) -> bool:
        try:
            self._resolve_id(ledger_id)
        except UnsupportedLedgerError:
            return False
        return True


# Singleton instance
_default_registry: Optional[AdapterRegistry] = None


def get_default_registry() -> AdapterRegistry:
    """Get or create the default registry, configured from the environment."""
    global _default_registry
    if _default_registry is None:
        _default_registry = AdapterRegistry(ExplorerSettings.from_env())
    return _default_registry


async def close_default_registry() -> None:
    """Close and forget the default registry."""
    global _default_registry
    if _default_registry is not None:
        await _default_registry.close()
        _default_registry = None
