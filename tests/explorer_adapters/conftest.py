"""
Shared fixtures for explorer adapter tests.
"""

import pytest

from explorer_adapters import ExplorerSettings, LedgerId
from tests.explorer_adapters.fakes import FakeClock


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> ExplorerSettings:
    """Settings with no rate-limit delay and a dummy Etherscan key."""
    config = ExplorerSettings(rate_limit_delay=0.0, request_timeout=2.0)
    config.ledgers[LedgerId.ETHEREUM].api_key = "test-key"
    return config
