"""Shared fixtures for rebalancer tests."""

from datetime import datetime
from unittest.mock import Mock

import pytest

from rebalancer.execution.base import Venue
from rebalancer.notifications.base import Notifier
from rebalancer.portfolio.base import Asset
from rebalancer.utils.config import Settings

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture
def fixed_clock():
    """Clock that always returns the same instant."""
    return lambda: FIXED_NOW


@pytest.fixture
def scenario_assets():
    """BTC / XAUT / USDC portfolio worth $88,000."""
    return [
        Asset(id="btc", symbol="BTC", name="Bitcoin", price=60000.0, balance=0.5,
              target_allocation=33),
        Asset(id="xaut", symbol="XAUT", name="Tether Gold", price=2000.0, balance=13,
              target_allocation=33),
        Asset(id="usdc", symbol="USDC", name="USD Coin", price=1.0, balance=32000,
              target_allocation=34, is_stable=True),
    ]


@pytest.fixture
def settings():
    """Manual-signal settings with Telegram configured and no signing key."""
    return Settings(
        delta_threshold=5.0,
        selected_venue=Venue.HYPERLIQUID,
        auto_execute=False,
        telegram_bot_token="token",
        telegram_chat_id="chat",
    )


@pytest.fixture
def notifier():
    """Configured notifier mock that always delivers."""
    mock = Mock(spec=Notifier)
    mock.configured = True
    mock.send.return_value = True
    return mock
