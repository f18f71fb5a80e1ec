"""Unit tests for portfolio data structures and projections."""

from datetime import datetime

import pytest

from rebalancer.portfolio.base import (
    Asset,
    RebalanceAction,
    RebalanceResult,
    TradeSide,
    current_allocation_percent,
    current_allocations,
    total_value,
)


class TestAsset:
    """Test Asset dataclass."""

    def test_usd_value(self):
        """Test USD value is price times balance."""
        asset = Asset("btc", "BTC", "Bitcoin", price=60000.0, balance=0.5, target_allocation=33)
        assert asset.usd_value == 30000.0

    def test_negative_price_rejected(self):
        """Test that a negative price is rejected."""
        with pytest.raises(ValueError, match="price must be non-negative"):
            Asset("btc", "BTC", "Bitcoin", price=-1.0, balance=0.5, target_allocation=33)

    def test_negative_balance_rejected(self):
        """Test that a negative balance is rejected."""
        with pytest.raises(ValueError, match="balance must be non-negative"):
            Asset("btc", "BTC", "Bitcoin", price=1.0, balance=-0.5, target_allocation=33)

    def test_with_price_returns_new_instance(self):
        """Test that with_price leaves the original untouched."""
        asset = Asset("btc", "BTC", "Bitcoin", price=0.0, balance=0.5, target_allocation=33)
        priced = asset.with_price(61000.0)

        assert priced.price == 61000.0
        assert priced.balance == 0.5
        assert asset.price == 0.0

    def test_with_balance_returns_new_instance(self):
        """Test that with_balance leaves the original untouched."""
        asset = Asset("btc", "BTC", "Bitcoin", price=60000.0, balance=0.5, target_allocation=33)
        updated = asset.with_balance(0.75)

        assert updated.balance == 0.75
        assert asset.balance == 0.5

    def test_asset_is_immutable(self):
        """Test that assets cannot be mutated in place."""
        asset = Asset("btc", "BTC", "Bitcoin", price=60000.0, balance=0.5, target_allocation=33)
        with pytest.raises(AttributeError):
            asset.price = 1.0


class TestRebalanceAction:
    """Test RebalanceAction dataclass."""

    def test_valid_action(self):
        """Test creating a valid action."""
        action = RebalanceAction(
            asset_id="xaut",
            symbol="XAUT",
            side=TradeSide.BUY,
            amount=1.52,
            usd_value=3040.0,
            reason="Alloc: 29.5% -> Target: 33%",
            timestamp=datetime(2024, 5, 1),
        )

        assert action.side is TradeSide.BUY
        assert action.price == pytest.approx(2000.0)

    def test_zero_amount_rejected(self):
        """Test that zero amount raises ValueError."""
        with pytest.raises(ValueError, match="amount must be positive"):
            RebalanceAction("xaut", "XAUT", TradeSide.BUY, amount=0.0, usd_value=10.0)

    def test_zero_usd_value_rejected(self):
        """Test that zero USD value raises ValueError."""
        with pytest.raises(ValueError, match="usd_value must be positive"):
            RebalanceAction("xaut", "XAUT", TradeSide.SELL, amount=1.0, usd_value=0.0)


class TestRebalanceResult:
    """Test RebalanceResult."""

    def test_neutral(self):
        """Test neutral result has no drift and no actions."""
        result = RebalanceResult.neutral()

        assert result.needs_rebalance is False
        assert result.deviation == 0.0
        assert result.actions == ()


class TestProjections:
    """Test portfolio value projections."""

    def test_total_value(self, scenario_assets):
        """Test total value of the scenario portfolio."""
        assert total_value(scenario_assets) == pytest.approx(88000.0)

    def test_total_value_empty(self):
        """Test total value of an empty portfolio is zero."""
        assert total_value([]) == 0.0

    def test_current_allocation_percent(self, scenario_assets):
        """Test allocation percentage of a single asset."""
        btc = scenario_assets[0]
        assert current_allocation_percent(btc, 88000.0) == pytest.approx(34.0909, abs=1e-3)

    def test_current_allocation_zero_total(self, scenario_assets):
        """Test allocation is zero when the portfolio has no value."""
        assert current_allocation_percent(scenario_assets[0], 0.0) == 0.0

    def test_current_allocations_sum_to_100(self, scenario_assets):
        """Test allocations of a priced portfolio add up to 100%."""
        assert sum(current_allocations(scenario_assets)) == pytest.approx(100.0)
