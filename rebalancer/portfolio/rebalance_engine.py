"""Drift-threshold rebalance engine.

This module turns a portfolio snapshot into a deviation metric and the list of
trades that would bring every asset back to its target allocation.

Algorithm:
1. Compute total portfolio value (0 means no drift is reported)
2. Track the worst single-asset drift |current% - target%|
3. Independently, size a trade for every asset whose USD gap to target
   exceeds the dust threshold (assets without a price are skipped)
4. Flag the portfolio for rebalancing when the worst drift reaches the threshold

The action list always describes a full rebalance to target; it is not gated
on the threshold. Callers act on it only when needs_rebalance is set.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from rebalancer.portfolio.base import (
    Asset,
    RebalanceAction,
    RebalanceResult,
    TradeSide,
    current_allocation_percent,
    total_value,
)
from rebalancer.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DUST_THRESHOLD_USD = 10.0


class RebalanceEngine:
    """Computes drift and proposes rebalancing trades.

    Configuration Parameters:
        dust_threshold_usd: Minimum absolute USD gap to propose a trade (default 10)

    Example:
        >>> engine = RebalanceEngine({"dust_threshold_usd": 10})
        >>> result = engine.evaluate(assets, threshold_percent=5)
        >>> if result.needs_rebalance:
        ...     for action in result.actions:
        ...         print(action.side.value, action.symbol, action.amount)
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize engine with configuration.

        Args:
            config: Configuration dictionary. Uses defaults if not provided.
            clock: Returns the timestamp stamped on generated actions
                (default: datetime.now)
        """
        config = config or {}

        self.dust_threshold_usd = config.get(
            "dust_threshold_usd", DEFAULT_DUST_THRESHOLD_USD
        )
        self.clock = clock or datetime.now

        self._validate_config()

    def _validate_config(self) -> None:
        """Validate configuration parameters."""
        if self.dust_threshold_usd < 0:
            raise ValueError(
                f"dust_threshold_usd must be >= 0, got {self.dust_threshold_usd}"
            )

    def evaluate(
        self,
        assets: Sequence[Asset],
        threshold_percent: float,
    ) -> RebalanceResult:
        """Evaluate portfolio drift against target allocations.

        Args:
            assets: Portfolio snapshot
            threshold_percent: Drift in percentage points that triggers a rebalance

        Returns:
            RebalanceResult with max deviation and proposed actions.
            Degenerate inputs (empty portfolio, zero value, unpriced assets)
            yield zero/empty results rather than errors.
        """
        portfolio_value = total_value(assets)
        max_deviation = 0.0
        actions: List[RebalanceAction] = []
        now = self.clock()

        for asset in assets:
            allocation = current_allocation_percent(asset, portfolio_value)
            # A worthless portfolio reports no drift at all
            if portfolio_value > 0:
                deviation = abs(allocation - asset.target_allocation)
                if deviation > max_deviation:
                    max_deviation = deviation

            action = self._propose_action(asset, allocation, portfolio_value, now)
            if action is not None:
                actions.append(action)

        needs_rebalance = max_deviation >= threshold_percent

        logger.debug(
            "Evaluated %d assets: total=$%.2f max_deviation=%.2f%% "
            "threshold=%.2f%% actions=%d",
            len(assets),
            portfolio_value,
            max_deviation,
            threshold_percent,
            len(actions),
        )

        return RebalanceResult(
            needs_rebalance=needs_rebalance,
            deviation=max_deviation,
            actions=tuple(actions),
        )

    def _propose_action(
        self,
        asset: Asset,
        allocation: float,
        portfolio_value: float,
        now: datetime,
    ) -> Optional[RebalanceAction]:
        """Size the trade that moves one asset to its target value.

        Returns:
            RebalanceAction, or None for dust-sized gaps and unpriced assets
        """
        target_usd = portfolio_value * asset.target_allocation / 100
        diff_usd = target_usd - asset.usd_value

        if abs(diff_usd) <= self.dust_threshold_usd:
            return None

        # Cannot size an order without a price
        if asset.price <= 0:
            logger.debug("Skipping %s: no price available", asset.symbol)
            return None

        return RebalanceAction(
            asset_id=asset.id,
            symbol=asset.symbol,
            side=TradeSide.BUY if diff_usd > 0 else TradeSide.SELL,
            amount=abs(diff_usd) / asset.price,
            usd_value=abs(diff_usd),
            reason=f"Alloc: {allocation:.1f}% -> Target: {asset.target_allocation:g}%",
            timestamp=now,
        )


def calculate_rebalance(
    assets: Sequence[Asset],
    threshold_percent: float,
    dust_threshold_usd: float = DEFAULT_DUST_THRESHOLD_USD,
) -> RebalanceResult:
    """Evaluate a snapshot with a one-off engine.

    Args:
        assets: Portfolio snapshot
        threshold_percent: Drift in percentage points that triggers a rebalance
        dust_threshold_usd: Minimum absolute USD gap to propose a trade

    Returns:
        RebalanceResult
    """
    engine = RebalanceEngine({"dust_threshold_usd": dust_threshold_usd})
    return engine.evaluate(assets, threshold_percent)
