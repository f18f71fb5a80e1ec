"""Portfolio Layer.

This layer holds the tracked assets and decides how far they have drifted from
their target allocations.

Components:
- Asset: Holding with price, balance and target allocation
- RebalanceEngine: Drift measurement and trade proposal
- RebalanceAction / RebalanceResult: Engine output
"""

from rebalancer.portfolio.base import (
    Asset,
    RebalanceAction,
    RebalanceResult,
    TradeSide,
    current_allocation_percent,
    current_allocations,
    total_value,
)
from rebalancer.portfolio.rebalance_engine import (
    DEFAULT_DUST_THRESHOLD_USD,
    RebalanceEngine,
    calculate_rebalance,
)

__all__ = [
    "Asset",
    "RebalanceAction",
    "RebalanceResult",
    "TradeSide",
    "RebalanceEngine",
    "calculate_rebalance",
    "current_allocation_percent",
    "current_allocations",
    "total_value",
    "DEFAULT_DUST_THRESHOLD_USD",
]
