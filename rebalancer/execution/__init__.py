"""Execution Layer - Trade execution on the configured venue.

This module provides the executor contract, the trade receipt record and the
venue implementations.
"""

from rebalancer.execution.base import TradeExecutor, TradeLog, TradeStatus, Venue
from rebalancer.execution.hyperliquid_executor import HyperliquidExecutor
from rebalancer.execution.uniswap_executor import UniswapExecutor
from rebalancer.execution.venue_router import VenueRouter

__all__ = [
    # Abstract interface
    "TradeExecutor",
    # Concrete implementations
    "HyperliquidExecutor",
    "UniswapExecutor",
    "VenueRouter",
    # Data classes
    "TradeLog",
    # Enums
    "TradeStatus",
    "Venue",
]
