"""Data Layer - Market prices and trade-log storage."""

from rebalancer.data.base import PriceSource, TradeLogStore
from rebalancer.data.providers import MarketPriceProvider, SimulatedPriceProvider
from rebalancer.data.storage import TradeLogDatabase

__all__ = [
    "PriceSource",
    "TradeLogStore",
    "MarketPriceProvider",
    "SimulatedPriceProvider",
    "TradeLogDatabase",
]
