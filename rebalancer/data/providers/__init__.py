"""Price source implementations."""

from rebalancer.data.providers.market_price_provider import MarketPriceProvider
from rebalancer.data.providers.simulated_provider import SimulatedPriceProvider

__all__ = ["MarketPriceProvider", "SimulatedPriceProvider"]
