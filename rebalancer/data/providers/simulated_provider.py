"""Simulated price source for dry runs.

Prices follow a random walk of +/-2% per fetch plus a small per-symbol drift, so
the portfolio wanders away from its targets and the rebalance path can be
exercised without network access.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np

from rebalancer.data.base import PriceSource
from rebalancer.execution.base import Venue
from rebalancer.portfolio.base import Asset

# Drift per fetch; pushes BTC up and gold down so drift builds quickly
DEFAULT_TRENDS = {"BTC": 0.01, "XAUT": -0.005}

DEFAULT_START_PRICES = {"BTC": 60000.0, "XAUT": 2000.0}

MIN_PRICE = 0.01


class SimulatedPriceProvider(PriceSource):
    """Random-walk prices.

    Example:
        >>> provider = SimulatedPriceProvider(seed=42)
        >>> assets = provider.fetch(assets, Venue.HYPERLIQUID)
    """

    def __init__(
        self,
        volatility: float = 0.02,
        trends: Optional[Dict[str, float]] = None,
        start_prices: Optional[Dict[str, float]] = None,
        seed: Optional[int] = None,
    ):
        """Initialize simulated provider.

        Args:
            volatility: Max absolute random move per fetch (0.02 = 2%)
            trends: Extra drift per fetch by symbol
            start_prices: Prices used for assets that are still unpriced
            seed: Random seed for reproducible runs
        """
        self.volatility = volatility
        self.trends = DEFAULT_TRENDS if trends is None else trends
        self.start_prices = DEFAULT_START_PRICES if start_prices is None else start_prices
        self.rng = np.random.default_rng(seed)

    def fetch(self, assets: Sequence[Asset], venue: Venue) -> List[Asset]:
        moves = self.rng.uniform(-self.volatility, self.volatility, size=len(assets))

        updated = []
        for asset, move in zip(assets, moves):
            if asset.is_stable:
                updated.append(asset.with_price(1.0))
                continue

            price = asset.price or self.start_prices.get(asset.symbol, 0.0)
            if price <= 0:
                updated.append(asset)
                continue

            new_price = price * (1 + float(move) + self.trends.get(asset.symbol, 0.0))
            updated.append(asset.with_price(max(new_price, MIN_PRICE)))

        return updated
