"""Live market price provider.

This module implements the PriceSource interface on top of public HTTP price
endpoints, queried in order of preference:

1. Hyperliquid mainnet "allMids" (all perp mid prices in one call; mainnet is
   used for valuation even when trading on testnet)
2. XAUT fallbacks: CryptoCompare, then CoinCap
3. CoinGecko for any remaining non-stable symbol it knows

Stablecoins are pinned to 1.00. A failing source is logged and skipped; assets
nobody could price keep their previous price.
"""

import time
from typing import Callable, Dict, List, Optional, Sequence

import requests

from rebalancer.data.base import PriceSource
from rebalancer.execution.base import Venue
from rebalancer.execution.hyperliquid_executor import HL_MAINNET_API_URL
from rebalancer.portfolio.base import Asset
from rebalancer.utils.logging import get_logger

logger = get_logger(__name__)

CRYPTOCOMPARE_XAUT_URL = "https://min-api.cryptocompare.com/data/price"
COINCAP_XAUT_URL = "https://api.coincap.io/v2/assets/tether-gold"
COINGECKO_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"

COINGECKO_IDS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "USDC": "usd-coin",
    "USDT": "tether",
}

STABLE_PRICE = 1.0


class MarketPriceProvider(PriceSource):
    """Best-available USD prices from public market data endpoints.

    Responses are cached in-process for cache_duration seconds so a fast poll
    loop does not hit the rate limits of the free endpoints.

    Example:
        >>> provider = MarketPriceProvider()
        >>> assets = provider.fetch(assets, Venue.HYPERLIQUID)
    """

    def __init__(
        self,
        info_url: str = f"{HL_MAINNET_API_URL}/info",
        cache_duration: float = 5.0,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize provider.

        Args:
            info_url: Hyperliquid info endpoint
            cache_duration: Seconds a fetched price set stays valid
            timeout: HTTP timeout per request in seconds
            session: requests session to reuse (default: a new one)
            clock: Monotonic time source in seconds (default: time.monotonic)
        """
        self.info_url = info_url
        self.cache_duration = cache_duration
        self.timeout = timeout
        self.session = session or requests.Session()
        self.clock = clock or time.monotonic

        self._price_cache: Dict[str, float] = {}
        self._last_fetch_time: Optional[float] = None

    def fetch(self, assets: Sequence[Asset], venue: Venue) -> List[Asset]:
        """Return assets repriced from the cache or the live endpoints."""
        now = self.clock()

        if self._cache_valid(now):
            logger.debug("Using cached prices for %d symbols", len(self._price_cache))
            return [
                self._apply_price(asset, self._price_cache.get(asset.symbol))
                for asset in assets
            ]

        prices = self._fetch_hyperliquid()

        needs_xaut = any(a.symbol == "XAUT" and not a.is_stable for a in assets)
        if needs_xaut and not prices.get("XAUT"):
            xaut = self._fetch_xaut()
            if xaut:
                prices["XAUT"] = xaut

        missing = [
            a.symbol
            for a in assets
            if not a.is_stable and a.symbol != "XAUT" and not prices.get(a.symbol)
        ]
        if missing:
            prices.update(self._fetch_coingecko(missing))

        updated = []
        for asset in assets:
            price = prices.get(asset.symbol)
            if price and not asset.is_stable:
                self._price_cache[asset.symbol] = price
            updated.append(self._apply_price(asset, price))

        self._last_fetch_time = now

        priced = sum(1 for a in updated if a.price > 0)
        logger.debug("Priced %d/%d assets for venue %s", priced, len(updated), venue.value)
        return updated

    def _cache_valid(self, now: float) -> bool:
        return (
            self._last_fetch_time is not None
            and now - self._last_fetch_time < self.cache_duration
            and bool(self._price_cache)
        )

    @staticmethod
    def _apply_price(asset: Asset, price: Optional[float]) -> Asset:
        if asset.is_stable:
            return asset.with_price(STABLE_PRICE)
        if price and price > 0:
            return asset.with_price(price)
        return asset

    def _fetch_hyperliquid(self) -> Dict[str, float]:
        """All mid prices from Hyperliquid, {} on failure."""
        try:
            response = self.session.post(
                self.info_url, json={"type": "allMids"}, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Failed to fetch prices from Hyperliquid: %s", e)
            return {}

        if not isinstance(data, dict):
            logger.error("Unexpected Hyperliquid allMids payload: %r", data)
            return {}

        prices = {}
        for symbol, value in data.items():
            try:
                prices[symbol] = float(value)
            except (TypeError, ValueError):
                continue
        return prices

    def _fetch_xaut(self) -> Optional[float]:
        """Gold token price from CryptoCompare, falling back to CoinCap."""
        try:
            response = self.session.get(
                CRYPTOCOMPARE_XAUT_URL,
                params={"fsym": "XAUT", "tsyms": "USD,USDT"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
            price = data.get("USD") or data.get("USDT")
            if price:
                return float(price)
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.warning("CryptoCompare XAUT fetch failed: %s", e)

        try:
            response = self.session.get(COINCAP_XAUT_URL, timeout=self.timeout)
            response.raise_for_status()
            price = (response.json().get("data") or {}).get("priceUsd")
            if price:
                return float(price)
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.warning("CoinCap XAUT fetch failed: %s", e)

        return None

    def _fetch_coingecko(self, symbols: List[str]) -> Dict[str, float]:
        """Prices for symbols CoinGecko knows, {} on failure."""
        ids = {symbol: COINGECKO_IDS[symbol] for symbol in symbols if symbol in COINGECKO_IDS}
        if not ids:
            return {}

        try:
            response = self.session.get(
                COINGECKO_PRICE_URL,
                params={"ids": ",".join(ids.values()), "vs_currencies": "usd"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("CoinGecko fallback failed: %s", e)
            return {}

        prices = {}
        for symbol, coin_id in ids.items():
            usd = (data.get(coin_id) or {}).get("usd")
            if usd:
                prices[symbol] = float(usd)
        return prices
