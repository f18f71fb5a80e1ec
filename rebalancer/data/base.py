"""Abstract base classes for the data layer.

This module defines the PriceSource interface that market price providers
implement and the TradeLogStore interface for the append-only trade log.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from rebalancer.execution.base import TradeLog, Venue
from rebalancer.portfolio.base import Asset


class PriceSource(ABC):
    """Abstract interface for market price sources.

    Example:
        >>> source = MarketPriceProvider()
        >>> assets = source.fetch(assets, Venue.HYPERLIQUID)
        >>> print({a.symbol: a.price for a in assets})
    """

    @abstractmethod
    def fetch(self, assets: Sequence[Asset], venue: Venue) -> List[Asset]:
        """Return the assets with prices updated to the best available USD price.

        Assets that cannot be priced are returned unchanged. Partial failures
        (some symbols priced, others not) must not raise for the whole batch.

        Args:
            assets: Current portfolio snapshot
            venue: Selected trading venue

        Returns:
            New asset list in the same order
        """
        pass


class TradeLogStore(ABC):
    """Append-only store of trade receipts."""

    @abstractmethod
    def append(self, receipt: TradeLog) -> None:
        """Persist one receipt.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def list_all(self) -> List[TradeLog]:
        """Return every stored receipt, newest first."""
        pass
