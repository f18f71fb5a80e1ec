"""Trade-log persistence."""

from rebalancer.data.storage.database import TradeLogDatabase

__all__ = ["TradeLogDatabase"]
