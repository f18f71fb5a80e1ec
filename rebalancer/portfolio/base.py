"""Portfolio data structures and value projections.

This module defines the assets tracked by the rebalancer and the records the
rebalance engine produces from them.

Responsibilities:
- Asset: one holding with its latest price and target allocation
- RebalanceAction: a proposed BUY/SELL to move an asset towards target
- RebalanceResult: deviation metric plus the proposed actions
- total_value / current_allocation_percent: pure arithmetic projections
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence


class TradeSide(Enum):
    """Trade direction."""

    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class Asset:
    """A tracked holding.

    Attributes:
        id: Stable key (e.g. "btc")
        symbol: Ticker symbol used by price sources and venues
        name: Human readable name
        price: USD per unit, 0 means unknown/unpriced
        balance: Quantity owned
        target_allocation: Target share of the portfolio in percentage points
        address: Venue specific identifier (token contract), opaque here
        is_stable: Price is pinned to 1.00 instead of being fetched
    """

    id: str
    symbol: str
    name: str
    price: float
    balance: float
    target_allocation: float
    address: Optional[str] = None
    is_stable: bool = False

    def __post_init__(self):
        """Validate asset fields."""
        if self.price < 0:
            raise ValueError(f"price must be non-negative, got {self.price}")
        if self.balance < 0:
            raise ValueError(f"balance must be non-negative, got {self.balance}")
        if self.target_allocation < 0:
            raise ValueError(
                f"target_allocation must be non-negative, got {self.target_allocation}"
            )

    @property
    def usd_value(self) -> float:
        """Current USD value of the holding."""
        return self.price * self.balance

    def with_price(self, price: float) -> "Asset":
        """Return a copy with an updated market price."""
        return replace(self, price=price)

    def with_balance(self, balance: float) -> "Asset":
        """Return a copy with an updated balance."""
        return replace(self, balance=balance)


@dataclass(frozen=True)
class RebalanceAction:
    """A proposed unit of work to move one asset towards its target.

    Attributes:
        asset_id: Id of the asset to trade
        symbol: Ticker symbol of the asset
        side: BUY or SELL
        amount: Token quantity to trade
        usd_value: USD value of the trade
        reason: Why this action was generated
        timestamp: When the action was generated
    """

    asset_id: str
    symbol: str
    side: TradeSide
    amount: float
    usd_value: float
    reason: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        """Validate action fields."""
        if self.amount <= 0:
            raise ValueError(f"amount must be positive, got {self.amount}")
        if self.usd_value <= 0:
            raise ValueError(f"usd_value must be positive, got {self.usd_value}")

    @property
    def price(self) -> float:
        """Implied USD price per unit."""
        return self.usd_value / self.amount


@dataclass(frozen=True)
class RebalanceResult:
    """Outcome of one rebalance evaluation.

    Attributes:
        needs_rebalance: Whether the worst drift reached the threshold
        deviation: Maximum absolute drift in percentage points
        actions: Proposed actions in asset iteration order
    """

    needs_rebalance: bool
    deviation: float
    actions: tuple = ()

    @classmethod
    def neutral(cls) -> "RebalanceResult":
        """Result with no drift and nothing pending."""
        return cls(needs_rebalance=False, deviation=0.0, actions=())


def total_value(assets: Sequence[Asset]) -> float:
    """Sum of price * balance over all assets.

    Args:
        assets: Portfolio snapshot

    Returns:
        Total USD value, 0.0 for an empty portfolio
    """
    return sum(asset.price * asset.balance for asset in assets)


def current_allocation_percent(asset: Asset, portfolio_value: float) -> float:
    """Current share of the portfolio held in an asset.

    Args:
        asset: Asset to measure
        portfolio_value: Total portfolio value

    Returns:
        Allocation in percentage points, 0.0 when the portfolio has no value
    """
    if portfolio_value <= 0:
        return 0.0
    return asset.price * asset.balance / portfolio_value * 100


def current_allocations(assets: Sequence[Asset]) -> List[float]:
    """Current allocation percentages in asset order."""
    value = total_value(assets)
    return [current_allocation_percent(asset, value) for asset in assets]
