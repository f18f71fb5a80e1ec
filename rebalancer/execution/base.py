"""Abstract base class for trade execution.

This module defines the contract for executing rebalance actions on a venue:
- Hyperliquid: perpetuals exchange, order posted to its REST endpoint
- Uniswap: on-chain swap through a router contract (mainnet or testnet)

Key Principle: The orchestrator only sees TradeExecutor.execute(), so venues can
be swapped through configuration without touching the rebalance logic.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from rebalancer.portfolio.base import RebalanceAction, TradeSide

if TYPE_CHECKING:
    from rebalancer.utils.config import Settings


class Venue(Enum):
    """Trading venues supported by the system."""

    HYPERLIQUID = "HYPERLIQUID"
    UNISWAP_MAINNET = "UNISWAP_MAINNET"
    UNISWAP_TESTNET = "UNISWAP_TESTNET"

    @property
    def is_testnet(self) -> bool:
        return self is Venue.UNISWAP_TESTNET


class TradeStatus(Enum):
    """Outcome of a trade attempt."""

    EXECUTED = "EXECUTED"  # Accepted by the venue
    FAILED = "FAILED"  # Attempt raised, batch aborted
    SIMULATED = "SIMULATED"  # No signing credential configured


@dataclass(frozen=True)
class TradeLog:
    """Receipt for one attempted rebalance action.

    Attributes:
        timestamp: When the attempt finished
        venue: Venue the trade was routed to
        pair: Traded pair (e.g. "BTC-USD", "XAUT/USDC")
        side: BUY or SELL
        amount: Token quantity
        price: USD price per unit (0 when the attempt failed)
        total_usd: USD value of the trade
        status: EXECUTED, FAILED or SIMULATED
        tx_hash: Venue transaction handle, if any
        error: Error text for failed attempts
        id: Row id assigned by the log store
    """

    timestamp: datetime
    venue: Venue
    pair: str
    side: TradeSide
    amount: float
    price: float
    total_usd: float
    status: TradeStatus
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    id: Optional[int] = field(default=None, compare=False)

    @classmethod
    def failed(
        cls,
        action: RebalanceAction,
        venue: Venue,
        error: Exception,
        timestamp: Optional[datetime] = None,
    ) -> "TradeLog":
        """Build the FAILED receipt for an action whose execution raised."""
        return cls(
            timestamp=timestamp or datetime.now(),
            venue=venue,
            pair=action.symbol,
            side=action.side,
            amount=action.amount,
            price=0.0,
            total_usd=action.usd_value,
            status=TradeStatus.FAILED,
            error=str(error),
        )


class TradeExecutor(ABC):
    """Abstract base class for trade execution.

    Implementations may raise on transport or validation failures; the
    orchestrator records the FAILED receipt and aborts the batch.

    Example:
        >>> executor = HyperliquidExecutor()
        >>> receipt = executor.execute(action, settings)
        >>> print(receipt.status.value, receipt.tx_hash)
    """

    @abstractmethod
    def execute(self, action: RebalanceAction, settings: "Settings") -> TradeLog:
        """Execute a single rebalance action.

        Args:
            action: Action produced by the rebalance engine
            settings: Current settings (venue, credential presence)

        Returns:
            TradeLog receipt (EXECUTED, or SIMULATED without a signing key)

        Raises:
            ExecutionError: If the venue cannot be reached or rejects the order
        """
        pass
