"""Route trades to the executor of the configured venue."""

from typing import TYPE_CHECKING, Dict, Optional

from rebalancer.execution.base import TradeExecutor, TradeLog, Venue
from rebalancer.execution.hyperliquid_executor import HyperliquidExecutor
from rebalancer.execution.uniswap_executor import UniswapExecutor
from rebalancer.portfolio.base import RebalanceAction
from rebalancer.utils.exceptions import ConfigurationError

if TYPE_CHECKING:
    from rebalancer.utils.config import Settings


class VenueRouter(TradeExecutor):
    """Dispatches each action to the executor for settings.selected_venue.

    Example:
        >>> router = VenueRouter()
        >>> receipt = router.execute(action, settings)
    """

    def __init__(self, executors: Optional[Dict[Venue, TradeExecutor]] = None):
        """Initialize router.

        Args:
            executors: Executor per venue. Defaults to Hyperliquid plus one
                Uniswap executor shared by mainnet and testnet.
        """
        if executors is None:
            uniswap = UniswapExecutor()
            executors = {
                Venue.HYPERLIQUID: HyperliquidExecutor(),
                Venue.UNISWAP_MAINNET: uniswap,
                Venue.UNISWAP_TESTNET: uniswap,
            }
        self.executors = executors

    def execute(self, action: RebalanceAction, settings: "Settings") -> TradeLog:
        executor = self.executors.get(settings.selected_venue)
        if executor is None:
            raise ConfigurationError(
                f"No executor registered for venue {settings.selected_venue.value}"
            )
        return executor.execute(action, settings)
