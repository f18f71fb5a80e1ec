"""Hyperliquid order execution implementation.

This module implements the TradeExecutor interface for the Hyperliquid exchange
API. Orders are posted as GTC limit orders priced at the action's implied price.

Signing is not implemented: without a signing key configured every order is
SIMULATED locally, with a key the unsigned payload is posted and the exchange's
verdict is reported back.
"""

import time
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

import requests

from rebalancer.execution.base import TradeExecutor, TradeLog, TradeStatus, Venue
from rebalancer.portfolio.base import RebalanceAction, TradeSide
from rebalancer.utils.exceptions import BrokerConnectionError, OrderRejectedError
from rebalancer.utils.logging import get_logger

if TYPE_CHECKING:
    from rebalancer.utils.config import Settings

logger = get_logger(__name__)

HL_MAINNET_API_URL = "https://api.hyperliquid.xyz"
HL_TESTNET_API_URL = "https://api.hyperliquid-testnet.xyz"

# Execution defaults to testnet; prices are always read from mainnet
HL_EXCHANGE_URL = f"{HL_TESTNET_API_URL}/exchange"


class HyperliquidExecutor(TradeExecutor):
    """Hyperliquid executor.

    Example:
        >>> executor = HyperliquidExecutor()
        >>> receipt = executor.execute(action, settings)
        >>> receipt.status
        <TradeStatus.SIMULATED: 'SIMULATED'>
    """

    def __init__(
        self,
        exchange_url: str = HL_EXCHANGE_URL,
        asset_indices: Optional[Dict[str, int]] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize Hyperliquid executor.

        Args:
            exchange_url: Exchange endpoint orders are posted to
            asset_indices: Hyperliquid asset index per symbol (from the "meta"
                endpoint). Unknown symbols use index 0.
            timeout: HTTP timeout in seconds
            session: requests session to reuse (default: a new one)
            clock: Timestamp source for receipts
        """
        self.exchange_url = exchange_url
        self.asset_indices = asset_indices or {}
        self.timeout = timeout
        self.session = session or requests.Session()
        self.clock = clock or datetime.now
        logger.info("HyperliquidExecutor initialized (endpoint: %s)", exchange_url)

    def execute(self, action: RebalanceAction, settings: "Settings") -> TradeLog:
        """Submit one action as a limit order.

        Raises:
            BrokerConnectionError: If the exchange cannot be reached
            OrderRejectedError: If the exchange answers with an error status
        """
        logger.info(
            "Initiating Hyperliquid order: %s %.6f %s",
            action.side.value,
            action.amount,
            action.symbol,
        )

        tx_hash = None
        status = TradeStatus.SIMULATED

        if settings.has_signing_key:
            response = self._post(self.build_order_payload(action))
            tx_hash = self._extract_order_id(response)
            status = TradeStatus.EXECUTED

        return TradeLog(
            timestamp=self.clock(),
            venue=Venue.HYPERLIQUID,
            pair=f"{action.symbol}-USD",
            side=action.side,
            amount=action.amount,
            price=action.price,
            total_usd=action.usd_value,
            status=status,
            tx_hash=tx_hash,
        )

    def build_order_payload(self, action: RebalanceAction) -> Dict[str, Any]:
        """Build the exchange "order" action for a rebalance action.

        The signature block is a placeholder; producing a real one is out of
        scope for this monitor.
        """
        return {
            "type": "exchange",
            "action": {
                "type": "order",
                "orders": [
                    {
                        "a": self.asset_indices.get(action.symbol, 0),
                        "b": action.side is TradeSide.BUY,
                        "p": f"{action.price:.4f}",
                        "s": f"{action.amount:.4f}",
                        "r": False,
                        "t": {"limit": {"tif": "Gtc"}},
                    }
                ],
                "grouping": "na",
            },
            "nonce": int(time.time() * 1000),
            "signature": {"r": "0x", "s": "0x", "v": 27},
        }

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST a payload to the exchange endpoint."""
        try:
            response = self.session.post(
                self.exchange_url, json=payload, timeout=self.timeout
            )
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Hyperliquid request failed: %s", e)
            raise BrokerConnectionError(f"Hyperliquid request failed: {e}") from e

        if isinstance(data, dict) and data.get("status") == "err":
            logger.warning("Hyperliquid rejected order: %s", data.get("response"))
            raise OrderRejectedError(f"Hyperliquid rejected order: {data.get('response')}")

        return data

    @staticmethod
    def _extract_order_id(response: Dict[str, Any]) -> Optional[str]:
        """Pull the resting/filled order id out of an "ok" response."""
        try:
            statuses = response["response"]["data"]["statuses"]
        except (KeyError, TypeError):
            return None

        for entry in statuses:
            for key in ("resting", "filled"):
                if isinstance(entry, dict) and key in entry:
                    return str(entry[key].get("oid"))
        return None
