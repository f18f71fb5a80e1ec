"""Telegram notifications for rebalance signals and executed batches."""

from typing import Optional, Sequence

import requests

from rebalancer.execution.base import Venue
from rebalancer.notifications.base import Notifier
from rebalancer.portfolio.base import RebalanceAction, TradeSide
from rebalancer.utils.logging import get_logger

logger = get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramNotifier(Notifier):
    """Sends HTML formatted messages through the Telegram Bot API.

    Example:
        >>> notifier = TelegramNotifier(token, chat_id)
        >>> notifier.send("<b>Portfolio balanced</b>")
        True
    """

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        timeout: float = 12.0,
        session: Optional[requests.Session] = None,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def send(self, message: str) -> bool:
        if not self.configured:
            return False

        url = f"{TELEGRAM_API_URL}/bot{self.bot_token}/sendMessage"
        payload = {"chat_id": self.chat_id, "text": message, "parse_mode": "HTML"}

        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Telegram send error: %s", e)
            return False

        if not response.ok:
            logger.warning(
                "Telegram rejected message (HTTP %d): %s",
                response.status_code,
                response.text,
            )
            return False

        return True


def format_rebalance_message(
    venue: Venue,
    deviation: float,
    actions: Sequence[RebalanceAction],
    auto_executed: bool,
) -> str:
    """Build the notification text for a signal or an executed batch.

    Args:
        venue: Venue the trades go to
        deviation: Max drift in percentage points (0 after execution)
        actions: Actions proposed or executed
        auto_executed: True for the post-execution summary, False for a
            manual rebalance signal

    Returns:
        HTML formatted message
    """
    if auto_executed:
        header = "🤖 <b>AUTO-TRADE EXECUTED</b>"
    else:
        header = "⚠️ <b>MANUAL REBALANCE SIGNAL</b>"

    action_lines = "\n\n".join(
        f"{'🟢' if a.side is TradeSide.BUY else '🔴'} <b>{a.side.value} {a.symbol}</b>\n"
        f"   Amount: {a.amount:.4f}\n"
        f"   Value: ${a.usd_value:.2f}"
        for a in actions
    )

    return (
        f"{header}\n"
        f"Exchange: {venue.value}\n"
        f"Deviation: <b>{deviation:.2f}%</b>\n"
        "\n"
        "<b>Actions Required:</b>\n"
        f"{action_lines}\n"
        "\n"
        "<i>Check dashboard for details.</i>"
    )
