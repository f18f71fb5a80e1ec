"""Notifications Layer - Outbound alerts."""

from rebalancer.notifications.base import Notifier
from rebalancer.notifications.telegram import TelegramNotifier, format_rebalance_message

__all__ = ["Notifier", "TelegramNotifier", "format_rebalance_message"]
