"""Alert cooldown tracking for manual rebalance signals.

Best-effort spam prevention: the last alert time lives in memory only and
resets when the process restarts.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

DEFAULT_ALERT_COOLDOWN = timedelta(minutes=15)


class AlertCooldownTracker:
    """Allows at most one manual-signal alert per cooldown period.

    Example:
        >>> tracker = AlertCooldownTracker(credentials_configured=True)
        >>> if tracker.can_alert():
        ...     notifier.send(message)
        ...     tracker.record_alert()
    """

    def __init__(
        self,
        credentials_configured: bool,
        cooldown: timedelta = DEFAULT_ALERT_COOLDOWN,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize tracker.

        Args:
            credentials_configured: Whether the notifier can send at all
            cooldown: Minimum gap between two alerts
            clock: Current time source (default: datetime.now)
        """
        if cooldown < timedelta(0):
            raise ValueError(f"cooldown must be non-negative, got {cooldown}")

        self.credentials_configured = credentials_configured
        self.cooldown = cooldown
        self.clock = clock or datetime.now
        self.last_alert_time: Optional[datetime] = None

    def can_alert(self, now: Optional[datetime] = None) -> bool:
        """Whether an alert may be sent now."""
        if not self.credentials_configured:
            return False
        if self.last_alert_time is None:
            return True
        now = now or self.clock()
        return now - self.last_alert_time > self.cooldown

    def record_alert(self, now: Optional[datetime] = None) -> None:
        """Start a new cooldown period."""
        self.last_alert_time = now or self.clock()

    def reset(self) -> None:
        self.last_alert_time = None
