"""Abstract notifier interface."""

from abc import ABC, abstractmethod


class Notifier(ABC):
    """Outbound chat notifications.

    Implementations never raise to the caller; delivery problems are reported
    through the boolean result so a failed alert cannot abort a batch.
    """

    @property
    @abstractmethod
    def configured(self) -> bool:
        """Whether the notifier has the credentials it needs to send."""
        pass

    @abstractmethod
    def send(self, message: str) -> bool:
        """Send a message.

        Returns:
            True if the message was delivered, False otherwise
        """
        pass
