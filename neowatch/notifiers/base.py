"""Base notifier interface."""

from typing import Optional, Protocol

from ..errors import DeliveryError

__all__ = ["DeliveryError", "Notifier"]


class Notifier(Protocol):
    """Protocol for email delivery services."""

    def send(
        self, to: str, subject: str, text: str, html: Optional[str] = None
    ) -> None:
        """Send one message to one recipient.

        Args:
            to: Recipient email address
            subject: Subject line (prefix is applied by the notifier)
            text: Plain-text body
            html: Optional HTML alternative

        Raises:
            DeliveryError: If the message fails to send
        """
        ...
