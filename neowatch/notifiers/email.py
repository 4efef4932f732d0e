"""Email notifier implementation using SMTP."""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from .base import DeliveryError

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Sends alert emails via SMTP, one message per recipient."""

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        subject_prefix: str = "NeoWatch",
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.use_tls = use_tls
        self.subject_prefix = subject_prefix or "NeoWatch"
        self.timeout = timeout

    def send(
        self, to: str, subject: str, text: str, html: Optional[str] = None
    ) -> None:
        """Send a plain-text email (with optional HTML alternative).

        Args:
            to: Recipient address.
            subject: Subject line; the prefix is applied automatically.
            text: Message body (plain text).
            html: Optional HTML body for multipart/alternative delivery.

        Raises:
            DeliveryError: If sending fails.
        """
        if not to:
            raise DeliveryError("Email delivery failed: no recipient address")

        message = EmailMessage()
        message["Subject"] = f"{self.subject_prefix} | {subject}"
        message["From"] = self.from_address
        message["To"] = to
        message.set_content(text or "")

        if html:
            message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()

                if self.username and self.password:
                    server.login(self.username, self.password)

                server.send_message(message)

        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"Email delivery to {to} failed: {exc}") from exc

        logger.debug(f"Sent email to {to}: {subject}")
