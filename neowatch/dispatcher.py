"""Notification dispatcher: periodically emails pending notifications."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .database import NotificationStore
from .errors import NeoWatchError, PersistenceError
from .formatting import format_alert_subject, format_alert_text, plain_text_to_html
from .notifiers import Notifier

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Counts for one dispatcher tick."""

    pending: int = 0
    recipients: int = 0
    attempted: int = 0
    sent: int = 0
    failed: int = 0
    marked_sent: List[int] = field(default_factory=list)
    interrupted: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pending": self.pending,
            "recipients": self.recipients,
            "attempted": self.attempted,
            "sent": self.sent,
            "failed": self.failed,
            "marked_sent": self.marked_sent,
            "interrupted": self.interrupted,
            "error": self.error,
        }


class NotificationDispatcher:
    """Drains unsent notifications on a fixed cadence.

    A notification is marked sent only after every enabled recipient's email
    went out. Anything short of that leaves it pending for the next tick, so
    delivery is at-least-once and a recipient may get the same alert twice.
    """

    def __init__(
        self,
        store: NotificationStore,
        notifier: Notifier,
        interval_seconds: float = 10.0,
    ):
        self.store = store
        self.notifier = notifier
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # One tick
    # ------------------------------------------------------------------

    def tick(self) -> DispatchResult:
        """Send every pending notification to every enabled recipient."""
        result = DispatchResult()
        logger.info("Sending email")

        try:
            pending = self.store.get_unsent_notifications()
            recipients = self.store.get_notification_enabled_emails()
        except PersistenceError as e:
            logger.error(f"Dispatcher tick aborted, could not load batch: {e}")
            result.error = str(e)
            return result

        result.pending = len(pending)
        result.recipients = len(recipients)

        if not pending:
            logger.debug("No pending notifications")
            return result
        if not recipients:
            logger.warning(
                f"{len(pending)} pending notification(s) but no recipients "
                "have notifications enabled"
            )
            return result

        for record in pending:
            if self._stop.is_set():
                logger.info("Dispatcher stopping, leaving remaining notifications pending")
                result.interrupted = True
                break

            subject = format_alert_subject(record)
            text = format_alert_text(record)
            html_body = plain_text_to_html(text)

            delivered = 0
            for email in recipients:
                result.attempted += 1
                try:
                    self.notifier.send(email, subject, text, html=html_body)
                except Exception as e:
                    result.failed += 1
                    logger.error(
                        f"Failed to email {email} about {record.asteroid_name} "
                        f"(notification {record.id}): {e}"
                    )
                    continue
                result.sent += 1
                delivered += 1

            if delivered < len(recipients):
                continue

            try:
                self.store.mark_email_sent(record.id)
            except NeoWatchError as e:
                logger.error(
                    f"Sent notification {record.id} but could not mark it sent; "
                    f"it will be resent next tick: {e}"
                )
                continue
            result.marked_sent.append(record.id)

        logger.info(
            f"Dispatch tick: {result.sent}/{result.attempted} emails sent, "
            f"{len(result.marked_sent)}/{result.pending} notifications completed"
        )
        return result

    # ------------------------------------------------------------------
    # Ticker
    # ------------------------------------------------------------------

    def run_forever(self) -> None:
        """Tick at a fixed rate until stop() is called."""
        logger.info(
            f"Notification dispatcher started (every {self.interval_seconds}s)"
        )
        next_run = time.monotonic()
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception as e:
                logger.exception(f"Dispatcher tick crashed: {e}")

            next_run += self.interval_seconds
            delay = max(0.0, next_run - time.monotonic())
            if delay == 0.0:
                # Fell behind; restart the schedule from now
                next_run = time.monotonic()
            self._stop.wait(delay)
        logger.info("Notification dispatcher stopped")

    def start(self) -> threading.Thread:
        """Run the ticker in a background thread."""
        if self._thread and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="notification-dispatcher", daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the ticker to stop and wait for the current tick to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
