"""Email delivery for NeoWatch alerts."""

from .base import DeliveryError, Notifier
from .console import ConsoleNotifier
from .email import EmailNotifier

__all__ = ["DeliveryError", "Notifier", "ConsoleNotifier", "EmailNotifier"]
