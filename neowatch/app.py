"""Builds the NeoWatch object graph once per process."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import redis

from .alerting import AlertOrchestrator
from .config import Settings
from .consumer import EventConsumer
from .database import NotificationStore
from .database_postgres import create_notification_store
from .dispatcher import NotificationDispatcher
from .nasa_client import NeoFeedClient
from .notifiers import ConsoleNotifier, EmailNotifier
from .publisher import EventPublisher

logger = logging.getLogger(__name__)


def create_redis_client(config: Settings) -> Any:
    """Redis client with bounded socket timeouts."""
    return redis.Redis.from_url(
        config.redis_url,
        decode_responses=True,
        socket_timeout=config.broker_timeout_seconds,
        socket_connect_timeout=config.broker_timeout_seconds,
    )


def create_notifier(config: Settings) -> Any:
    """Create the email notifier, or a console one for dry runs."""
    if config.dry_run:
        return ConsoleNotifier()

    config.validate_email_config()
    return EmailNotifier(
        host=config.smtp_host or "",
        port=int(config.smtp_port),
        from_address=config.email_from_address or "",
        username=config.smtp_username,
        password=config.smtp_password,
        use_tls=config.smtp_use_tls,
        subject_prefix=config.email_subject_prefix,
        timeout=config.smtp_timeout_seconds,
    )


@dataclass
class Application:
    """Components wired from one Settings instance.

    Collaborators are built lazily so a process only opens the connections
    its role needs.
    """

    settings: Settings
    redis_client: Any = None
    store: Optional[NotificationStore] = None
    notifier: Any = None

    def _redis(self) -> Any:
        if self.redis_client is None:
            self.redis_client = create_redis_client(self.settings)
        return self.redis_client

    def notification_store(self) -> NotificationStore:
        if self.store is None:
            self.store = create_notification_store(
                self.settings.database_url,
                database_file=self.settings.database_file,
                dedupe=self.settings.dedupe_notifications,
            )
            self.store.ensure_schema()
        return self.store

    def orchestrator(self) -> AlertOrchestrator:
        feed_client = NeoFeedClient(
            api_key=self.settings.nasa_api_key,
            base_url=self.settings.nasa_base_url,
            timeout=self.settings.http_timeout,
        )
        publisher = EventPublisher(
            self._redis(),
            topic=self.settings.alerts_topic,
            maxlen=self.settings.stream_maxlen,
        )
        return AlertOrchestrator(
            feed_client, publisher, lookahead_days=self.settings.lookahead_days
        )

    def consumer(self) -> EventConsumer:
        return EventConsumer(
            self._redis(),
            self.notification_store(),
            topic=self.settings.alerts_topic,
            group=self.settings.consumer_group,
            consumer_name=self.settings.consumer_name,
            dead_letter_topic=self.settings.dead_letter_topic,
            batch_size=self.settings.consumer_batch_size,
            block_ms=self.settings.consumer_block_ms,
            reclaim_idle_ms=self.settings.reclaim_idle_ms,
        )

    def dispatcher(self) -> NotificationDispatcher:
        if self.notifier is None:
            self.notifier = create_notifier(self.settings)
        return NotificationDispatcher(
            self.notification_store(),
            self.notifier,
            interval_seconds=self.settings.dispatch_interval_seconds,
        )

    def close(self) -> None:
        """Release broker connections."""
        if self.redis_client is not None:
            try:
                self.redis_client.close()
            except redis.exceptions.RedisError as e:
                logger.warning(f"Error closing Redis client: {e}")
            self.redis_client = None


def build_application(config: Settings) -> Application:
    return Application(settings=config)
