"""Event consumer: records collision events as pending notifications."""

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

import redis

from .asteroids import CollisionEvent, NotificationRecord
from .database import NotificationStore
from .errors import DataQualityError, PersistenceError, TransientExternalError
from .publisher import PAYLOAD_FIELD

logger = logging.getLogger(__name__)

Message = Tuple[str, Optional[Dict[str, str]]]


def _text(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


class EventConsumer:
    """Reads the alerts stream as part of a consumer group.

    Each message is acknowledged only after its notification row is
    committed. Messages whose persistence failed stay pending in the group
    and are reclaimed once they have been idle for reclaim_idle_ms.
    """

    def __init__(
        self,
        client: Any,
        store: NotificationStore,
        topic: str,
        group: str,
        consumer_name: str,
        dead_letter_topic: Optional[str] = None,
        batch_size: int = 10,
        block_ms: int = 2000,
        reclaim_idle_ms: int = 60000,
    ):
        self.client = client
        self.store = store
        self.topic = topic
        self.group = group
        self.consumer_name = consumer_name
        self.dead_letter_topic = dead_letter_topic or f"{topic}.dlq"
        self.batch_size = batch_size
        self.block_ms = block_ms
        self.reclaim_idle_ms = reclaim_idle_ms
        self._stop = threading.Event()

    def ensure_group(self) -> None:
        """Create the consumer group (and the stream) if missing."""
        try:
            self.client.xgroup_create(self.topic, self.group, id="0", mkstream=True)
            logger.info(f"Created consumer group {self.group} on {self.topic}")
        except redis.exceptions.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise TransientExternalError(
                    f"Failed to create consumer group {self.group}: {e}"
                ) from e
        except redis.exceptions.RedisError as e:
            raise TransientExternalError(
                f"Failed to create consumer group {self.group}: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------

    def handle_message(self, message_id: str, fields: Optional[Dict[Any, Any]]) -> bool:
        """Persist one message and acknowledge it.

        Returns:
            True if the message was acknowledged, False if it stays pending
        """
        if fields is None:
            # Entry was trimmed from the stream while pending
            logger.warning(f"Message {message_id} no longer exists; acknowledging")
            self._ack(message_id)
            return True

        decoded = {_text(k): _text(v) for k, v in fields.items()}
        try:
            event = CollisionEvent.from_json(decoded.get(PAYLOAD_FIELD, ""))
            record = NotificationRecord.from_event(event)
        except DataQualityError as e:
            logger.error(f"Dropping malformed message {message_id} to dead letters: {e}")
            self._dead_letter(message_id, decoded, str(e))
            self._ack(message_id)
            return True

        logger.info(f"Received Asteroid Collision Event {event}")

        try:
            saved, created = self.store.save_notification(record)
        except PersistenceError as e:
            logger.error(
                f"Could not persist message {message_id}; leaving it pending: {e}"
            )
            return False

        if created:
            logger.info(f"Saved Notification {saved.id} for {saved.asteroid_name}")
        self._ack(message_id)
        return True

    def _ack(self, message_id: str) -> None:
        try:
            self.client.xack(self.topic, self.group, message_id)
        except redis.exceptions.RedisError as e:
            # The message will be redelivered; a duplicate row is tolerated
            raise TransientExternalError(f"Failed to ack {message_id}: {e}") from e

    def _dead_letter(self, message_id: str, fields: Dict[str, str], reason: str) -> None:
        entry = dict(fields)
        entry.update({"source_id": message_id, "error": reason})
        try:
            self.client.xadd(self.dead_letter_topic, entry)
        except redis.exceptions.RedisError as e:
            raise TransientExternalError(
                f"Failed to dead-letter {message_id}: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def read_new(self) -> List[Message]:
        """Read messages never delivered to this group."""
        try:
            response = self.client.xreadgroup(
                self.group,
                self.consumer_name,
                {self.topic: ">"},
                count=self.batch_size,
                block=self.block_ms,
            )
        except redis.exceptions.RedisError as e:
            raise TransientExternalError(f"Failed to read {self.topic}: {e}") from e

        messages: List[Message] = []
        for _stream, entries in response or []:
            messages.extend((_text(mid), fields) for mid, fields in entries)
        return messages

    def reclaim_stale(self) -> List[Message]:
        """Take over messages left pending longer than reclaim_idle_ms."""
        try:
            response = self.client.xautoclaim(
                self.topic,
                self.group,
                self.consumer_name,
                min_idle_time=self.reclaim_idle_ms,
                start_id="0-0",
                count=self.batch_size,
            )
        except redis.exceptions.RedisError as e:
            raise TransientExternalError(
                f"Failed to reclaim pending messages on {self.topic}: {e}"
            ) from e

        entries = response[1] if response and len(response) > 1 else []
        return [(_text(mid), fields) for mid, fields in entries]

    def poll_once(self) -> Dict[str, int]:
        """Handle one batch of reclaimed and new messages."""
        stats = {"received": 0, "acked": 0, "pending": 0}
        for message_id, fields in self.reclaim_stale() + self.read_new():
            stats["received"] += 1
            if self.handle_message(message_id, fields):
                stats["acked"] += 1
            else:
                stats["pending"] += 1
        return stats

    def run_forever(self) -> None:
        """Consume until stop() is called."""
        self.ensure_group()
        logger.info(
            f"Consumer {self.consumer_name} listening on {self.topic} "
            f"(group {self.group})"
        )
        while not self._stop.is_set():
            try:
                self.poll_once()
            except TransientExternalError as e:
                logger.error(f"Broker error, retrying shortly: {e}")
                self._stop.wait(1.0)
            except Exception as e:
                logger.exception(f"Consumer poll crashed: {e}")
                self._stop.wait(1.0)
        logger.info(f"Consumer {self.consumer_name} stopped")

    def stop(self) -> None:
        self._stop.set()
