"""Publishes collision events to the alerts stream."""

import logging
from typing import Any, Optional

import redis

from .asteroids import CollisionEvent
from .errors import TransientExternalError

logger = logging.getLogger(__name__)

PAYLOAD_FIELD = "payload"


class EventPublisher:
    """Appends collision events to a Redis stream.

    XADD returns only after the broker has stored the entry, so the returned
    message id is the broker acknowledgement.
    """

    def __init__(self, client: Any, topic: str, maxlen: Optional[int] = None):
        self.client = client
        self.topic = topic
        self.maxlen = maxlen

    def publish(self, event: CollisionEvent) -> str:
        """Publish one event.

        Returns:
            Broker-assigned message id

        Raises:
            TransientExternalError: If the broker did not acknowledge the write
        """
        try:
            message_id = self.client.xadd(
                self.topic,
                {PAYLOAD_FIELD: event.to_json()},
                maxlen=self.maxlen,
                approximate=True,
            )
        except redis.exceptions.RedisError as e:
            raise TransientExternalError(
                f"Failed to publish {event.asteroid_name} to {self.topic}: {e}"
            ) from e

        if isinstance(message_id, bytes):
            message_id = message_id.decode()

        logger.info(
            f"Sent alert for asteroid: {event.asteroid_name} | "
            f"Close Approach Date: {event.close_approach_date} | "
            f"Miss Distance: {event.miss_distance_kilometers} km | "
            f"Estimated Diameter Avg: {event.estimated_diameter_avg_meters} meters"
        )
        return message_id
