"""Tests for the collision event publisher."""

import json
from unittest.mock import Mock

import pytest
import redis

from neowatch.asteroids import CollisionEvent
from neowatch.errors import TransientExternalError
from neowatch.publisher import PAYLOAD_FIELD, EventPublisher
from tests.redis_stubs import StubStreamsClient

EVENT = CollisionEvent("99942 Apophis", "2029-04-13", "38000.123", 325.0)


def test_publish_appends_payload(streams: StubStreamsClient) -> None:
    publisher = EventPublisher(streams, topic="asteroid-alerts")

    message_id = publisher.publish(EVENT)

    assert message_id == "1-0"
    [(stored_id, fields)] = streams.streams["asteroid-alerts"]
    assert stored_id == message_id
    assert json.loads(fields[PAYLOAD_FIELD])["asteroidName"] == "99942 Apophis"


def test_publish_passes_maxlen() -> None:
    client = Mock()
    client.xadd.return_value = b"1700000000000-0"
    publisher = EventPublisher(client, topic="asteroid-alerts", maxlen=1000)

    assert publisher.publish(EVENT) == "1700000000000-0"
    client.xadd.assert_called_once_with(
        "asteroid-alerts",
        {PAYLOAD_FIELD: EVENT.to_json()},
        maxlen=1000,
        approximate=True,
    )


def test_broker_error_is_transient() -> None:
    client = Mock()
    client.xadd.side_effect = redis.exceptions.TimeoutError("timed out")
    publisher = EventPublisher(client, topic="asteroid-alerts")

    with pytest.raises(TransientExternalError, match="99942 Apophis"):
        publisher.publish(EVENT)
