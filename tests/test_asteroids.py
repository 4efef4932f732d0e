"""Tests for the collision event wire format and notification records."""

import json
from datetime import date
from decimal import Decimal

import pytest

from neowatch.asteroids import CollisionEvent, NotificationRecord
from neowatch.errors import DataQualityError


def _event_dict(**overrides: object) -> dict:
    data = {
        "asteroidName": "99942 Apophis",
        "closeApproachDate": "2029-04-13",
        "missDistanceKilometers": "38000.123",
        "estimatedDiameterAvgMeters": 325.0,
    }
    data.update(overrides)
    return data


def test_event_wire_keys() -> None:
    event = CollisionEvent("99942 Apophis", "2029-04-13", "38000.123", 325.0)

    assert json.loads(event.to_json()) == _event_dict()


def test_from_json_parses_payload() -> None:
    event = CollisionEvent.from_json(json.dumps(_event_dict()))

    assert event.asteroid_name == "99942 Apophis"
    assert event.miss_distance_kilometers == "38000.123"
    assert event.estimated_diameter_avg_meters == 325.0


def test_from_dict_accepts_numeric_miss_distance() -> None:
    event = CollisionEvent.from_dict(_event_dict(missDistanceKilometers=1200))

    assert event.miss_distance_kilometers == "1200"


@pytest.mark.parametrize(
    "payload, match",
    [
        ("not json", "not valid JSON"),
        (json.dumps({"asteroidName": "X"}), "missing field"),
        (json.dumps(_event_dict(asteroidName="")), "no asteroid name"),
        (json.dumps(_event_dict(closeApproachDate="13/04/2029")), "close approach date"),
        (json.dumps(_event_dict(missDistanceKilometers="far")), "miss distance"),
        (json.dumps(_event_dict(missDistanceKilometers="NaN")), "miss distance"),
        (json.dumps(_event_dict(estimatedDiameterAvgMeters="big")), "diameter"),
        (json.dumps(_event_dict(estimatedDiameterAvgMeters=float("nan"))), "diameter"),
        (json.dumps(_event_dict(estimatedDiameterAvgMeters=float("inf"))), "diameter"),
        (json.dumps(_event_dict(estimatedDiameterAvgMeters=True)), "diameter"),
    ],
)
def test_malformed_events_raise_data_quality_error(payload: str, match: str) -> None:
    with pytest.raises(DataQualityError, match=match):
        CollisionEvent.from_json(payload)


def test_notification_from_event_is_pending() -> None:
    event = CollisionEvent("99942 Apophis", "2029-04-13", "38000.123", 325.0)

    record = NotificationRecord.from_event(event)

    assert record.id is None
    assert record.email_sent is False
    assert record.close_approach_date == date(2029, 4, 13)
    assert record.miss_distance_kilometers == Decimal("38000.123")
    assert record.dedupe_key == ("99942 Apophis", date(2029, 4, 13))
