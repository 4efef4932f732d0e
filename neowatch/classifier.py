"""Classify NeoWs records into collision events."""

import logging
from typing import Iterable, List

from .asteroids import AsteroidRecord, CollisionEvent

logger = logging.getLogger(__name__)


def filter_hazardous(records: Iterable[AsteroidRecord]) -> List[AsteroidRecord]:
    """Return records flagged potentially hazardous, in input order."""
    return [record for record in records if record.potentially_hazardous]


def to_collision_event(record: AsteroidRecord) -> CollisionEvent:
    """Build the event for a hazardous record from its first close approach.

    Only the soonest approach is alerted on, even when the feed lists more.
    Raises ValueError for a record with no close approach.
    """
    approach = record.first_close_approach
    if approach is None:
        raise ValueError(f"{record.name} has no close approach data")
    return CollisionEvent(
        asteroid_name=record.name,
        close_approach_date=approach.approach_date.isoformat(),
        miss_distance_kilometers=approach.miss_distance_km,
        estimated_diameter_avg_meters=record.estimated_diameter.average_meters,
    )


def classify(records: Iterable[AsteroidRecord]) -> List[CollisionEvent]:
    """Map hazardous records to collision events.

    Hazardous records without any close-approach entry are skipped.
    """
    events = []
    for record in filter_hazardous(records):
        if record.first_close_approach is None:
            logger.warning(
                f"Skipping hazardous asteroid {record.name}: no close approach data"
            )
            continue
        events.append(to_collision_event(record))
    return events
