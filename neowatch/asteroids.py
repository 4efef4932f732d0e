"""
NeoWatch asteroid data model

Read-only records coming from the NeoWs feed, the CollisionEvent that travels
over the alerts stream, and the NotificationRecord persisted by the consumer.
"""

import json
import math
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from .errors import DataQualityError


@dataclass(frozen=True)
class CloseApproach:
    """One predicted date/distance pairing for a close pass."""

    approach_date: date
    miss_distance_km: str  # exact text from the feed


@dataclass(frozen=True)
class EstimatedDiameter:
    min_meters: float
    max_meters: float

    @property
    def average_meters(self) -> float:
        return (self.min_meters + self.max_meters) / 2


@dataclass(frozen=True)
class AsteroidRecord:
    """Near-earth object as reported by the upstream feed."""

    name: str
    potentially_hazardous: bool
    estimated_diameter: EstimatedDiameter
    close_approaches: List[CloseApproach] = field(default_factory=list)
    neo_id: Optional[str] = None

    @property
    def first_close_approach(self) -> Optional[CloseApproach]:
        return self.close_approaches[0] if self.close_approaches else None


@dataclass(frozen=True)
class CollisionEvent:
    """Collision-risk alert for one hazardous asteroid.

    The miss distance stays a string end to end so the decimal value the
    feed reported reaches the store without float rounding.
    """

    asteroid_name: str
    close_approach_date: str
    miss_distance_kilometers: str
    estimated_diameter_avg_meters: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to its wire representation."""
        return {
            "asteroidName": self.asteroid_name,
            "closeApproachDate": self.close_approach_date,
            "missDistanceKilometers": self.miss_distance_kilometers,
            "estimatedDiameterAvgMeters": self.estimated_diameter_avg_meters,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollisionEvent":
        """Create event from its wire representation.

        Raises:
            DataQualityError: If a field is missing or cannot be parsed
        """
        try:
            name = data["asteroidName"]
            approach_date = data["closeApproachDate"]
            miss_distance = data["missDistanceKilometers"]
            diameter = data["estimatedDiameterAvgMeters"]
        except (KeyError, TypeError) as e:
            raise DataQualityError(f"Collision event missing field: {e}") from e

        if not isinstance(name, str) or not name:
            raise DataQualityError("Collision event has no asteroid name")

        try:
            date.fromisoformat(approach_date)
        except (TypeError, ValueError) as e:
            raise DataQualityError(
                f"Invalid close approach date {approach_date!r}"
            ) from e

        miss_distance = str(miss_distance)
        _parse_decimal(miss_distance)

        if isinstance(diameter, bool):
            raise DataQualityError(f"Invalid diameter {diameter!r}")
        try:
            diameter_avg = float(diameter)
        except (TypeError, ValueError) as e:
            raise DataQualityError(f"Invalid diameter {diameter!r}") from e
        if not math.isfinite(diameter_avg):
            raise DataQualityError(f"Invalid diameter {diameter!r}")

        return cls(
            asteroid_name=name,
            close_approach_date=approach_date,
            miss_distance_kilometers=miss_distance,
            estimated_diameter_avg_meters=diameter_avg,
        )

    @classmethod
    def from_json(cls, payload: str) -> "CollisionEvent":
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise DataQualityError(f"Collision event is not valid JSON: {e}") from e
        return cls.from_dict(data)


@dataclass
class NotificationRecord:
    """Pending (or sent) email notification for one collision event."""

    asteroid_name: str
    close_approach_date: date
    miss_distance_kilometers: Decimal
    estimated_diameter_avg_meters: float
    email_sent: bool = False
    id: Optional[int] = None

    @classmethod
    def from_event(cls, event: CollisionEvent) -> "NotificationRecord":
        return cls(
            asteroid_name=event.asteroid_name,
            close_approach_date=date.fromisoformat(event.close_approach_date),
            miss_distance_kilometers=_parse_decimal(event.miss_distance_kilometers),
            estimated_diameter_avg_meters=event.estimated_diameter_avg_meters,
            email_sent=False,
        )

    @property
    def dedupe_key(self) -> tuple[str, date]:
        return (self.asteroid_name, self.close_approach_date)


def _parse_decimal(value: str) -> Decimal:
    try:
        parsed = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise DataQualityError(f"Invalid miss distance {value!r}") from e
    if not parsed.is_finite():
        raise DataQualityError(f"Invalid miss distance {value!r}")
    return parsed
