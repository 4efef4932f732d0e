"""NASA NeoWs feed client."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

import requests
from pydantic import BaseModel, Field, ValidationError, field_validator

from .asteroids import AsteroidRecord, CloseApproach, EstimatedDiameter
from .errors import DataQualityError, TransientExternalError

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Feed payload schema
# -----------------------------------------------------------------------------


class _MissDistance(BaseModel):
    kilometers: str

    @field_validator("kilometers")
    @classmethod
    def _must_be_decimal(cls, value: str) -> str:
        try:
            if not Decimal(value).is_finite():
                raise ValueError(f"non-finite miss distance {value!r}")
        except InvalidOperation as e:
            raise ValueError(f"invalid miss distance {value!r}") from e
        return value


class _CloseApproachData(BaseModel):
    close_approach_date: date
    miss_distance: _MissDistance


class _DiameterRange(BaseModel):
    estimated_diameter_min: float = Field(allow_inf_nan=False)
    estimated_diameter_max: float = Field(allow_inf_nan=False)


class _EstimatedDiameter(BaseModel):
    meters: _DiameterRange


class _NearEarthObject(BaseModel):
    id: Optional[str] = None
    name: str
    is_potentially_hazardous_asteroid: bool
    estimated_diameter: _EstimatedDiameter
    close_approach_data: List[_CloseApproachData] = Field(default_factory=list)

    def to_record(self) -> AsteroidRecord:
        meters = self.estimated_diameter.meters
        return AsteroidRecord(
            neo_id=self.id,
            name=self.name,
            potentially_hazardous=self.is_potentially_hazardous_asteroid,
            estimated_diameter=EstimatedDiameter(
                min_meters=meters.estimated_diameter_min,
                max_meters=meters.estimated_diameter_max,
            ),
            close_approaches=[
                CloseApproach(
                    approach_date=entry.close_approach_date,
                    miss_distance_km=entry.miss_distance.kilometers,
                )
                for entry in self.close_approach_data
            ],
        )


class _FeedResponse(BaseModel):
    element_count: Optional[int] = None
    near_earth_objects: Dict[date, List[_NearEarthObject]]


# -----------------------------------------------------------------------------
# Client
# -----------------------------------------------------------------------------


class NeoFeedClient:
    """Queries the NeoWs feed endpoint for a date window."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.nasa.gov/neo/rest/v1",
        timeout: Tuple[float, float] = (3.0, 30.0),
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {"User-Agent": "NeoWatch/1.0", "Accept": "application/json"}
        )

    def get_neo_asteroids(
        self, start_date: date, end_date: date
    ) -> List[AsteroidRecord]:
        """Return every asteroid with a close approach in [start_date, end_date].

        Raises:
            TransientExternalError: Network failure, timeout or error status
            DataQualityError: The payload does not match the feed schema
        """
        params = {
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "api_key": self.api_key,
        }
        url = f"{self.base_url}/feed"
        logger.debug(f"Requesting NeoWs feed {start_date} to {end_date}")

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            logger.error(f"NeoWs feed returned HTTP {status}")
            raise TransientExternalError(f"NeoWs feed returned HTTP {status}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"NeoWs feed request failed: {e}")
            raise TransientExternalError(f"NeoWs feed request failed: {e}") from e

        try:
            payload: Any = response.json()
        except ValueError as e:
            raise DataQualityError(f"NeoWs feed returned invalid JSON: {e}") from e

        return self.parse_feed(payload)

    @staticmethod
    def parse_feed(payload: Any) -> List[AsteroidRecord]:
        """Flatten the date-keyed feed payload into records, in date order."""
        try:
            feed = _FeedResponse.model_validate(payload)
        except ValidationError as e:
            raise DataQualityError(
                f"NeoWs feed payload failed validation: {e.error_count()} error(s): "
                f"{e.errors()[0]['loc']}"
            ) from e

        records = [
            neo.to_record()
            for day in sorted(feed.near_earth_objects)
            for neo in feed.near_earth_objects[day]
        ]
        if feed.element_count is not None and feed.element_count != len(records):
            raise DataQualityError(
                f"NeoWs feed reported {feed.element_count} objects "
                f"but contained {len(records)}"
            )
        return records
