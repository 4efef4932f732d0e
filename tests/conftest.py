"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

from neowatch.asteroids import NotificationRecord
from neowatch.config import Settings
from neowatch.database import NotificationStore
from tests.notifier_stubs import RecordingNotifier
from tests.redis_stubs import StubStreamsClient


def make_neo(
    name: str,
    hazardous: bool = True,
    approach_date: str = "2029-04-13",
    miss_km: str = "38000.123",
    min_m: float = 310.0,
    max_m: float = 340.0,
    approaches: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Build one near-earth object in NeoWs feed format."""
    if approaches is None:
        approaches = [
            {
                "close_approach_date": approach_date,
                "miss_distance": {"kilometers": miss_km, "lunar": "98.8"},
                "orbiting_body": "Earth",
            }
        ]
    return {
        "id": f"neo-{name}",
        "name": name,
        "is_potentially_hazardous_asteroid": hazardous,
        "estimated_diameter": {
            "meters": {
                "estimated_diameter_min": min_m,
                "estimated_diameter_max": max_m,
            },
            "kilometers": {
                "estimated_diameter_min": min_m / 1000,
                "estimated_diameter_max": max_m / 1000,
            },
        },
        "close_approach_data": approaches,
    }


def make_feed(by_date: Dict[str, List[Dict[str, Any]]]) -> Dict[str, Any]:
    """Wrap objects keyed by date into a feed payload."""
    return {
        "links": {"self": "https://api.nasa.gov/neo/rest/v1/feed"},
        "element_count": sum(len(objects) for objects in by_date.values()),
        "near_earth_objects": by_date,
    }


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        nasa_api_key="TEST_KEY",
        redis_url="redis://localhost:6379/15",
        smtp_host="smtp.example.com",
        email_from_address="alerts@example.com",
    )


@pytest.fixture
def store(tmp_path: Path) -> NotificationStore:
    """Temporary SQLite notification store with schema created."""
    notification_store = NotificationStore(str(tmp_path / "neowatch-test.db"))
    notification_store.ensure_schema()
    return notification_store


@pytest.fixture
def streams() -> StubStreamsClient:
    return StubStreamsClient()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def neo() -> Callable[..., Dict[str, Any]]:
    return make_neo


@pytest.fixture
def feed() -> Callable[..., Dict[str, Any]]:
    return make_feed


@pytest.fixture
def apophis_record() -> NotificationRecord:
    return NotificationRecord(
        asteroid_name="99942 Apophis",
        close_approach_date=date(2029, 4, 13),
        miss_distance_kilometers=Decimal("38000.123"),
        estimated_diameter_avg_meters=325.0,
    )
