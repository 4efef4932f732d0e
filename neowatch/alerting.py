"""Alert orchestration: fetch, classify and publish one window of asteroids."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .classifier import classify
from .errors import NeoWatchError

logger = logging.getLogger(__name__)


class AlertRunState(Enum):
    """Lifecycle of a single alert run."""

    FETCHING = "fetching"
    CLASSIFYING = "classifying"
    PUBLISHING = "publishing"
    DONE = "done"
    PARTIAL = "partial"  # some publishes failed
    FAILED = "failed"  # fetch failed, nothing published


@dataclass
class AlertRunResult:
    run_id: str
    start_date: date
    end_date: date
    state: AlertRunState = AlertRunState.FETCHING
    fetched: int = 0
    hazardous: int = 0
    published: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.state == AlertRunState.DONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "fetched": self.fetched,
            "hazardous": self.hazardous,
            "published": self.published,
            "failed": self.failed,
            "errors": self.errors,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class AlertOrchestrator:
    """Runs the feed → classifier → publisher pipeline once per call."""

    def __init__(
        self,
        feed_client: Any,
        publisher: Any,
        lookahead_days: int = 7,
        today: Callable[[], date] = date.today,
    ):
        self.feed_client = feed_client
        self.publisher = publisher
        self.lookahead_days = lookahead_days
        self.today = today

    def run(self, start_date: Optional[date] = None) -> AlertRunResult:
        """Fetch the window starting at start_date (default today) and alert.

        Never raises for feed or broker failures; the outcome is reported in
        the returned result's state.
        """
        start = start_date or self.today()
        end = start + timedelta(days=self.lookahead_days)
        result = AlertRunResult(run_id=str(uuid.uuid4()), start_date=start, end_date=end)

        logger.info(f"Alerting run {result.run_id} started")
        logger.info(f"Getting asteroid list for dates: {start} to {end}")

        try:
            asteroids = self.feed_client.get_neo_asteroids(start, end)
        except NeoWatchError as e:
            logger.error(f"Alerting run {result.run_id} failed while fetching: {e}")
            result.errors.append(str(e))
            return self._finish(result, AlertRunState.FAILED)

        result.fetched = len(asteroids)
        logger.info(f"Retrieved Asteroid list of size: {result.fetched}")

        result.state = AlertRunState.CLASSIFYING
        events = classify(asteroids)
        result.hazardous = len(events)
        logger.info(f"Found {result.hazardous} hazardous asteroids")

        result.state = AlertRunState.PUBLISHING
        logger.info(f"Sending {len(events)} asteroid alerts")
        for event in events:
            try:
                self.publisher.publish(event)
                result.published += 1
            except NeoWatchError as e:
                result.failed += 1
                result.errors.append(str(e))
                logger.error(f"Failed to publish alert for {event.asteroid_name}: {e}")

        final_state = AlertRunState.PARTIAL if result.failed else AlertRunState.DONE
        return self._finish(result, final_state)

    def _finish(self, result: AlertRunResult, state: AlertRunState) -> AlertRunResult:
        result.state = state
        result.finished_at = datetime.now(timezone.utc)
        logger.info(
            f"Alerting run {result.run_id} finished: {state.value} "
            f"({result.published} published, {result.failed} failed)"
        )
        return result
