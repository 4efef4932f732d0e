"""PostgreSQL notification store for production deployments."""

import logging
import os
from typing import Any, Optional

import psycopg2
import psycopg2.extras

from .asteroids import NotificationRecord
from .database import NotificationStore
from .errors import PersistenceError

logger = logging.getLogger(__name__)


class PostgresNotificationStore(NotificationStore):
    """PostgreSQL-specific notification store."""

    driver_errors = (psycopg2.Error,)

    def __init__(self, database_url: str, dedupe: bool = True):
        """Initialize PostgreSQL store.

        Args:
            database_url: PostgreSQL connection URL
            dedupe: Reuse rows for an already stored (asteroid, date) pair
        """
        self.database_url = database_url
        self.dedupe = dedupe

    def get_connection(self) -> Any:
        """Get PostgreSQL connection with proper settings."""
        try:
            conn = psycopg2.connect(
                self.database_url,
                cursor_factory=psycopg2.extras.RealDictCursor,
                connect_timeout=10,
            )
            conn.autocommit = False
            return conn
        except psycopg2.Error as e:
            logger.error(f"Failed to connect to PostgreSQL: {e}")
            raise PersistenceError(f"Failed to connect to PostgreSQL: {e}") from e

    def _sql(self, query: str) -> str:
        return query.replace("?", "%s")

    def ensure_schema(self) -> None:
        """Ensure notification and recipient tables exist."""
        with self.transaction() as conn:
            with conn.cursor() as cursor:
                cursor.execute(
                    """
                CREATE TABLE IF NOT EXISTS notifications (
                    id SERIAL PRIMARY KEY,
                    asteroid_name TEXT NOT NULL,
                    close_approach_date DATE NOT NULL,
                    miss_distance_kilometers NUMERIC NOT NULL,
                    estimated_diameter_avg_meters DOUBLE PRECISION NOT NULL,
                    email_sent BOOLEAN NOT NULL DEFAULT FALSE,
                    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                    sent_at TIMESTAMPTZ
                );

                CREATE TABLE IF NOT EXISTS recipients (
                    id SERIAL PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    notifications_enabled BOOLEAN NOT NULL DEFAULT TRUE
                );

                CREATE INDEX IF NOT EXISTS idx_notifications_unsent ON notifications(email_sent);
                CREATE INDEX IF NOT EXISTS idx_notifications_asteroid_date
                    ON notifications(asteroid_name, close_approach_date);
                """
                )

            logger.info("PostgreSQL notification schema ensured")

    def _lock_dedupe_key(self, cursor: Any, record: NotificationRecord) -> None:
        # Serialises inserts for the same pair until this transaction ends.
        asteroid_name, approach_date = record.dedupe_key
        cursor.execute(
            "SELECT pg_advisory_xact_lock(hashtext(%s))",
            (f"{asteroid_name}|{approach_date.isoformat()}",),
        )

    def _insert_notification(self, cursor: Any, params: tuple) -> int:
        cursor.execute(
            """
            INSERT INTO notifications
            (asteroid_name, close_approach_date, miss_distance_kilometers,
             estimated_diameter_avg_meters, email_sent)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id
        """,
            params,
        )
        return cursor.fetchone()["id"]


def create_notification_store(
    database_url: Optional[str] = None,
    database_file: Optional[str] = None,
    dedupe: bool = True,
) -> NotificationStore:
    """Factory function to create the appropriate notification store."""

    # Use DATABASE_URL if provided (Railway/Heroku style)
    if not database_url:
        database_url = os.getenv("DATABASE_URL")

    if database_url and database_url.startswith("postgres"):
        logger.info("Using PostgreSQL notification store")
        return PostgresNotificationStore(database_url, dedupe=dedupe)

    # Fall back to SQLite
    database_file = database_file or os.getenv("DATABASE_FILE", "neowatch.db")
    logger.info(f"Using SQLite notification store: {database_file}")
    return NotificationStore(database_file, dedupe=dedupe)
