"""Notification store schema and management for NeoWatch."""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .asteroids import NotificationRecord
from .errors import PersistenceError

logger = logging.getLogger(__name__)


class NotificationStore:
    """SQLite-backed store for notifications and recipients.

    The consumer is the only writer of new notification rows; the dispatcher
    is the only writer of the email_sent flag. Recipients are managed by an
    external user system and only read here.
    """

    driver_errors: Tuple[type, ...] = (sqlite3.Error,)

    def __init__(self, db_path: str, dedupe: bool = True):
        self.db_path = Path(db_path)
        self.dedupe = dedupe

    def get_connection(self) -> Any:
        """Get database connection with proper settings."""
        conn = sqlite3.connect(str(self.db_path), timeout=5)
        conn.row_factory = sqlite3.Row
        return conn

    def _sql(self, query: str) -> str:
        return query

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """Yield a connection whose work is committed atomically.

        Raises:
            PersistenceError: On any driver error; the transaction is rolled back
        """
        try:
            conn = self.get_connection()
        except self.driver_errors as e:
            raise PersistenceError(f"Failed to connect to notification store: {e}") from e

        try:
            with conn:
                yield conn
        except self.driver_errors as e:
            raise PersistenceError(f"Notification store error: {e}") from e
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        """Ensure notification and recipient tables exist."""
        with self.transaction() as conn:
            conn.executescript(
                """
            -- One row per received collision event
            CREATE TABLE IF NOT EXISTS notifications (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                asteroid_name TEXT NOT NULL,
                close_approach_date TEXT NOT NULL,
                miss_distance_kilometers TEXT NOT NULL,  -- exact decimal text
                estimated_diameter_avg_meters REAL NOT NULL,
                email_sent BOOLEAN NOT NULL DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                sent_at TEXT
            );

            -- Subscribers, owned by the user service
            CREATE TABLE IF NOT EXISTS recipients (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT NOT NULL UNIQUE,
                notifications_enabled BOOLEAN NOT NULL DEFAULT 1
            );

            CREATE INDEX IF NOT EXISTS idx_notifications_unsent ON notifications(email_sent);
            CREATE INDEX IF NOT EXISTS idx_notifications_asteroid_date
                ON notifications(asteroid_name, close_approach_date);
            """
            )

            logger.info("Notification store schema ensured")

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def save_notification(
        self, record: NotificationRecord
    ) -> Tuple[NotificationRecord, bool]:
        """Persist a pending notification.

        With dedupe enabled, a row for the same (asteroid name, close
        approach date) is reused instead of inserting a second one.

        Returns:
            (stored record, True if a new row was inserted)
        """
        params = (
            record.asteroid_name,
            record.close_approach_date.isoformat(),
            str(record.miss_distance_kilometers),
            record.estimated_diameter_avg_meters,
            False,
        )
        with self.transaction() as conn:
            cursor = conn.cursor()
            if self.dedupe:
                self._lock_dedupe_key(cursor, record)
                existing = self._find_notification(cursor, record)
                if existing is not None:
                    logger.info(
                        f"Duplicate notification for {record.asteroid_name} on "
                        f"{record.close_approach_date}; keeping id {existing.id}"
                    )
                    return existing, False

            new_id = self._insert_notification(cursor, params)

        saved = NotificationRecord(
            id=new_id,
            asteroid_name=record.asteroid_name,
            close_approach_date=record.close_approach_date,
            miss_distance_kilometers=record.miss_distance_kilometers,
            estimated_diameter_avg_meters=record.estimated_diameter_avg_meters,
            email_sent=False,
        )
        return saved, True

    def _lock_dedupe_key(self, cursor: Any, record: NotificationRecord) -> None:
        # Take the write lock before the lookup so concurrent consumers
        # cannot both miss and insert.
        cursor.execute("BEGIN IMMEDIATE")

    def _find_notification(
        self, cursor: Any, record: NotificationRecord
    ) -> Optional[NotificationRecord]:
        asteroid_name, approach_date = record.dedupe_key
        cursor.execute(
            self._sql(
                """
            SELECT * FROM notifications
            WHERE asteroid_name = ? AND close_approach_date = ?
            ORDER BY id LIMIT 1
        """
            ),
            (asteroid_name, approach_date.isoformat()),
        )
        row = cursor.fetchone()
        return self._row_to_record(row) if row else None

    def _insert_notification(self, cursor: Any, params: tuple) -> int:
        cursor.execute(
            """
            INSERT INTO notifications
            (asteroid_name, close_approach_date, miss_distance_kilometers,
             estimated_diameter_avg_meters, email_sent)
            VALUES (?, ?, ?, ?, ?)
        """,
            params,
        )
        return cursor.lastrowid

    def get_unsent_notifications(self) -> List[NotificationRecord]:
        """Return every notification whose email has not been sent, oldest first."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                self._sql("SELECT * FROM notifications WHERE email_sent = ? ORDER BY id"),
                (False,),
            )
            return [self._row_to_record(row) for row in cursor.fetchall()]

    def mark_email_sent(self, notification_id: int) -> None:
        """Flip the email_sent flag for one notification."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                self._sql(
                    "UPDATE notifications SET email_sent = ?, sent_at = ? WHERE id = ?"
                ),
                (True, datetime.now(timezone.utc).isoformat(), notification_id),
            )
            if cursor.rowcount == 0:
                raise PersistenceError(f"Notification {notification_id} not found")

    def get_notification(self, notification_id: int) -> Optional[NotificationRecord]:
        with self.transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                self._sql("SELECT * FROM notifications WHERE id = ?"),
                (notification_id,),
            )
            row = cursor.fetchone()
            return self._row_to_record(row) if row else None

    def count_notifications(self) -> Dict[str, int]:
        """Return total and pending notification counts."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                self._sql(
                    """
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(CASE WHEN email_sent = ? THEN 0 ELSE 1 END), 0)
                           AS pending
                FROM notifications
            """
                ),
                (True,),
            )
            row = cursor.fetchone()
            return {"total": int(row["total"]), "pending": int(row["pending"])}

    # ------------------------------------------------------------------
    # Recipients
    # ------------------------------------------------------------------

    def get_notification_enabled_emails(self) -> List[str]:
        """Return addresses of recipients with notifications enabled."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                self._sql(
                    "SELECT email FROM recipients WHERE notifications_enabled = ? ORDER BY id"
                ),
                (True,),
            )
            return [row["email"] for row in cursor.fetchall()]

    def add_recipient(self, email: str, notifications_enabled: bool = True) -> None:
        """Insert or update a recipient (seeding and tests only)."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                self._sql(
                    """
                INSERT INTO recipients (email, notifications_enabled)
                VALUES (?, ?)
                ON CONFLICT (email) DO UPDATE SET
                    notifications_enabled = EXCLUDED.notifications_enabled
            """
                ),
                (email, notifications_enabled),
            )

    def health_check(self) -> Dict[str, Any]:
        """Perform a simple database health check."""
        try:
            with self.transaction() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT 1")
                cursor.fetchone()
            return {"database": "ok"}
        except PersistenceError as exc:
            return {"database": "error", "detail": str(exc)}

    @staticmethod
    def _row_to_record(row: Any) -> NotificationRecord:
        try:
            approach_date = row["close_approach_date"]
            if isinstance(approach_date, str):
                approach_date = date.fromisoformat(approach_date)
            return NotificationRecord(
                id=int(row["id"]),
                asteroid_name=row["asteroid_name"],
                close_approach_date=approach_date,
                miss_distance_kilometers=Decimal(str(row["miss_distance_kilometers"])),
                estimated_diameter_avg_meters=float(
                    row["estimated_diameter_avg_meters"]
                ),
                email_sent=bool(row["email_sent"]),
            )
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise PersistenceError(f"Corrupt notification row: {e}") from e
