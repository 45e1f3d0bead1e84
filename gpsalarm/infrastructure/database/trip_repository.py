"""Trip log persistence: capped, most-recent-first."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, Protocol

from ...domain.models import TripRecord
from .schema import TRIPS_SCHEMA

logger = logging.getLogger(__name__)

DEFAULT_MAX_TRIPS = 100


class TripStore(Protocol):
    """Persistence collaborator the trip recorder hands records to."""

    def append_trip(self, record: TripRecord) -> None: ...

    def list_trips(self, limit: Optional[int] = None) -> list[TripRecord]: ...


class TripRepository:
    """
    SQLite trip log.

    Appends are followed by eviction of the oldest rows beyond max_trips.
    """

    def __init__(self, db_path: str | Path, max_trips: int = DEFAULT_MAX_TRIPS) -> None:
        if max_trips < 1:
            raise ValueError("max_trips must be >= 1")
        self.db_path = Path(db_path)
        self.max_trips = max_trips
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.executescript(TRIPS_SCHEMA)
            conn.commit()
        logger.info("Trip log initialized: %s", self.db_path)

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        try:
            yield conn
        finally:
            conn.close()

    def append_trip(self, record: TripRecord) -> None:
        """Insert a trip and evict the oldest entries beyond max_trips."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO trips (
                    id, destination, distance_km, duration_minutes,
                    travelled_km, started_at, completed_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.destination,
                    record.distance_km,
                    record.duration_minutes,
                    record.travelled_km,
                    record.started_at.isoformat() if record.started_at else None,
                    record.completed_at.isoformat(),
                ),
            )
            evicted = conn.execute(
                """
                DELETE FROM trips WHERE seq NOT IN (
                    SELECT seq FROM trips ORDER BY seq DESC LIMIT ?
                )
                """,
                (self.max_trips,),
            ).rowcount
            conn.commit()

        if evicted:
            logger.debug("Trip log capped at %d, evicted %d", self.max_trips, evicted)

    def list_trips(self, limit: Optional[int] = None) -> list[TripRecord]:
        """Trips, most recent first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM trips ORDER BY seq DESC LIMIT ?",
                (limit if limit is not None else -1,),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def count(self) -> int:
        with self._get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM trips").fetchone()[0]

    def get_stats(self) -> dict:
        """Totals over the whole trip log."""
        with self._get_connection() as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS trips_total,
                    COALESCE(SUM(distance_km), 0) AS remaining_km_total,
                    COALESCE(SUM(travelled_km), 0) AS travelled_km_total,
                    COALESCE(SUM(duration_minutes), 0) AS minutes_total
                FROM trips
                """
            ).fetchone()
        return dict(row)

    def clear(self) -> int:
        """Delete every trip. Returns the number removed."""
        with self._get_connection() as conn:
            removed = conn.execute("DELETE FROM trips").rowcount
            conn.commit()
        return removed

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> TripRecord:
        return TripRecord(
            id=row["id"],
            destination=row["destination"],
            distance_km=row["distance_km"],
            duration_minutes=row["duration_minutes"],
            travelled_km=row["travelled_km"],
            started_at=datetime.fromisoformat(row["started_at"]) if row["started_at"] else None,
            completed_at=datetime.fromisoformat(row["completed_at"]),
        )
