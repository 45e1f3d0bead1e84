"""SQLite database schema for the trip log."""

TRIPS_SCHEMA = """
-- ============================================
-- GPS Alarm Trip Log Schema
-- Version: 1.0.0
-- ============================================

-- One row per completed trip; seq gives insertion order
CREATE TABLE IF NOT EXISTS trips (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    destination TEXT NOT NULL,
    distance_km REAL NOT NULL,
    duration_minutes INTEGER NOT NULL DEFAULT 0,
    travelled_km REAL,

    -- Timestamps (ISO 8601)
    started_at TEXT,
    completed_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_trips_completed ON trips(completed_at);
"""
