"""Trip log persistence."""

from .schema import TRIPS_SCHEMA
from .trip_repository import DEFAULT_MAX_TRIPS, TripRepository, TripStore

__all__ = ["DEFAULT_MAX_TRIPS", "TRIPS_SCHEMA", "TripRepository", "TripStore"]
