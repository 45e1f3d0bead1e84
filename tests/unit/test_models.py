from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from gpsalarm.domain.models import Coordinate, Destination, PositionSample, StatusUpdate, TripRecord


def test_coordinate_bounds():
    with pytest.raises(ValidationError):
        Coordinate(latitude=91, longitude=0)
    with pytest.raises(ValidationError):
        Coordinate(latitude=0, longitude=-181)


def test_coordinate_is_immutable():
    c = Coordinate(latitude=1, longitude=2)
    with pytest.raises(ValidationError):
        c.latitude = 3


def test_destination_resolution():
    assert not Destination(name="Somewhere").resolved
    assert Destination(name="Fort", coordinate=Coordinate(latitude=6.9, longitude=79.8)).resolved


def test_sample_speed_and_age():
    now = datetime(2024, 5, 1, 8, 0, 5, tzinfo=UTC)
    sample = PositionSample(
        coordinate=Coordinate(latitude=0, longitude=0),
        speed=5.0,
        timestamp=now - timedelta(seconds=5),
    )
    assert sample.speed_kmh == 18.0
    assert sample.age_ms(now) == 5000.0
    assert PositionSample(coordinate=sample.coordinate).speed_kmh is None


@pytest.mark.parametrize(
    "speed,expected",
    [(None, "Speed: Unknown"), (0.0, "Speed: Unknown"), (42.6, "Speed: 43 km/h")],
)
def test_status_line(speed, expected):
    line = StatusUpdate(distance_km=0.4567, speed_kmh=speed, accuracy_m=8.6).format()
    assert line.startswith("Distance: 0.46 km")
    assert expected in line
    assert line.endswith("Accuracy: ±9m")


def test_trip_record_rejects_negative_distance():
    with pytest.raises(ValidationError):
        TripRecord(destination="x", distance_km=-1)
    assert len(TripRecord(destination="x", distance_km=0).id) == 12
