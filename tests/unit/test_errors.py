import pytest

from gpsalarm.core.errors import (
    DestinationUnresolved,
    PositionError,
    PositionPermissionDenied,
    PositionTimeout,
    PositionUnavailable,
    PositionUnknownError,
    SideEffectFailure,
    classify_position_error,
)


@pytest.mark.parametrize(
    "exc,expected",
    [
        (PermissionError("denied"), PositionPermissionDenied),
        (TimeoutError(), PositionTimeout),
        (ConnectionRefusedError("refused"), PositionUnavailable),
        (OSError("no device"), PositionUnavailable),
        (RuntimeError("boom"), PositionUnknownError),
    ],
)
def test_classify(exc, expected):
    assert type(classify_position_error(exc)) is expected


def test_classify_passes_position_errors_through():
    err = PositionUnavailable("no fix")
    assert classify_position_error(err) is err


def test_user_messages():
    assert PositionPermissionDenied().user_message == (
        "Location access denied. Please enable location permissions for this device"
    )
    assert PositionUnavailable().user_message == (
        "Location unavailable. Please check your GPS or try moving to an open area"
    )
    assert PositionTimeout().user_message == "Location request timed out. Please try again"


def test_detail_kept_separately():
    err = PositionTimeout("gpsd read timed out")
    assert str(err) == "gpsd read timed out"
    assert err.detail == "gpsd read timed out"
    assert isinstance(err, PositionError)


def test_other_errors():
    assert "Atlantis" in str(DestinationUnresolved("Atlantis"))
    failure = SideEffectFailure("audio", RuntimeError("muted"))
    assert str(failure) == "audio failed: muted"
    assert isinstance(failure.cause, RuntimeError)
