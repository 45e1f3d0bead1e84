from pathlib import Path

import pytest

from gpsalarm.config import GpsAlarmConfig, load_config
from gpsalarm.domain.models import BannerDuration, ThresholdId


def test_defaults():
    cfg = GpsAlarmConfig()
    assert cfg.thresholds.boundaries() == {
        ThresholdId.ARRIVED: 0.3,
        ThresholdId.CLOSE: 0.75,
        ThresholdId.NEAR: 1.0,
        ThresholdId.APPROACHING: 2.0,
    }
    assert cfg.geolocation.timeout_ms == 15000
    assert cfg.geolocation.maximum_age_ms == 30000
    assert cfg.geolocation.poll_interval_secs == 10
    assert cfg.storage.max_trips == 100
    assert cfg.notifications.duration_ms(BannerDuration.PERSISTENT) == 10000


def test_yaml_loads_and_validates(tmp_path: Path):
    yml = tmp_path / "gpsalarm.yml"
    yml.write_text(
        """
thresholds:
  arrived_km: 0.1
  close_km: 0.5
storage:
  db_path: trips/log.db
logging:
  level: debug
        """.strip(),
        encoding="utf-8",
    )
    cfg = load_config(yml)
    assert cfg.thresholds.arrived_km == 0.1
    assert cfg.thresholds.near_km == 1.0
    assert cfg.storage.db_path == Path("trips/log.db")
    assert cfg.logging.level == "DEBUG"


def test_empty_file_gives_defaults(tmp_path: Path):
    yml = tmp_path / "empty.yml"
    yml.write_text("", encoding="utf-8")
    assert load_config(yml) == GpsAlarmConfig()


@pytest.mark.parametrize(
    "body",
    [
        "thresholds:\n  close_km: 0.2",
        "geolocation:\n  timeout_ms: 10",
        "logging:\n  level: chatty",
        "storage:\n  max_trips: 0",
    ],
)
def test_invalid_values_raise(tmp_path: Path, body: str):
    yml = tmp_path / "bad.yml"
    yml.write_text(body, encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(yml)


def test_shipped_sample_config_is_valid():
    sample = Path(__file__).resolve().parents[1] / "configs" / "gpsalarm.yml"
    cfg = load_config(sample)
    assert cfg == GpsAlarmConfig()
