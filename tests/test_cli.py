from datetime import UTC, datetime
from pathlib import Path

import pytest
from click.testing import CliRunner

from gpsalarm.cli import cli
from gpsalarm.domain.models import TripRecord
from gpsalarm.infrastructure.database.trip_repository import TripRepository


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    cfg = tmp_path / "gpsalarm.yml"
    cfg.write_text(
        f"""
notifications:
  system_notifications: false
storage:
  db_path: {tmp_path / "trips.db"}
wake_lock:
  enabled: false
logging:
  level: WARNING
        """.strip(),
        encoding="utf-8",
    )
    return cfg


def test_version_command():
    runner = CliRunner()
    result = runner.invoke(cli, ["version"], prog_name="gpsalarm")
    assert result.exit_code == 0
    assert "gpsalarm" in result.stdout


def test_distance_command():
    runner = CliRunner()
    result = runner.invoke(cli, ["distance", "0", "0", "0", "1"], prog_name="gpsalarm")
    assert result.exit_code == 0
    assert "111.195 km" in result.stdout
    assert "bearing 90.0" in result.stdout


def test_distance_rejects_out_of_range_latitude():
    runner = CliRunner()
    result = runner.invoke(cli, ["distance", "91", "0", "0", "1"], prog_name="gpsalarm")
    assert result.exit_code != 0


def test_config_validate(config_file: Path):
    runner = CliRunner()
    result = runner.invoke(cli, ["config-validate", str(config_file)], prog_name="gpsalarm")
    assert result.exit_code == 0
    assert "Config OK" in result.stdout
    assert "arrived=0.3 km" in result.stdout


def test_config_validate_reports_errors(tmp_path: Path):
    bad = tmp_path / "bad.yml"
    bad.write_text("thresholds:\n  near_km: 0.1\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["config-validate", str(bad)], prog_name="gpsalarm")
    assert result.exit_code == 1
    assert "Config validation failed" in result.stdout


def test_config_which_uses_env(config_file: Path):
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["config-which", "--config", "does-not-exist.yml"],
        prog_name="gpsalarm",
        env={"GPSALARM_CONFIG": str(config_file)},
    )
    assert result.exit_code == 0
    assert config_file.name in result.stdout


def test_simulate_then_list_trips(config_file: Path):
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["simulate", "--interval", "0", "--config", str(config_file)],
        prog_name="gpsalarm",
    )
    assert result.exit_code == 0, result.output
    assert "2 kilometers remaining to Colombo Fort" in result.stdout
    assert "750 meters remaining to Colombo Fort" in result.stdout
    assert "You've arrived at Colombo Fort!" in result.stdout
    assert "Arrived at Colombo Fort" in result.stdout
    assert "4 alerts, 0 position errors" in result.stdout

    listed = runner.invoke(cli, ["trips", "--config", str(config_file)], prog_name="gpsalarm")
    assert listed.exit_code == 0
    assert "Colombo Fort" in listed.stdout
    assert "Total trips: 1" in listed.stdout

    cleared = runner.invoke(cli, ["trips-clear", "--yes", "--config", str(config_file)], prog_name="gpsalarm")
    assert cleared.exit_code == 0
    assert "Removed 1 trips" in cleared.stdout


def test_simulate_without_arrival_records_nothing(config_file: Path):
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["simulate", "--interval", "0", "--distances", "3,1.5", "--config", str(config_file)],
        prog_name="gpsalarm",
    )
    assert result.exit_code == 0
    assert "remaining to Colombo Fort" in result.stdout

    listed = runner.invoke(cli, ["trips", "--config", str(config_file)], prog_name="gpsalarm")
    assert "No trips recorded yet" in listed.stdout


def test_trips_shows_totals_grouped_by_day(config_file: Path, tmp_path: Path):
    repo = TripRepository(tmp_path / "trips.db")
    for day, minutes, travelled in ((1, 12, 3.5), (1, 20, 6.0), (2, 8, None)):
        completed = datetime(2024, 5, day, 9, minutes, tzinfo=UTC)
        repo.append_trip(
            TripRecord(
                destination=f"Stop {day}-{minutes}",
                distance_km=0.2,
                duration_minutes=minutes,
                travelled_km=travelled,
                completed_at=completed,
            )
        )

    runner = CliRunner()
    result = runner.invoke(cli, ["trips", "--config", str(config_file)], prog_name="gpsalarm")

    assert result.exit_code == 0, result.output
    assert "Total trips: 3 | Travelled: 9.50 km | Time: 40 min" in result.stdout
    assert result.stdout.count("2024-05-01") == 1
    assert result.stdout.count("2024-05-02") == 1
    assert result.stdout.index("2024-05-02") < result.stdout.index("2024-05-01")


def test_simulate_rejects_bad_distances(config_file: Path):
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["simulate", "--distances", "far,away", "--config", str(config_file)],
        prog_name="gpsalarm",
    )
    assert result.exit_code != 0
