from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .domain.models import BannerDuration, ThresholdId


class GeolocationConfig(BaseModel):
    high_accuracy: bool = Field(True)
    timeout_ms: int = Field(15000, ge=1000, le=300_000)
    maximum_age_ms: int = Field(30000, ge=0)
    poll_interval_secs: float = Field(10.0, ge=0)  # 0 = no fallback poll
    route_refresh_m: float = Field(25.0, ge=0)


class ThresholdsConfig(BaseModel):
    """Alert tier boundaries in km, strictest first."""

    arrived_km: float = Field(0.3, gt=0)
    close_km: float = Field(0.75, gt=0)
    near_km: float = Field(1.0, gt=0)
    approaching_km: float = Field(2.0, gt=0)

    @field_validator("close_km", "near_km", "approaching_km")
    @classmethod
    def _strictly_increasing(cls, value: float, info: Any) -> float:
        previous = {
            "close_km": "arrived_km",
            "near_km": "close_km",
            "approaching_km": "near_km",
        }[info.field_name]
        lower = info.data.get(previous)  # type: ignore[assignment]
        if lower is not None and value <= lower:
            raise ValueError(f"{info.field_name} must be greater than {previous}")
        return value

    def boundaries(self) -> dict[ThresholdId, float]:
        return {
            ThresholdId.ARRIVED: self.arrived_km,
            ThresholdId.CLOSE: self.close_km,
            ThresholdId.NEAR: self.near_km,
            ThresholdId.APPROACHING: self.approaching_km,
        }


class BannerDurations(BaseModel):
    short_ms: int = Field(2000, ge=0)
    medium_ms: int = Field(4000, ge=0)
    long_ms: int = Field(8000, ge=0)
    persistent_ms: int = Field(10000, ge=0)


class NotificationsConfig(BaseModel):
    durations: BannerDurations = Field(default_factory=BannerDurations)
    system_notifications: bool = Field(True)
    haptics: bool = Field(True)
    sound: bool = Field(True)
    app_name: str = Field("GPS Alarm")
    effect_timeout_secs: float = Field(2.0, gt=0)

    def duration_ms(self, duration: BannerDuration) -> int:
        return getattr(self.durations, f"{duration.value}_ms")


class StorageConfig(BaseModel):
    db_path: Path = Field(Path("data/trips.db"))
    max_trips: int = Field(100, ge=1, le=10_000)

    @field_validator("db_path")
    @classmethod
    def _expand_db_path(cls, value: Path) -> Path:
        return value.expanduser()


class GpsdConfig(BaseModel):
    """gpsd daemon connection."""

    host: str = Field("localhost")
    port: int = Field(2947, ge=1, le=65535)
    timeout: float = Field(10.0, ge=1.0)
    reconnect_delay: float = Field(5.0, ge=0.5)
    max_reconnect_attempts: int = Field(0, ge=0)  # 0 = infinite


class LoggingConfig(BaseModel):
    level: str = Field("INFO")

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level


class WakeLockConfig(BaseModel):
    enabled: bool = Field(True)


class GpsAlarmConfig(BaseModel):
    geolocation: GeolocationConfig = Field(default_factory=GeolocationConfig)
    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    gpsd: GpsdConfig = Field(default_factory=GpsdConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    wake_lock: WakeLockConfig = Field(default_factory=WakeLockConfig)


def load_config(path: Path) -> GpsAlarmConfig:
    with Path(path).expanduser().open("r", encoding="utf-8") as fp:
        raw = yaml.safe_load(fp) or {}
    try:
        return GpsAlarmConfig.model_validate(raw)
    except ValidationError as exc:  # pragma: no cover - formatting
        raise ValueError(str(exc)) from exc


def resolve_config_path(cli_path: Path | None) -> Path:
    """Resolve config path by priority: CLI, env, /etc/gpsalarm, repo configs."""
    candidates: list[Path] = []
    if cli_path:
        p = Path(cli_path).expanduser()
        if p.exists():
            return p.resolve()
        candidates.append(p)
    env = os.environ.get("GPSALARM_CONFIG")
    if env:
        p = Path(env).expanduser()
        if p.exists():
            return p.resolve()
        candidates.append(p)
    for p in [Path("/etc/gpsalarm/gpsalarm.yml"), Path("configs/gpsalarm.yml")]:
        if p.exists():
            return p.resolve()
        candidates.append(p)
    # Fallback to first candidate even if not exists to surface errors consistently
    return candidates[0] if candidates else Path("configs/gpsalarm.yml").resolve()
