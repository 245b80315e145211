"""Pydantic models describing a build run configuration."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_USER_AGENT = "plazaespana-info-site-generator/1.0 (https://github.com/ericphanson/plazaespana.info)"
DATOS_MADRID_BASE = "https://datos.madrid.es/egob/catalogo/300107-0-agenda-actividades-eventos"


class FetchMode(str, Enum):
    """Fetch profiles selecting cache lifetime and politeness delay."""

    PRODUCTION = "production"
    DEVELOPMENT = "development"


_MODE_ALIASES = {
    "production": FetchMode.PRODUCTION,
    "prod": FetchMode.PRODUCTION,
    "development": FetchMode.DEVELOPMENT,
    "dev": FetchMode.DEVELOPMENT,
}


def parse_mode(value: str | FetchMode | None) -> FetchMode:
    """Resolve a mode name or alias; unknown values fall back to production."""

    if isinstance(value, FetchMode):
        return value
    if not value:
        return FetchMode.PRODUCTION
    return _MODE_ALIASES.get(value.strip().lower(), FetchMode.PRODUCTION)


class ModeConfig(BaseModel):
    """Cache TTL and minimum per-host delay derived from a fetch mode."""

    mode: FetchMode = FetchMode.PRODUCTION
    cache_ttl_seconds: float = Field(default=30 * 60, gt=0)
    min_delay_seconds: float = Field(default=2.0, ge=0)

    @classmethod
    def for_mode(cls, mode: str | FetchMode | None) -> "ModeConfig":
        resolved = parse_mode(mode)
        if resolved is FetchMode.DEVELOPMENT:
            return cls(mode=resolved, cache_ttl_seconds=60 * 60, min_delay_seconds=5.0)
        return cls(mode=resolved, cache_ttl_seconds=30 * 60, min_delay_seconds=2.0)

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_seconds)

    @property
    def min_delay(self) -> timedelta:
        return timedelta(seconds=self.min_delay_seconds)


class CulturalEventsConfig(BaseModel):
    """Endpoints of the city council cultural agenda (three formats)."""

    json_url: str = f"{DATOS_MADRID_BASE}.json"
    xml_url: str = f"{DATOS_MADRID_BASE}.xml"
    csv_url: str = f"{DATOS_MADRID_BASE}.csv"

    @field_validator("json_url", "xml_url", "csv_url")
    @classmethod
    def _require_url(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Endpoint URL must not be empty")
        return value.strip()


class CityEventsConfig(BaseModel):
    """Endpoint of the tourism board multi-venue agenda."""

    xml_url: str = "https://www.esmadrid.com/opendata/agenda_v1_es.xml"

    @field_validator("xml_url")
    @classmethod
    def _require_url(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Endpoint URL must not be empty")
        return value.strip()


class FilterConfig(BaseModel):
    """Reference point and inclusion thresholds."""

    latitude: float = 40.42338
    longitude: float = -3.71217
    radius_km: float = 0.35
    distritos: list[str] = Field(default_factory=lambda: ["CENTRO", "MONCLOA-ARAVACA"])
    past_events_weeks: int = Field(default=2, ge=0)

    @field_validator("latitude")
    @classmethod
    def _check_latitude(cls, value: float) -> float:
        if not -90 <= value <= 90:
            raise ValueError(f"latitude must be within -90..90, got {value}")
        return value

    @field_validator("longitude")
    @classmethod
    def _check_longitude(cls, value: float) -> float:
        if not -180 <= value <= 180:
            raise ValueError(f"longitude must be within -180..180, got {value}")
        return value

    @field_validator("radius_km")
    @classmethod
    def _check_radius(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("radius_km must be positive")
        return value

    @field_validator("distritos", mode="before")
    @classmethod
    def _normalise_distritos(cls, value: Any) -> list[str]:
        if value in (None, ""):
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(item).strip().upper() for item in value if str(item).strip()]


class FetchConfig(BaseModel):
    """HTTP client, cache and throttle settings."""

    mode: FetchMode = FetchMode.PRODUCTION
    cache_dir: Path = Field(default=Path("data/cache"))
    timeout_seconds: float = Field(default=30.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    min_delay_seconds: float | None = Field(default=None, ge=0)
    cache_ttl_seconds: float | None = Field(default=None, gt=0)
    # Ordered: the first registered pattern contained in a URL wins.
    cache_ttl_overrides: dict[str, float] = Field(default_factory=dict)

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: Any) -> FetchMode:
        return parse_mode(value)

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("cache_ttl_overrides")
    @classmethod
    def _check_overrides(cls, value: dict[str, float]) -> dict[str, float]:
        for pattern, seconds in value.items():
            if not pattern:
                raise ValueError("cache_ttl_overrides patterns must not be empty")
            if seconds <= 0:
                raise ValueError(f"cache TTL override for {pattern!r} must be positive")
        return value

    def mode_config(self) -> ModeConfig:
        """Mode defaults with any explicit TTL/delay applied on top."""

        base = ModeConfig.for_mode(self.mode)
        updates: dict[str, float] = {}
        if self.cache_ttl_seconds is not None:
            updates["cache_ttl_seconds"] = self.cache_ttl_seconds
        if self.min_delay_seconds is not None:
            updates["min_delay_seconds"] = self.min_delay_seconds
        return base.model_copy(update=updates) if updates else base


class OutputConfig(BaseModel):
    """Where build artefacts are written."""

    build_audit_path: Path = Field(default=Path("data/outputs/audit-events.json"))
    request_audit_path: Path = Field(default=Path("data/outputs/request-audit.json"))

    @field_validator("build_audit_path", "request_audit_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)


class BuildConfig(BaseModel):
    """Top level configuration for one build pass."""

    timezone: str = "Europe/Madrid"
    cultural: CulturalEventsConfig = Field(default_factory=CulturalEventsConfig)
    city: CityEventsConfig = Field(default_factory=CityEventsConfig)
    filter: FilterConfig = Field(default_factory=FilterConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @model_validator(mode="after")
    def _validate_timezone(self) -> "BuildConfig":
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {self.timezone}") from exc
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


__all__ = [
    "BuildConfig",
    "CityEventsConfig",
    "CulturalEventsConfig",
    "DEFAULT_USER_AGENT",
    "FetchConfig",
    "FetchMode",
    "FilterConfig",
    "ModeConfig",
    "OutputConfig",
    "parse_mode",
]
