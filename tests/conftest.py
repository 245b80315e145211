"""Shared fixtures: build configs, record builders and fixed clocks."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Iterable
from zoneinfo import ZoneInfo

import pytest

from plaza_events.config import (
    BuildConfig,
    ConfigLocator,
    ConfigRepository,
    FetchConfig,
    OutputConfig,
)
from plaza_events.engine.models import Event

MADRID = ZoneInfo("Europe/Madrid")
PLAZA_LAT = 40.42338
PLAZA_LON = -3.71217


class ManualClock:
    """Settable clock for cache freshness checks."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def madrid() -> ZoneInfo:
    return MADRID


@pytest.fixture
def wednesday_noon() -> datetime:
    return datetime(2025, 10, 22, 12, 0, tzinfo=MADRID)


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock(datetime(2025, 10, 22, 10, 0, tzinfo=MADRID))


@pytest.fixture
def sample_build_config(tmp_path: Path) -> Callable[..., BuildConfig]:
    def _builder(**overrides: Any) -> BuildConfig:
        base: dict[str, Any] = {
            "fetch": FetchConfig(cache_dir=tmp_path / "cache", min_delay_seconds=0),
            "output": OutputConfig(
                build_audit_path=tmp_path / "out" / "audit-events.json",
                request_audit_path=tmp_path / "out" / "request-audit.json",
            ),
        }
        base.update(overrides)
        return BuildConfig(**base)

    return _builder


@pytest.fixture
def make_event() -> Callable[..., Event]:
    def _builder(**overrides: Any) -> Event:
        base: dict[str, Any] = {
            "id": "E1",
            "title": "Concierto",
            "start_time": datetime(2025, 10, 22, 19, 0, tzinfo=MADRID),
            "end_time": datetime(2025, 10, 22, 21, 0, tzinfo=MADRID),
            "sources": ["JSON"],
        }
        base.update(overrides)
        return Event(**base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("PLAZA_EVENTS_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
