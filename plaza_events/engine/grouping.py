"""Bucket kept records into display time windows relative to "now"."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, tzinfo
from typing import Any, Iterable, Mapping

from ..config import FilterConfig
from .geo import format_distance, haversine_km
from .models import Event
from .text import matches_plaza_espana

PAST_WEEKEND = "Past Weekend"
TODAY = "Happening Now / Today"
THIS_WEEKEND = "This Weekend"
THIS_WEEK = "This Week"
LATER_THIS_MONTH = "Later This Month"
ONGOING = "Ongoing"

GROUP_ORDER = (PAST_WEEKEND, TODAY, THIS_WEEKEND, THIS_WEEK, LATER_THIS_MONTH)

ONGOING_MIN_DURATION = timedelta(days=5)
FUTURE_HORIZON = timedelta(days=30)
PAST_HORIZON = timedelta(days=60)
LANDMARK_THRESHOLD_M = 50.0


@dataclass(slots=True)
class GroupedEvent:
    event: Event
    distance_km: float | None = None
    at_landmark: bool = False
    forecast: Any = None

    @property
    def distance_label(self) -> str:
        return format_distance(self.distance_km) if self.distance_km is not None else ""


@dataclass(slots=True)
class TimeGroup:
    name: str
    events: list[GroupedEvent] = field(default_factory=list)
    count_plaza: int = 0
    count_nearby: int = 0
    city_count: int = 0
    city_plaza: int = 0
    city_nearby: int = 0

    def add(self, item: GroupedEvent) -> None:
        """Every item counts as nearby; landmark items also count as at the plaza."""

        self.events.append(item)
        is_city = item.event.kind == "city"
        self.count_nearby += 1
        if is_city:
            self.city_count += 1
            self.city_nearby += 1
        if item.at_landmark:
            self.count_plaza += 1
            if is_city:
                self.city_plaza += 1

    def __len__(self) -> int:
        return len(self.events)


@dataclass(slots=True)
class TimeWindows:
    start_of_today: datetime
    end_of_today: datetime
    past_weekend_start: datetime
    past_weekend_end: datetime
    this_weekend_start: datetime
    this_weekend_end: datetime
    this_week_end: datetime
    end_of_month: datetime
    future_limit: datetime
    old_cutoff: datetime

    @classmethod
    def around(cls, now: datetime) -> "TimeWindows":
        today = now.date()
        tz = now.tzinfo
        start_of_today = datetime.combine(today, time.min, tzinfo=tz)

        # Days since Sunday, with Sunday = 0.
        since_sunday = (today.weekday() + 1) % 7
        if since_sunday == 6:
            past_saturday = today - timedelta(days=7)
        elif since_sunday == 0:
            past_saturday = today - timedelta(days=8)
        else:
            past_saturday = today - timedelta(days=since_sunday + 1)
        past_weekend_start = datetime.combine(past_saturday, time.min, tzinfo=tz)

        weekday = today.weekday()
        if weekday >= 4:
            friday = today - timedelta(days=weekday - 4)
        else:
            friday = today + timedelta(days=4 - weekday)
        this_weekend_start = datetime.combine(friday, time.min, tzinfo=tz)

        if today.month == 12:
            first_next_month = today.replace(year=today.year + 1, month=1, day=1)
        else:
            first_next_month = today.replace(month=today.month + 1, day=1)

        return cls(
            start_of_today=start_of_today,
            end_of_today=start_of_today + timedelta(days=1),
            past_weekend_start=past_weekend_start,
            past_weekend_end=past_weekend_start + timedelta(hours=48),
            this_weekend_start=this_weekend_start,
            this_weekend_end=this_weekend_start + timedelta(hours=72),
            this_week_end=start_of_today + timedelta(days=7),
            end_of_month=datetime.combine(first_next_month, time.min, tzinfo=tz),
            future_limit=now + FUTURE_HORIZON,
            old_cutoff=now - PAST_HORIZON,
        )


@dataclass(slots=True)
class GroupingResult:
    groups: list[TimeGroup]
    ongoing: TimeGroup
    windows: TimeWindows

    def group(self, name: str) -> TimeGroup | None:
        for candidate in self.groups:
            if candidate.name == name:
                return candidate
        return None

    def names_for(self, event_id: str) -> list[str]:
        names = [g.name for g in self.groups if any(i.event.id == event_id for i in g.events)]
        if any(item.event.id == event_id for item in self.ongoing.events):
            names.append(ONGOING)
        return names


class TimeBucketGrouper:
    """Stateless between calls; each ``group`` recomputes windows and counts."""

    def __init__(
        self,
        latitude: float,
        longitude: float,
        tz: tzinfo | None = None,
        landmark_threshold_m: float = LANDMARK_THRESHOLD_M,
    ) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.tz = tz
        self.landmark_threshold_m = landmark_threshold_m

    @classmethod
    def from_config(cls, config: FilterConfig, tz: tzinfo | None = None) -> "TimeBucketGrouper":
        return cls(config.latitude, config.longitude, tz)

    def _annotate(self, event: Event, forecasts: Mapping[str, Any] | None) -> GroupedEvent:
        distance = None
        if event.latitude != 0 or event.longitude != 0:
            distance = haversine_km(event.latitude, event.longitude, self.latitude, self.longitude)
        at_landmark = (
            distance is not None and distance * 1000 <= self.landmark_threshold_m
        ) or matches_plaza_espana(event)
        forecast = None
        if forecasts:
            start = event.start_time.astimezone(self.tz) if self.tz else event.start_time
            forecast = forecasts.get(start.date().isoformat())
        return GroupedEvent(event=event, distance_km=distance, at_landmark=at_landmark, forecast=forecast)

    def group(
        self,
        events: Iterable[Event],
        now: datetime,
        forecasts: Mapping[str, Any] | None = None,
    ) -> GroupingResult:
        if self.tz is not None:
            now = now.astimezone(self.tz)
        windows = TimeWindows.around(now)
        buckets = {name: TimeGroup(name) for name in GROUP_ORDER}
        ongoing = TimeGroup(ONGOING)

        ordered = sorted(events, key=lambda e: (e.start_time, 0 if e.kind == "city" else 1))
        for event in ordered:
            start = event.start_time
            end = event.effective_end
            if end < windows.past_weekend_start or start < windows.old_cutoff:
                continue
            if start > windows.future_limit:
                continue

            item = self._annotate(event, forecasts)
            if end - start >= ONGOING_MIN_DURATION:
                ongoing.add(item)
                continue

            added = False
            if start < windows.past_weekend_end and end > windows.past_weekend_start:
                buckets[PAST_WEEKEND].add(item)
                added = True
            if start < windows.end_of_today and end > windows.start_of_today:
                buckets[TODAY].add(item)
                added = True
            if windows.this_weekend_start <= start < windows.this_weekend_end:
                buckets[THIS_WEEKEND].add(item)
                added = True
            if not added:
                if windows.end_of_today <= start < windows.this_week_end:
                    buckets[THIS_WEEK].add(item)
                elif windows.this_week_end <= start < windows.end_of_month:
                    buckets[LATER_THIS_MONTH].add(item)

        groups = [buckets[name] for name in GROUP_ORDER if buckets[name].events]
        return GroupingResult(groups=groups, ongoing=ongoing, windows=windows)


__all__ = [
    "GROUP_ORDER",
    "GroupedEvent",
    "GroupingResult",
    "LATER_THIS_MONTH",
    "ONGOING",
    "PAST_WEEKEND",
    "THIS_WEEK",
    "THIS_WEEKEND",
    "TODAY",
    "TimeBucketGrouper",
    "TimeGroup",
    "TimeWindows",
]
