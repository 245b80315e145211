"""Location, age and text inclusion rules.

Cultural records (council agenda) are gated by district first, then by GPS
radius, and are kept by default when they carry no location at all. City
records (tourism agenda) have no district; coordinates take precedence over
text, and a landmark mention only rescues records that lack coordinates or
fall outside the radius.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable

from ..config import FilterConfig
from .geo import haversine_km
from .models import Event, InclusionDecision
from .text import matches_cultural_keywords, matches_plaza_espana

REASON_KEPT = "kept"
REASON_MULTI_VENUE = "kept (multi-venue: Plaza de España)"
REASON_OUTSIDE_DISTRITO = "outside target distrito"
REASON_OUTSIDE_RADIUS = "outside GPS radius"
REASON_TOO_OLD = "event too old"
REASON_NO_LOCATION = "missing location data"


def _days_between(now: datetime, moment: datetime) -> int:
    return int((now - moment) / timedelta(hours=1) / 24)


@dataclass(slots=True)
class FilterSummary:
    """Aggregate counts for one pipeline (cultural or city)."""

    total: int = 0
    kept: int = 0
    filtered: int = 0
    reasons: dict[str, int] = field(default_factory=dict)
    keep_methods: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "kept": self.kept,
            "filtered": self.filtered,
            "filter_breakdown": dict(self.reasons),
            "keep_methods": dict(self.keep_methods),
        }


class InclusionClassifier:
    """Attach an ``InclusionDecision`` to each record without dropping any."""

    def __init__(self, config: FilterConfig) -> None:
        self.config = config
        self._distritos = {name.upper() for name in config.distritos}

    def cutoff(self, now: datetime) -> datetime:
        return now - timedelta(days=7 * self.config.past_events_weeks)

    def _locate(self, event: Event, decision: InclusionDecision) -> None:
        decision.has_coordinates = event.has_coordinates
        if decision.has_coordinates:
            distance = haversine_km(
                event.latitude, event.longitude, self.config.latitude, self.config.longitude
            )
            decision.gps_distance_km = distance
            decision.within_radius = distance <= self.config.radius_km

    # ------------------------------------------------------------------
    def classify_cultural(self, event: Event, now: datetime) -> InclusionDecision:
        decision = InclusionDecision(start_date=event.start_time, end_date=event.end_time)
        decision.distrito = event.district
        decision.has_distrito = bool(event.district)
        decision.distrito_matched = decision.has_distrito and event.district.upper() in self._distritos
        self._locate(event, decision)
        decision.text_matched = matches_cultural_keywords(event)
        decision.days_old = _days_between(now, event.start_time)
        decision.too_old = event.start_time < self.cutoff(now)

        if decision.has_distrito and not decision.distrito_matched:
            decision.reason = REASON_OUTSIDE_DISTRITO
        elif decision.has_coordinates and not decision.has_distrito and not decision.within_radius:
            decision.reason = REASON_OUTSIDE_RADIUS
        elif decision.too_old:
            decision.reason = REASON_TOO_OLD
        else:
            decision.kept = True
            decision.reason = REASON_KEPT
        return decision

    def classify_city(self, event: Event, now: datetime) -> InclusionDecision:
        end = event.effective_end
        decision = InclusionDecision(start_date=event.start_time, end_date=end)
        self._locate(event, decision)
        decision.text_matched = matches_plaza_espana(event)
        decision.days_old = _days_between(now, end)
        decision.too_old = end < self.cutoff(now)

        if decision.has_coordinates and decision.within_radius:
            candidate, multi_venue = True, False
        elif decision.text_matched:
            candidate, multi_venue = True, True
        else:
            candidate, multi_venue = False, False

        if not candidate:
            decision.reason = (
                REASON_OUTSIDE_RADIUS if decision.has_coordinates else REASON_NO_LOCATION
            )
        elif decision.too_old:
            decision.reason = REASON_TOO_OLD
        else:
            decision.kept = True
            decision.multi_venue_kept = multi_venue
            decision.reason = REASON_MULTI_VENUE if multi_venue else REASON_KEPT
        return decision

    def classify(self, event: Event, now: datetime) -> InclusionDecision:
        if event.kind == "city":
            return self.classify_city(event, now)
        return self.classify_cultural(event, now)

    # ------------------------------------------------------------------
    def apply(self, events: Iterable[Event], now: datetime) -> list[Event]:
        """Decide every record in place and return the kept ones."""

        kept: list[Event] = []
        for event in events:
            event.decision = self.classify(event, now)
            if event.decision.kept:
                kept.append(event)
        return kept

    @staticmethod
    def summarize(events: Iterable[Event]) -> FilterSummary:
        summary = FilterSummary()
        reasons: Counter[str] = Counter()
        methods: Counter[str] = Counter()
        for event in events:
            decision = event.decision
            if decision is None:
                continue
            summary.total += 1
            reasons[decision.reason] += 1
            if not decision.kept:
                summary.filtered += 1
                continue
            summary.kept += 1
            if event.kind == "city":
                methods["multi_venue" if decision.multi_venue_kept else "radius"] += 1
            elif decision.has_distrito:
                methods["distrito"] += 1
            elif decision.has_coordinates:
                methods["radius"] += 1
            elif decision.text_matched:
                methods["default_text_matched"] += 1
            else:
                methods["default"] += 1
        summary.reasons = dict(reasons)
        summary.keep_methods = dict(methods)
        return summary


__all__ = [
    "FilterSummary",
    "InclusionClassifier",
    "REASON_KEPT",
    "REASON_MULTI_VENUE",
    "REASON_NO_LOCATION",
    "REASON_OUTSIDE_DISTRITO",
    "REASON_OUTSIDE_RADIUS",
    "REASON_TOO_OLD",
]
