"""Canonical event records shared by parsers, merge, classifier and grouper."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal

EventKind = Literal["cultural", "city"]

DEFAULT_DURATION = timedelta(hours=2)


@dataclass(slots=True)
class InclusionDecision:
    """Outcome of every inclusion rule evaluated for one record.

    Kept on rejected records too, so the build audit can explain each drop.
    """

    has_distrito: bool = False
    distrito_matched: bool = False
    distrito: str = ""
    has_coordinates: bool = False
    gps_distance_km: float | None = None
    within_radius: bool = False
    text_matched: bool = False
    multi_venue_kept: bool = False
    start_date: datetime | None = None
    end_date: datetime | None = None
    days_old: int = 0
    too_old: bool = False
    kept: bool = False
    reason: str = ""

    def to_dict(self) -> dict:
        return {
            "has_distrito": self.has_distrito,
            "distrito_matched": self.distrito_matched,
            "distrito": self.distrito,
            "has_coordinates": self.has_coordinates,
            "gps_distance_km": self.gps_distance_km,
            "within_radius": self.within_radius,
            "text_matched": self.text_matched,
            "multi_venue_kept": self.multi_venue_kept,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "days_old": self.days_old,
            "too_old": self.too_old,
            "kept": self.kept,
            "filter_reason": self.reason,
        }


@dataclass(slots=True)
class Event:
    id: str
    title: str
    start_time: datetime
    end_time: datetime | None = None
    description: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    venue_name: str = ""
    address: str = ""
    district: str = ""
    details_url: str = ""
    kind: EventKind = "cultural"
    category: str = ""
    subcategory: str = ""
    price: str = ""
    image_url: str = ""
    sources: list[str] = field(default_factory=list)
    decision: InclusionDecision | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude != 0 and self.longitude != 0

    @property
    def effective_end(self) -> datetime:
        return self.end_time or self.start_time + DEFAULT_DURATION

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "title": self.title,
            "description": self.description,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "venue_name": self.venue_name,
            "address": self.address,
            "district": self.district,
            "details_url": self.details_url,
            "category": self.category,
            "subcategory": self.subcategory,
            "price": self.price,
            "image_url": self.image_url,
            "sources": list(self.sources),
            "filter_result": self.decision.to_dict() if self.decision else None,
        }


@dataclass(slots=True)
class ParseError:
    """A record (or whole payload) that could not be normalised."""

    source: str
    error: str
    index: int = -1
    raw_data: str = ""
    recover_type: str = "skipped"

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "index": self.index,
            "raw_data": self.raw_data,
            "error": self.error,
            "recover_type": self.recover_type,
        }


@dataclass(slots=True)
class ParseResult:
    source: str
    events: list[Event] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)

    def add_error(self, error: str, index: int = -1, raw_data: str = "") -> None:
        self.errors.append(ParseError(source=self.source, error=error, index=index, raw_data=raw_data))


__all__ = [
    "DEFAULT_DURATION",
    "Event",
    "EventKind",
    "InclusionDecision",
    "ParseError",
    "ParseResult",
]
