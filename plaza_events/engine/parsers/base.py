"""Helpers shared by the feed parsers: time parsing, sanitising and validation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, time, tzinfo

from ..models import DEFAULT_DURATION, Event

_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
)
_HORA_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})")


def parse_local_datetime(value: object, tz: tzinfo) -> datetime:
    """Parse the date formats used by the Madrid feeds as local wall time."""

    text = clean(value)
    if not text:
        raise ValueError("missing date")
    for fmt in _DATETIME_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=tz)
    raise ValueError(f"invalid date {text!r}")


def apply_hora(moment: datetime, hora: object) -> datetime:
    """Overlay an ``HH:MM`` time of day; unparseable values leave ``moment`` as is."""

    match = _HORA_PATTERN.match(clean(hora))
    if not match:
        return moment
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return moment
    return moment.replace(hour=hour, minute=minute, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time(23, 59), tzinfo=moment.tzinfo)


def parse_coordinate(value: object) -> float:
    """Return a float coordinate; blanks and garbage become ``0.0`` (unknown)."""

    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", ".")
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def clean(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def validate_event(event: Event) -> None:
    """Raise ``ValueError`` if the record cannot be used downstream."""

    if not event.id:
        raise ValueError("missing ID")
    if not event.title:
        raise ValueError("missing title")
    if event.start_time is None:
        raise ValueError("missing start time")
    if not -90 <= event.latitude <= 90:
        raise ValueError(f"invalid latitude {event.latitude}")
    if not -180 <= event.longitude <= 180:
        raise ValueError(f"invalid longitude {event.longitude}")


@dataclass(slots=True)
class CulturalRecord:
    """One agenda row using the council feed's own field names.

    JSON, XML and CSV payloads carry the same columns under different
    envelopes; each parser maps its envelope onto this shape.
    """

    id_evento: str = ""
    titulo: str = ""
    descripcion: str = ""
    fecha: str = ""
    fecha_fin: str = ""
    hora: str = ""
    nombre_instalacion: str = ""
    direccion: str = ""
    distrito: str = ""
    content_url: str = ""
    latitud: object = None
    longitud: object = None

    def to_event(self, tz: tzinfo, source: str) -> Event:
        start = apply_hora(parse_local_datetime(self.fecha, tz), self.hora)
        end = None
        if clean(self.fecha_fin):
            try:
                end = parse_local_datetime(self.fecha_fin, tz)
            except ValueError:
                end = None
        if end is None:
            end = start + DEFAULT_DURATION
        event = Event(
            id=clean(self.id_evento),
            title=clean(self.titulo),
            description=clean(self.descripcion),
            start_time=start,
            end_time=end,
            latitude=parse_coordinate(self.latitud),
            longitude=parse_coordinate(self.longitud),
            venue_name=clean(self.nombre_instalacion),
            address=clean(self.direccion),
            district=clean(self.distrito).upper(),
            details_url=clean(self.content_url),
            kind="cultural",
            sources=[source],
        )
        validate_event(event)
        return event

    @property
    def raw_context(self) -> str:
        return f"ID={clean(self.id_evento)}"


__all__ = [
    "CulturalRecord",
    "apply_hora",
    "clean",
    "end_of_day",
    "parse_coordinate",
    "parse_local_datetime",
    "validate_event",
]
