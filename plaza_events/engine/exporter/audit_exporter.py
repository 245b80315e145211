"""Build audit (every record and its decision) and request audit exporters."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Sequence

from ..audit import RequestAuditor
from ..classifier import InclusionClassifier
from ..models import Event, ParseError
from .base import BaseExporter


class BuildAuditExporter(BaseExporter):
    """Serialise kept and rejected records plus per-reason counts."""

    def build_payload(
        self,
        cultural: Sequence[Event],
        city: Sequence[Event],
        parse_errors: Iterable[ParseError],
        build_time: datetime,
        duration: timedelta,
    ) -> dict:
        pipelines = {}
        for name, events in (("cultural", cultural), ("city", city)):
            summary = InclusionClassifier.summarize(events)
            pipelines[name] = {
                **summary.to_dict(),
                "events": [event.to_dict() for event in events],
            }
        return {
            "build_time": build_time.isoformat(),
            "duration_seconds": round(duration.total_seconds(), 3),
            "total_events": len(cultural) + len(city),
            "pipelines": pipelines,
            "parse_errors": [error.to_dict() for error in parse_errors],
        }


class RequestAuditExporter(BaseExporter):
    """Dump the fetcher's request log verbatim."""

    def build_payload(self, auditor: RequestAuditor) -> list[dict]:
        return [record.to_dict() for record in auditor.records()]


__all__ = ["BuildAuditExporter", "RequestAuditExporter"]
