"""Coalesce per-source records by identifier while tracking provenance."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Iterable

from .models import Event, ParseResult

_BACKFILL_TEXT = ("district", "venue_name", "address", "description")
_BACKFILL_NUMERIC = ("latitude", "longitude")


@dataclass(slots=True)
class MergeStats:
    total_before: int = 0
    unique: int = 0
    duplicates: int = 0
    in_one_source: int = 0
    in_two_sources: int = 0
    in_three_sources: int = 0

    def to_dict(self) -> dict[str, int]:
        return dataclasses.asdict(self)


def dedupe_tags(tags: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for tag in tags:
        if tag not in seen:
            seen.add(tag)
            ordered.append(tag)
    return ordered


def _fold(kept: Event, incoming: Event) -> None:
    kept.sources.extend(incoming.sources)
    for name in _BACKFILL_TEXT:
        if not getattr(kept, name) and getattr(incoming, name):
            setattr(kept, name, getattr(incoming, name))
    for name in _BACKFILL_NUMERIC:
        if getattr(kept, name) == 0 and getattr(incoming, name) != 0:
            setattr(kept, name, getattr(incoming, name))


class MergeDeduplicator:
    """Merge records reported by several feeds into one record per id.

    The first occurrence of an id wins; later occurrences only contribute
    their source tag and fill optional fields that are still empty. Inputs
    are never mutated.
    """

    def __init__(self) -> None:
        self.stats = MergeStats()

    def merge(self, results: Iterable[ParseResult | Iterable[Event]]) -> list[Event]:
        merged: dict[str, Event] = {}
        total = 0
        for result in results:
            events = result.events if isinstance(result, ParseResult) else result
            for event in events:
                total += 1
                kept = merged.get(event.id)
                if kept is None:
                    merged[event.id] = dataclasses.replace(event, sources=list(event.sources))
                else:
                    _fold(kept, event)

        for event in merged.values():
            event.sources = dedupe_tags(event.sources)

        self.stats = self._compute_stats(total, merged.values())
        return list(merged.values())

    @staticmethod
    def _compute_stats(total: int, events: Iterable[Event]) -> MergeStats:
        stats = MergeStats(total_before=total)
        for event in events:
            stats.unique += 1
            count = len(event.sources)
            if count == 1:
                stats.in_one_source += 1
            elif count == 2:
                stats.in_two_sources += 1
            elif count >= 3:
                stats.in_three_sources += 1
        stats.duplicates = total - stats.unique
        return stats


def merge(results: Iterable[ParseResult | Iterable[Event]]) -> list[Event]:
    return MergeDeduplicator().merge(results)


__all__ = ["MergeDeduplicator", "MergeStats", "dedupe_tags", "merge"]
