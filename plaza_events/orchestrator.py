"""Build orchestrator wiring together fetching, parsing, merge, classification and grouping."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Any, Callable, Mapping

import structlog

from .config import BuildConfig
from .engine.classifier import FilterSummary, InclusionClassifier
from .engine.errors import FetchError
from .engine.exporter import BuildAuditExporter, RequestAuditExporter
from .engine.fetcher import Fetcher
from .engine.grouping import GroupingResult, TimeBucketGrouper
from .engine.merge import MergeDeduplicator, MergeStats
from .engine.models import Event, ParseError, ParseResult
from .engine.parsers import (
    CITY_TAG,
    CSV_TAG,
    JSON_TAG,
    XML_TAG,
    parse_csv,
    parse_esmadrid,
    parse_json,
    parse_xml,
)
from .logging_conf import source_logger

Parser = Callable[[bytes, tzinfo], ParseResult]


@dataclass(slots=True)
class SourceEndpoint:
    """One (format, URL) pair; immutable for a build run."""

    tag: str
    url: str
    parse: Parser


@dataclass(slots=True)
class IngestionResult:
    """Independent outcomes per source, in fetch order; nothing merged yet."""

    results: dict[str, ParseResult] = field(default_factory=dict)

    def __getitem__(self, tag: str) -> ParseResult:
        return self.results[tag]

    @property
    def events(self) -> list[Event]:
        return [event for result in self.results.values() for event in result.events]

    @property
    def errors(self) -> list[ParseError]:
        return [error for result in self.results.values() for error in result.errors]


@dataclass(slots=True)
class BuildResult:
    build_time: datetime
    duration: timedelta
    cultural: list[Event]
    city: list[Event]
    kept: list[Event]
    grouping: GroupingResult
    merge_stats: MergeStats
    parse_errors: list[ParseError]
    cultural_summary: FilterSummary
    city_summary: FilterSummary


class Orchestrator:
    """Central coordinator running one synchronous build pass.

    Sources are fetched one after another with the fetch mode's minimum delay
    between them, and each source runs inside its own fault boundary.
    """

    def __init__(
        self,
        config: BuildConfig,
        fetcher: Fetcher | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher or Fetcher.from_config(config.fetch)
        self.tz = config.tz
        self.classifier = InclusionClassifier(config.filter)
        self.grouper = TimeBucketGrouper.from_config(config.filter, self.tz)
        self.inter_source_delay = config.fetch.mode_config().min_delay_seconds
        self._sleep = sleep
        self.logger = logger or structlog.get_logger("plaza_events.orchestrator")

    def close(self) -> None:
        self.fetcher.close()

    # ------------------------------------------------------------------
    def cultural_endpoints(self) -> list[SourceEndpoint]:
        cultural = self.config.cultural
        return [
            SourceEndpoint(JSON_TAG, cultural.json_url, parse_json),
            SourceEndpoint(XML_TAG, cultural.xml_url, parse_xml),
            SourceEndpoint(CSV_TAG, cultural.csv_url, parse_csv),
        ]

    def city_endpoint(self) -> SourceEndpoint:
        return SourceEndpoint(CITY_TAG, self.config.city.xml_url, parse_esmadrid)

    def fetch_source(self, endpoint: SourceEndpoint) -> ParseResult:
        """Fetch and parse one source; never raises."""

        log = source_logger(endpoint.tag)
        try:
            try:
                payload = self.fetcher.fetch(endpoint.url)
            except FetchError as exc:
                result = ParseResult(source=endpoint.tag)
                result.add_error(str(exc), raw_data=endpoint.url)
                log.warning("source_fetch_failed", url=endpoint.url, error=str(exc))
                return result
            result = endpoint.parse(payload, self.tz)
        except Exception as exc:  # noqa: BLE001
            log.error("source_fault", url=endpoint.url, error=repr(exc))
            result = ParseResult(source=endpoint.tag)
            result.add_error(f"{endpoint.tag} fetch fault: {exc}", raw_data=endpoint.url)
            return result
        log.info("source_fetched", events=len(result.events), errors=len(result.errors))
        return result

    def fetch_all(self) -> IngestionResult:
        ingestion = IngestionResult()
        for position, endpoint in enumerate(self.cultural_endpoints()):
            if position and self.inter_source_delay > 0:
                self._sleep(self.inter_source_delay)
            ingestion.results[endpoint.tag] = self.fetch_source(endpoint)
        self.logger.info(
            "cultural_sources_fetched",
            **{tag.lower(): len(result.events) for tag, result in ingestion.results.items()},
            errors=len(ingestion.errors),
        )
        return ingestion

    def fetch_city(self) -> ParseResult:
        return self.fetch_source(self.city_endpoint())

    # ------------------------------------------------------------------
    def run(
        self,
        now: datetime | None = None,
        forecasts: Mapping[str, Any] | None = None,
    ) -> BuildResult:
        started = time.monotonic()
        now = (now or datetime.now(self.tz)).astimezone(self.tz)

        ingestion = self.fetch_all()
        deduplicator = MergeDeduplicator()
        cultural = deduplicator.merge(ingestion.results.values())
        self.logger.info("merged", **deduplicator.stats.to_dict())

        city_result = self.fetch_city()
        city = MergeDeduplicator().merge([city_result])

        kept = self.classifier.apply(cultural, now) + self.classifier.apply(city, now)
        cultural_summary = self.classifier.summarize(cultural)
        city_summary = self.classifier.summarize(city)
        self.logger.info(
            "classified",
            cultural_kept=cultural_summary.kept,
            cultural_filtered=cultural_summary.filtered,
            city_kept=city_summary.kept,
            city_filtered=city_summary.filtered,
        )

        grouping = self.grouper.group(kept, now, forecasts)
        return BuildResult(
            build_time=now,
            duration=timedelta(seconds=time.monotonic() - started),
            cultural=cultural,
            city=city,
            kept=kept,
            grouping=grouping,
            merge_stats=deduplicator.stats,
            parse_errors=ingestion.errors + city_result.errors,
            cultural_summary=cultural_summary,
            city_summary=city_summary,
        )

    def export(self, result: BuildResult) -> None:
        output = self.config.output
        BuildAuditExporter(output.build_audit_path).export(
            result.cultural, result.city, result.parse_errors, result.build_time, result.duration
        )
        RequestAuditExporter(output.request_audit_path).export(self.fetcher.auditor)
        self.logger.info(
            "audit_exported",
            build_audit=str(output.build_audit_path),
            request_audit=str(output.request_audit_path),
        )


__all__ = ["BuildResult", "IngestionResult", "Orchestrator", "SourceEndpoint"]
