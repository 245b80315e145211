"""Engine components: fetch -> parse -> merge -> classify -> group."""

from .audit import RequestAuditor, RequestRecord
from .classifier import FilterSummary, InclusionClassifier
from .fetcher import Fetcher
from .grouping import GroupingResult, TimeBucketGrouper, TimeGroup
from .merge import MergeDeduplicator, MergeStats
from .models import Event, InclusionDecision, ParseError, ParseResult

__all__ = [
    "Event",
    "Fetcher",
    "FilterSummary",
    "GroupingResult",
    "InclusionClassifier",
    "InclusionDecision",
    "MergeDeduplicator",
    "MergeStats",
    "ParseError",
    "ParseResult",
    "RequestAuditor",
    "RequestRecord",
    "TimeBucketGrouper",
    "TimeGroup",
]
