"""Append-only log of fetch attempts."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from threading import Lock


@dataclass(slots=True)
class RequestRecord:
    url: str
    timestamp: datetime
    cache_hit: bool = False
    status_code: int = 0
    delay_ms: int = 0
    rate_limited: bool = False
    error: str = ""

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["timestamp"] = self.timestamp.isoformat()
        return payload


class RequestAuditor:
    """Collect one record per fetch attempt; safe for concurrent appenders."""

    def __init__(self) -> None:
        self._records: list[RequestRecord] = []
        self._lock = Lock()

    def record(
        self,
        url: str,
        *,
        cache_hit: bool = False,
        status_code: int = 0,
        delay_seconds: float = 0.0,
        rate_limited: bool = False,
        error: str = "",
        timestamp: datetime | None = None,
    ) -> RequestRecord:
        entry = RequestRecord(
            url=url,
            timestamp=timestamp or datetime.now(timezone.utc),
            cache_hit=cache_hit,
            status_code=status_code,
            delay_ms=int(round(delay_seconds * 1000)),
            rate_limited=rate_limited,
            error=error,
        )
        with self._lock:
            self._records.append(entry)
        return entry

    def records(self) -> list[RequestRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["RequestAuditor", "RequestRecord"]
