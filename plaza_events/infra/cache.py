"""On-disk HTTP response cache keyed by URL digest."""

from __future__ import annotations

import base64
import hashlib
import json
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from threading import Lock
from typing import Callable


class CacheError(RuntimeError):
    """Raised when a cache entry cannot be read or written."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class CacheEntry:
    url: str
    body: bytes
    last_modified: str = ""
    etag: str = ""
    fetched_at: datetime | None = None
    status_code: int = 200

    def to_payload(self) -> dict:
        return {
            "url": self.url,
            "body": base64.b64encode(self.body).decode("ascii"),
            "last_modified": self.last_modified,
            "etag": self.etag,
            "fetched_at": self.fetched_at.isoformat() if self.fetched_at else None,
            "status_code": self.status_code,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "CacheEntry":
        fetched_at = payload.get("fetched_at")
        return cls(
            url=payload["url"],
            body=base64.b64decode(payload.get("body") or ""),
            last_modified=payload.get("last_modified") or "",
            etag=payload.get("etag") or "",
            fetched_at=datetime.fromisoformat(fetched_at) if fetched_at else None,
            status_code=int(payload.get("status_code") or 200),
        )


class HTTPCache:
    """Persist response bodies with per-URL time-to-live.

    Entries are immutable files named after the first eight bytes of the
    SHA-256 digest of the URL. Writes go to a temporary file in the same
    directory and are renamed into place.
    """

    def __init__(
        self,
        cache_dir: Path,
        ttl: timedelta,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.default_ttl = ttl
        self._clock = clock or _utcnow
        self._overrides: list[tuple[str, timedelta]] = []
        self._lock = Lock()

    # ------------------------------------------------------------------
    def set_ttl_override(self, pattern: str, ttl: timedelta) -> None:
        """Register a TTL for URLs containing ``pattern``.

        Re-registering an existing pattern updates it in place, keeping its
        original priority.
        """

        with self._lock:
            for index, (existing, _) in enumerate(self._overrides):
                if existing == pattern:
                    self._overrides[index] = (pattern, ttl)
                    return
            self._overrides.append((pattern, ttl))

    def ttl_for(self, url: str) -> timedelta:
        with self._lock:
            for pattern, ttl in self._overrides:
                if pattern in url:
                    return ttl
        return self.default_ttl

    # ------------------------------------------------------------------
    def path_for(self, url: str) -> Path:
        digest = hashlib.sha256(url.encode("utf-8")).digest()[:8].hex()
        return self.cache_dir / f"{digest}.json"

    def peek(self, url: str) -> CacheEntry | None:
        """Return the stored entry regardless of age, or ``None`` if absent."""

        path = self.path_for(url)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            return CacheEntry.from_payload(payload)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise CacheError(f"reading cache entry {path.name}: {exc}") from exc

    def get(self, url: str) -> CacheEntry | None:
        """Return the entry only while it is fresh."""

        entry = self.peek(url)
        if entry is None or entry.fetched_at is None:
            return None
        if self._clock() - entry.fetched_at > self.ttl_for(url):
            return None
        return entry

    def set(self, entry: CacheEntry) -> CacheEntry:
        """Stamp ``entry`` with the current time and persist it atomically."""

        entry.fetched_at = self._clock()
        path = self.path_for(entry.url)
        data = json.dumps(entry.to_payload(), ensure_ascii=False)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=".tmp-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as stream:
                    stream.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CacheError(f"writing cache entry {path.name}: {exc}") from exc
        return entry

    def delete(self, url: str) -> None:
        try:
            self.path_for(url).unlink(missing_ok=True)
        except OSError as exc:
            raise CacheError(f"deleting cache entry for {url}: {exc}") from exc


__all__ = ["CacheEntry", "CacheError", "HTTPCache"]
