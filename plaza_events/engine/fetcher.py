"""HTTP fetching with on-disk caching, per-host throttling and request audit."""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx
import structlog

from ..config import FetchConfig
from ..config.models import DEFAULT_USER_AGENT
from ..infra import CacheEntry, CacheError, HTTPCache, RequestThrottle
from .audit import RequestAuditor
from .errors import (
    RATE_LIMIT_STATUSES,
    BlockedRequestError,
    BodyReadError,
    FetchError,
    HTTPStatusError,
    NetworkError,
    RateLimitedError,
    SyntheticCacheMissError,
)

STRICT_ENV_VAR = "PLAZAESPANA_NO_API"
LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})
NETWORK_SCHEMES = frozenset({"http", "https"})


def strict_mode_enabled() -> bool:
    value = os.environ.get(STRICT_ENV_VAR, "")
    return value.strip().lower() not in ("", "0", "false", "no", "off")


def is_loopback(url: str) -> bool:
    return (urlparse(url).hostname or "").lower() in LOOPBACK_HOSTS


class Fetcher:
    """Perform single logical fetches; no retries happen at this layer.

    Every outcome except ``file://`` reads produces exactly one audit record.
    """

    def __init__(
        self,
        cache: HTTPCache,
        throttle: RequestThrottle,
        auditor: RequestAuditor | None = None,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.cache = cache
        self.throttle = throttle
        self.auditor = auditor or RequestAuditor()
        self.user_agent = user_agent
        self.logger = logger or structlog.get_logger("plaza_events.fetcher")
        self._client = httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: FetchConfig,
        *,
        cache_dir: Path | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> "Fetcher":
        mode = config.mode_config()
        cache = HTTPCache(cache_dir or config.cache_dir, mode.cache_ttl)
        for pattern, seconds in config.cache_ttl_overrides.items():
            cache.set_ttl_override(pattern, timedelta(seconds=seconds))
        return cls(
            cache,
            RequestThrottle(mode.min_delay_seconds),
            user_agent=config.user_agent,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        skip_cache: bool = False,
    ) -> bytes:
        scheme = urlparse(url).scheme.lower()
        if scheme == "file":
            return self._read_local(url)
        if scheme not in NETWORK_SCHEMES:
            return self._read_synthetic(url)

        if strict_mode_enabled() and not is_loopback(url):
            message = f"network access disabled by {STRICT_ENV_VAR}: {url}"
            self.auditor.record(url, error=message)
            raise BlockedRequestError(url, message)

        if not skip_cache:
            cached = self._cache_lookup(url)
            if cached is not None:
                self.auditor.record(url, cache_hit=True, status_code=cached.status_code)
                self.logger.debug("cache_hit", url=url)
                return cached.body

        delay = self.throttle.wait(url)
        if delay > 0:
            self.logger.info("throttle_wait", url=url, delay_ms=int(delay * 1000))

        stale = self._cache_peek(url)
        request_headers = {"User-Agent": self.user_agent}
        request_headers.update(headers or {})
        if stale is not None and stale.last_modified:
            request_headers["If-Modified-Since"] = stale.last_modified

        request = self._client.build_request("GET", url, headers=request_headers)
        try:
            response = self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            message = f"HTTP request failed: {exc}"
            self.auditor.record(url, delay_seconds=delay, error=message)
            self.logger.warning("fetch_error", url=url, error=str(exc))
            raise NetworkError(url, message) from exc

        try:
            status = response.status_code
            if status == httpx.codes.NOT_MODIFIED and stale is not None:
                self.auditor.record(url, cache_hit=True, status_code=status, delay_seconds=delay)
                self._cache_store(CacheEntry(
                    url=url,
                    body=stale.body,
                    last_modified=stale.last_modified,
                    etag=stale.etag,
                    status_code=stale.status_code,
                ))
                self.logger.info("not_modified", url=url)
                return stale.body

            if status in RATE_LIMIT_STATUSES:
                error = RateLimitedError(url, status)
                self.auditor.record(
                    url,
                    status_code=status,
                    delay_seconds=delay,
                    rate_limited=True,
                    error=str(error),
                )
                self.logger.warning("rate_limited", url=url, status_code=status)
                raise error

            if status != httpx.codes.OK:
                error = HTTPStatusError(url, status)
                self.auditor.record(url, status_code=status, delay_seconds=delay, error=str(error))
                self.logger.warning("unexpected_status", url=url, status_code=status)
                raise error

            try:
                body = response.read()
            except (httpx.HTTPError, httpx.StreamError) as exc:
                message = f"reading response body: {exc}"
                self.auditor.record(url, status_code=status, delay_seconds=delay, error=message)
                self.logger.warning("body_read_error", url=url, error=str(exc))
                raise BodyReadError(url, message) from exc
        finally:
            response.close()

        self._cache_store(CacheEntry(
            url=url,
            body=body,
            last_modified=response.headers.get("Last-Modified", ""),
            etag=response.headers.get("ETag", ""),
            status_code=status,
        ))
        self.auditor.record(url, status_code=status, delay_seconds=delay)
        self.logger.info("fetched", url=url, status_code=status, bytes=len(body))
        return body

    def store_synthetic(self, url: str, body: bytes) -> bool:
        """Persist derived data under a cache key; failures are only logged."""

        try:
            self.cache.set(CacheEntry(url=url, body=body))
        except CacheError as exc:
            self.logger.warning("synthetic_cache_write_failed", url=url, error=str(exc))
            return False
        return True

    # ------------------------------------------------------------------
    def _read_local(self, url: str) -> bytes:
        path = Path(unquote(urlparse(url).path))
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FetchError(url, f"reading file {path}: {exc}") from exc

    def _read_synthetic(self, url: str) -> bytes:
        entry = self._cache_lookup(url)
        if entry is None:
            message = f"synthetic URL not in cache: {url}"
            self.auditor.record(url, error=message)
            raise SyntheticCacheMissError(url, message)
        self.auditor.record(url, cache_hit=True, status_code=entry.status_code)
        return entry.body

    def _cache_lookup(self, url: str) -> CacheEntry | None:
        try:
            return self.cache.get(url)
        except CacheError as exc:
            self.logger.warning("cache_read_failed", url=url, error=str(exc))
            return None

    def _cache_peek(self, url: str) -> CacheEntry | None:
        try:
            return self.cache.peek(url)
        except CacheError as exc:
            self.logger.warning("cache_read_failed", url=url, error=str(exc))
            return None

    def _cache_store(self, entry: CacheEntry) -> None:
        try:
            self.cache.set(entry)
        except CacheError as exc:
            self.logger.warning("cache_write_failed", url=entry.url, error=str(exc))


__all__ = [
    "Fetcher",
    "LOOPBACK_HOSTS",
    "STRICT_ENV_VAR",
    "is_loopback",
    "strict_mode_enabled",
]
