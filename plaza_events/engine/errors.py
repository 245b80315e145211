"""Error taxonomy surfaced by the fetch layer."""

from __future__ import annotations

from ..infra.cache import CacheError


class FetchError(RuntimeError):
    """Base class for failures of a single logical fetch."""

    rate_limited = False

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


class NetworkError(FetchError):
    """Transport failure before a response status was received."""


class HTTPStatusError(FetchError):
    """Upstream answered with an unexpected status code."""

    def __init__(self, url: str, status_code: int, message: str | None = None) -> None:
        super().__init__(url, message or f"HTTP {status_code}")
        self.status_code = status_code


class RateLimitedError(HTTPStatusError):
    """Upstream answered 429, 403 or 503; callers may choose to back off."""

    rate_limited = True

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(url, status_code, f"HTTP {status_code} (rate limited)")


class BodyReadError(FetchError):
    """The response arrived but its body could not be read."""


class BlockedRequestError(FetchError):
    """Strict mode refused a non-loopback network request."""


class SyntheticCacheMissError(FetchError):
    """A synthetic (cache-only) key has no stored entry."""


RATE_LIMIT_STATUSES = frozenset({429, 403, 503})

__all__ = [
    "BlockedRequestError",
    "BodyReadError",
    "CacheError",
    "FetchError",
    "HTTPStatusError",
    "NetworkError",
    "RATE_LIMIT_STATUSES",
    "RateLimitedError",
    "SyntheticCacheMissError",
]
