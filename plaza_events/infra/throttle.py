"""Per-host minimum delay between outgoing requests."""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable
from urllib.parse import urlparse


class RequestThrottle:
    """Block callers until ``min_delay`` has passed since the host's last request.

    The first request to a host is never delayed. Uses a monotonic clock so
    wall-clock adjustments do not distort waits.
    """

    def __init__(
        self,
        min_delay: float,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.min_delay = max(0.0, float(min_delay))
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._last_request: dict[str, float] = {}
        self._lock = Lock()

    @staticmethod
    def host_of(url: str) -> str:
        return urlparse(url).netloc

    def wait(self, url: str) -> float:
        """Wait as needed and return the delay incurred, in seconds."""

        host = self.host_of(url)
        with self._lock:
            now = self._clock()
            last = self._last_request.get(host)
            delay = 0.0
            if last is not None:
                elapsed = now - last
                if elapsed < self.min_delay:
                    delay = self.min_delay - elapsed
            # Reserve the slot before sleeping so concurrent callers queue behind it.
            self._last_request[host] = now + delay
        if delay > 0:
            self._sleep(delay)
        return delay

    def last_request(self, url: str) -> float | None:
        with self._lock:
            return self._last_request.get(self.host_of(url))


__all__ = ["RequestThrottle"]
