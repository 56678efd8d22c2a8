"""Shared, blocking rate limiter for outbound GitHub API requests."""

from __future__ import annotations

import logging
import math
from typing import Protocol

from pyrate_limiter import Duration, Limiter, Rate

LOGGER = logging.getLogger(__name__)

_MAX_DELAY_MS = int(Duration.HOUR)


class SupportsAcquire(Protocol):
    """Anything able to admit one request, blocking until it may proceed."""

    def acquire(self) -> None:
        """Block until a request may be sent."""


def rate_for(requests_per_second: float) -> Rate:
    """Return the bucket rate for ``requests_per_second``.

    Whole numbers admit that many requests per second. Any other value admits
    one request per interval, so 0.3 never allows a burst of three.
    """

    if requests_per_second >= 1 and float(requests_per_second).is_integer():
        return Rate(int(requests_per_second), int(Duration.SECOND))
    return Rate(1, max(1, round(int(Duration.SECOND) / requests_per_second)))


class RequestRateLimiter:
    """Token bucket admitting at most ``requests_per_second`` requests.

    A single instance is shared by every publish task of a run. Callers over
    the limit are suspended until a slot frees up rather than failing.
    """

    def __init__(self, requests_per_second: float = 1.0, *, name: str = "github") -> None:
        if not math.isfinite(requests_per_second) or requests_per_second <= 0:
            raise ValueError("The rate limit must be a finite, positive number of requests per second")

        self.requests_per_second = requests_per_second
        self.rate = rate_for(requests_per_second)
        self._name = name
        self._limiter = Limiter(
            self.rate,
            raise_when_fail=False,
            max_delay=_MAX_DELAY_MS,
            retry_until_max_delay=True,
        )
        LOGGER.debug("Rate limiter %r admits %s requests per second", name, requests_per_second)

    def acquire(self) -> None:
        if not self._limiter.try_acquire(self._name):
            raise RuntimeError(f"Rate limiter {self._name!r} did not admit the request within its maximum delay")


def parse_rate_limit(value: str) -> float:
    """Parse a requests-per-second value given on the command line."""

    try:
        rate = float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid rate limit {value!r}") from exc
    if not math.isfinite(rate) or rate <= 0:
        raise ValueError(f"Invalid rate limit {value!r}: expected a finite, positive number")
    return rate


__all__ = ["RequestRateLimiter", "SupportsAcquire", "parse_rate_limit", "rate_for"]
