from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
import time

import pytest

from minutes_to_gh.services.rate_limit import RequestRateLimiter, parse_rate_limit, rate_for


@pytest.mark.parametrize("rate", [0, -1.0, math.inf, math.nan])
def test_rate_must_be_finite_and_positive(rate: float) -> None:
    with pytest.raises(ValueError):
        RequestRateLimiter(rate)


def test_parse_rate_limit_accepts_decimal_values() -> None:
    assert parse_rate_limit("2.5") == 2.5
    assert parse_rate_limit("0.2") == 0.2


@pytest.mark.parametrize("value", ["fast", "0", "-3", "inf", "nan"])
def test_parse_rate_limit_rejects_invalid_values(value: str) -> None:
    with pytest.raises(ValueError):
        parse_rate_limit(value)


def test_requests_under_the_limit_are_admitted_immediately() -> None:
    limiter = RequestRateLimiter(100)

    started = time.monotonic()
    for _ in range(5):
        limiter.acquire()

    assert time.monotonic() - started < 0.5


def test_requests_over_the_limit_block_instead_of_failing() -> None:
    limiter = RequestRateLimiter(4)

    started = time.monotonic()
    with ThreadPoolExecutor(max_workers=3) as executor:
        for future in [executor.submit(limiter.acquire) for _ in range(6)]:
            future.result()

    assert time.monotonic() - started >= 0.5


@pytest.mark.parametrize(
    ("requests_per_second", "limit", "interval"),
    [(4, 4, 1000), (1.0, 1, 1000), (0.3, 1, 3333), (2.5, 1, 400), (0.001, 1, 1_000_000)],
)
def test_fractional_rates_admit_one_request_per_interval(
    requests_per_second: float, limit: int, interval: int
) -> None:
    rate = rate_for(requests_per_second)

    assert (rate.limit, rate.interval) == (limit, interval)
