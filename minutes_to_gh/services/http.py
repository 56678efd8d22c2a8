"""HTTP settings shared by the minutes, group, and GitHub clients."""

from __future__ import annotations

from datetime import datetime, timezone
import email.utils
import logging
import os

import httpx

LOGGER = logging.getLogger(__name__)

TIMEOUT_ENV_VAR = "M2G_HTTP_TIMEOUT"
USER_AGENT_ENV_VAR = "M2G_USER_AGENT"
DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "minutes_to_gh/0.9 (+https://github.com/pchampin/minutes_to_gh)"


def load_timeout_from_env(default: float = DEFAULT_TIMEOUT) -> float:
    """Return the per-request timeout from the environment, falling back to ``default``."""

    raw_value = os.getenv(TIMEOUT_ENV_VAR)
    if not raw_value:
        return default

    try:
        timeout = float(raw_value)
    except ValueError:
        LOGGER.warning("Ignoring invalid timeout value in %s", TIMEOUT_ENV_VAR)
        return default

    if timeout <= 0:
        LOGGER.warning("Ignoring non-positive timeout value in %s", TIMEOUT_ENV_VAR)
        return default

    return timeout


def user_agent() -> str:
    return (os.getenv(USER_AGENT_ENV_VAR) or "").strip() or DEFAULT_USER_AGENT


def build_client(timeout: float | None = None, **kwargs: object) -> httpx.Client:
    """Return an ``httpx.Client`` carrying the configured timeout and user agent."""

    return httpx.Client(
        timeout=timeout if timeout is not None else load_timeout_from_env(),
        headers={"User-Agent": user_agent()},
        follow_redirects=True,
        **kwargs,  # type: ignore[arg-type]
    )


def retry_after_seconds(response: httpx.Response) -> float | None:
    """Return the delay requested by a ``Retry-After`` or rate-limit reset header."""

    value = response.headers.get("Retry-After")
    if value:
        value = value.strip()
        try:
            return max(0.0, float(value))
        except ValueError:
            pass
        try:
            moment = email.utils.parsedate_to_datetime(value)
        except (TypeError, ValueError):
            moment = None
        if moment is not None:
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=timezone.utc)
            return max(0.0, (moment - datetime.now(timezone.utc)).total_seconds())

    if response.headers.get("X-RateLimit-Remaining") == "0":
        reset = response.headers.get("X-RateLimit-Reset")
        if reset and reset.isdigit():
            return max(0.0, int(reset) - datetime.now(timezone.utc).timestamp())

    return None
