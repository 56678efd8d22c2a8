"""Minimal GitHub REST client for reading and creating issue comments."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from minutes_to_gh.errors import (
    GitHubAPIError,
    PublishAuthError,
    PublishNotFound,
    PublishTransient,
)
from minutes_to_gh.models.issue import IssueComment, IssueRef
from minutes_to_gh.services.http import build_client, retry_after_seconds
from minutes_to_gh.services.rate_limit import SupportsAcquire

LOGGER = logging.getLogger(__name__)

API_ROOT = "https://api.github.com"
_PAGE_SIZE = 100
_MAX_RETRY_DELAY = 60.0


class SupportsIssueComments(Protocol):
    """Subset of the GitHub API relied on by the comment publisher."""

    def list_comments(self, issue: IssueRef) -> list[IssueComment]:
        """Return every comment posted on ``issue``."""

    def create_comment(self, issue: IssueRef, body: str) -> IssueComment:
        """Post ``body`` as a new comment on ``issue``."""


class RetryAfterOrBackoff(wait_base):
    """Honour the delay requested by GitHub before falling back to exponential backoff."""

    def __init__(self, fallback: wait_base, max_delay: float = _MAX_RETRY_DELAY) -> None:
        self._fallback = fallback
        self._max_delay = max_delay

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            exc = outcome.exception()
            retry_after = getattr(exc, "retry_after", None)
            if retry_after is not None:
                return min(float(retry_after), self._max_delay)
        return float(self._fallback(retry_state))


def default_wait() -> wait_base:
    return RetryAfterOrBackoff(wait_exponential(multiplier=0.5, min=0.5, max=30))


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip()[:200] or response.reason_phrase
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return response.reason_phrase


def raise_for_github_status(response: httpx.Response) -> None:
    """Translate an unsuccessful GitHub response into the matching exception."""

    if response.is_success:
        return

    status = response.status_code
    message = f"GitHub API error {status} on {response.request.method} {response.request.url}: {_error_message(response)}"
    retry_after = retry_after_seconds(response)

    if status == 429 or status >= 500:
        raise PublishTransient(message, status_code=status, retry_after=retry_after)
    if status == 403 and (retry_after is not None or "rate limit" in message.lower()):
        raise PublishTransient(message, status_code=status, retry_after=retry_after)
    if status in (401, 403):
        raise PublishAuthError(message, status_code=status)
    if status in (404, 410):
        raise PublishNotFound(message, status_code=status)
    raise GitHubAPIError(message, status_code=status)


class GitHubIssuesClient:
    """Read and create issue comments through the GitHub REST API.

    Every request first acquires from ``limiter`` and is retried on transport
    errors and transient API responses. Authorization and not-found errors are
    raised immediately.
    """

    def __init__(
        self,
        token: str,
        *,
        limiter: SupportsAcquire | None = None,
        client: httpx.Client | None = None,
        api_root: str = API_ROOT,
        max_attempts: int = 4,
        wait: wait_base | None = None,
    ) -> None:
        if not token:
            raise ValueError("A GitHub token is required")
        self._headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self._client = client or build_client()
        self._api_root = api_root.rstrip("/")
        self._limiter = limiter
        self._max_attempts = max(1, max_attempts)
        self._wait = wait or default_wait()

    def close(self) -> None:
        self._client.close()

    def list_comments(self, issue: IssueRef) -> list[IssueComment]:
        """Return every comment of ``issue``, following pagination links."""

        url: str | None = self._comments_url(issue)
        params: dict[str, Any] | None = {"per_page": _PAGE_SIZE}
        comments: list[IssueComment] = []
        while url:
            response = self._request("GET", url, params=params)
            payload = response.json()
            if not isinstance(payload, list):
                raise GitHubAPIError(f"Unexpected comment listing for {issue}", status_code=response.status_code)
            comments.extend(IssueComment.from_api(item) for item in payload if isinstance(item, dict))
            url = response.links.get("next", {}).get("url")
            params = None  # the next link already carries the query string
        LOGGER.debug("Fetched %d comments on %s", len(comments), issue)
        return comments

    def create_comment(self, issue: IssueRef, body: str) -> IssueComment:
        """Post ``body`` in a single attempt; retrying is left to the caller."""

        response = self._request("POST", self._comments_url(issue), attempts=1, json={"body": body})
        return IssueComment.from_api(response.json())

    def _comments_url(self, issue: IssueRef) -> str:
        return f"{self._api_root}/repos/{issue.owner}/{issue.repo}/issues/{issue.number}/comments"

    def _request(self, method: str, url: str, *, attempts: int | None = None, **kwargs: Any) -> httpx.Response:
        retrying = Retrying(
            stop=stop_after_attempt(attempts or self._max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type((httpx.TransportError, PublishTransient)),
            before_sleep=before_sleep_log(LOGGER, logging.WARNING),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                if self._limiter is not None:
                    self._limiter.acquire()
                response = self._client.request(method, url, headers=self._headers, **kwargs)
                raise_for_github_status(response)
                return response
        raise AssertionError("unreachable")  # pragma: no cover - Retrying either returns or raises


__all__ = [
    "API_ROOT",
    "GitHubIssuesClient",
    "RetryAfterOrBackoff",
    "SupportsIssueComments",
    "default_wait",
    "raise_for_github_status",
]
