"""Exceptions raised while fetching minutes and talking to the GitHub API."""

from __future__ import annotations


class FetchError(RuntimeError):
    """Minutes, group, or issue data could not be retrieved; fatal to the run."""


class MinutesNotFound(FetchError):
    """No minutes were published at the expected location."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Minutes not found <{url}>")
        self.url = url


class GitHubAPIError(RuntimeError):
    """The GitHub API rejected a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PublishAuthError(GitHubAPIError):
    """The token is missing, invalid, or lacks permission for the repository."""


class PublishNotFound(GitHubAPIError):
    """The issue or repository does not exist (anymore)."""


class PublishTransient(GitHubAPIError):
    """A server error, timeout, or rate-limit response worth retrying."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after


__all__ = [
    "FetchError",
    "GitHubAPIError",
    "MinutesNotFound",
    "PublishAuthError",
    "PublishNotFound",
    "PublishTransient",
]
