"""Publisher posting links to the minutes on the issues they discuss."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re

import httpx
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt
from tenacity.wait import wait_base

from minutes_to_gh.errors import GitHubAPIError, PublishTransient
from minutes_to_gh.models.issue import IssueComment, IssueRef
from minutes_to_gh.models.publisher import PublishResult
from minutes_to_gh.services.github import SupportsIssueComments, default_wait

LOGGER = logging.getLogger(__name__)

TRANSCRIPT_TEMPLATE = (
    "<details><summary><i>View the transcript</i></summary>\n\n"
    "{transcript}\n"
    "----\n"
    "</details>"
)

# A permalink is present only when the URL ends there: "#t1" must not match "#t10",
# and a bare document URL must not match a link to one of its sections.
_LINK_END = r"(?![\w#/-]|\.\w)"


def compose_comment(permalink: str, transcript: str | None = None, *, meeting: str | None = None) -> str:
    """Return the Markdown body of the comment linking to ``permalink``."""

    if meeting:
        lines = [f"This was discussed during the [{meeting}]({permalink})."]
    else:
        lines = [f"This was discussed during a meeting: {permalink}"]
    if transcript is not None:
        lines.append(TRANSCRIPT_TEMPLATE.format(transcript=transcript.strip()))
    return "\n\n".join(lines)


def contains_link(body: str, permalink: str) -> bool:
    return re.search(re.escape(permalink) + _LINK_END, body) is not None


def find_existing_link(comments: list[IssueComment], permalink: str) -> IssueComment | None:
    """Return the first comment whose body already links exactly to ``permalink``."""

    for comment in comments:
        if contains_link(comment.body, permalink):
            return comment
    return None


class UnconfirmedComment(RuntimeError):
    """Creating a comment failed in a way that may still have created it."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(str(cause) or cause.__class__.__name__)
        self.cause = cause
        self.retry_after = getattr(cause, "retry_after", None)


@dataclass(slots=True)
class CommentPublisher:
    """Post one comment per (issue, permalink) pair, never twice.

    Whether a link was already posted is derived from the live comments of the
    issue, so repeated runs against the same minutes stay idempotent without
    any local state. After a transient failure of the POST itself the comments
    are listed again before posting, up to ``max_attempts`` times.
    """

    client: SupportsIssueComments
    max_attempts: int = 3
    wait: wait_base | None = None

    def publish(
        self,
        issue: IssueRef,
        permalink: str,
        transcript: str | None = None,
        *,
        dry_run: bool = False,
        meeting: str | None = None,
    ) -> PublishResult:
        """Link ``issue`` to ``permalink`` unless a comment already does."""

        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=self.wait or default_wait(),
            retry=retry_if_exception_type(UnconfirmedComment),
            before_sleep=before_sleep_log(LOGGER, logging.WARNING),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    return self._publish_once(issue, permalink, transcript, dry_run=dry_run, meeting=meeting)
        except (GitHubAPIError, httpx.HTTPError, UnconfirmedComment) as exc:
            LOGGER.warning("Could not link %s to %s: %s", issue, permalink, exc)
            return PublishResult.failed(issue, permalink, str(exc) or exc.__class__.__name__)
        raise AssertionError("unreachable")  # pragma: no cover - Retrying either returns or raises

    def _publish_once(
        self,
        issue: IssueRef,
        permalink: str,
        transcript: str | None,
        *,
        dry_run: bool,
        meeting: str | None,
    ) -> PublishResult:
        existing = find_existing_link(self.client.list_comments(issue), permalink)
        if existing is not None:
            LOGGER.info("Skipping %s, link to minutes already there: %s", issue, existing.html_url)
            return PublishResult.skipped(issue, permalink, existing.html_url)

        body = compose_comment(permalink, transcript, meeting=meeting)
        if dry_run:
            LOGGER.info("Comment posted on %s: (not really, running in dry mode)", issue)
            LOGGER.debug("Comment message: %s", body)
            return PublishResult.posted(issue, permalink, None, dry_run=True)

        try:
            comment = self.client.create_comment(issue, body)
        except (PublishTransient, httpx.TransportError) as exc:
            raise UnconfirmedComment(exc) from exc

        LOGGER.info("Comment posted: %s", comment.html_url)
        return PublishResult.posted(issue, permalink, comment.html_url)


__all__ = ["CommentPublisher", "UnconfirmedComment", "compose_comment", "contains_link", "find_existing_link"]
