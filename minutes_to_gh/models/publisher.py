"""Data structures describing the outcome of publishing a minutes link to an issue."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from minutes_to_gh.models.issue import IssueRef


class PublishStatus(str, Enum):
    """Possible outcomes for one (issue, permalink) pair."""

    POSTED = "posted"
    SKIPPED_ALREADY_PRESENT = "already-linked"
    FAILED = "error"
    NOT_OWNED = "not-owned"


@dataclass(slots=True, frozen=True)
class PublishResult:
    """Outcome returned by the comment publisher for a single mention."""

    issue: IssueRef
    permalink: str
    status: PublishStatus
    comment_url: str | None = None
    reason: str | None = None
    dry_run: bool = False

    @classmethod
    def posted(cls, issue: IssueRef, permalink: str, comment_url: str | None, *, dry_run: bool = False) -> "PublishResult":
        return cls(issue=issue, permalink=permalink, status=PublishStatus.POSTED, comment_url=comment_url, dry_run=dry_run)

    @classmethod
    def skipped(cls, issue: IssueRef, permalink: str, comment_url: str) -> "PublishResult":
        return cls(
            issue=issue,
            permalink=permalink,
            status=PublishStatus.SKIPPED_ALREADY_PRESENT,
            comment_url=comment_url,
        )

    @classmethod
    def failed(cls, issue: IssueRef, permalink: str, reason: str) -> "PublishResult":
        return cls(issue=issue, permalink=permalink, status=PublishStatus.FAILED, reason=reason)

    @classmethod
    def not_owned(cls, issue: IssueRef, permalink: str) -> "PublishResult":
        return cls(issue=issue, permalink=permalink, status=PublishStatus.NOT_OWNED)

    @property
    def succeeded(self) -> bool:
        """Return ``True`` unless publishing failed."""

        return self.status is not PublishStatus.FAILED

    def describe(self) -> str:
        """Return a one-line, human readable summary of the outcome."""

        if self.status is PublishStatus.POSTED:
            if self.dry_run:
                return f"comment would have been created for: {self.issue.html_url}"
            return f"comment created: {self.comment_url}"
        if self.status is PublishStatus.SKIPPED_ALREADY_PRESENT:
            return f"comment already there: {self.comment_url}"
        if self.status is PublishStatus.NOT_OWNED:
            return f"issue {self.issue.html_url} not owned by current group(s)"
        return f"a problem occurred when processing {self.issue.html_url}: {self.reason}"
