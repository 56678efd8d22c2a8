"""Models describing GitHub issues, repositories, and the mentions found in minutes."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Any, Mapping


ISSUE_URL_PATTERN = re.compile(
    r"https://github\.com/"
    r"(?P<owner>[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)/"
    r"(?P<repo>[A-Za-z0-9_.-]+)/"
    r"(?P<kind>issues|pull)/"
    r"(?P<number>[0-9]+)(?![0-9])"
)

DEFAULT_OWNER = "w3c"


@dataclass(slots=True, frozen=True, eq=False)
class IssueRef:
    """Identify a GitHub issue or pull request.

    Owner and repository names compare case-insensitively, as GitHub does.
    The ``kind`` and ``url`` fields record how the reference was written and do
    not take part in equality.
    """

    owner: str
    repo: str
    number: int
    kind: str = field(default="issues")
    url: str = field(default="")

    @classmethod
    def from_url(cls, url: str) -> "IssueRef | None":
        """Return the reference contained in ``url`` or ``None`` when it is not an issue link."""

        match = ISSUE_URL_PATTERN.search(url or "")
        if match is None:
            return None
        return cls._from_match(match)

    @classmethod
    def _from_match(cls, match: re.Match[str]) -> "IssueRef":
        return cls(
            owner=match.group("owner"),
            repo=match.group("repo"),
            number=int(match.group("number")),
            kind=match.group("kind"),
            url=match.group(0),
        )

    @property
    def key(self) -> tuple[str, str, int]:
        return (self.owner.lower(), self.repo.lower(), self.number)

    @property
    def html_url(self) -> str:
        return self.url or f"https://github.com/{self.owner}/{self.repo}/{self.kind}/{self.number}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IssueRef):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"


def find_issue_refs(text: str) -> list[IssueRef]:
    """Return every issue reference written in ``text``, in order of appearance."""

    return [IssueRef._from_match(match) for match in ISSUE_URL_PATTERN.finditer(text or "")]


@dataclass(slots=True, frozen=True)
class Mention:
    """An issue referenced from one section of the minutes."""

    section_index: int
    anchor: str | None
    issue: IssueRef


@dataclass(slots=True, frozen=True)
class IssueComment:
    """Subset of a GitHub issue comment relied upon by the publisher."""

    id: int
    body: str
    html_url: str

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "IssueComment":
        """Build a comment from a GitHub REST API payload."""

        body = payload.get("body")
        return cls(
            id=int(payload.get("id") or 0),
            body=body if isinstance(body, str) else "",
            html_url=str(payload.get("html_url") or ""),
        )


@dataclass(slots=True, frozen=True)
class Repository:
    """A GitHub repository, as listed in a W3C group's ``repositories.json``."""

    owner: str
    name: str

    @classmethod
    def parse(cls, value: str) -> "Repository":
        """Parse ``owner/name``; a bare ``name`` belongs to the ``w3c`` organisation."""

        text = value.strip().strip("/")
        if not text:
            raise ValueError("Repository name cannot be empty")
        owner, sep, name = text.partition("/")
        if not sep:
            return cls(owner=DEFAULT_OWNER, name=owner)
        if not owner or not name or "/" in name:
            raise ValueError(f"Invalid repository '{value}', expected 'owner/name'")
        return cls(owner=owner, name=name)

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "Repository":
        """Build a repository from a ``repositories.json`` entry."""

        owner = payload.get("owner")
        login = owner.get("login") if isinstance(owner, Mapping) else owner
        name = payload.get("name")
        if not isinstance(login, str) or not isinstance(name, str) or not login or not name:
            raise ValueError(f"Malformed repository entry: {payload!r}")
        return cls(owner=login, name=name)

    def contains(self, issue: IssueRef) -> bool:
        """Return ``True`` when ``issue`` lives in this repository."""

        return issue.owner.lower() == self.owner.lower() and issue.repo.lower() == self.name.lower()

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"
