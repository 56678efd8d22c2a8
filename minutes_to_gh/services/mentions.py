"""Locate the GitHub issues and pull requests referenced by each section of the minutes."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString, Tag

from minutes_to_gh.models.issue import ISSUE_URL_PATTERN, IssueRef, Mention, find_issue_refs
from minutes_to_gh.models.minutes import Section, SectionTree
from minutes_to_gh.services.sections import heading_anchor

LOGGER = logging.getLogger(__name__)


def _issue_from_href(href: str) -> IssueRef | None:
    match = ISSUE_URL_PATTERN.match(href.strip())
    if match is None:
        return None
    return IssueRef.from_url(match.group(0))


def _iter_refs(soup: BeautifulSoup) -> Iterator[IssueRef]:
    """Yield references from link targets and unlinked text, in document order."""

    for node in soup.descendants:
        if isinstance(node, Tag):
            if node.name == "a":
                href = node.get("href")
                if isinstance(href, str):
                    issue = _issue_from_href(href)
                    if issue is not None:
                        yield issue
            continue
        if isinstance(node, Comment) or not isinstance(node, NavigableString):
            continue
        if node.find_parent("a") is not None:
            continue
        yield from find_issue_refs(str(node))


def _own_content(tree: SectionTree, section: Section) -> BeautifulSoup:
    """Return the section body without the headings of its subsections."""

    soup = BeautifulSoup(section.html_body, "html.parser")
    child_anchors = {tree[index].anchor for index in section.children}
    if child_anchors:
        for heading in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"]):
            if heading_anchor(heading) in child_anchors:
                heading.decompose()
    return soup


def section_issues(tree: SectionTree, section: Section) -> list[IssueRef]:
    """Return the distinct issues referenced by ``section`` itself, in order of appearance."""

    return list(_dedupe(_iter_refs(_own_content(tree, section))))


def _dedupe(issues: Iterable[IssueRef]) -> Iterator[IssueRef]:
    seen: set[IssueRef] = set()
    for issue in issues:
        if issue in seen:
            continue
        seen.add(issue)
        yield issue


def extract_mentions(tree: SectionTree) -> list[Mention]:
    """Return one :class:`Mention` per distinct (section, issue) pair.

    References are attributed to the section owning the text only, never to its
    ancestors, so an issue discussed in a topic and in one of its subtopics
    yields two mentions with different anchors.
    """

    mentions: list[Mention] = []
    for section in tree.walk():
        for issue in section_issues(tree, section):
            LOGGER.debug("%s referenced in section %r", issue, section.anchor)
            mentions.append(Mention(section_index=section.index, anchor=section.anchor, issue=issue))
    return mentions


__all__ = ["extract_mentions", "section_issues"]
