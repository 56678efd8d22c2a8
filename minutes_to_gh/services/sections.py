"""Infer the section hierarchy of a minutes document from its headings."""

from __future__ import annotations

from dataclasses import dataclass
import html
import logging

from bs4 import BeautifulSoup
from bs4.element import Comment, Doctype, NavigableString, Tag

from minutes_to_gh.models.minutes import Section, SectionTree
from minutes_to_gh.utils.text import collapse_whitespace

LOGGER = logging.getLogger(__name__)

_HEADING_LEVEL: dict[str, int] = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_NOISE_TAGS = ["script", "style", "noscript"]


@dataclass(slots=True, frozen=True)
class _Block:
    """A flattened piece of the document: either a boundary heading or content."""

    html: str
    level: int = 0
    anchor: str | None = None
    title: str = ""

    @property
    def is_heading(self) -> bool:
        return self.anchor is not None


def heading_anchor(tag: Tag) -> str | None:
    """Return the ``id`` of ``tag`` when it is a heading able to delimit a section."""

    if tag.name not in _HEADING_LEVEL:
        return None
    anchor = tag.get("id")
    if isinstance(anchor, list):  # pragma: no cover - ``id`` is never multi-valued in html.parser
        anchor = " ".join(anchor)
    if not isinstance(anchor, str) or not anchor.strip():
        return None
    return anchor.strip()


def _contains_boundary(tag: Tag) -> bool:
    return any(heading_anchor(heading) for heading in tag.find_all(list(_HEADING_LEVEL)))


def _extract_blocks(container: Tag) -> list[_Block]:
    """Flatten ``container`` into boundary headings and the content found between them.

    Elements wrapping a boundary heading (``<section>``, ``<div>``...) are
    descended into so that the heading can split them; every other element is
    kept whole.
    """

    blocks: list[_Block] = []

    def walk(element: Tag) -> None:
        for child in element.children:
            if isinstance(child, (Comment, Doctype)):
                continue
            if isinstance(child, NavigableString):
                if str(child):
                    blocks.append(_Block(html=html.escape(str(child), quote=False)))
                continue
            if not isinstance(child, Tag):
                continue
            anchor = heading_anchor(child)
            if anchor is not None:
                blocks.append(
                    _Block(
                        html=str(child),
                        level=_HEADING_LEVEL[child.name],
                        anchor=anchor,
                        title=collapse_whitespace(child.get_text(" ", strip=True)),
                    )
                )
            elif _contains_boundary(child):
                walk(child)
            else:
                blocks.append(_Block(html=str(child)))

    walk(container)
    return blocks


def build_section_tree(raw_html: str) -> SectionTree:
    """Parse ``raw_html`` into a :class:`SectionTree`.

    Every ``h1``..``h6`` carrying a non-empty ``id`` opens a section at the depth
    implied by its tag. Content up to the next such heading belongs to that
    section; a heading is also copied into its parent's body for context. The
    synthetic root (level 0, no anchor) keeps whatever precedes the first
    heading. A repeated ``id`` is treated as plain content so that anchors stay
    unique.
    """

    soup = BeautifulSoup(raw_html or "", "html.parser")
    for tag in soup.find_all(_NOISE_TAGS):
        tag.decompose()

    body = soup.find("body")
    container: Tag = body if isinstance(body, Tag) else soup

    root = Section(index=0, level=0, anchor=None, title="")
    sections: list[Section] = [root]
    bodies: list[list[str]] = [[]]
    stack: list[int] = [0]
    seen_anchors: set[str] = set()

    for block in _extract_blocks(container):
        if block.is_heading and block.anchor in seen_anchors:
            LOGGER.warning("Duplicate heading id %r treated as plain content", block.anchor)
            block = _Block(html=block.html)

        if not block.is_heading:
            bodies[stack[-1]].append(block.html)
            continue

        while sections[stack[-1]].level >= block.level:
            stack.pop()
        parent = sections[stack[-1]]

        section = Section(
            index=len(sections),
            level=block.level,
            anchor=block.anchor,
            title=block.title,
            parent=parent.index,
        )
        sections.append(section)
        bodies.append([block.html])
        parent.children.append(section.index)
        bodies[parent.index].append(block.html)
        stack.append(section.index)
        seen_anchors.add(block.anchor)  # type: ignore[arg-type]

    for section, parts in zip(sections, bodies):
        section.html_body = "".join(parts)

    if len(sections) == 1:
        LOGGER.warning("No heading with an id found; the minutes form a single section")
    else:
        LOGGER.debug("Built %d sections from minutes", len(sections) - 1)

    return SectionTree(sections=sections)


__all__ = ["build_section_tree", "heading_anchor"]
