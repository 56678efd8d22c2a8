"""Render fragments of the minutes as sanitized Markdown for issue comments."""

from __future__ import annotations

from urllib.parse import urlparse

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString
from markdownify import ATX, markdownify

from minutes_to_gh.utils.text import collapse_blank_lines, escape_angle_brackets


ALLOWED_TAGS = frozenset(
    {
        "a",
        "b",
        "blockquote",
        "br",
        "code",
        "em",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "i",
        "li",
        "ol",
        "p",
        "pre",
        "strong",
        "ul",
    }
)
ALLOWED_ATTRIBUTES: dict[str, frozenset[str]] = {"a": frozenset({"href", "title"})}
ALLOWED_URL_SCHEMES = frozenset({"http", "https", "mailto", ""})

# Removed together with their content; anything else unknown keeps its text.
_DROPPED_TAGS = [
    "embed",
    "iframe",
    "math",
    "noscript",
    "object",
    "script",
    "style",
    "svg",
    "template",
]


def _safe_href(href: str) -> bool:
    candidate = href.strip()
    if not candidate:
        return False
    scheme = urlparse(candidate).scheme.lower()
    return scheme in ALLOWED_URL_SCHEMES


def sanitize_fragment(fragment: str) -> BeautifulSoup:
    """Reduce ``fragment`` to the allow-listed elements and attributes.

    Returns the sanitized tree. Comments are removed, and literal angle
    brackets in text are entity-escaped so they survive conversion as text.
    """

    soup = BeautifulSoup(fragment or "", "html.parser")

    for tag in soup.find_all(_DROPPED_TAGS):
        tag.decompose()

    for comment in soup.find_all(string=lambda value: isinstance(value, Comment)):
        comment.extract()

    for tag in soup.find_all(True):
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
            continue
        allowed = ALLOWED_ATTRIBUTES.get(tag.name, frozenset())
        for attribute in list(tag.attrs):
            if attribute not in allowed:
                del tag[attribute]
        href = tag.get("href")
        if isinstance(href, str) and not _safe_href(href):
            del tag["href"]

    for text in soup.find_all(string=True):
        if isinstance(text, NavigableString) and ("<" in text or ">" in text):
            text.replace_with(escape_angle_brackets(str(text)))

    return soup


def render_markdown(fragment: str) -> str:
    """Convert an HTML fragment of the minutes into sanitized Markdown."""

    soup = sanitize_fragment(fragment)
    markdown = markdownify(str(soup), heading_style=ATX, bullets="-", escape_misc=False)
    return collapse_blank_lines(markdown)


__all__ = ["ALLOWED_TAGS", "render_markdown", "sanitize_fragment"]
