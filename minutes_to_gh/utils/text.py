"""Utilities for tidying text extracted from minutes."""
from __future__ import annotations

import re
from typing import Any


_BLANK_LINES_RE = re.compile(r"\n[ \t]*(?:\n[ \t]*)+\n")
_INLINE_SPACE_RE = re.compile(r"\s+")


def collapse_whitespace(value: Any) -> str:
    """Collapse every run of whitespace into a single space.

    Non-string inputs return an empty string so that missing heading text
    renders predictably.
    """

    if not isinstance(value, str):
        return ""
    return _INLINE_SPACE_RE.sub(" ", value).strip()


def collapse_blank_lines(value: Any) -> str:
    """Normalise Markdown produced from HTML.

    Runs of blank lines are reduced to a single blank line, so paragraphs stay
    separated without the gaps left behind by stripped markup. Trailing double
    spaces are kept since they encode hard line breaks.
    """

    if not isinstance(value, str):
        return ""

    text = value.replace("\r\n", "\n").replace("\r", "\n")
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()


def escape_angle_brackets(value: str) -> str:
    """Replace literal ``<`` and ``>`` with HTML entities."""

    return value.replace("<", "&lt;").replace(">", "&gt;")


__all__ = ["collapse_blank_lines", "collapse_whitespace", "escape_angle_brackets"]
