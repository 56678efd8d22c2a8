"""Stable links to a section of the minutes."""

from __future__ import annotations

from minutes_to_gh.models.minutes import MinutesDocument, Section


def permalink(document: MinutesDocument, section: Section) -> str:
    """Return ``document.url#anchor``, or the bare URL for the root section.

    The result is both the link posted on GitHub and the key used to detect a
    comment that was already posted.
    """

    base = document.url.split("#", 1)[0]
    if section.anchor is None:
        return base
    return f"{base}#{section.anchor}"
