"""Closed set of commands understood by the minutes bot."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ProcessMinutes:
    """Link the issues mentioned in today's minutes of the current channel."""

    transcript: bool = False
    groups: str | None = None


@dataclass(slots=True, frozen=True)
class Debug:
    """Dry run, with transcript, for an optional date and groups."""

    date: str | None = None
    groups: str | None = None


@dataclass(slots=True, frozen=True)
class Leave:
    """Leave the channel."""


@dataclass(slots=True, frozen=True)
class Help:
    """Describe the bot."""


@dataclass(slots=True, frozen=True)
class Unrecognized:
    text: str


BotCommand = ProcessMinutes | Debug | Leave | Help | Unrecognized
