"""Options record shared by every trigger surface of the linking pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from minutes_to_gh.models.issue import Repository


MINUTES_URL_TEMPLATE = "https://www.w3.org/{year}/{month:02d}/{day:02d}-{channel}-minutes.html"


def normalise_channel(channel: str) -> str:
    """Return the channel name without its leading IRC ``#`` prefix."""

    return channel.strip().lstrip("#")


def default_minutes_url(channel: str, on: date) -> str:
    """Return the URL where the W3C publishes the minutes of ``channel`` for ``on``."""

    return MINUTES_URL_TEMPLATE.format(
        year=on.year,
        month=on.month,
        day=on.day,
        channel=normalise_channel(channel),
    )


@dataclass(slots=True)
class RunOptions:
    """Parameters of one linking run, whether triggered from IRC or the command line."""

    channel: str
    date: date
    include_transcript: bool = False
    dry_run: bool = False
    groups: str | None = None
    repositories: list[Repository] = field(default_factory=list)
    url: str | None = None
    file: Path | None = None
    max_workers: int = 4

    @property
    def minutes_url(self) -> str:
        return self.url or default_minutes_url(self.channel, self.date)

    @property
    def meeting_label(self) -> str:
        """Return the label used when citing the meeting in comments."""

        return f"{normalise_channel(self.channel)} meeting on {self.date.strftime('%d %B %Y')}"

    def group_names(self) -> list[str]:
        """Return the comma separated ``groups`` as a clean list."""

        if not self.groups:
            return []
        return [name.strip().strip("/") for name in self.groups.split(",") if name.strip().strip("/")]
