"""Chat bot front-end: recognise commands addressed to the bot and report run outcomes."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import date
import logging
import re
import threading
from typing import Protocol

from minutes_to_gh.errors import MinutesNotFound
from minutes_to_gh.models.bot import BotCommand, Debug, Help, Leave, ProcessMinutes, Unrecognized
from minutes_to_gh.models.options import RunOptions
from minutes_to_gh.models.publisher import PublishResult
from minutes_to_gh.services.cancellation import CancellationToken

LOGGER = logging.getLogger(__name__)

NAME = "minutes-to-gh"
VERSION = "0.9.1"
DESCRIPTION = "an IRC bot to link github issues and PRs to the minutes of the meetings where they were discussed"
HOMEPAGE = "https://github.com/pchampin/minutes_to_gh"

NOTHING_TO_DO = "nothing to do (no issue in the (sub)topics)"

_ACTION_PREFIX = "\x01ACTION "

_LINK_ISSUES = re.compile(
    r"^(please )?(back)?link (github )?issues( to minutes)?"
    r"(?P<transcript> with transcript)?( for (?P<groups>[^ ]+))?$",
    re.IGNORECASE,
)
_HELP = re.compile(r"^(please )?help$", re.IGNORECASE)
_BYE = re.compile(r"^(bye|out|(please )?(excuse us|leave|part))$", re.IGNORECASE)
_DEBUG = re.compile(
    r"^debug( date (?P<date>[^ ]+))?( groups (?P<groups>[^ ]+))?$",
    re.IGNORECASE,
)


def classify_command(text: str) -> BotCommand:
    """Map the text of a command to one of the variants of :data:`BotCommand`."""

    command = text.strip()
    if match := _LINK_ISSUES.match(command):
        return ProcessMinutes(
            transcript=match.group("transcript") is not None,
            groups=match.group("groups"),
        )
    if _HELP.match(command):
        return Help()
    if _BYE.match(command):
        return Leave()
    if match := _DEBUG.match(command):
        return Debug(date=match.group("date"), groups=match.group("groups"))
    return Unrecognized(command)


def is_action(message: str) -> bool:
    return message.startswith(_ACTION_PREFIX)


def addressed_to(nickname: str, message: str) -> str | None:
    """Return the command in ``message`` when it starts with ``"<nickname>, "``.

    CTCP ``ACTION`` messages (``/me <nickname>, ...``) are unwrapped first.
    """

    content = message
    if is_action(content):
        content = content[len(_ACTION_PREFIX):].rstrip("\x01")
    content = content.strip()
    prefix = f"{nickname}, "
    if not content.startswith(prefix):
        return None
    return content[len(prefix):]


def response_target(target: str, sender: str) -> str:
    """Reply on the channel, or privately to ``sender`` for direct messages."""

    return target if target.startswith("#") else sender


class ChatTransport(Protocol):
    """Minimal surface of the chat network the bot talks to."""

    def say(self, target: str, text: str) -> None:
        """Send ``text`` to a channel or a nickname."""

    def part(self, channel: str) -> None:
        """Leave ``channel``."""


class SupportsLinking(Protocol):
    def fetch_and_stream(
        self,
        options: RunOptions,
        *,
        cancellation: CancellationToken | None = None,
    ) -> Iterator[PublishResult]:
        """Fetch the minutes and yield publish results as they complete."""


@dataclass(slots=True)
class BotSession:
    """Dispatch the commands addressed to ``nickname`` and answer through ``transport``."""

    nickname: str
    transport: ChatTransport
    pipeline: SupportsLinking
    max_workers: int = 4
    today: Callable[[], date] = date.today
    _running: dict[str, CancellationToken] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def handle_message(self, target: str, sender: str, message: str) -> BotCommand | None:
        """Process one chat message; return the command it carried, if any."""

        text = addressed_to(self.nickname, message)
        if text is None:
            return None

        command = classify_command(text)
        channel = response_target(target, sender)
        LOGGER.debug("on %s got %r, parsed from %r", channel, command, text)
        try:
            self.dispatch(command, channel, sender)
        except Exception as exc:
            LOGGER.error("Error while handling %r on %s: %s", text, channel, exc)
            self.transport.say(channel, f"Something wrong happened: {exc}")
        return command

    def dispatch(self, command: BotCommand, channel: str, sender: str) -> None:
        if isinstance(command, ProcessMinutes):
            LOGGER.info("Linking issues on %s", channel)
            options = RunOptions(
                channel=channel,
                date=self.today(),
                include_transcript=command.transcript,
                groups=command.groups,
                max_workers=self.max_workers,
            )
            self._link_issues(channel, options)
        elif isinstance(command, Debug):
            LOGGER.info(
                "Debug on %s at %s for %s",
                channel,
                command.date or "current date",
                command.groups or "default group",
            )
            on = date.fromisoformat(command.date) if command.date else self.today()
            options = RunOptions(
                channel=channel,
                date=on,
                include_transcript=True,
                dry_run=True,
                groups=command.groups,
                max_workers=self.max_workers,
            )
            self._link_issues(channel, options)
        elif isinstance(command, Help):
            self._help(channel, sender)
        elif isinstance(command, Leave):
            self.leave(channel)
        else:
            self.transport.say(channel, f"sorry {sender}, I don't understand {command.text!r}")

    def leave(self, channel: str) -> None:
        """Cancel the run in progress on ``channel`` and part from it."""

        with self._lock:
            token = self._running.get(channel)
        if token is not None:
            LOGGER.info("Cancelling the run in progress on %s", channel)
            token.cancel()
        if channel.startswith("#"):
            self.transport.part(channel)

    def _help(self, channel: str, sender: str) -> None:
        self.transport.say(channel, f"{sender}, I am {DESCRIPTION}.")
        self.transport.say(channel, f"... I am an instance of {NAME} version {VERSION}.")
        self.transport.say(channel, f"... To know more, see {HOMEPAGE}")

    def _link_issues(self, channel: str, options: RunOptions) -> None:
        token = CancellationToken()
        with self._lock:
            self._running[channel] = token
        try:
            count = 0
            for result in self.pipeline.fetch_and_stream(options, cancellation=token):
                count += 1
                self.transport.say(channel, result.describe())
            if count == 0 and not token.is_cancelled():
                self.transport.say(channel, NOTHING_TO_DO)
        except MinutesNotFound as exc:
            LOGGER.warning("%s", exc)
            self.transport.say(channel, f"no minutes for this date: {exc.url}")
        finally:
            with self._lock:
                if self._running.get(channel) is token:
                    del self._running[channel]


__all__ = [
    "BotSession",
    "ChatTransport",
    "NOTHING_TO_DO",
    "addressed_to",
    "classify_command",
    "response_target",
]
