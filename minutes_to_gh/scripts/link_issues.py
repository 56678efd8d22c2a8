"""Link the GitHub issues discussed during a W3C meeting to the matching section of its minutes.

Every setting can be given on the command line, through an ``M2G_*``
environment variable, or in a YAML file passed with ``--config``; the command
line wins over the environment, which wins over the file.

Exit status:
- 0 when every issue was linked, skipped, or found already linked;
- 1 when the minutes could not be fetched or at least one issue failed;
- 2 when a required setting is missing or invalid.
"""
from __future__ import annotations

import argparse
from datetime import date
import logging
import os
from pathlib import Path
from typing import Any, Sequence

from minutes_to_gh.errors import FetchError
from minutes_to_gh.models.issue import Repository
from minutes_to_gh.models.options import RunOptions
from minutes_to_gh.services.bot import NOTHING_TO_DO
from minutes_to_gh.services.config_loader import ConfigLoadError, load_config
from minutes_to_gh.services.github import GitHubIssuesClient
from minutes_to_gh.services.groups import GroupRepositoryLoader
from minutes_to_gh.services.http import build_client
from minutes_to_gh.services.minutes import MinutesFetcher
from minutes_to_gh.services.pipeline import LinkingPipeline
from minutes_to_gh.services.publisher import CommentPublisher
from minutes_to_gh.services.rate_limit import RequestRateLimiter, parse_rate_limit

LOGGER = logging.getLogger("minutes_to_gh.link_issues")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

DEFAULT_RATE_LIMIT = 1.0
DEFAULT_WORKERS = 4

_TRUE_VALUES = {"1", "true", "yes", "on"}


class UsageError(ValueError):
    """A required setting is missing or cannot be parsed."""


def _configure_logging(level_name: str | None) -> None:
    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="minutes-to-gh",
        description="Link GitHub issues to the minutes of the meetings where they were discussed.",
    )
    parser.add_argument("-c", "--channel", help="IRC channel of the meeting (default from M2G_CHANNEL).")
    parser.add_argument("-t", "--token", help="GitHub token used to post comments (default from M2G_TOKEN).")
    parser.add_argument("-d", "--date", help="Date of the meeting, YYYY-MM-DD (default from M2G_DATE or today).")
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        default=None,
        help="Report what would be posted without creating any comment.",
    )
    parser.add_argument(
        "--transcript",
        action="store_true",
        default=None,
        help="Include the transcript of the section in each comment.",
    )
    parser.add_argument(
        "--groups",
        help="Comma separated W3C groups (e.g. wg/did,cg/credentials) whose repositories may be commented on.",
    )
    parser.add_argument(
        "--repos",
        help="Comma separated repositories (owner/name) that may be commented on (default from M2G_REPOS).",
    )
    parser.add_argument("--url", help="Explicit URL of the minutes, overriding the one derived from channel and date.")
    parser.add_argument("-f", "--file", help="Read the minutes from a local file (default from M2G_FILE).")
    parser.add_argument(
        "--rate-limit",
        help=f"Maximum GitHub requests per second (default from M2G_RATE_LIMIT or {DEFAULT_RATE_LIMIT}).",
    )
    parser.add_argument("--workers", type=int, help=f"Number of concurrent publish tasks (default {DEFAULT_WORKERS}).")
    parser.add_argument("-l", "--log-level", help="Logging level (default from M2G_LOG_LEVEL or INFO).")
    parser.add_argument("--config", help="YAML configuration file (default from M2G_CONFIG).")
    return parser.parse_args(argv)


def _setting(
    name: str,
    args: argparse.Namespace,
    config: dict[str, Any],
    *,
    env: str | None = None,
    default: Any = None,
) -> Any:
    """Resolve one setting: command line, then environment, then config file, then default."""

    value = getattr(args, name, None)
    if value is not None:
        return value
    if env is not None:
        raw = os.getenv(env)
        if raw:
            return raw
    if name in config and config[name] is not None:
        return config[name]
    return default


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


def _parse_date(value: Any) -> date:
    if value is None:
        return date.today()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise UsageError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def _parse_repositories(value: Any) -> list[Repository]:
    if not value:
        return []
    repositories: list[Repository] = []
    for entry in str(value).split(","):
        if not entry.strip():
            continue
        try:
            repositories.append(Repository.parse(entry))
        except ValueError as exc:
            raise UsageError(str(exc)) from exc
    return repositories


def _parse_workers(value: Any) -> int:
    try:
        workers = int(value)
    except (TypeError, ValueError) as exc:
        raise UsageError(f"Invalid number of workers {value!r}") from exc
    if workers < 1:
        raise UsageError("The number of workers must be at least 1")
    return workers


def _load_settings(args: argparse.Namespace) -> tuple[RunOptions, str, float]:
    """Combine arguments, environment, and config file into run options, token, and rate."""

    config_path = args.config or os.getenv("M2G_CONFIG")
    config = load_config(Path(config_path)) if config_path else {}

    _configure_logging(_setting("log_level", args, config, env="M2G_LOG_LEVEL", default="INFO"))

    channel = _setting("channel", args, config, env="M2G_CHANNEL")
    if not channel:
        raise UsageError("A channel is required (--channel or M2G_CHANNEL)")
    token = _setting("token", args, config, env="M2G_TOKEN")
    if not token:
        raise UsageError("A GitHub token is required (--token or M2G_TOKEN)")

    raw_rate = _setting("rate_limit", args, config, env="M2G_RATE_LIMIT", default=DEFAULT_RATE_LIMIT)
    try:
        rate = parse_rate_limit(str(raw_rate))
    except ValueError as exc:
        raise UsageError(str(exc)) from exc

    file = _setting("file", args, config, env="M2G_FILE")
    options = RunOptions(
        channel=str(channel),
        date=_parse_date(_setting("date", args, config, env="M2G_DATE")),
        include_transcript=_as_bool(_setting("transcript", args, config, default=False)),
        dry_run=_as_bool(_setting("dry_run", args, config, default=False)),
        groups=_setting("groups", args, config, env="M2G_GROUPS"),
        repositories=_parse_repositories(_setting("repos", args, config, env="M2G_REPOS")),
        url=_setting("url", args, config),
        file=Path(file) if file else None,
        max_workers=_parse_workers(_setting("workers", args, config, default=DEFAULT_WORKERS)),
    )
    return options, str(token), rate


def run(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        options, token, rate = _load_settings(args)
    except (UsageError, ConfigLoadError) as exc:
        _configure_logging(None)
        LOGGER.error("%s", exc)
        return EXIT_USAGE

    http_client = build_client()
    github = GitHubIssuesClient(token, limiter=RequestRateLimiter(rate), client=http_client)
    pipeline = LinkingPipeline(
        publisher=CommentPublisher(client=github),
        fetcher=MinutesFetcher(client=http_client),
        groups=GroupRepositoryLoader(client=http_client),
    )

    try:
        results = pipeline.fetch_and_run(options)
    except FetchError as exc:
        LOGGER.error("%s", exc)
        return EXIT_FAILURE
    finally:
        http_client.close()

    if not results:
        print(NOTHING_TO_DO)
        return EXIT_OK

    for result in results:
        print(result.describe())

    failures = [result for result in results if not result.succeeded]
    if failures:
        LOGGER.error("%d of %d issues could not be processed", len(failures), len(results))
        return EXIT_FAILURE
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    raise SystemExit(run())
