"""Orchestration layer chaining section parsing, mention extraction, and comment publishing."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
import logging
from typing import Iterable, Iterator, Protocol

from minutes_to_gh.models.issue import Mention, Repository
from minutes_to_gh.models.minutes import MinutesDocument
from minutes_to_gh.models.options import RunOptions
from minutes_to_gh.models.publisher import PublishResult
from minutes_to_gh.services.cancellation import CancellationToken
from minutes_to_gh.services.groups import owns
from minutes_to_gh.services.mentions import extract_mentions
from minutes_to_gh.services.permalink import permalink
from minutes_to_gh.services.renderer import render_markdown
from minutes_to_gh.services.sections import build_section_tree


LOGGER = logging.getLogger(__name__)


class SupportsMinutesFetch(Protocol):
    """Subset of :class:`MinutesFetcher` relied on by the pipeline."""

    def fetch(self, options: RunOptions) -> MinutesDocument:
        """Return the minutes selected by ``options``."""


class SupportsPublishing(Protocol):
    """Protocol describing the comment publisher interface."""

    def publish(
        self,
        issue,
        permalink: str,
        transcript: str | None = None,
        *,
        dry_run: bool = False,
        meeting: str | None = None,
    ) -> PublishResult:
        """Link the issue to the permalink and report what happened."""


class SupportsRepositoryLookup(Protocol):
    """Loader able to list the repositories owned by W3C groups."""

    def load(self, groups: Iterable[str]) -> list[Repository]:
        """Return the repositories of ``groups``."""


@dataclass(slots=True, frozen=True)
class PublishJob:
    """Everything needed to publish one mention, computed before any network call."""

    position: int
    mention: Mention
    permalink: str
    transcript: str | None = None


@dataclass(slots=True)
class LinkingPipeline:
    """Link every issue mentioned in the minutes to the section discussing it."""

    publisher: SupportsPublishing
    fetcher: SupportsMinutesFetch | None = None
    groups: SupportsRepositoryLookup | None = None

    def plan(self, document: MinutesDocument, options: RunOptions) -> list[PublishJob]:
        """Build the section tree and return one job per mention, in document order."""

        tree = build_section_tree(document.html)
        mentions = extract_mentions(tree)
        transcripts: dict[int, str] = {}
        jobs: list[PublishJob] = []
        for position, mention in enumerate(mentions):
            section = tree[mention.section_index]
            transcript = None
            if options.include_transcript:
                if section.index not in transcripts:
                    transcripts[section.index] = render_markdown(section.html_body)
                transcript = transcripts[section.index]
            jobs.append(
                PublishJob(
                    position=position,
                    mention=mention,
                    permalink=permalink(document, section),
                    transcript=transcript,
                )
            )
        LOGGER.info("Found %d issue mentions in %s", len(jobs), document.url)
        return jobs

    def run(
        self,
        document: MinutesDocument,
        options: RunOptions,
        *,
        cancellation: CancellationToken | None = None,
    ) -> list[PublishResult]:
        """Publish every mention of ``document``, returning the results in mention order."""

        outcomes = sorted(self._execute(document, options, cancellation), key=lambda item: item[0])
        return [result for _, result in outcomes]

    def stream(
        self,
        document: MinutesDocument,
        options: RunOptions,
        *,
        cancellation: CancellationToken | None = None,
    ) -> Iterator[PublishResult]:
        """Yield results as soon as each publish call completes."""

        for _, result in self._execute(document, options, cancellation):
            yield result

    def fetch_and_run(
        self,
        options: RunOptions,
        *,
        cancellation: CancellationToken | None = None,
    ) -> list[PublishResult]:
        """Fetch the minutes selected by ``options`` and run the pipeline on them."""

        return self.run(self._fetch(options), options, cancellation=cancellation)

    def fetch_and_stream(
        self,
        options: RunOptions,
        *,
        cancellation: CancellationToken | None = None,
    ) -> Iterator[PublishResult]:
        document = self._fetch(options)
        yield from self.stream(document, options, cancellation=cancellation)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _fetch(self, options: RunOptions) -> MinutesDocument:
        if self.fetcher is None:
            raise RuntimeError("No minutes fetcher configured for this pipeline")
        return self.fetcher.fetch(options)

    def _owned_repositories(self, options: RunOptions) -> list[Repository] | None:
        """Return the repositories issues must belong to, or ``None`` for no restriction."""

        group_names = options.group_names()
        if not group_names and not options.repositories:
            return None
        repositories = list(options.repositories)
        if group_names:
            if self.groups is None:
                raise RuntimeError("Groups were requested but no group loader is configured")
            for repository in self.groups.load(group_names):
                if repository not in repositories:
                    repositories.append(repository)
        return repositories

    def _execute(
        self,
        document: MinutesDocument,
        options: RunOptions,
        cancellation: CancellationToken | None,
    ) -> Iterator[tuple[int, PublishResult]]:
        repositories = self._owned_repositories(options)
        jobs = self.plan(document, options)
        if not jobs:
            return

        workers = max(1, min(options.max_workers, len(jobs)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="publish") as executor:
            futures = [
                executor.submit(self._publish_job, job, options, repositories, cancellation)
                for job in jobs
            ]
            for future in as_completed(futures):
                outcome = future.result()
                if outcome is not None:
                    yield outcome

    def _publish_job(
        self,
        job: PublishJob,
        options: RunOptions,
        repositories: list[Repository] | None,
        cancellation: CancellationToken | None,
    ) -> tuple[int, PublishResult] | None:
        issue = job.mention.issue
        if cancellation is not None and cancellation.is_cancelled():
            LOGGER.debug("Run cancelled; abandoning %s", issue)
            return None

        if repositories is not None and not owns(repositories, issue):
            LOGGER.info("Skipping %s, not owned by the selected groups", issue)
            return job.position, PublishResult.not_owned(issue, job.permalink)

        LOGGER.debug("%s referenced in %s", issue, job.permalink)
        try:
            result = self.publisher.publish(
                issue,
                job.permalink,
                job.transcript,
                dry_run=options.dry_run,
                meeting=options.meeting_label,
            )
        except Exception as exc:
            LOGGER.exception("Publisher failed for %s", issue)
            result = PublishResult.failed(issue, job.permalink, f"Publisher failed: {exc}")
        return job.position, result


__all__ = ["LinkingPipeline", "PublishJob"]
