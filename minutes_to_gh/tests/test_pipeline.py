from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
import threading
from typing import Iterable

import httpx
import pytest

from minutes_to_gh.errors import FetchError, PublishNotFound
from minutes_to_gh.models.issue import IssueComment, IssueRef, Repository
from minutes_to_gh.models.minutes import MinutesDocument
from minutes_to_gh.models.options import RunOptions
from minutes_to_gh.models.publisher import PublishStatus
from minutes_to_gh.services.cancellation import CancellationToken
from minutes_to_gh.services.github import GitHubIssuesClient
from minutes_to_gh.services.pipeline import LinkingPipeline
from minutes_to_gh.services.publisher import CommentPublisher


DOC_URL = "https://www.w3.org/2024/11/14-acme-minutes.html"
ISSUE_42 = IssueRef("acme", "repo", 42)

SINGLE_TOPIC = '<h2 id="topic-1">Topic A</h2><p>See https://github.com/acme/repo/issues/42</p>'
TWO_TOPICS = (
    SINGLE_TOPIC
    + '<h2 id="topic-2">Topic B</h2><p>Again <a href="https://github.com/acme/repo/issues/42">#42</a></p>'
)


@dataclass(slots=True)
class StubIssueClient:
    comments: dict[IssueRef, list[IssueComment]] = field(default_factory=dict)
    failing: set[IssueRef] = field(default_factory=set)
    created: list[tuple[IssueRef, str]] = field(default_factory=list, init=False)
    lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def list_comments(self, issue: IssueRef) -> list[IssueComment]:
        if issue in self.failing:
            raise PublishNotFound(f"{issue} does not exist", status_code=404)
        with self.lock:
            return list(self.comments.get(issue, []))

    def create_comment(self, issue: IssueRef, body: str) -> IssueComment:
        with self.lock:
            self.created.append((issue, body))
            existing = self.comments.setdefault(issue, [])
            comment = IssueComment(id=len(existing) + 1, body=body, html_url=f"{issue.html_url}#c{len(existing) + 1}")
            existing.append(comment)
            return comment


@dataclass(slots=True)
class StubFetcher:
    document: MinutesDocument | None = None
    error: Exception | None = None
    calls: list[RunOptions] = field(default_factory=list, init=False)

    def fetch(self, options: RunOptions) -> MinutesDocument:
        self.calls.append(options)
        if self.error is not None:
            raise self.error
        assert self.document is not None
        return self.document


@dataclass(slots=True)
class StubGroups:
    repositories: list[Repository]
    calls: list[list[str]] = field(default_factory=list, init=False)

    def load(self, groups: Iterable[str]) -> list[Repository]:
        self.calls.append(list(groups))
        return list(self.repositories)


def make_options(**overrides: object) -> RunOptions:
    values: dict[str, object] = {"channel": "#acme", "date": date(2024, 11, 14)}
    values.update(overrides)
    return RunOptions(**values)  # type: ignore[arg-type]


def test_dry_run_of_a_single_topic_reports_posted_without_writing() -> None:
    client = StubIssueClient()
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=client))

    results = pipeline.run(MinutesDocument(url=DOC_URL, html=SINGLE_TOPIC), make_options(dry_run=True))

    assert len(results) == 1
    [result] = results
    assert result.issue == ISSUE_42
    assert result.permalink == f"{DOC_URL}#topic-1"
    assert result.status is PublishStatus.POSTED
    assert result.dry_run
    assert client.created == []


def test_already_linked_issue_is_skipped_on_every_run() -> None:
    existing = IssueComment(id=1, body=f"Discussed: {DOC_URL}#topic-1", html_url="https://github.com/acme/repo/issues/42#c1")
    client = StubIssueClient(comments={ISSUE_42: [existing]})
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=client))
    document = MinutesDocument(url=DOC_URL, html=SINGLE_TOPIC)

    first = pipeline.run(document, make_options())
    second = pipeline.run(document, make_options())

    assert [result.status for result in first + second] == [PublishStatus.SKIPPED_ALREADY_PRESENT] * 2
    assert client.created == []


def test_same_issue_in_two_topics_gets_two_comments() -> None:
    client = StubIssueClient()
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=client))

    results = pipeline.run(MinutesDocument(url=DOC_URL, html=TWO_TOPICS), make_options())

    assert [result.permalink for result in results] == [f"{DOC_URL}#topic-1", f"{DOC_URL}#topic-2"]
    assert all(result.status is PublishStatus.POSTED for result in results)
    assert sorted(body.split("(")[1].split(")")[0] for _, body in client.created) == [
        f"{DOC_URL}#topic-1",
        f"{DOC_URL}#topic-2",
    ]


def test_comment_cites_the_meeting_and_includes_the_transcript() -> None:
    client = StubIssueClient()
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=client))

    pipeline.run(
        MinutesDocument(url=DOC_URL, html=SINGLE_TOPIC),
        make_options(include_transcript=True),
    )

    [(_, body)] = client.created
    assert body.startswith(f"This was discussed during the [acme meeting on 14 November 2024]({DOC_URL}#topic-1).")
    assert "<details><summary><i>View the transcript</i></summary>" in body
    assert "## Topic A" in body
    assert "See https://github.com/acme/repo/issues/42" in body


def test_failures_are_isolated_per_issue() -> None:
    html = (
        '<h2 id="topic-1">A</h2><p>https://github.com/acme/gone/issues/1</p>'
        '<h2 id="topic-2">B</h2><p>https://github.com/acme/repo/issues/42</p>'
    )
    client = StubIssueClient(failing={IssueRef("acme", "gone", 1)})
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=client))

    results = pipeline.run(MinutesDocument(url=DOC_URL, html=html), make_options())

    assert [result.status for result in results] == [PublishStatus.FAILED, PublishStatus.POSTED]
    assert "does not exist" in (results[0].reason or "")


def test_unexpected_publisher_errors_fail_only_their_issue() -> None:
    html = (
        '<h2 id="topic-1">A</h2><p>https://github.com/acme/broken/issues/1</p>'
        '<h2 id="topic-2">B</h2><p>https://github.com/acme/repo/issues/42</p>'
    )

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=[])
        if "/broken/" in request.url.path:
            return httpx.Response(201, text="<html>not json</html>")
        return httpx.Response(201, json={"id": 1, "body": "ok", "html_url": "https://github.com/acme/repo/issues/42#c1"})

    client = GitHubIssuesClient("secret-token", client=httpx.Client(transport=httpx.MockTransport(handler)))
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=client))

    results = pipeline.run(MinutesDocument(url=DOC_URL, html=html), make_options())

    assert [result.status for result in results] == [PublishStatus.FAILED, PublishStatus.POSTED]
    assert (results[0].reason or "").startswith("Publisher failed:")


def test_issues_outside_the_selected_repositories_are_not_owned() -> None:
    html = (
        '<h2 id="topic-1">A</h2><p>https://github.com/w3c/did-core/issues/1</p>'
        '<h2 id="topic-2">B</h2><p>https://github.com/acme/repo/issues/42</p>'
    )
    client = StubIssueClient()
    groups = StubGroups(repositories=[Repository("w3c", "did-core")])
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=client), groups=groups)

    results = pipeline.run(MinutesDocument(url=DOC_URL, html=html), make_options(groups="wg/did"))

    assert [result.status for result in results] == [PublishStatus.POSTED, PublishStatus.NOT_OWNED]
    assert groups.calls == [["wg/did"]]
    assert [issue for issue, _ in client.created] == [IssueRef("w3c", "did-core", 1)]
    assert results[1].describe() == "issue https://github.com/acme/repo/issues/42 not owned by current group(s)"


def test_explicit_repositories_restrict_without_loading_groups() -> None:
    client = StubIssueClient()
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=client))

    results = pipeline.run(
        MinutesDocument(url=DOC_URL, html=SINGLE_TOPIC),
        make_options(repositories=[Repository("acme", "other")]),
    )

    assert [result.status for result in results] == [PublishStatus.NOT_OWNED]
    assert client.created == []


def test_cancelled_run_produces_no_results() -> None:
    client = StubIssueClient()
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=client))
    token = CancellationToken()
    token.cancel()

    results = pipeline.run(MinutesDocument(url=DOC_URL, html=TWO_TOPICS), make_options(), cancellation=token)

    assert results == []
    assert client.created == []


def test_results_keep_mention_order_with_many_workers() -> None:
    html = "".join(
        f'<h2 id="topic-{n}">T{n}</h2><p>https://github.com/acme/repo/issues/{n}</p>' for n in range(1, 11)
    )
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=StubIssueClient()))

    results = pipeline.run(MinutesDocument(url=DOC_URL, html=html), make_options(max_workers=8))

    assert [result.issue.number for result in results] == list(range(1, 11))


def test_stream_yields_every_result() -> None:
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=StubIssueClient()))

    streamed = list(pipeline.stream(MinutesDocument(url=DOC_URL, html=TWO_TOPICS), make_options(dry_run=True)))

    assert sorted(result.permalink for result in streamed) == [f"{DOC_URL}#topic-1", f"{DOC_URL}#topic-2"]


def test_fetch_and_run_fetches_the_minutes_first(minutes_document: MinutesDocument) -> None:
    fetcher = StubFetcher(document=minutes_document)
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=StubIssueClient()), fetcher=fetcher)
    options = make_options(dry_run=True)

    results = pipeline.fetch_and_run(options)

    assert fetcher.calls == [options]
    assert [str(result.issue) for result in results] == ["acme/repo#42", "acme/other#7"]


def test_fetch_errors_abort_the_run() -> None:
    client = StubIssueClient()
    pipeline = LinkingPipeline(
        publisher=CommentPublisher(client=client),
        fetcher=StubFetcher(error=FetchError("offline")),
    )

    with pytest.raises(FetchError):
        pipeline.fetch_and_run(make_options())
    assert client.created == []


def test_document_without_mentions_yields_nothing() -> None:
    pipeline = LinkingPipeline(publisher=CommentPublisher(client=StubIssueClient()))

    assert pipeline.run(MinutesDocument(url=DOC_URL, html="<h2 id='t'>Quiet</h2>"), make_options()) == []
