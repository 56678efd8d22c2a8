"""Shared fixtures and helpers for the test suite."""

from __future__ import annotations

import pytest

from minutes_to_gh.models.minutes import MinutesDocument


DOC_URL = "https://www.w3.org/2024/11/14-did-minutes.html"

SAMPLE_MINUTES = """<!DOCTYPE html>
<html>
<head><title>DID WG, 14 November 2024</title><style>h2 { color: red }</style></head>
<body>
<h1>Decentralized Identifier Working Group</h1>
<p>Attendees: alice, bob</p>
<h2 id="topic-1">1. Issue triage</h2>
<p>alice: let us look at <a href="https://github.com/acme/repo/issues/42">acme/repo#42</a></p>
<p>bob: https://github.com/acme/repo/issues/42 is the one with the test failures</p>
<h3 id="topic-1-1">1.1 Follow-up</h3>
<p>See https://github.com/acme/other/pull/7 for details.</p>
<h2 id="topic-2">2. Any other business</h2>
<p>Nothing else to discuss.</p>
<script>alert("not minutes")</script>
</body>
</html>
"""


@pytest.fixture
def sample_minutes() -> str:
    return SAMPLE_MINUTES


@pytest.fixture
def minutes_document(sample_minutes: str) -> MinutesDocument:
    return MinutesDocument(url=DOC_URL, html=sample_minutes)
