from __future__ import annotations

from minutes_to_gh.services.renderer import render_markdown, sanitize_fragment


def test_render_markdown_converts_headings_lists_and_links() -> None:
    fragment = (
        '<h2 id="topic-1">1. Issue triage</h2>'
        "<ul><li>first point</li><li>second point</li></ul>"
        '<p>See <a href="https://github.com/acme/repo/issues/42">the bug</a>.</p>'
    )
    markdown = render_markdown(fragment)

    assert markdown.startswith("## 1")
    assert "- first point" in markdown
    assert "- second point" in markdown
    assert "[the bug](https://github.com/acme/repo/issues/42)" in markdown


def test_scripts_and_event_handlers_never_reach_the_output() -> None:
    fragment = (
        "<p>before</p><script>alert('x')</script>"
        '<p onclick="steal()">click <img src="x" onerror="steal()">here</p>'
        '<p><a href="javascript:steal()">bad link</a></p>'
    )
    markdown = render_markdown(fragment)

    assert "<script" not in markdown
    assert "alert(" not in markdown
    assert "onerror" not in markdown
    assert "onclick" not in markdown
    assert "javascript:" not in markdown
    assert "before" in markdown
    assert "click here" in markdown
    assert "bad link" in markdown


def test_unknown_elements_keep_their_text_without_attributes() -> None:
    soup = sanitize_fragment('<p class="irc"><span class="nick">alice</span>: <cite>hello</cite></p>')

    assert str(soup) == "<p>alice: hello</p>"


def test_literal_angle_brackets_are_escaped() -> None:
    markdown = render_markdown("<p>alice: use &lt;details&gt; for that</p>")

    assert "<details>" not in markdown
    assert "&lt;details&gt;" in markdown


def test_embedded_content_is_dropped_with_its_text() -> None:
    markdown = render_markdown("<p>text</p><iframe>framed</iframe><svg><text>drawn</text></svg>")

    assert markdown == "text"


def test_blank_lines_are_collapsed() -> None:
    markdown = render_markdown("<p>one</p>\n\n\n<div>\n\n</div>\n\n<p>two</p>")

    assert markdown.startswith("one\n")
    assert markdown.endswith("\ntwo")
    assert "\n\n\n" not in markdown
