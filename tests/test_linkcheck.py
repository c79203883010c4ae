"""Tests for refsite.linkcheck."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import requests

from refsite.linkcheck import (
    LinkCheckReport,
    LinkCheckResult,
    LinkOccurrence,
    LinkStatus,
    check_internal_links,
    check_links,
    extract_links,
    extract_links_from_file,
    format_linkcheck_report,
    probe_url,
)

SHARED = "https://shared.example.org/page"


@pytest.fixture
def linked_docs(tmp_path: Path) -> Path:
    docs = tmp_path / "docs"
    (docs / "guide").mkdir(parents=True)
    (docs / "index.qmd").write_text(
        f"See [the page]({SHARED}).\n\nAlso https://other.example.org/x.\n", encoding="utf-8"
    )
    (docs / "guide" / "a.qmd").write_text(f"First.\n\n<{SHARED}>\n", encoding="utf-8")
    (docs / "guide" / "b.md").write_text(
        f"[again]({SHARED})\n\n```\nhttps://in-code.example.org\n```\n", encoding="utf-8"
    )
    (docs / "site").mkdir()
    (docs / "site" / "rendered.md").write_text("https://rendered.example.org\n", encoding="utf-8")
    return docs


class TestExtractLinks:
    """Tests for link extraction."""

    def test_markdown_and_bare_links(self) -> None:
        text = "[a](https://a.org) and https://b.org/path. [c](page.qmd#intro)"
        assert extract_links(text) == ["https://a.org", "page.qmd#intro", "https://b.org/path"]

    def test_anchors_mailto_and_fences_ignored(self) -> None:
        text = "[top](#top) [mail](mailto:me@example.org)\n```\nhttps://code.org\n```\n"
        assert extract_links(text) == []

    def test_titles_are_dropped(self) -> None:
        assert extract_links('[a](https://a.org "Title")') == ["https://a.org"]

    def test_line_numbers(self, linked_docs: Path) -> None:
        occurrences = extract_links_from_file(linked_docs / "guide" / "a.qmd", root=linked_docs)
        assert occurrences == [LinkOccurrence(SHARED, "guide/a.qmd", 3)]


class TestProbeUrl:
    """Tests for probe_url classification."""

    def test_ok_and_redirect(self, session_factory: Any) -> None:
        session = session_factory(head={"https://a.org": 200, "https://b.org": 301})
        assert probe_url("https://a.org", session).status is LinkStatus.OK
        result = probe_url("https://b.org", session)
        assert result.status is LinkStatus.OK
        assert result.status_code == 301

    def test_not_found_is_broken(self, session_factory: Any) -> None:
        result = probe_url("https://a.org", session_factory(head={"https://a.org": 404}))
        assert result.status is LinkStatus.BROKEN
        assert result.message == "HTTP 404"

    @pytest.mark.parametrize("code", [405, 501])
    def test_head_rejection_falls_back_to_get(self, code: int, session_factory: Any) -> None:
        session = session_factory(head={"https://a.org": code}, get={"https://a.org": 200})
        result = probe_url("https://a.org", session)
        assert result.status is LinkStatus.OK
        assert session.count("https://a.org", "GET") == 1

    def test_timeout(self, session_factory: Any) -> None:
        session = session_factory(head={"https://slow.org": requests.Timeout("slow")})
        result = probe_url("https://slow.org", session, timeout=2.5)
        assert result.status is LinkStatus.TIMEOUT
        assert result.message == "Timed out after 2.5s"

    def test_connection_error(self, session_factory: Any) -> None:
        session = session_factory(head={"https://down.org": requests.ConnectionError("refused")})
        result = probe_url("https://down.org", session)
        assert result.status is LinkStatus.ERROR
        assert result.message == "refused"

    def test_non_http_is_skipped(self, fake_session: Any) -> None:
        assert probe_url("ftp://files.org", fake_session).status is LinkStatus.SKIPPED
        assert fake_session.calls == []


class TestCheckLinks:
    """Tests for check_links."""

    def test_each_url_probed_once(self, linked_docs: Path, session_factory: Any) -> None:
        """A URL referenced from three files is probed once; all three share the verdict."""
        session = session_factory(head={SHARED: 404})
        report = check_links(linked_docs, session=session, workers=4)
        assert session.count(SHARED) == 1
        shared = [result for result in report.results if result.url == SHARED]
        assert [result.location for result in shared] == [
            "guide/a.qmd:3",
            "guide/b.md:1",
            "index.qmd:1",
        ]
        assert {result.status for result in shared} == {LinkStatus.BROKEN}
        assert report.total == 4
        assert report.broken == 3
        assert report.ok == 1
        assert not report.passed

    def test_fenced_and_excluded_sources_skipped(
        self, linked_docs: Path, session_factory: Any
    ) -> None:
        session = session_factory()
        check_links(linked_docs, session=session)
        probed = {url for _, url in session.calls}
        assert probed == {SHARED, "https://other.example.org/x"}

    def test_ignore_patterns(self, linked_docs: Path, session_factory: Any) -> None:
        session = session_factory()
        report = check_links(linked_docs, session=session, ignore=[r"shared\.example", "("])
        assert report.skipped == 3
        assert session.count(SHARED) == 0
        assert report.passed

    def test_missing_directory(self, tmp_path: Path, fake_session: Any) -> None:
        report = check_links(tmp_path / "absent", session=fake_session)
        assert report.total == 0
        assert fake_session.calls == []


class TestCheckInternalLinks:
    """Tests for check_internal_links."""

    def test_relative_absolute_and_html_targets(self, tmp_path: Path) -> None:
        docs = tmp_path / "docs"
        (docs / "guide").mkdir(parents=True)
        (docs / "about.qmd").write_text("# About\n", encoding="utf-8")
        (docs / "guide" / "intro.qmd").write_text(
            "[up](../about.qmd#team) [root](/about.html) [gone](missing.qmd) "
            "[ext](https://a.org) [q](?x=1)\n",
            encoding="utf-8",
        )
        report = check_internal_links(docs)
        statuses = {result.url: result.status for result in report.results}
        assert statuses == {
            "../about.qmd#team": LinkStatus.OK,
            "/about.html": LinkStatus.OK,
            "missing.qmd": LinkStatus.BROKEN,
        }
        assert report.failures[0].message == "File not found: missing.qmd"


class TestReport:
    """Tests for report aggregation and rendering."""

    @pytest.fixture
    def report(self) -> LinkCheckReport:
        return LinkCheckReport.from_results(
            [
                LinkCheckResult(url="https://a.org", status=LinkStatus.OK, source_file="x.qmd"),
                LinkCheckResult(
                    url="https://b.org",
                    status=LinkStatus.BROKEN,
                    message="HTTP 404",
                    source_file="y.qmd",
                    line_number=7,
                    status_code=404,
                ),
                LinkCheckResult(url="https://c.org", status=LinkStatus.TIMEOUT),
            ]
        )

    def test_counts(self, report: LinkCheckReport) -> None:
        assert (report.total, report.ok, report.broken, report.timeout) == (3, 1, 1, 1)
        assert [result.url for result in report.failures] == ["https://b.org", "https://c.org"]

    def test_merge(self, report: LinkCheckReport) -> None:
        merged = report.merge(LinkCheckReport.from_results([]))
        assert merged.total == 3
        assert report.merge(report).broken == 2

    def test_markdown(self, report: LinkCheckReport) -> None:
        text = format_linkcheck_report(report)
        assert text.startswith("# Link Check Report\n\n| Status | Count |")
        assert "| Broken | 1 |" in text
        assert (
            "- **y.qmd:7**\n  - URL: `https://b.org`\n  - Status: broken\n  - Error: HTTP 404"
        ) in text
        assert "- **<unknown>**" in text
        assert "## OK Links" not in text
        assert "- x.qmd:0: `https://a.org`" in format_linkcheck_report(report, include_ok=True)

    def test_json(self, report: LinkCheckReport) -> None:
        payload = json.loads(report.to_json())
        assert payload["total"] == 3
        assert payload["results"][1]["status"] == "broken"
        assert payload["results"][1]["status_code"] == 404
