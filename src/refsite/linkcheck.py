"""Best-effort link checking for documentation sources.

External URLs are probed over HTTP with ``requests``; each unique URL is
probed exactly once on a bounded thread pool and its verdict is copied to
every place that references it. Internal links resolve against the file
system. Failures never raise: every outcome is a :class:`LinkStatus`.
"""

from __future__ import annotations

import enum
import re
import time
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Final, Protocol
from urllib.parse import urlsplit

import msgspec
import requests
from msgspec import structs

from refsite.logging import get_logger, with_fields

__all__ = [
    "DEFAULT_EXTENSIONS",
    "LinkCheckReport",
    "LinkCheckResult",
    "LinkOccurrence",
    "LinkStatus",
    "SupportsHead",
    "SupportsStatus",
    "check_internal_links",
    "check_links",
    "extract_links",
    "extract_links_from_file",
    "format_linkcheck_report",
    "probe_url",
]

LOGGER = get_logger(__name__)

DEFAULT_EXTENSIONS: Final[tuple[str, ...]] = (".qmd", ".md")
DEFAULT_EXCLUDED_DIRS: Final[frozenset[str]] = frozenset(
    {"site", "_site", "_freeze", ".quarto", ".jupyter_cache", "node_modules"}
)
_MARKDOWN_LINK = re.compile(r"\[([^\]]*)\]\(([^)]+)\)")
_RAW_URL = re.compile(r"https?://[^\s)>\]\"'`]+")
_FENCE = re.compile(r"^\s*(`{3,}|~{3,})")
_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_FALLBACK_TO_GET: Final[frozenset[int]] = frozenset({405, 501})


class LinkStatus(enum.StrEnum):
    OK = "ok"
    BROKEN = "broken"
    TIMEOUT = "timeout"
    ERROR = "error"
    SKIPPED = "skipped"


class LinkCheckResult(msgspec.Struct, frozen=True, kw_only=True):
    """Outcome for one link at one source location."""

    url: str
    status: LinkStatus
    message: str = ""
    source_file: str = ""
    line_number: int = 0
    status_code: int | None = None

    @property
    def location(self) -> str:
        return f"{self.source_file}:{self.line_number}" if self.source_file else "<unknown>"


class LinkCheckReport(msgspec.Struct, kw_only=True):
    """Aggregated results with per-status counts."""

    results: list[LinkCheckResult] = msgspec.field(default_factory=list)
    total: int = 0
    ok: int = 0
    broken: int = 0
    timeout: int = 0
    error: int = 0
    skipped: int = 0

    @classmethod
    def from_results(cls, results: Iterable[LinkCheckResult]) -> LinkCheckReport:
        collected = list(results)
        counts = dict.fromkeys(LinkStatus, 0)
        for result in collected:
            counts[result.status] += 1
        return cls(
            results=collected,
            total=len(collected),
            ok=counts[LinkStatus.OK],
            broken=counts[LinkStatus.BROKEN],
            timeout=counts[LinkStatus.TIMEOUT],
            error=counts[LinkStatus.ERROR],
            skipped=counts[LinkStatus.SKIPPED],
        )

    @property
    def failures(self) -> list[LinkCheckResult]:
        failing = {LinkStatus.BROKEN, LinkStatus.TIMEOUT, LinkStatus.ERROR}
        return [result for result in self.results if result.status in failing]

    @property
    def passed(self) -> bool:
        return not self.failures

    def merge(self, other: LinkCheckReport) -> LinkCheckReport:
        return LinkCheckReport.from_results([*self.results, *other.results])

    def to_json(self, *, indent: int = 2) -> str:
        encoded = msgspec.json.encode(self)
        return msgspec.json.format(encoded, indent=indent).decode("utf-8")


class LinkOccurrence(msgspec.Struct, frozen=True):
    """A link target found at ``source_file:line_number``."""

    url: str
    source_file: str
    line_number: int


class SupportsStatus(Protocol):
    """Minimal response surface: :class:`requests.Response` satisfies it."""

    status_code: int


class SupportsHead(Protocol):
    """HTTP verbs used by the link checker; :class:`requests.Session` satisfies it."""

    def head(self, url: str, *, timeout: float, allow_redirects: bool) -> SupportsStatus:
        """Issue an HTTP ``HEAD`` request."""
        ...

    def get(self, url: str, *, timeout: float, allow_redirects: bool) -> SupportsStatus:
        """Issue an HTTP ``GET`` request."""
        ...


def _links_in_line(line: str) -> list[str]:
    found: list[str] = []
    for match in _MARKDOWN_LINK.finditer(line):
        target = match.group(2).strip().split(maxsplit=1)[0] if match.group(2).strip() else ""
        target = target.strip("<>")
        if not target or target.startswith(("#", "mailto:")):
            continue
        found.append(target)
    for match in _RAW_URL.finditer(line):
        found.append(match.group(0).rstrip(".,;:!?"))
    return list(dict.fromkeys(found))


def _iter_lines_outside_fences(text: str) -> Iterator[tuple[int, str]]:
    fence: str | None = None
    for number, line in enumerate(text.splitlines(), start=1):
        marker = _FENCE.match(line)
        if marker:
            token = marker.group(1)[0] * 3
            if fence is None:
                fence = token
            elif token == fence:
                fence = None
            continue
        if fence is None:
            yield number, line


def extract_links(text: str) -> list[str]:
    """Return unique link targets in ``text`` in first-seen order.

    Markdown link targets and bare ``http(s)`` URLs are collected; anchors,
    ``mailto:`` links and fenced code blocks are ignored.
    """
    found: list[str] = []
    for _, line in _iter_lines_outside_fences(text):
        found.extend(_links_in_line(line))
    return list(dict.fromkeys(found))


def extract_links_from_file(path: Path, *, root: Path | None = None) -> list[LinkOccurrence]:
    """Return every link occurrence in ``path`` with its line number.

    ``source_file`` is relative to ``root`` when given.
    """
    text = path.read_text(encoding="utf-8")
    source = path.relative_to(root).as_posix() if root is not None else path.as_posix()
    return [
        LinkOccurrence(url=url, source_file=source, line_number=number)
        for number, line in _iter_lines_outside_fences(text)
        for url in _links_in_line(line)
    ]


def _iter_source_files(
    docs_dir: Path, extensions: Sequence[str], excluded: Iterable[str]
) -> Iterator[Path]:
    skip = set(excluded)
    for path in sorted(docs_dir.rglob("*")):
        if not path.is_file() or path.suffix not in extensions:
            continue
        if any(part in skip for part in path.relative_to(docs_dir).parts[:-1]):
            continue
        yield path


def _is_external(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def probe_url(url: str, session: SupportsHead, timeout: float = 10.0) -> LinkCheckResult:
    """Probe ``url`` once and classify the outcome.

    ``HEAD`` is tried first; servers answering 405 or 501 are retried with
    ``GET``. 2xx and 3xx responses are ``ok``, other codes ``broken``.
    Timeouts and transport failures are classified, never raised.
    """
    scheme = urlsplit(url).scheme
    if scheme not in {"http", "https"}:
        return LinkCheckResult(url=url, status=LinkStatus.SKIPPED, message="Not an HTTP URL")
    try:
        response = session.head(url, timeout=timeout, allow_redirects=True)
        if response.status_code in _FALLBACK_TO_GET:
            response = session.get(url, timeout=timeout, allow_redirects=True)
    except requests.Timeout:
        return LinkCheckResult(
            url=url, status=LinkStatus.TIMEOUT, message=f"Timed out after {timeout:g}s"
        )
    except requests.RequestException as exc:
        message = str(exc) or type(exc).__name__
        return LinkCheckResult(url=url, status=LinkStatus.ERROR, message=message)

    code = response.status_code
    status = LinkStatus.OK if 200 <= code < 400 else LinkStatus.BROKEN
    return LinkCheckResult(url=url, status=status, message=f"HTTP {code}", status_code=code)


def _compile_ignores(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            with_fields(LOGGER, operation="check_links").warning(
                "Ignoring invalid ignore pattern %r: %s", pattern, exc
            )
    return compiled


def check_links(
    docs_dir: Path,
    *,
    session: SupportsHead | None = None,
    timeout: float = 10.0,
    workers: int = 8,
    ignore: Iterable[str] = (),
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
) -> LinkCheckReport:
    """Probe every external URL referenced under ``docs_dir``.

    Parameters
    ----------
    docs_dir : Path
        Documentation root to scan.
    session : SupportsHead | None, optional
        HTTP session; a :class:`requests.Session` is created and closed when
        omitted.
    timeout : float, optional
        Per-probe timeout in seconds.
    workers : int, optional
        Upper bound on concurrent probes.
    ignore : Iterable[str], optional
        Regular expressions; matching URLs are reported as ``skipped``.
    extensions : Sequence[str], optional
        Source file suffixes to scan.
    exclude_dirs : Iterable[str], optional
        Directory names never descended into (rendered output, caches).

    Returns
    -------
    LinkCheckReport
        One result per occurrence. All occurrences of a URL share the verdict
        of its single probe.
    """
    logger = with_fields(LOGGER, operation="check_links", docs_dir=str(docs_dir))
    if not docs_dir.is_dir():
        logger.info("Documentation directory %s does not exist; nothing to check", docs_dir)
        return LinkCheckReport.from_results([])

    occurrences = [
        occurrence
        for path in _iter_source_files(docs_dir, extensions, exclude_dirs)
        for occurrence in extract_links_from_file(path, root=docs_dir)
        if _is_external(occurrence.url)
    ]
    ignores = _compile_ignores(ignore)
    verdicts: dict[str, LinkCheckResult] = {}
    to_probe: list[str] = []
    for url in dict.fromkeys(occurrence.url for occurrence in occurrences):
        if any(pattern.search(url) for pattern in ignores):
            verdicts[url] = LinkCheckResult(
                url=url, status=LinkStatus.SKIPPED, message="Matched ignore pattern"
            )
        else:
            to_probe.append(url)

    started = time.monotonic()
    if to_probe:
        if session is None:
            with requests.Session() as owned:
                verdicts.update(_probe_all(to_probe, owned, timeout, workers))
        else:
            verdicts.update(_probe_all(to_probe, session, timeout, workers))

    results = [
        structs.replace(
            verdicts[occurrence.url],
            source_file=occurrence.source_file,
            line_number=occurrence.line_number,
        )
        for occurrence in occurrences
    ]
    report = LinkCheckReport.from_results(results)
    logger.info(
        "Checked %d links (%d unique URLs probed)",
        report.total,
        len(to_probe),
        extra={
            "broken": report.broken,
            "timeout": report.timeout,
            "error": report.error,
            "duration_seconds": round(time.monotonic() - started, 3),
        },
    )
    return report


def _probe_all(
    urls: Sequence[str], session: SupportsHead, timeout: float, workers: int
) -> dict[str, LinkCheckResult]:
    logger = with_fields(LOGGER, operation="probe_url")
    probe = partial(probe_url, session=session, timeout=timeout)
    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(urls)))) as executor:
        outcomes = dict(zip(urls, executor.map(probe, urls), strict=True))
    for url, outcome in outcomes.items():
        logger.debug("%s -> %s (%s)", url, outcome.status, outcome.message)
    return outcomes


def _resolve_internal(target: str, source: Path, docs_dir: Path) -> Path:
    if target.startswith("/"):
        return docs_dir / target.lstrip("/")
    return source.parent / target


def check_internal_links(
    docs_dir: Path,
    *,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
) -> LinkCheckReport:
    """Check that relative and root-absolute links point at existing files.

    Anchors and query strings are stripped. A link to ``page.html`` also
    resolves when ``page.qmd`` or ``page.md`` exists.
    """
    if not docs_dir.is_dir():
        return LinkCheckReport.from_results([])
    results: list[LinkCheckResult] = []
    for path in _iter_source_files(docs_dir, extensions, exclude_dirs):
        for occurrence in extract_links_from_file(path, root=docs_dir):
            url = occurrence.url
            if _is_external(url) or _SCHEME.match(url):
                continue
            target = url.split("#", 1)[0].split("?", 1)[0]
            if not target:
                continue
            resolved = _resolve_internal(target, path, docs_dir)
            candidates = [resolved]
            if resolved.suffix == ".html":
                candidates.extend(resolved.with_suffix(suffix) for suffix in extensions)
            exists = any(candidate.exists() for candidate in candidates)
            results.append(
                LinkCheckResult(
                    url=url,
                    status=LinkStatus.OK if exists else LinkStatus.BROKEN,
                    message="File exists" if exists else f"File not found: {target}",
                    source_file=occurrence.source_file,
                    line_number=occurrence.line_number,
                )
            )
    return LinkCheckReport.from_results(results)


def format_linkcheck_report(report: LinkCheckReport, *, include_ok: bool = False) -> str:
    """Render ``report`` as markdown: a summary table then failing links."""
    lines = [
        "# Link Check Report",
        "",
        "| Status | Count |",
        "|--------|-------|",
        f"| Total | {report.total} |",
        f"| OK | {report.ok} |",
        f"| Broken | {report.broken} |",
        f"| Timeout | {report.timeout} |",
        f"| Error | {report.error} |",
        f"| Skipped | {report.skipped} |",
    ]
    failures = report.failures
    if failures:
        lines.extend(["", "## Broken Links", ""])
        for result in failures:
            lines.extend(
                [
                    f"- **{result.location}**",
                    f"  - URL: `{result.url}`",
                    f"  - Status: {result.status}",
                    f"  - Error: {result.message}",
                ]
            )
    if include_ok:
        passing = [result for result in report.results if result.status is LinkStatus.OK]
        if passing:
            lines.extend(["", "## OK Links", ""])
            lines.extend(f"- {result.location}: `{result.url}`" for result in passing)
    return "\n".join(lines) + "\n"
