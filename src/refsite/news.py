"""Changelog (``NEWS.md``) parsing and rendering.

The parser makes one forward pass over the lines of a free-form markdown
changelog. Each line is tried as, in order:

1. a version header, against :data:`VERSION_PATTERNS` (first match wins);
2. a category header (``## Name``), only while a version is open;
3. a bullet item (``- text`` or ``* text``), only while a version is open.

Anything else is prose and ignored. Items before the first category of a
version land in the ``"Changes"`` category.

Rendering keeps version order, expands the first (most recent) version and
folds the rest into collapsible callouts. Categories render in sorted order,
and GitHub references in items become links.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from refsite.fileio import create_if_absent, write_if_changed
from refsite.logging import get_logger, with_fields
from refsite.markdown import front_matter

if TYPE_CHECKING:
    from refsite.config import SiteConfig

__all__ = [
    "DEFAULT_CATEGORY",
    "VERSION_PATTERNS",
    "VersionRecord",
    "create_news_template",
    "has_news",
    "linkify_github_refs",
    "load_news",
    "news_summary",
    "parse_news",
    "render_news_page",
    "write_news_page",
]

LOGGER = get_logger(__name__)

DEFAULT_CATEGORY: Final[str] = "Changes"
GITHUB_URL: Final[str] = "https://github.com"

_VERSION = r"v?(\d+\.\d+(?:\.\d+)?(?:-\w+)?)"

VERSION_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    # "# mypkg 1.2.0 (2024-05-01)"
    re.compile(rf"^#\s+\S+\s+{_VERSION}\s*(?:\(([^)]+)\))?"),
    # "# 1.2.0 - May 2024"
    re.compile(rf"^#\s+{_VERSION}\s*(?:-\s*(.+))?$"),
    # "## Version 1.2.0 (2024-05-01)"
    re.compile(rf"^##?\s+[Vv]ersion\s+{_VERSION}\s*(?:\(([^)]+)\))?"),
)
_CATEGORY = re.compile(r"^##\s+([^#].+)$")
_CATEGORY_GUARD = re.compile(r"^(?:\d+\.\d+|[Vv]ersion)")
_ITEM = re.compile(r"^[-*]\s+(.+)$")

_GITHUB_REF = re.compile(
    r"(?P<code>`[^`\n]*`)"
    r"|(?P<link>\[[^\]\n]*\]\([^)\n]*\))"
    r"|(?<![\w./\[-])(?P<xrepo>[\w.-]+/[\w.-]+)#(?P<xnum>\d+)"
    r"|(?<![/\[&])#(?P<num>\d+)"
    r"|(?<![\w.])@(?P<login>\w[\w-]*+)(?!\.\w)"
)


@dataclass(frozen=True)
class VersionRecord:
    """One parsed changelog version.

    Attributes
    ----------
    version : str
        Version label without a leading ``v``; not validated as semver.
    date : str | None
        Date or description captured from the header.
    categories : Mapping[str, tuple[str, ...]]
        Category name to items, in first-seen category order.
    """

    version: str
    date: str | None = None
    categories: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def label(self) -> str:
        """Return ``"Version X"`` with the date appended when present."""
        if self.date:
            return f"Version {self.version} ({self.date})"
        return f"Version {self.version}"

    @property
    def item_count(self) -> int:
        return sum(len(items) for items in self.categories.values())


class _ParseState(enum.Enum):
    NO_VERSION = "no-version"
    DEFAULT_CATEGORY = "default-category"
    NAMED_CATEGORY = "named-category"


@dataclass
class _OpenVersion:
    version: str
    date: str | None
    categories: dict[str, list[str]] = field(default_factory=dict)

    def add_item(self, category: str, text: str) -> None:
        self.categories.setdefault(category, []).append(text)

    def close(self) -> VersionRecord:
        return VersionRecord(
            version=self.version,
            date=self.date,
            categories=MappingProxyType(
                {name: tuple(items) for name, items in self.categories.items()}
            ),
        )


def _match_version(line: str) -> tuple[str, str | None] | None:
    for pattern in VERSION_PATTERNS:
        match = pattern.match(line)
        if match:
            date = match.group(2)
            return match.group(1), (date.strip() or None) if date else None
    return None


def parse_news(text: str) -> list[VersionRecord]:
    """Parse changelog ``text`` into version records in document order.

    Never raises; unrecognised lines are skipped.

    Examples
    --------
    >>> records = parse_news("# 1.0.0\\n\\n## Fixes\\n\\n- Fixed a crash\\n")
    >>> records[0].version, dict(records[0].categories)
    ('1.0.0', {'Fixes': ('Fixed a crash',)})
    """
    records: list[VersionRecord] = []
    state = _ParseState.NO_VERSION
    current = _OpenVersion(version="", date=None)
    category = DEFAULT_CATEGORY

    for raw_line in text.splitlines():
        line = raw_line.rstrip()

        header = _match_version(line)
        if header is not None:
            if state is not _ParseState.NO_VERSION:
                records.append(current.close())
            current = _OpenVersion(version=header[0], date=header[1])
            state = _ParseState.DEFAULT_CATEGORY
            continue

        if state is _ParseState.NO_VERSION:
            continue

        heading = _CATEGORY.match(line)
        if heading:
            name = heading.group(1).strip()
            if not _CATEGORY_GUARD.match(name):
                category = name
                current.categories.setdefault(name, [])
                state = _ParseState.NAMED_CATEGORY
            continue

        item = _ITEM.match(line)
        if item is None:
            continue
        match state:
            case _ParseState.DEFAULT_CATEGORY:
                current.add_item(DEFAULT_CATEGORY, item.group(1).strip())
            case _ParseState.NAMED_CATEGORY:
                current.add_item(category, item.group(1).strip())

    if state is not _ParseState.NO_VERSION:
        records.append(current.close())
    return records


def load_news(path: Path | str) -> list[VersionRecord]:
    """Parse the changelog at ``path``; a missing file yields ``[]``."""
    news_path = Path(path)
    if not news_path.is_file():
        with_fields(LOGGER, operation="load_news", path=str(news_path)).debug(
            "No changelog at %s", news_path
        )
        return []
    return parse_news(news_path.read_text(encoding="utf-8"))


def linkify_github_refs(text: str, repo: str) -> str:
    """Turn GitHub issue references and mentions in ``text`` into links.

    ``owner/name#N`` links to that repository's issue, a bare ``#N`` to
    ``repo``'s issue and ``@login`` to the user's profile. Inline code and
    existing markdown links are left alone. With an empty ``repo`` the text is
    returned unchanged.

    Examples
    --------
    >>> linkify_github_refs("Fixed #42 (@alice)", "org/repo")
    'Fixed [#42](https://github.com/org/repo/issues/42) ([@alice](https://github.com/alice))'
    """
    if not repo:
        return text

    def replace(match: re.Match[str]) -> str:
        if match.group("xrepo"):
            target = match.group("xrepo")
            number = match.group("xnum")
            return f"[{target}#{number}]({GITHUB_URL}/{target}/issues/{number})"
        if match.group("num"):
            number = match.group("num")
            return f"[#{number}]({GITHUB_URL}/{repo}/issues/{number})"
        if match.group("login"):
            login = match.group("login")
            return f"[@{login}]({GITHUB_URL}/{login})"
        return match.group(0)

    return _GITHUB_REF.sub(replace, text)


def _render_categories(record: VersionRecord, repo: str) -> list[str]:
    parts: list[str] = []
    for name in sorted(record.categories):
        items = record.categories[name]
        if not items:
            continue
        parts.append(f"### {name}\n\n")
        parts.extend(f"- {linkify_github_refs(item, repo)}\n" for item in items)
        parts.append("\n")
    return parts


def render_news_page(records: Sequence[VersionRecord], repo: str = "") -> str:
    """Render ``records`` as a Quarto changelog page.

    The first record is assumed to be the most recent and is shown expanded;
    the others are folded into collapsed callouts.
    """
    parts = [front_matter({"title": "Changelog", "toc": True, "toc-depth": 2})]
    for position, record in enumerate(records):
        if position == 0:
            parts.append(f"## {record.label}\n\n")
            parts.extend(_render_categories(record, repo))
            parts.append("---\n\n")
        else:
            parts.append(f'::: {{.callout-note collapse="true" title="{record.label}"}}\n\n')
            parts.extend(_render_categories(record, repo))
            parts.append(":::\n\n")
    return "".join(parts).rstrip("\n") + "\n"


def news_path(config: SiteConfig, root: Path) -> Path:
    return root / config.news.file


def has_news(config: SiteConfig, root: Path) -> bool:
    """Return ``True`` when the changelog is enabled and present under ``root``."""
    return config.news.enabled and news_path(config, root).is_file()


def write_news_page(config: SiteConfig, docs_dir: Path, *, root: Path | None = None) -> Path | None:
    """Render the changelog into ``docs_dir/news.qmd``.

    Parameters
    ----------
    config : SiteConfig
        Site configuration; ``config.news`` selects the changelog file.
    docs_dir : Path
        Documentation root.
    root : Path | None, optional
        Project root holding the changelog. Defaults to ``docs_dir.parent``.

    Returns
    -------
    Path | None
        The page path, or ``None`` when the changelog is disabled, missing or
        holds no versions.
    """
    project_root = docs_dir.parent if root is None else root
    logger = with_fields(LOGGER, operation="write_news_page")
    if not config.news.enabled:
        return None
    records = load_news(news_path(config, project_root))
    if not records:
        logger.info("No changelog versions found; skipping news page")
        return None
    target = docs_dir / "news.qmd"
    changed = write_if_changed(target, render_news_page(records, config.repo))
    logger.info(
        "Changelog page %s",
        "written" if changed else "unchanged",
        extra={"versions": len(records), "path": str(target)},
    )
    return target


def news_summary(records: Sequence[VersionRecord], limit: int = 5) -> str:
    """Return a short markdown summary of the latest version.

    At most ``limit`` items from the first category (in sorted order) are
    listed, followed by a count of the remainder.
    """
    if not records:
        return ""
    latest = records[0]
    header = f"### Latest: v{latest.version}"
    if latest.date:
        header = f"{header} ({latest.date})"
    lines = [header, ""]
    categories = [name for name in sorted(latest.categories) if latest.categories[name]]
    if categories:
        items = latest.categories[categories[0]]
        lines.extend(f"- {item}" for item in items[:limit])
        if len(items) > limit:
            lines.append(f"- *...and {len(items) - limit} more*")
    return "\n".join(lines) + "\n"


_NEWS_TEMPLATE: Final[str] = """\
# {package} {version}

## New Features

- Initial release

## Bug Fixes

## Breaking Changes
"""


def create_news_template(
    path: Path, package_name: str, *, version: str = "0.1.0", overwrite: bool = False
) -> bool:
    """Create a starter changelog at ``path`` unless one exists."""
    return create_if_absent(
        path, _NEWS_TEMPLATE.format(package=package_name, version=version), overwrite=overwrite
    )
