"""Authored articles: discovery, metadata, index pages and navbar entries.

Articles are ``.qmd`` files under ``docs/<articles.directory>``. Titles and
ordering come from YAML front matter (``title``, ``order``, ``description``),
falling back to the first ``# `` header and then the file name. Section pages
(:mod:`refsite.navigation`) reuse the same metadata reader.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

import yaml

from refsite.config import ArticlesConfig, NavbarItem
from refsite.fileio import create_if_absent
from refsite.logging import get_logger, with_fields
from refsite.markdown import front_matter, table_row

__all__ = [
    "DEFAULT_ORDER",
    "GET_STARTED_CANDIDATES",
    "Article",
    "articles_navbar_item",
    "create_article_template",
    "detect_get_started",
    "discover_articles",
    "discover_pages",
    "read_page_metadata",
    "render_articles_index",
]

LOGGER = get_logger(__name__)

DEFAULT_ORDER: Final[int] = 999
GET_STARTED_CANDIDATES: Final[tuple[str, ...]] = (
    "get-started",
    "getting-started",
    "quickstart",
    "introduction",
    "intro",
)
_FRONT_MATTER = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)
_FIRST_HEADER = re.compile(r"^#\s+(.+?)\s*$", re.MULTILINE)
_INDEX_NAMES: Final[frozenset[str]] = frozenset({"index.qmd", "_index.qmd"})


@dataclass(frozen=True, slots=True)
class Article:
    """One authored page.

    ``path`` is POSIX-style and relative to the documentation root, ready to
    be used as a link target.
    """

    path: str
    title: str
    order: int = DEFAULT_ORDER
    description: str = ""

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.order, self.title.lower())


def _title_from_filename(path: Path) -> str:
    return re.sub(r"[-_]+", " ", path.stem).strip().title()


def read_page_metadata(path: Path) -> tuple[str, int, str]:
    """Return ``(title, order, description)`` for the page at ``path``.

    Malformed front matter is ignored rather than raised.
    """
    text = path.read_text(encoding="utf-8")
    meta: dict[str, object] = {}
    body = text
    match = _FRONT_MATTER.match(text)
    if match:
        body = text[match.end() :]
        try:
            loaded = yaml.safe_load(match.group(1))
        except yaml.YAMLError as exc:
            with_fields(LOGGER, operation="read_page_metadata", path=str(path)).warning(
                "Ignoring malformed front matter in %s: %s", path, exc
            )
            loaded = None
        if isinstance(loaded, dict):
            meta = loaded

    title = str(meta.get("title") or "").strip()
    if not title:
        header = _FIRST_HEADER.search(body)
        title = header.group(1) if header else _title_from_filename(path)

    raw_order = meta.get("order", DEFAULT_ORDER)
    try:
        order = int(raw_order)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        order = DEFAULT_ORDER
    description = str(meta.get("description") or "").strip()
    return title, order, description


def discover_pages(docs_dir: Path, directory: str, *, recursive: bool = True) -> list[Article]:
    """Return the ``.qmd`` pages under ``docs_dir/directory`` sorted by path.

    Index pages and files starting with ``_`` are skipped. A missing directory
    yields an empty list.
    """
    base = docs_dir / directory
    if not base.is_dir():
        return []
    paths = base.rglob("*.qmd") if recursive else base.glob("*.qmd")
    pages: list[Article] = []
    for path in sorted(paths):
        if path.name in _INDEX_NAMES or path.name.startswith("_"):
            continue
        title, order, description = read_page_metadata(path)
        pages.append(
            Article(
                path=path.relative_to(docs_dir).as_posix(),
                title=title,
                order=order,
                description=description,
            )
        )
    return pages


def discover_articles(docs_dir: Path, config: ArticlesConfig) -> list[Article]:
    """Return the configured articles.

    When ``config.contents`` names files explicitly they are returned in that
    order (missing ones are logged and dropped); otherwise every page in the
    articles directory is discovered.
    """
    if not config.enabled:
        return []
    if not config.contents:
        return discover_pages(docs_dir, config.directory, recursive=config.recursive)

    logger = with_fields(LOGGER, operation="discover_articles")
    articles: list[Article] = []
    for entry in config.contents:
        name = entry if entry.endswith(".qmd") else f"{entry}.qmd"
        path = docs_dir / config.directory / name
        if not path.is_file():
            logger.warning("Configured article %s does not exist", path)
            continue
        title, order, description = read_page_metadata(path)
        articles.append(
            Article(
                path=path.relative_to(docs_dir).as_posix(),
                title=title,
                order=order,
                description=description,
            )
        )
    return articles


def detect_get_started(docs_dir: Path, module: str | None = None) -> str | None:
    """Return the first existing get-started page relative to ``docs_dir``.

    ``<module>.qmd`` is tried first, then :data:`GET_STARTED_CANDIDATES` at the
    root and under ``articles/``.
    """
    stems = ([module.rsplit(".", 1)[-1]] if module else []) + list(GET_STARTED_CANDIDATES)
    for stem in stems:
        for relative in (f"{stem}.qmd", f"articles/{stem}.qmd"):
            if (docs_dir / relative).is_file():
                return relative
    return None


def render_articles_index(articles: Sequence[Article], config: ArticlesConfig) -> str:
    """Render ``articles.qmd``.

    With ``config.listing`` the page delegates to a Quarto listing over the
    articles directory; otherwise it is a table sorted by ``(order, title)``.
    """
    fields: dict[str, object] = {"title": config.title}
    if config.description:
        fields["description"] = config.description
    if config.listing:
        fields["listing"] = {
            "contents": f"{config.directory}/**/*.qmd" if config.recursive else config.directory,
            "type": "table",
            "sort": ["order", "title"],
            "fields": ["title", "description"],
        }
        return front_matter(fields)

    lines = [front_matter(fields).rstrip("\n"), ""]
    if not articles:
        lines.append("*No articles yet.*")
        return "\n".join(lines) + "\n"
    lines.extend(["| Article | Description |", "|---------|-------------|"])
    lines.extend(
        table_row(f"[{article.title}]({article.path})", article.description)
        for article in sorted(articles, key=lambda item: item.sort_key)
    )
    return "\n".join(lines) + "\n"


def articles_navbar_item(articles: Sequence[Article], config: ArticlesConfig) -> NavbarItem | None:
    """Return the navbar entry for ``articles``.

    A dropdown lists every article while their count stays within
    ``config.dropdown_item_limit``; beyond it the entry links to the index.
    """
    if not config.enabled or not articles:
        return None
    if config.dropdown and len(articles) <= config.dropdown_item_limit:
        menu = [
            NavbarItem(text=article.title, href=article.path)
            for article in sorted(articles, key=lambda item: item.sort_key)
        ]
        return NavbarItem(text=config.title, menu=menu)
    return NavbarItem(text=config.title, href="articles.qmd")


_ARTICLE_TEMPLATE: Final[str] = """\
## Overview

Describe what this article covers.

## Example

```python
import {package}
```
"""


def create_article_template(
    docs_dir: Path,
    name: str,
    *,
    title: str = "",
    package: str = "",
    directory: str = "articles",
    order: int = DEFAULT_ORDER,
    overwrite: bool = False,
) -> Path | None:
    """Scaffold ``docs_dir/directory/<name>.qmd``.

    Returns
    -------
    Path | None
        The created page, or ``None`` when it already existed.
    """
    path = docs_dir / directory / (name if name.endswith(".qmd") else f"{name}.qmd")
    fields: dict[str, object] = {"title": title or _title_from_filename(path)}
    if order != DEFAULT_ORDER:
        fields["order"] = order
    content = front_matter(fields) + _ARTICLE_TEMPLATE.format(package=package or "mypackage")
    return path if create_if_absent(path, content, overwrite=overwrite) else None
