"""Navbar, section and sidebar assembly.

Sections come from :attr:`SiteConfig.ordered_sections`, sorted by
``(order, title)``. A section becomes a dropdown while its page count stays
within ``dropdown_item_limit`` and collapses to a link to its index page
beyond that.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from refsite.articles import Article, articles_navbar_item, discover_pages
from refsite.config import NavbarItem, ReferenceGroup, SectionConfig, SiteConfig
from refsite.markdown import front_matter, table_row

__all__ = [
    "Navigation",
    "build_navigation",
    "discover_sections",
    "reference_sidebar",
    "render_section_index",
    "section_directory",
    "section_navbar_item",
    "section_sidebar",
]


@dataclass(slots=True)
class Navigation:
    """Computed navigation for the site manifest."""

    left: list[NavbarItem] = field(default_factory=list)
    right: list[NavbarItem] = field(default_factory=list)
    sidebars: list[dict[str, Any]] = field(default_factory=list)


def discover_sections(
    config: SiteConfig, docs_dir: Path
) -> list[tuple[SectionConfig, list[Article]]]:
    """Pair each configured section, in navbar order, with its pages."""
    return [
        (section, discover_pages(docs_dir, section_directory(section)))
        for section in config.ordered_sections
    ]


def section_directory(section: SectionConfig) -> str:
    return section.directory or section.index_path.removesuffix(".qmd")


def section_navbar_item(section: SectionConfig, pages: Sequence[Article]) -> NavbarItem:
    """Return the navbar entry for ``section``."""
    if section.dropdown and pages and len(pages) <= section.dropdown_item_limit:
        ordered = sorted(pages, key=lambda page: page.sort_key)
        return NavbarItem(
            text=section.title,
            menu=[NavbarItem(text=page.title, href=page.path) for page in ordered],
        )
    return NavbarItem(text=section.title, href=section.index_path)


def render_section_index(section: SectionConfig, pages: Sequence[Article]) -> str:
    """Render the index page listing every page of ``section``."""
    fields: dict[str, object] = {"title": section.title}
    if section.description:
        fields["description"] = section.description
    lines = [front_matter(fields).rstrip("\n"), ""]
    if section.description:
        lines.extend([section.description, ""])
    if not pages:
        lines.append("*No pages yet.*")
        return "\n".join(lines) + "\n"
    lines.extend(["| Page | Description |", "|------|-------------|"])
    lines.extend(
        table_row(f"[{page.title}]({page.path})", page.description)
        for page in sorted(pages, key=lambda item: item.sort_key)
    )
    return "\n".join(lines) + "\n"


def section_sidebar(section: SectionConfig, pages: Sequence[Article]) -> dict[str, Any]:
    ordered = sorted(pages, key=lambda page: page.sort_key)
    return {
        "id": section.index_path.removesuffix(".qmd").replace("/", "-"),
        "title": section.title,
        "contents": [section.index_path, *(page.path for page in ordered)],
    }


def reference_sidebar(grouped: Sequence[tuple[ReferenceGroup, list[str]]]) -> dict[str, Any]:
    """Return the reference sidebar with one section per non-empty group."""
    contents: list[Any] = ["reference.qmd"]
    for group, names in grouped:
        if names:
            contents.append(
                {"section": group.title, "contents": [f"reference/{name}.qmd" for name in names]}
            )
    return {"id": "reference", "title": "Reference", "contents": contents}


def _github_item(repo: str) -> NavbarItem:
    return NavbarItem(icon="github", href=f"https://github.com/{repo}")


def build_navigation(
    config: SiteConfig,
    *,
    get_started: str | None = None,
    articles: Sequence[Article] = (),
    sections: Sequence[tuple[SectionConfig, Sequence[Article]]] = (),
    grouped: Sequence[tuple[ReferenceGroup, list[str]]] = (),
    has_news: bool = False,
) -> Navigation:
    """Assemble navbar and sidebars.

    The left navbar lists, in order: the get-started page, the reference
    index, articles, configured sections, ``config.navbar_left`` and the
    changelog. The right navbar holds ``config.navbar_right`` followed by a
    GitHub icon when a repository is configured.
    """
    navigation = Navigation()
    if get_started:
        navigation.left.append(NavbarItem(text="Get Started", href=get_started))
    navigation.left.append(NavbarItem(text="Reference", href="reference.qmd"))
    article_item = articles_navbar_item(articles, config.articles)
    if article_item is not None:
        navigation.left.append(article_item)
    for section, pages in sections:
        navigation.left.append(section_navbar_item(section, pages))
        if section.sidebar:
            navigation.sidebars.append(section_sidebar(section, pages))
    navigation.left.extend(config.navbar_left)
    if has_news:
        navigation.left.append(NavbarItem(text="News", href="news.qmd"))

    navigation.right.extend(config.navbar_right)
    if config.repo:
        navigation.right.append(_github_item(config.repo))

    if grouped:
        navigation.sidebars.insert(0, reference_sidebar(grouped))
    return navigation
