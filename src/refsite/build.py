"""Site build orchestration.

:func:`build_site` validates everything that can fail before touching the
file system, then writes the documentation tree:

* generated files (reference pages, indexes, changelog, styles, manifest) are
  written only when their content changed, so reruns are byte-identical;
* scaffolding (``index.qmd`` and ``.gitignore``) is created once and left alone
  afterwards unless ``overwrite`` is set.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from refsite.articles import detect_get_started, discover_articles, render_articles_index
from refsite.autolink import (
    STANDARD_REGISTRY,
    ExternalRegistry,
    build_index,
    find_undefined_references,
)
from refsite.config import SiteConfig, require_module, validate_config
from refsite.fileio import create_if_absent, write_if_changed
from refsite.logging import get_logger, with_fields
from refsite.markdown import front_matter
from refsite.navigation import build_navigation, discover_sections, render_section_index
from refsite.news import has_news, load_news, news_path, render_news_page
from refsite.pages import render_reference_index, render_symbol_page, symbol_page_path
from refsite.selectors import auto_group_objects, group_objects
from refsite.site_config import build_site_manifest, render_site_manifest
from refsite.styles import render_custom_scss, render_styles_css
from refsite.symbols import SymbolTable, collect_symbols, import_documented_module
from refsite.versions import SELECTOR_ASSETS

__all__ = ["DOCS_GITIGNORE", "BuildReport", "build_site", "resolve_registry"]

LOGGER = get_logger(__name__)

DOCS_GITIGNORE: Final[str] = "site/\n.quarto/\n.jupyter_cache/\n_freeze/\n"


@dataclass(slots=True)
class BuildReport:
    """What a build did, keyed by paths relative to the documentation root."""

    written: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    undefined_references: dict[str, list[str]] = field(default_factory=dict)
    symbols: int = 0
    duration_seconds: float = 0.0

    def summary(self) -> str:
        return (
            f"Built {self.symbols} symbol pages: {len(self.written)} written, "
            f"{len(self.unchanged)} unchanged, {len(self.skipped)} skipped, "
            f"{len(self.warnings)} warnings"
        )


class _Writer:
    def __init__(self, docs_dir: Path, report: BuildReport, *, overwrite: bool) -> None:
        self.docs_dir = docs_dir
        self.report = report
        self.overwrite = overwrite

    def generated(self, relative: str, content: str) -> None:
        if write_if_changed(self.docs_dir / relative, content):
            self.report.written.append(relative)
        else:
            self.report.unchanged.append(relative)

    def scaffold(self, relative: str, content: str) -> None:
        if create_if_absent(self.docs_dir / relative, content, overwrite=self.overwrite):
            self.report.written.append(relative)
        else:
            self.report.skipped.append(relative)
            self.report.warnings.append(f"{relative} already exists; not overwritten")


def resolve_registry(
    config: SiteConfig, registry: ExternalRegistry | None = None
) -> ExternalRegistry:
    """Return a private registry for one build.

    An explicit ``registry`` is copied; otherwise the standard registry seeds
    it when ``config.use_standard_registry`` is set. ``config.external_docs``
    entries are registered on top.
    """
    if registry is not None:
        resolved = registry.copy()
    elif config.use_standard_registry:
        resolved = STANDARD_REGISTRY.copy()
    else:
        resolved = ExternalRegistry()
    for package, url in config.external_docs.items():
        resolved.register(package, url)
    return resolved


def _index_page(config: SiteConfig, root: Path) -> str:
    header = front_matter({"title": config.site_title})
    readme = root / "README.md"
    if readme.is_file():
        return header + readme.read_text(encoding="utf-8")
    return header + f"Welcome to the documentation for `{config.module or config.site_title}`.\n"


def build_site(
    config: SiteConfig,
    docs_dir: Path,
    *,
    symbols: SymbolTable | None = None,
    overwrite: bool = False,
    registry: ExternalRegistry | None = None,
    root: Path | None = None,
) -> BuildReport:
    """Generate the documentation sources for ``config`` under ``docs_dir``.

    Parameters
    ----------
    config : SiteConfig
        Site configuration.
    docs_dir : Path
        Documentation root; created when missing.
    symbols : SymbolTable | None, optional
        Pre-collected symbols. When omitted ``config.module`` is imported and
        inspected.
    overwrite : bool, optional
        Replace scaffolding files that already exist.
    registry : ExternalRegistry | None, optional
        External packages for dotted references; copied, never mutated.
    root : Path | None, optional
        Project root holding ``README.md`` and the changelog. Defaults to
        ``docs_dir.parent``.

    Returns
    -------
    BuildReport
        Files written, left unchanged and skipped, plus warnings.

    Raises
    ------
    ConfigurationError
        Raised before any file is written when no module is configured or the
        module cannot be imported.
    """
    started = time.monotonic()
    project_root = docs_dir.parent if root is None else root
    logger = with_fields(LOGGER, operation="build_site", docs_dir=str(docs_dir))

    if symbols is None:
        module_name = require_module(config)
        table = collect_symbols(import_documented_module(module_name))
    else:
        module_name = config.module or symbols.module_name
        table = symbols
    report = BuildReport(symbols=len(table))
    report.warnings.extend(validate_config(config))
    external = resolve_registry(config, registry)
    logger.info("Building documentation for %s", module_name, extra={"symbols": len(table)})

    groups = config.reference or auto_group_objects(table)
    grouped = group_objects(table, groups)
    sibling_index = build_index(table, base_path="")
    root_index = build_index(table, base_path="reference")

    docs_dir.mkdir(parents=True, exist_ok=True)
    writer = _Writer(docs_dir, report, overwrite=overwrite)

    for doc in table.docs():
        page = render_symbol_page(
            doc, sibling_index, module_name=module_name, registry=external
        )
        writer.generated(symbol_page_path(doc.name), page)
        undefined = find_undefined_references(
            doc.docstring, sibling_index, external, ignore_builtins=True
        )
        if undefined:
            report.undefined_references[doc.name] = undefined
    writer.generated(
        "reference.qmd", render_reference_index(grouped, table, index=root_index)
    )
    if report.undefined_references:
        logger.info(
            "%d symbols mention unresolved references",
            len(report.undefined_references),
            extra={"symbols_with_unresolved": sorted(report.undefined_references)},
        )

    news_available = False
    if has_news(config, project_root):
        records = load_news(news_path(config, project_root))
        if records:
            writer.generated("news.qmd", render_news_page(records, config.repo))
            news_available = True

    articles = discover_articles(docs_dir, config.articles)
    if articles or (config.articles.enabled and config.articles.listing):
        writer.generated("articles.qmd", render_articles_index(articles, config.articles))

    sections = discover_sections(config, docs_dir)
    for section, pages in sections:
        if not section.index_file:
            writer.generated(section.index_path, render_section_index(section, pages))

    writer.generated("styles.css", render_styles_css(config.theme))
    custom_scss = render_custom_scss(config.theme)
    if custom_scss is not None:
        writer.generated("custom.scss", custom_scss)

    include_after_body: list[str] = []
    extra_css: list[str] = []
    if config.versions.enabled:
        for name, content in SELECTOR_ASSETS.items():
            writer.generated(name, content)
        include_after_body.append("_version-selector.html")
        extra_css.append("version-selector.css")

    get_started = config.get_started or detect_get_started(docs_dir, module_name)
    navigation = build_navigation(
        config,
        get_started=get_started,
        articles=articles,
        sections=sections,
        grouped=grouped,
        has_news=news_available,
    )
    manifest = build_site_manifest(
        config, navigation, include_after_body=include_after_body, extra_css=extra_css
    )
    writer.generated("_quarto.yml", render_site_manifest(manifest))

    writer.scaffold("index.qmd", _index_page(config, project_root))
    writer.scaffold(".gitignore", DOCS_GITIGNORE)

    report.duration_seconds = round(time.monotonic() - started, 3)
    logger.info(report.summary(), extra={"duration_seconds": report.duration_seconds})
    return report
