"""Quarto reference-site generator for Python packages.

The package turns a module's docstrings, a ``NEWS.md`` changelog and authored
articles into a Quarto website: per-symbol reference pages, a grouped
reference index, navigation, a changelog page, styles and the ``_quarto.yml``
manifest. A link checker validates the generated sources.
"""

from __future__ import annotations

from refsite import (
    autolink,
    build,
    config,
    errors,
    linkcheck,
    news,
    selectors,
    symbols,
)
from refsite.autolink import STANDARD_REGISTRY, ExternalRegistry, SymbolIndex, build_index
from refsite.build import BuildReport, build_site
from refsite.config import SiteConfig, load_config
from refsite.errors import ConfigurationError, RefsiteError
from refsite.news import VersionRecord, parse_news, render_news_page

__all__ = [
    "STANDARD_REGISTRY",
    "BuildReport",
    "ConfigurationError",
    "ExternalRegistry",
    "RefsiteError",
    "SiteConfig",
    "SymbolIndex",
    "VersionRecord",
    "autolink",
    "build",
    "build_index",
    "build_site",
    "config",
    "errors",
    "linkcheck",
    "load_config",
    "news",
    "parse_news",
    "render_news_page",
    "selectors",
    "symbols",
]

__version__ = "0.1.0"
