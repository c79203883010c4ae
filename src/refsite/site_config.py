"""The Quarto site manifest (``_quarto.yml``).

The manifest is assembled as plain dictionaries and serialised with
``yaml.safe_dump(sort_keys=False)`` so key order, and therefore the file, is
stable across builds.
"""

from __future__ import annotations

from typing import Any

import yaml

from refsite.config import SiteConfig, get_dark_theme
from refsite.navigation import Navigation

__all__ = ["build_site_manifest", "render_site_manifest"]


def _theme_entry(config: SiteConfig) -> dict[str, Any] | str:
    theme = config.theme
    extras = ["custom.scss"] if theme.has_custom_scss else []
    light: list[str] | str = [theme.bootswatch, *extras] if extras else theme.bootswatch
    if not theme.dark_mode:
        return light
    dark_name = get_dark_theme(theme.bootswatch)
    dark: list[str] | str = [dark_name, *extras] if extras else dark_name
    return {"light": light, "dark": dark}


def build_site_manifest(
    config: SiteConfig,
    navigation: Navigation,
    *,
    include_after_body: list[str] | None = None,
    extra_css: list[str] | None = None,
) -> dict[str, Any]:
    """Return the ``_quarto.yml`` document as a dictionary.

    Parameters
    ----------
    config : SiteConfig
        Site configuration.
    navigation : Navigation
        Navbar and sidebars computed by :func:`refsite.navigation.build_navigation`.
    include_after_body : list[str] | None, optional
        HTML fragments appended to every page (version selector).
    extra_css : list[str] | None, optional
        Stylesheets loaded after ``styles.css``.

    Returns
    -------
    dict[str, Any]
        Manifest ready for :func:`render_site_manifest`.
    """
    website: dict[str, Any] = {"title": config.site_title}
    if config.repo:
        website["repo-url"] = f"https://github.com/{config.repo}"
        website["repo-actions"] = ["edit", "issue"]
    navbar: dict[str, Any] = {"search": True}
    if navigation.left:
        navbar["left"] = [item.to_manifest() for item in navigation.left]
    if navigation.right:
        navbar["right"] = [item.to_manifest() for item in navigation.right]
    website["navbar"] = navbar
    if navigation.sidebars:
        website["sidebar"] = navigation.sidebars
    website["page-navigation"] = True
    if config.comments.enabled and config.giscus_repo:
        website["comments"] = {
            "giscus": {
                "repo": config.giscus_repo,
                "mapping": config.comments.mapping,
                "reactions-enabled": config.comments.reactions_enabled,
            }
        }
    footer = {
        key: value
        for key, value in (
            ("left", config.footer.left),
            ("center", config.footer.center),
            ("right", config.footer.right),
        )
        if value
    }
    if footer:
        website["page-footer"] = footer

    html: dict[str, Any] = {
        "theme": _theme_entry(config),
        "css": ["styles.css", *(extra_css or [])],
        "toc": True,
        "highlight-style": config.theme.code_highlight,
    }
    if include_after_body:
        html["include-after-body"] = include_after_body

    return {
        "project": {"type": "website", "output-dir": config.output_dir},
        "execute": {"freeze": config.freeze, "cache": config.cache, "warning": config.warning},
        "website": website,
        "format": {"html": html},
    }


def render_site_manifest(manifest: dict[str, Any]) -> str:
    return yaml.safe_dump(manifest, sort_keys=False, allow_unicode=True, width=1000)
