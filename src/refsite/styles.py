"""Stylesheet assembly for the site theme."""

from __future__ import annotations

from typing import Final

from refsite.config import ThemeConfig

__all__ = ["BASE_CSS", "render_custom_scss", "render_styles_css"]

BASE_CSS: Final[str] = """\
/* Generated by refsite. */

.reference-signature pre {
  border-left: 3px solid var(--bs-primary);
}

.callout.callout-style-simple {
  margin-top: 0.5rem;
}

table code {
  white-space: nowrap;
}

.navbar .dropdown-menu {
  max-height: 70vh;
  overflow-y: auto;
}
"""

_SCSS_VARIABLES: Final[tuple[tuple[str, str], ...]] = (
    ("primary", "$primary"),
    ("bg", "$body-bg"),
    ("fg", "$body-color"),
    ("accent", "$link-color"),
    ("font_base", "$font-family-sans-serif"),
    ("font_heading", "$headings-font-family"),
    ("font_code", "$font-family-monospace"),
)


def render_styles_css(theme: ThemeConfig) -> str:
    """Return ``styles.css``: base rules, the primary colour and custom CSS."""
    parts = [BASE_CSS]
    if theme.primary:
        parts.append(f"\n:root {{\n  --refsite-primary: {theme.primary};\n}}\n")
    if theme.custom_css:
        parts.append(f"\n{theme.custom_css.rstrip()}\n")
    return "".join(parts)


def render_custom_scss(theme: ThemeConfig) -> str | None:
    """Return ``custom.scss`` or ``None`` when no variables or SCSS are set."""
    if not theme.has_custom_scss:
        return None
    lines = ["/*-- scss:defaults --*/", ""]
    for attribute, variable in _SCSS_VARIABLES:
        value = getattr(theme, attribute)
        if value:
            lines.append(f"{variable}: {value};")
    lines.extend(["", "/*-- scss:rules --*/", ""])
    if theme.custom_scss:
        lines.append(theme.custom_scss.rstrip())
    return "\n".join(lines).rstrip("\n") + "\n"
