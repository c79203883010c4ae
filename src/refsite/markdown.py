"""Small markdown text helpers shared by the page emitters."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import yaml

__all__ = ["escape_table_cell", "front_matter", "table_row"]


def escape_table_cell(text: str) -> str:
    """Escape ``|`` so ``text`` cannot split a markdown table cell.

    Examples
    --------
    >>> escape_table_cell("a | b")
    'a \\\\| b'
    """
    return text.replace("|", "\\|").replace("\n", " ")


def table_row(*cells: str) -> str:
    return "| " + " | ".join(escape_table_cell(cell) for cell in cells) + " |"


def front_matter(fields: Mapping[str, Any]) -> str:
    """Return a YAML front matter block terminated by a blank line."""
    body = yaml.safe_dump(dict(fields), sort_keys=False, allow_unicode=True, width=1000)
    return f"---\n{body}---\n\n"
