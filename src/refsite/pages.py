"""Per-symbol reference pages and the grouped reference index."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from refsite.autolink import ExternalRegistry, autolink_text
from refsite.config import ReferenceGroup
from refsite.docblocks import format_blocks, parse_blocks
from refsite.markdown import front_matter, table_row
from refsite.symbols import SymbolDoc, SymbolTable

__all__ = [
    "render_reference_index",
    "render_symbol_page",
    "symbol_page_path",
]

_NO_DOCS = "*No documentation available.*"


def symbol_page_path(name: str) -> str:
    """Return the page of ``name`` relative to the documentation root."""
    return f"reference/{name}.qmd"


def render_symbol_page(
    doc: SymbolDoc,
    index: Mapping[str, str],
    *,
    module_name: str = "",
    registry: ExternalRegistry | None = None,
) -> str:
    """Render the reference page of one symbol.

    Parameters
    ----------
    doc : SymbolDoc
        Symbol to document.
    index : Mapping[str, str]
        Symbol index with URLs relative to the ``reference/`` directory.
    module_name : str, optional
        Owning module, shown as a subtitle.
    registry : ExternalRegistry | None, optional
        External packages for dotted references.

    Returns
    -------
    str
        Page content: title anchor, signature, then the formatted docstring
        inside a callout.
    """
    fields: dict[str, object] = {"title": doc.name}
    if module_name:
        fields["subtitle"] = f"{doc.kind.value} in `{module_name}`"
    parts = [front_matter(fields), f"## `{doc.name}` {{#{doc.name}}}\n\n"]
    if doc.signature:
        parts.append(f"::: {{.reference-signature}}\n```python\n{doc.signature}\n```\n:::\n\n")
    body = format_blocks(parse_blocks(doc.docstring)) if doc.documented else _NO_DOCS
    body = autolink_text(body, index, registry)
    parts.append(f'::: {{.callout-note appearance="simple" icon="false"}}\n{body}\n:::\n')
    return "".join(parts)


def render_reference_index(
    grouped: Sequence[tuple[ReferenceGroup, list[str]]],
    table: SymbolTable,
    *,
    title: str = "Reference",
    index: Mapping[str, str] | None = None,
) -> str:
    """Render ``reference.qmd`` with one section per non-empty group.

    Each section lists its symbols with a link and the first docstring line.
    Symbols claimed by no group are listed under "Other" when any exist.
    """
    claimed = {name for _, names in grouped for name in names}
    leftovers = [name for name in table.names() if name not in claimed]
    sections = [(group, names) for group, names in grouped if names]
    if leftovers:
        sections.append((ReferenceGroup(title="Other"), sorted(leftovers)))

    lines = [front_matter({"title": title}).rstrip("\n")]
    if not sections:
        lines.extend(["", "*No documented symbols.*"])
    for group, names in sections:
        lines.extend(["", f"## {group.title}", ""])
        if group.subtitle:
            lines.extend([f"*{group.subtitle}*", ""])
        if group.description:
            lines.extend([group.description, ""])
        lines.extend(["| Symbol | Description |", "|--------|-------------|"])
        for name in names:
            url = index[name] if index is not None and name in index else symbol_page_path(name)
            doc = table.get(name)
            summary = doc.summary if doc is not None else ""
            lines.append(table_row(f"[`{name}`]({url})", summary))
    return "\n".join(lines) + "\n"
