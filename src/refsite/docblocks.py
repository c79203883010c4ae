"""Doc-block model for docstring bodies.

:func:`parse_blocks` splits a cleaned docstring into a flat sequence of tagged
:class:`DocBlock` values and :func:`format_block` renders each one to Quarto
markdown. Anything the parser does not understand becomes an ``UNKNOWN`` block
that is emitted verbatim.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Final, assert_never

__all__ = [
    "BlockKind",
    "DocBlock",
    "format_block",
    "format_blocks",
    "parse_blocks",
]

_FENCE = re.compile(r"^(`{3,}|~{3,})\s*([\w+-]*)")
_ATX_HEADER = re.compile(r"^(#{1,6})\s+(.+?)\s*#*$")
_UNDERLINE = re.compile(r"^(-{3,}|={3,})\s*$")
_ADMONITION = re.compile(r'^(?:!!!|\?\?\?)\s+(\w+)(?:\s+"([^"]*)")?\s*$')
_RST_DIRECTIVE = re.compile(r"^\.\.\s+([\w-]+)::\s*(.*)$")
_CONTAINER_OPEN = re.compile(r"^(:{3,})\s*(\{.*\}|[\w-]+)\s*$")
_DOCTEST = re.compile(r"^>>>\s?")

_CALLOUTS: Final[dict[str, str]] = {
    "note": "note",
    "info": "note",
    "seealso": "note",
    "tip": "tip",
    "hint": "tip",
    "important": "important",
    "warning": "warning",
    "attention": "warning",
    "deprecated": "warning",
    "caution": "caution",
    "danger": "caution",
    "error": "caution",
}


class BlockKind(enum.StrEnum):
    CODE = "code"
    PARAGRAPH = "paragraph"
    HEADER = "header"
    ADMONITION = "admonition"
    CONTAINER = "container"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class DocBlock:
    """One block of a docstring body.

    Attributes
    ----------
    kind : BlockKind
        Variant tag selecting which of the remaining fields are meaningful.
    text : str
        Code, paragraph text, header text, admonition body or raw source.
    language : str
        Code block language (``CODE``).
    level : int
        Header depth (``HEADER``).
    title : str
        Admonition heading (``ADMONITION``).
    variant : str
        Admonition kind such as ``note`` or container attributes.
    children : tuple[DocBlock, ...]
        Nested blocks (``CONTAINER``).
    """

    kind: BlockKind
    text: str = ""
    language: str = ""
    level: int = 0
    title: str = ""
    variant: str = ""
    children: tuple[DocBlock, ...] = ()


def _indented_body(lines: list[str], start: int) -> tuple[list[str], int]:
    body: list[str] = []
    index = start
    while index < len(lines):
        line = lines[index]
        if line.strip() and not line.startswith((" ", "\t")):
            break
        body.append(line)
        index += 1
    while body and not body[-1].strip():
        body.pop()
    dedented = [line[4:] if line.startswith("    ") else line.lstrip("\t") for line in body]
    return dedented, index


def parse_blocks(text: str) -> list[DocBlock]:
    """Split ``text`` into doc blocks. Never raises."""
    lines = text.splitlines()
    blocks: list[DocBlock] = []
    index = 0
    paragraph: list[str] = []

    def flush() -> None:
        if paragraph:
            blocks.append(DocBlock(BlockKind.PARAGRAPH, text="\n".join(paragraph)))
            paragraph.clear()

    while index < len(lines):
        line = lines[index]
        stripped = line.strip()

        if not stripped:
            flush()
            index += 1
            continue

        fence = _FENCE.match(stripped)
        if fence:
            flush()
            marker = fence.group(1)
            body: list[str] = []
            index += 1
            while index < len(lines) and not lines[index].strip().startswith(marker):
                body.append(lines[index])
                index += 1
            blocks.append(DocBlock(BlockKind.CODE, text="\n".join(body), language=fence.group(2)))
            index += 1
            continue

        if _DOCTEST.match(stripped):
            flush()
            body = []
            while index < len(lines) and lines[index].strip():
                body.append(lines[index].strip())
                index += 1
            blocks.append(DocBlock(BlockKind.CODE, text="\n".join(body), language="python"))
            continue

        header = _ATX_HEADER.match(stripped)
        if header:
            flush()
            blocks.append(
                DocBlock(BlockKind.HEADER, text=header.group(2), level=len(header.group(1)))
            )
            index += 1
            continue

        if (
            not paragraph
            and index + 1 < len(lines)
            and _UNDERLINE.match(lines[index + 1].strip())
        ):
            blocks.append(DocBlock(BlockKind.HEADER, text=stripped, level=4))
            index += 2
            continue

        admonition = _ADMONITION.match(stripped)
        directive = _RST_DIRECTIVE.match(stripped)
        if admonition or directive:
            flush()
            match_ = admonition or directive
            assert match_ is not None
            name = match_.group(1).lower()
            body, index = _indented_body(lines, index + 1)
            if name in _CALLOUTS:
                inline = "" if admonition else match_.group(2).strip()
                content = "\n".join(part for part in (inline, "\n".join(body)) if part)
                title = (admonition.group(2) or "") if admonition else ""
                blocks.append(
                    DocBlock(BlockKind.ADMONITION, text=content, title=title, variant=name)
                )
            else:
                raw = "\n".join([line, *("    " + item if item else "" for item in body)])
                blocks.append(DocBlock(BlockKind.UNKNOWN, text=raw))
            continue

        container = _CONTAINER_OPEN.match(stripped)
        if container:
            flush()
            marker = container.group(1)
            body = []
            depth = 1
            index += 1
            while index < len(lines):
                current = lines[index].strip()
                if _CONTAINER_OPEN.match(current):
                    depth += 1
                elif current == marker or (current.startswith(":::") and set(current) == {":"}):
                    depth -= 1
                    if depth == 0:
                        break
                body.append(lines[index])
                index += 1
            blocks.append(
                DocBlock(
                    BlockKind.CONTAINER,
                    variant=container.group(2),
                    children=tuple(parse_blocks("\n".join(body))),
                )
            )
            index += 1
            continue

        paragraph.append(line.rstrip())
        index += 1

    flush()
    return blocks


def format_block(block: DocBlock) -> str:
    """Render ``block`` as Quarto markdown."""
    match block.kind:
        case BlockKind.CODE:
            return f"```{block.language}\n{block.text}\n```"
        case BlockKind.PARAGRAPH:
            return block.text
        case BlockKind.HEADER:
            return f"{'#' * max(block.level, 1)} {block.text}"
        case BlockKind.ADMONITION:
            callout = _CALLOUTS.get(block.variant, "note")
            heading = block.title or block.variant.capitalize()
            return f'::: {{.callout-{callout} title="{heading}"}}\n{block.text}\n:::'
        case BlockKind.CONTAINER:
            attributes = block.variant if block.variant.startswith("{") else f"{{.{block.variant}}}"
            inner = format_blocks(block.children)
            return f"::: {attributes}\n{inner}\n:::"
        case BlockKind.UNKNOWN:
            return block.text
        case _:
            assert_never(block.kind)


def format_blocks(blocks: tuple[DocBlock, ...] | list[DocBlock]) -> str:
    """Render ``blocks`` separated by blank lines."""
    return "\n\n".join(format_block(block) for block in blocks)
