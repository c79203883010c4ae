"""Tests for refsite.docblocks."""

from __future__ import annotations

import inspect

from refsite.docblocks import BlockKind, DocBlock, format_block, format_blocks, parse_blocks


class TestParseBlocks:
    """Tests for parse_blocks."""

    def test_paragraphs_split_on_blank_lines(self) -> None:
        blocks = parse_blocks("First line\ncontinued.\n\nSecond.")
        assert blocks == [
            DocBlock(BlockKind.PARAGRAPH, text="First line\ncontinued."),
            DocBlock(BlockKind.PARAGRAPH, text="Second."),
        ]

    def test_fenced_code_keeps_language(self) -> None:
        [block] = parse_blocks("```python\nx = 1\n\ny = 2\n```")
        assert block.kind is BlockKind.CODE
        assert block.language == "python"
        assert block.text == "x = 1\n\ny = 2"

    def test_unterminated_fence_consumes_rest(self) -> None:
        [block] = parse_blocks("```\nx = 1")
        assert block == DocBlock(BlockKind.CODE, text="x = 1")

    def test_doctest_becomes_python_code(self) -> None:
        blocks = parse_blocks(">>> add(1, 2)\n3\n\nDone.")
        assert blocks[0] == DocBlock(BlockKind.CODE, text=">>> add(1, 2)\n3", language="python")
        assert blocks[1].kind is BlockKind.PARAGRAPH

    def test_numpy_section_header(self) -> None:
        """Underlined section names become level-4 headers."""
        blocks = parse_blocks("Summary.\n\nParameters\n----------\nx : int\n    Value.")
        assert blocks[1] == DocBlock(BlockKind.HEADER, text="Parameters", level=4)
        assert blocks[2].kind is BlockKind.PARAGRAPH

    def test_atx_header(self) -> None:
        [block] = parse_blocks("## Usage ##")
        assert block == DocBlock(BlockKind.HEADER, text="Usage", level=2)

    def test_markdown_admonition(self) -> None:
        [block] = parse_blocks('!!! warning "Careful"\n    Deletes files.\n    Twice.')
        assert block.kind is BlockKind.ADMONITION
        assert block.variant == "warning"
        assert block.title == "Careful"
        assert block.text == "Deletes files.\nTwice."

    def test_rst_directive_with_inline_text(self) -> None:
        [block] = parse_blocks(".. note:: Inline text.\n    More text.")
        assert block == DocBlock(
            BlockKind.ADMONITION, text="Inline text.\nMore text.", variant="note"
        )

    def test_unknown_directive_kept_verbatim(self) -> None:
        [block] = parse_blocks(".. autosummary::\n    load_items")
        assert block.kind is BlockKind.UNKNOWN
        assert block.text == ".. autosummary::\n    load_items"

    def test_nested_container(self) -> None:
        text = "::: {.panel}\nOuter.\n\n::: tip-box\nInner.\n:::\n:::\nAfter."
        blocks = parse_blocks(text)
        assert [block.kind for block in blocks] == [BlockKind.CONTAINER, BlockKind.PARAGRAPH]
        outer = blocks[0]
        assert outer.variant == "{.panel}"
        assert [child.kind for child in outer.children] == [
            BlockKind.PARAGRAPH,
            BlockKind.CONTAINER,
        ]
        assert outer.children[1].children == (DocBlock(BlockKind.PARAGRAPH, text="Inner."),)

    def test_empty_text(self) -> None:
        assert parse_blocks("") == []


class TestFormatBlock:
    """Tests for format_block."""

    def test_code(self) -> None:
        block = DocBlock(BlockKind.CODE, text="x = 1", language="python")
        assert format_block(block) == "```python\nx = 1\n```"

    def test_header_level(self) -> None:
        assert format_block(DocBlock(BlockKind.HEADER, text="Notes", level=4)) == "#### Notes"

    def test_admonition_maps_to_callout(self) -> None:
        block = DocBlock(BlockKind.ADMONITION, text="Old.", variant="deprecated")
        assert format_block(block) == '::: {.callout-warning title="Deprecated"}\nOld.\n:::'

    def test_container_class_shorthand(self) -> None:
        block = DocBlock(
            BlockKind.CONTAINER,
            variant="aside",
            children=(DocBlock(BlockKind.PARAGRAPH, text="Hi."),),
        )
        assert format_block(block) == "::: {.aside}\nHi.\n:::"

    def test_unknown_is_verbatim(self) -> None:
        assert format_block(DocBlock(BlockKind.UNKNOWN, text=".. x::")) == ".. x::"


def test_real_docstring_round_trip_keeps_sections() -> None:
    docstring = inspect.cleandoc(
        """Load items.

        Parameters
        ----------
        source : str
            Input.

        Examples
        --------
        >>> load("a")
        ['a']
        """
    )
    rendered = format_blocks(parse_blocks(docstring))
    assert rendered == (
        "Load items.\n\n#### Parameters\n\nsource : str\n    Input.\n\n"
        "#### Examples\n\n```python\n>>> load(\"a\")\n['a']\n```"
    )
