"""Tests for refsite.fileio and refsite.markdown."""

from __future__ import annotations

from pathlib import Path

from refsite.fileio import create_if_absent, write_if_changed
from refsite.markdown import escape_table_cell, front_matter, table_row


def test_write_if_changed(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "page.qmd"
    assert write_if_changed(path, "one\n") is True
    mtime = path.stat().st_mtime_ns
    assert write_if_changed(path, "one\n") is False
    assert path.stat().st_mtime_ns == mtime
    assert write_if_changed(path, "two\n") is True
    assert path.read_text(encoding="utf-8") == "two\n"


def test_create_if_absent(tmp_path: Path) -> None:
    path = tmp_path / "index.qmd"
    assert create_if_absent(path, "first") is True
    assert create_if_absent(path, "second") is False
    assert path.read_text(encoding="utf-8") == "first"
    assert create_if_absent(path, "third", overwrite=True) is True
    assert path.read_text(encoding="utf-8") == "third"


def test_table_cells_are_escaped() -> None:
    assert escape_table_cell("a | b\nc") == "a \\| b c"
    assert table_row("`x`", "y|z") == "| `x` | y\\|z |"


def test_front_matter_keeps_key_order() -> None:
    assert front_matter({"title": "Changelog", "toc": True}) == (
        "---\ntitle: Changelog\ntoc: true\n---\n\n"
    )
