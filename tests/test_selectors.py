"""Tests for refsite.selectors."""

from __future__ import annotations

import logging
from types import ModuleType

import pytest

from refsite.config import ReferenceGroup
from refsite.selectors import (
    apply_selector,
    auto_group_objects,
    autodocs_group,
    check_missing_docstrings,
    contains,
    documentation_coverage,
    ends_with,
    filter_objects,
    group_objects,
    has_docstring,
    is_exported,
    is_function_symbol,
    is_type_symbol,
    matches,
    parse_content_selector,
    starts_with,
)
from refsite.symbols import SymbolDoc, SymbolKind, SymbolTable


@pytest.fixture
def table() -> SymbolTable:
    return SymbolTable.from_docs(
        [
            SymbolDoc("load_csv", "Load CSV.", SymbolKind.FUNCTION),
            SymbolDoc("load_json", "Load JSON.", SymbolKind.FUNCTION),
            SymbolDoc("Reader", "Reads.", SymbolKind.CLASS),
            SymbolDoc("write_csv", "", SymbolKind.FUNCTION),
            SymbolDoc("VERSION", "", SymbolKind.CONSTANT),
        ],
        exports=["load_csv", "load_json", "Reader", "VERSION"],
    )


class TestPredicates:
    """Tests for the predicate factories."""

    def test_string_predicates(self) -> None:
        assert starts_with("load_")("load_csv")
        assert not starts_with("load_")("reload")
        assert ends_with("_csv")("write_csv")
        assert contains("json")("load_json")
        assert matches(r"^[A-Z]")("Reader")
        assert not matches(r"^[A-Z]")("reader")

    def test_table_predicates(self, table: SymbolTable) -> None:
        assert has_docstring(table)("load_csv")
        assert not has_docstring(table)("write_csv")
        assert not has_docstring(table)("absent")
        assert is_exported(table)("VERSION")
        assert not is_exported(table)("write_csv")
        assert is_function_symbol(table)("write_csv")
        assert is_type_symbol(table)("Reader")
        assert not is_type_symbol(table)("load_csv")


class TestParseContentSelector:
    """Tests for parse_content_selector."""

    def test_plain_name_is_literal(self) -> None:
        assert parse_content_selector("load_csv") == "load_csv"

    def test_known_kind_becomes_predicate(self) -> None:
        selector = parse_content_selector("starts_with:load_")
        assert callable(selector)
        assert selector("load_json")

    def test_unknown_kind_warns_and_stays_literal(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="refsite.selectors"):
            selector = parse_content_selector("prefix:load_")
        assert selector == "prefix:load_"
        assert "Unknown selector type" in caplog.text

    def test_invalid_pattern_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="refsite.selectors"):
            selector = parse_content_selector("matches:(")
        assert selector == "matches:("
        assert "Invalid pattern" in caplog.text


class TestSelection:
    """Tests for apply_selector and filter_objects."""

    def test_literal_must_exist(self) -> None:
        assert apply_selector("a", ["a", "b"]) == ["a"]
        assert apply_selector("z", ["a", "b"]) == []

    def test_string_selector_is_parsed(self) -> None:
        assert apply_selector("ends_with:_csv", ["load_csv", "write_csv", "x"]) == [
            "load_csv",
            "write_csv",
        ]

    def test_filter_keeps_first_order_without_duplicates(self, table: SymbolTable) -> None:
        selected = filter_objects(table, ["Reader", starts_with("load_"), "load_csv"])
        assert selected == ["Reader", "load_csv", "load_json"]


class TestGroupObjects:
    """Tests for group_objects."""

    def test_first_matching_group_claims_symbol(self, table: SymbolTable) -> None:
        groups = [
            ReferenceGroup(title="Loading", contents=[starts_with("load_")]),
            ReferenceGroup(title="CSV", contents=[ends_with("_csv")]),
        ]
        grouped = group_objects(table, groups)
        assert [(group.title, names) for group, names in grouped] == [
            ("Loading", ["load_csv", "load_json"]),
            ("CSV", ["write_csv"]),
        ]

    def test_names_sorted_within_group(self, table: SymbolTable) -> None:
        groups = [ReferenceGroup(title="All", contents=["write_csv", "Reader", "load_csv"])]
        [(_, names)] = group_objects(table, groups)
        assert names == ["Reader", "load_csv", "write_csv"]

    def test_empty_group_kept(self, table: SymbolTable) -> None:
        grouped = group_objects(table, [ReferenceGroup(title="Nothing", contents=["absent"])])
        assert grouped[0][1] == []


def test_auto_group_objects_by_kind(table: SymbolTable) -> None:
    groups = auto_group_objects(table)
    assert [group.title for group in groups] == ["Functions", "Classes", "Constants"]
    assert groups[0].contents == ["load_csv", "load_json", "write_csv"]


def test_autodocs_group(table: SymbolTable) -> None:
    group = autodocs_group(table, "Documented", "With docstrings", has_docstring(table))
    assert group.title == "Documented"
    assert group.description == "With docstrings"
    assert group.contents == ["Reader", "load_csv", "load_json"]


class TestCoverage:
    """Tests for docstring coverage reporting."""

    def test_sample_module_coverage(self, sample_module: ModuleType) -> None:
        coverage = documentation_coverage(sample_module)
        assert coverage.total == 5
        assert coverage.documented == 4
        assert coverage.missing == 1
        assert coverage.coverage == 80.0
        assert coverage.missing_symbols == ("undocumented",)

    def test_check_missing_docstrings(self, sample_module: ModuleType) -> None:
        assert check_missing_docstrings(sample_module) == ["undocumented"]

    def test_empty_module_is_fully_covered(self) -> None:
        coverage = documentation_coverage(ModuleType("empty"))
        assert coverage.total == 0
        assert coverage.coverage == 100.0
