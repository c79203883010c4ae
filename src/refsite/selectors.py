"""Content selectors for partitioning symbols into reference groups.

A selector is either a literal symbol name or a predicate over names. Selector
strings of the form ``"kind:argument"`` (for example ``"starts_with:load_"``)
are parsed into predicates so configuration files can express them.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from types import ModuleType
from typing import Final

from refsite.config import ReferenceGroup, Selector
from refsite.logging import get_logger, with_fields
from refsite.symbols import SymbolKind, SymbolTable, collect_symbols

__all__ = [
    "Coverage",
    "Predicate",
    "apply_selector",
    "auto_group_objects",
    "autodocs_group",
    "check_missing_docstrings",
    "contains",
    "documentation_coverage",
    "ends_with",
    "filter_objects",
    "group_objects",
    "has_docstring",
    "is_const_symbol",
    "is_exported",
    "is_function_symbol",
    "is_type_symbol",
    "matches",
    "parse_content_selector",
    "starts_with",
]

LOGGER = get_logger(__name__)

type Predicate = Callable[[str], bool]


def starts_with(prefix: str) -> Predicate:
    return lambda name: name.startswith(prefix)


def ends_with(suffix: str) -> Predicate:
    return lambda name: name.endswith(suffix)


def contains(fragment: str) -> Predicate:
    return lambda name: fragment in name


def matches(pattern: str | re.Pattern[str]) -> Predicate:
    """Return a predicate that searches names with ``pattern``."""
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
    return lambda name: compiled.search(name) is not None


def has_docstring(table: SymbolTable) -> Predicate:
    def predicate(name: str) -> bool:
        doc = table.get(name)
        return doc is not None and doc.documented

    return predicate


def is_exported(table: SymbolTable) -> Predicate:
    return table.is_exported


def _kind_predicate(table: SymbolTable, kind: SymbolKind) -> Predicate:
    def predicate(name: str) -> bool:
        doc = table.get(name)
        return doc is not None and doc.kind is kind

    return predicate


def is_function_symbol(table: SymbolTable) -> Predicate:
    return _kind_predicate(table, SymbolKind.FUNCTION)


def is_type_symbol(table: SymbolTable) -> Predicate:
    return _kind_predicate(table, SymbolKind.CLASS)


def is_const_symbol(table: SymbolTable) -> Predicate:
    return _kind_predicate(table, SymbolKind.CONSTANT)


_SELECTOR_FACTORIES: Final[dict[str, Callable[[str], Predicate]]] = {
    "starts_with": starts_with,
    "ends_with": ends_with,
    "contains": contains,
    "matches": matches,
}


def parse_content_selector(text: str) -> Selector:
    """Parse a selector string into a literal name or a predicate.

    Parameters
    ----------
    text : str
        Either a plain symbol name or ``"kind:argument"`` where ``kind`` is one
        of ``starts_with``, ``ends_with``, ``contains`` or ``matches``.

    Returns
    -------
    Selector
        A predicate for recognised kinds, otherwise ``text`` unchanged. Unknown
        kinds are logged as warnings and treated as literal names.
    """
    kind, separator, argument = text.partition(":")
    if not separator:
        return text
    factory = _SELECTOR_FACTORIES.get(kind.strip())
    if factory is None:
        with_fields(LOGGER, operation="parse_selector").warning(
            "Unknown selector type %r; treating %r as a symbol name", kind, text
        )
        return text
    try:
        return factory(argument.strip())
    except re.error as exc:
        with_fields(LOGGER, operation="parse_selector").warning(
            "Invalid pattern in selector %r: %s", text, exc
        )
        return text


def apply_selector(selector: Selector, names: Sequence[str]) -> list[str]:
    """Return the members of ``names`` matched by ``selector``, in order."""
    if isinstance(selector, str):
        resolved = parse_content_selector(selector)
        if isinstance(resolved, str):
            return [resolved] if resolved in names else []
        selector = resolved
    return [name for name in names if selector(name)]


def filter_objects(table: SymbolTable, selectors: Iterable[Selector]) -> list[str]:
    """Apply ``selectors`` in order and return the de-duplicated matches."""
    names = table.names()
    seen: set[str] = set()
    selected: list[str] = []
    for selector in selectors:
        for name in apply_selector(selector, names):
            if name not in seen:
                seen.add(name)
                selected.append(name)
    return selected


def group_objects(
    table: SymbolTable, groups: Sequence[ReferenceGroup]
) -> list[tuple[ReferenceGroup, list[str]]]:
    """Partition ``table`` into ``groups``.

    A symbol claimed by an earlier group is never claimed again by a later one.
    Names are sorted within each group.
    """
    used: set[str] = set()
    grouped: list[tuple[ReferenceGroup, list[str]]] = []
    for group in groups:
        claimed = [name for name in filter_objects(table, group.contents) if name not in used]
        used.update(claimed)
        grouped.append((group, sorted(claimed)))
    return grouped


def autodocs_group(
    table: SymbolTable,
    title: str,
    description: str = "",
    predicate: Predicate | None = None,
) -> ReferenceGroup:
    """Return a group holding every symbol accepted by ``predicate``."""
    names = [name for name in table.names() if predicate is None or predicate(name)]
    return ReferenceGroup(title=title, description=description, contents=sorted(names))


def auto_group_objects(table: SymbolTable) -> list[ReferenceGroup]:
    """Group symbols by kind into Functions, Classes, Constants and Other.

    Empty groups are omitted.
    """
    buckets: dict[str, list[str]] = {"Functions": [], "Classes": [], "Constants": [], "Other": []}
    titles = {
        SymbolKind.FUNCTION: "Functions",
        SymbolKind.CLASS: "Classes",
        SymbolKind.CONSTANT: "Constants",
    }
    for doc in table.docs():
        if doc.kind is SymbolKind.MODULE:
            continue
        buckets[titles.get(doc.kind, "Other")].append(doc.name)
    return [
        ReferenceGroup(title=title, contents=sorted(names))
        for title, names in buckets.items()
        if names
    ]


@dataclass(frozen=True, slots=True)
class Coverage:
    """Docstring coverage summary for one module."""

    total: int
    documented: int
    missing: int
    coverage: float
    missing_symbols: tuple[str, ...]


def _coverage_candidates(module: ModuleType, *, exported_only: bool) -> SymbolTable:
    table = collect_symbols(module, include_undocumented=True, exported_only=exported_only)
    # Live constants cannot carry docstrings.
    return SymbolTable.from_docs(
        (doc for doc in table.docs() if doc.kind is not SymbolKind.CONSTANT),
        module_name=table.module_name,
        exports=table.exports,
    )


def check_missing_docstrings(module: ModuleType, *, exported_only: bool = True) -> list[str]:
    """Return public names of ``module`` that have no docstring."""
    table = _coverage_candidates(module, exported_only=exported_only)
    return [doc.name for doc in table.docs() if not doc.documented]


def documentation_coverage(module: ModuleType, *, exported_only: bool = True) -> Coverage:
    """Return the share of public names in ``module`` that carry a docstring.

    Examples
    --------
    >>> import json
    >>> documentation_coverage(json).total > 0
    True
    """
    table = _coverage_candidates(module, exported_only=exported_only)
    missing = [doc.name for doc in table.docs() if not doc.documented]
    total = len(table)
    documented = total - len(missing)
    percent = round(100.0 * documented / total, 1) if total else 100.0
    return Coverage(
        total=total,
        documented=documented,
        missing=len(missing),
        coverage=percent,
        missing_symbols=tuple(missing),
    )
