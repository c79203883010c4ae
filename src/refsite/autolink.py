"""Rewrite inline code spans into links to symbol documentation pages.

Text is first split into tokens: fenced code blocks and existing markdown links
are opaque, inline code spans are candidates, everything else is prose. Two
passes then run over the candidate spans:

1. spans of the exact form ``name()`` whose ``name`` is indexed;
2. remaining spans of the exact form ``name`` whose ``name`` is indexed.

A span converted by the first pass becomes a link token, so the second pass
never touches it. Unknown names are left as plain inline code.

Dotted references such as ``json.dumps`` resolve against an
:class:`ExternalRegistry` mapping package names to documentation base URLs.
Registries are plain values passed to each call; :data:`STANDARD_REGISTRY` is a
read-only instance covering the Python standard library.
"""

from __future__ import annotations

import builtins
import enum
import keyword
import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import ModuleType
from typing import Final

from refsite.markdown import table_row
from refsite.symbols import SymbolTable, collect_symbols

__all__ = [
    "STANDARD_REGISTRY",
    "ExternalRegistry",
    "SymbolIndex",
    "autolink_cross_package",
    "autolink_external",
    "autolink_references",
    "autolink_text",
    "build_index",
    "create_reference_report",
    "find_undefined_references",
    "parse_external_ref",
    "resolve_external_ref",
    "resolve_reference",
]

_TOKEN = re.compile(
    r"""
    (?P<fence>^[ \t]*(?P<marker>`{3,}|~{3,})[^\n]*\n.*?^[ \t]*(?P=marker)[ \t]*$)
    |(?P<link>!?\[(?:[^\[\]]|\[[^\[\]]*\])*\]\([^()\s]*(?:\([^()\s]*\))?[^()\s]*(?:\s+"[^"]*")?\))
    |(?P<code>(?<!`)`(?P<body>[^`\n]+)`(?!`))
    """,
    re.MULTILINE | re.DOTALL | re.VERBOSE,
)
_CALL_SPAN = re.compile(r"^([A-Za-z_]\w*)\(\)$")
_NAME_SPAN = re.compile(r"^[A-Za-z_]\w*$")
_REFERENCE_SPAN = re.compile(r"^([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*)(?:\(\))?$")
_DOTTED_SPAN = re.compile(r"^([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)+)(?:\(\))?$")


class _TokenKind(enum.Enum):
    TEXT = "text"
    FENCE = "fence"
    LINK = "link"
    CODE = "code"


@dataclass(frozen=True, slots=True)
class _Token:
    kind: _TokenKind
    text: str
    body: str = ""


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    position = 0
    for match in _TOKEN.finditer(text):
        if match.start() > position:
            tokens.append(_Token(_TokenKind.TEXT, text[position : match.start()]))
        if match.group("fence") is not None:
            tokens.append(_Token(_TokenKind.FENCE, match.group(0)))
        elif match.group("link") is not None:
            tokens.append(_Token(_TokenKind.LINK, match.group(0)))
        else:
            tokens.append(_Token(_TokenKind.CODE, match.group(0), match.group("body")))
        position = match.end()
    if position < len(text):
        tokens.append(_Token(_TokenKind.TEXT, text[position:]))
    return tokens


def _join(tokens: Iterable[_Token]) -> str:
    return "".join(token.text for token in tokens)


def _link_token(label: str, url: str) -> _Token:
    return _Token(_TokenKind.LINK, f"[`{label}`]({url})")


class SymbolIndex(Mapping[str, str]):
    """Immutable mapping of bare symbol name to documentation page URL."""

    __slots__ = ("_urls", "base_path")

    def __init__(
        self, urls: Mapping[str, str] | None = None, *, base_path: str = "reference"
    ) -> None:
        self._urls = dict(urls or {})
        self.base_path = base_path

    def __getitem__(self, name: str) -> str:
        return self._urls[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)

    def __len__(self) -> int:
        return len(self._urls)

    def __repr__(self) -> str:
        return f"SymbolIndex({len(self._urls)} symbols, base_path={self.base_path!r})"


def symbol_url(name: str, base_path: str = "reference") -> str:
    return f"{base_path.rstrip('/')}/{name}.qmd" if base_path else f"{name}.qmd"


def build_index(
    source: ModuleType | SymbolTable | Iterable[str], base_path: str = "reference"
) -> SymbolIndex:
    """Build a :class:`SymbolIndex` for ``source``.

    Parameters
    ----------
    source : ModuleType | SymbolTable | Iterable[str]
        Module to inspect, an already collected table, or bare names.
    base_path : str, optional
        Directory of the symbol pages relative to the linking page. An empty
        string yields sibling links.

    Returns
    -------
    SymbolIndex
        Names in source order; a repeated name keeps its last URL.
    """
    if isinstance(source, ModuleType):
        names: Iterable[str] = collect_symbols(source).names()
    elif isinstance(source, SymbolTable):
        names = source.names()
    else:
        names = source
    urls: dict[str, str] = {}
    for name in names:
        urls[name] = symbol_url(name, base_path)
    return SymbolIndex(urls, base_path=base_path)


def resolve_reference(name: str, index: Mapping[str, str]) -> str | None:
    """Return the URL for ``name`` (a trailing ``()`` is ignored)."""
    return index.get(name.removesuffix("()"))


def autolink_references(text: str, index: Mapping[str, str]) -> str:
    """Link inline code spans naming indexed symbols.

    Examples
    --------
    >>> index = build_index(["load"])
    >>> autolink_references("Call `load()` or `save()`.", index)
    'Call [`load()`](reference/load.qmd) or `save()`.'
    """
    if not index or "`" not in text:
        return text
    tokens = _tokenize(text)

    for position, token in enumerate(tokens):
        if token.kind is not _TokenKind.CODE:
            continue
        call = _CALL_SPAN.match(token.body)
        if call and call.group(1) in index:
            tokens[position] = _link_token(token.body, index[call.group(1)])

    for position, token in enumerate(tokens):
        if token.kind is not _TokenKind.CODE:
            continue
        if _NAME_SPAN.match(token.body) and token.body in index:
            tokens[position] = _link_token(token.body, index[token.body])

    return _join(tokens)


def _is_builtin_name(name: str) -> bool:
    return keyword.iskeyword(name) or hasattr(builtins, name)


def find_undefined_references(
    text: str,
    index: Mapping[str, str],
    registry: ExternalRegistry | None = None,
    *,
    ignore_builtins: bool = False,
) -> list[str]:
    """List code-span references in ``text`` that resolve nowhere.

    Every bare name missing from ``index`` is reported, Python keywords and
    builtins included, unless ``ignore_builtins`` is set. Dotted references
    count as resolved when ``registry`` knows their package. The result keeps
    first-seen order without duplicates; ``text`` is not modified.
    """
    undefined: list[str] = []
    for token in _tokenize(text):
        if token.kind is not _TokenKind.CODE:
            continue
        match = _REFERENCE_SPAN.match(token.body)
        if match is None:
            continue
        name = match.group(1)
        if "." in name:
            if registry is not None and resolve_external_ref(name, registry) is not None:
                continue
        elif name in index or (ignore_builtins and _is_builtin_name(name)):
            continue
        if name not in undefined:
            undefined.append(name)
    return undefined


def create_reference_report(index: Mapping[str, str], module_name: str) -> str:
    """Return a markdown table of every indexed symbol and its page."""
    lines = [
        f"# Symbol Reference: {module_name}",
        "",
        f"{len(index)} documented symbols.",
        "",
        "| Symbol | Page |",
        "|--------|------|",
    ]
    lines.extend(table_row(f"`{name}`", f"[{name}]({index[name]})") for name in sorted(index))
    return "\n".join(lines) + "\n"


class ExternalRegistry:
    """Mapping of package name to documentation base URL.

    Parameters
    ----------
    entries : Mapping[str, str] | None, optional
        Initial registrations.
    read_only : bool, optional
        Reject mutation with :class:`TypeError`. Use :meth:`copy` to obtain a
        mutable registry seeded from a read-only one.
    """

    __slots__ = ("_entries", "_read_only")

    def __init__(
        self, entries: Mapping[str, str] | None = None, *, read_only: bool = False
    ) -> None:
        self._entries: dict[str, str] = {}
        self._read_only = False
        for package, url in (entries or {}).items():
            self.register(package, url)
        self._read_only = read_only

    def _check_writable(self) -> None:
        if self._read_only:
            msg = "ExternalRegistry is read-only; call copy() for a mutable registry"
            raise TypeError(msg)

    def register(self, package: str, url: str) -> None:
        """Register ``package`` with base ``url`` (a trailing ``/`` is dropped)."""
        self._check_writable()
        self._entries[package] = url.rstrip("/")

    def unregister(self, package: str) -> bool:
        self._check_writable()
        return self._entries.pop(package, None) is not None

    def clear(self) -> None:
        self._check_writable()
        self._entries.clear()

    def get(self, package: str) -> str | None:
        return self._entries.get(package)

    def as_dict(self) -> dict[str, str]:
        return dict(self._entries)

    def copy(self, *, read_only: bool = False) -> ExternalRegistry:
        return ExternalRegistry(self._entries, read_only=read_only)

    @property
    def read_only(self) -> bool:
        return self._read_only

    def __contains__(self, package: object) -> bool:
        return package in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"ExternalRegistry({len(self._entries)} packages, read_only={self._read_only})"


_STDLIB_DOCS: Final[str] = "https://docs.python.org/3/library"
_STDLIB_MODULES: Final[tuple[str, ...]] = (
    "abc",
    "argparse",
    "asyncio",
    "base64",
    "bisect",
    "collections",
    "collections.abc",
    "concurrent.futures",
    "contextlib",
    "copy",
    "csv",
    "dataclasses",
    "datetime",
    "decimal",
    "enum",
    "fractions",
    "functools",
    "hashlib",
    "heapq",
    "inspect",
    "io",
    "itertools",
    "json",
    "logging",
    "math",
    "operator",
    "os",
    "os.path",
    "pathlib",
    "random",
    "re",
    "shutil",
    "sqlite3",
    "statistics",
    "string",
    "subprocess",
    "sys",
    "tempfile",
    "textwrap",
    "threading",
    "time",
    "tomllib",
    "types",
    "typing",
    "unittest",
    "urllib.parse",
    "uuid",
    "warnings",
    "zipfile",
)

STANDARD_REGISTRY: Final[ExternalRegistry] = ExternalRegistry(
    {module: f"{_STDLIB_DOCS}/{module}.html" for module in _STDLIB_MODULES},
    read_only=True,
)
"""Read-only registry of Python standard-library documentation pages."""


def parse_external_ref(
    reference: str, registry: ExternalRegistry | None = None
) -> tuple[str, str] | None:
    """Split a dotted reference into ``(package, symbol)``.

    With ``registry`` the longest registered package prefix wins, so
    ``os.path.join`` splits as ``("os.path", "join")`` when ``os.path`` is
    registered. Without one the split happens at the first dot.
    """
    reference = reference.removesuffix("()")
    parts = reference.split(".")
    if len(parts) < 2 or not all(part.isidentifier() for part in parts):
        return None
    if registry is not None:
        for cut in range(len(parts) - 1, 0, -1):
            package = ".".join(parts[:cut])
            if package in registry:
                return package, ".".join(parts[cut:])
        return None
    return parts[0], ".".join(parts[1:])


def resolve_external_ref(reference: str, registry: ExternalRegistry) -> str | None:
    """Return ``{base}#{package}.{symbol}`` for a registered package, else ``None``."""
    parsed = parse_external_ref(reference, registry)
    if parsed is None:
        return None
    package, symbol = parsed
    base = registry.get(package)
    if base is None:
        return None
    return f"{base}#{package}.{symbol}"


def autolink_external(text: str, registry: ExternalRegistry) -> str:
    """Link dotted code spans whose package is registered in ``registry``."""
    if not len(registry) or "`" not in text:
        return text
    tokens = _tokenize(text)
    for position, token in enumerate(tokens):
        if token.kind is not _TokenKind.CODE or not _DOTTED_SPAN.match(token.body):
            continue
        url = resolve_external_ref(token.body, registry)
        if url is not None:
            tokens[position] = _link_token(token.body, url)
    return _join(tokens)


def autolink_cross_package(text: str, indexes: Sequence[Mapping[str, str]]) -> str:
    """Apply several symbol indexes in turn; earlier indexes win."""
    for index in indexes:
        text = autolink_references(text, index)
    return text


def autolink_text(
    text: str,
    index: Mapping[str, str],
    registry: ExternalRegistry | None = None,
) -> str:
    """Apply :func:`autolink_references` then :func:`autolink_external`."""
    linked = autolink_references(text, index)
    if registry is not None:
        linked = autolink_external(linked, registry)
    return linked
