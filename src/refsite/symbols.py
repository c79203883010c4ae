"""Symbol metadata collected from the documented module.

Two loaders produce the same :class:`SymbolTable`: :func:`collect_symbols`
inspects an imported module, :func:`load_symbols_static` reads source through
``griffe`` without importing it. Tables keep the module's own definition order
and resolve duplicate names last-write-wins.
"""

from __future__ import annotations

import enum
import importlib
import inspect
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from types import ModuleType
from typing import Final

import griffe

from refsite.errors import ConfigurationError, configuration_problem
from refsite.logging import get_logger, with_fields

__all__ = [
    "Classification",
    "FallthroughReason",
    "SymbolDoc",
    "SymbolKind",
    "SymbolTable",
    "classify_symbol",
    "collect_symbols",
    "import_documented_module",
    "load_symbols_static",
    "public_names",
]

LOGGER = get_logger(__name__)

_CONSTANT_TYPES: Final[tuple[type, ...]] = (
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    tuple,
    frozenset,
    type(None),
    enum.Enum,
)


class SymbolKind(enum.StrEnum):
    """Kinds of documented symbols."""

    FUNCTION = "function"
    CLASS = "class"
    CONSTANT = "constant"
    MODULE = "module"
    OTHER = "other"


class FallthroughReason(enum.StrEnum):
    """Why a symbol was not classified as a function, class or constant."""

    MISSING = "missing"
    MODULE = "module"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True, slots=True)
class Classification:
    """Outcome of :func:`classify_symbol`.

    ``reason`` is ``None`` when the symbol was positively recognised.
    """

    kind: SymbolKind
    reason: FallthroughReason | None = None

    @property
    def recognized(self) -> bool:
        return self.reason is None


@dataclass(frozen=True, slots=True)
class SymbolDoc:
    """Documentation metadata for one symbol."""

    name: str
    docstring: str = ""
    kind: SymbolKind = SymbolKind.OTHER
    signature: str = ""

    @property
    def documented(self) -> bool:
        return bool(self.docstring.strip())

    @property
    def summary(self) -> str:
        """Return the first non-blank docstring line."""
        for line in self.docstring.splitlines():
            if line.strip():
                return line.strip()
        return ""


@dataclass(slots=True)
class SymbolTable:
    """Ordered mapping of symbol name to :class:`SymbolDoc`.

    Attributes
    ----------
    module_name : str
        Dotted name of the module the symbols were read from.
    exports : frozenset[str] | None
        Names listed in ``__all__``; ``None`` when the module declares none.
    """

    module_name: str = ""
    exports: frozenset[str] | None = None
    _docs: dict[str, SymbolDoc] = field(default_factory=dict)

    @classmethod
    def from_docs(
        cls,
        docs: Iterable[SymbolDoc],
        *,
        module_name: str = "",
        exports: Iterable[str] | None = None,
    ) -> SymbolTable:
        frozen = None if exports is None else frozenset(exports)
        table = cls(module_name=module_name, exports=frozen)
        for doc in docs:
            table.add(doc)
        return table

    def add(self, doc: SymbolDoc) -> None:
        """Insert ``doc``, replacing any earlier entry with the same name."""
        self._docs[doc.name] = doc

    def get(self, name: str) -> SymbolDoc | None:
        return self._docs.get(name)

    def names(self) -> list[str]:
        return list(self._docs)

    def docs(self) -> list[SymbolDoc]:
        return list(self._docs.values())

    def is_exported(self, name: str) -> bool:
        if self.exports is not None:
            return name in self.exports
        return not name.startswith("_")

    def __contains__(self, name: object) -> bool:
        return name in self._docs

    def __getitem__(self, name: str) -> SymbolDoc:
        return self._docs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._docs)

    def __len__(self) -> int:
        return len(self._docs)


_MISSING = object()


def classify_symbol(module: ModuleType, name: str) -> Classification:
    """Classify ``module.name`` as a function, class, constant or fallback.

    Lookup failures never raise; they produce a fallback classification whose
    ``reason`` says why.
    """
    obj = getattr(module, name, _MISSING)
    if obj is _MISSING:
        return Classification(SymbolKind.OTHER, FallthroughReason.MISSING)
    return classify_object(obj)


def classify_object(obj: object) -> Classification:
    if inspect.ismodule(obj):
        return Classification(SymbolKind.MODULE, FallthroughReason.MODULE)
    if inspect.isclass(obj):
        return Classification(SymbolKind.CLASS)
    if inspect.isroutine(obj) or callable(obj):
        return Classification(SymbolKind.FUNCTION)
    if isinstance(obj, _CONSTANT_TYPES):
        return Classification(SymbolKind.CONSTANT)
    return Classification(SymbolKind.OTHER, FallthroughReason.UNRECOGNIZED)


def public_names(module: ModuleType, *, exported_only: bool = True) -> list[str]:
    """Return the public names of ``module`` in definition order.

    With ``exported_only`` the module's ``__all__`` wins when present; otherwise
    only functions and classes defined in the module itself are kept alongside
    other non-module values.
    """
    exports = getattr(module, "__all__", None)
    if exported_only and exports is not None:
        return [str(name) for name in exports]
    names: list[str] = []
    for name, value in vars(module).items():
        if name.startswith("_") or inspect.ismodule(value):
            continue
        defined_in = getattr(value, "__module__", module.__name__)
        if exported_only and (inspect.isclass(value) or inspect.isroutine(value)):
            if defined_in != module.__name__:
                continue
        names.append(name)
    return names


def _docstring_of(obj: object, kind: SymbolKind) -> str:
    if kind is SymbolKind.CONSTANT:
        return ""
    raw = getattr(obj, "__doc__", None)
    if not isinstance(raw, str):
        return ""
    return inspect.cleandoc(raw)


def _signature_of(name: str, obj: object, kind: SymbolKind) -> str:
    if kind not in {SymbolKind.FUNCTION, SymbolKind.CLASS}:
        return ""
    try:
        return f"{name}{inspect.signature(obj)}"  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return ""


def collect_symbols(
    module: ModuleType, *, include_undocumented: bool = False, exported_only: bool = True
) -> SymbolTable:
    """Build a :class:`SymbolTable` from an imported module.

    Parameters
    ----------
    module : ModuleType
        Module to inspect.
    exported_only : bool, optional
        Restrict the walk to exported names; see :func:`public_names`.
    include_undocumented : bool, optional
        Keep public names without a docstring. Defaults to ``False`` so the
        table only lists documented symbols.

    Returns
    -------
    SymbolTable
        Symbols in the module's definition (or ``__all__``) order.
    """
    exports = getattr(module, "__all__", None)
    table = SymbolTable(
        module_name=module.__name__,
        exports=None if exports is None else frozenset(str(name) for name in exports),
    )
    logger = with_fields(LOGGER, operation="collect_symbols", module=module.__name__)
    for name in public_names(module, exported_only=exported_only):
        classification = classify_symbol(module, name)
        if classification.reason is FallthroughReason.MISSING:
            logger.debug("Exported name %s is not defined", name)
            continue
        if classification.kind is SymbolKind.MODULE:
            continue
        obj = getattr(module, name)
        doc = SymbolDoc(
            name=name,
            docstring=_docstring_of(obj, classification.kind),
            kind=classification.kind,
            signature=_signature_of(name, obj, classification.kind),
        )
        if doc.documented or include_undocumented:
            table.add(doc)
    logger.debug("Collected %d symbols", len(table))
    return table


def import_documented_module(name: str) -> ModuleType:
    """Import ``name`` or raise :class:`ConfigurationError`."""
    try:
        return importlib.import_module(name)
    except ImportError as exc:
        message = f"Cannot import documented module {name!r}: {exc}"
        raise ConfigurationError(
            message, problem=configuration_problem(message, field="module")
        ) from exc


_GRIFFE_KINDS: Final[dict[str, SymbolKind]] = {
    "function": SymbolKind.FUNCTION,
    "class": SymbolKind.CLASS,
    "attribute": SymbolKind.CONSTANT,
    "module": SymbolKind.MODULE,
}


def _static_signature(name: str, parameters: Sequence[griffe.Parameter]) -> str:
    rendered: list[str] = []
    for parameter in parameters:
        if parameter.name in {"self", "cls"}:
            continue
        text = parameter.name
        if parameter.kind is griffe.ParameterKind.var_positional:
            text = f"*{text}"
        elif parameter.kind is griffe.ParameterKind.var_keyword:
            text = f"**{text}"
        if parameter.default is not None:
            text = f"{text}={parameter.default}"
        rendered.append(text)
    return f"{name}({', '.join(rendered)})"


def load_symbols_static(
    name: str,
    *,
    search_paths: Sequence[str] | None = None,
    include_undocumented: bool = False,
) -> SymbolTable:
    """Build a :class:`SymbolTable` by reading source with ``griffe``.

    Aliases (re-exported imports) are skipped; attributes become constants and
    carry their attribute docstrings.

    Raises
    ------
    ConfigurationError
        Raised when ``griffe`` cannot locate the module.
    """
    try:
        module = griffe.load(name, search_paths=list(search_paths or ()), allow_inspection=False)
    except (ImportError, griffe.LoadingError) as exc:
        message = f"Cannot load documented module {name!r}: {exc}"
        raise ConfigurationError(
            message, problem=configuration_problem(message, field="module")
        ) from exc

    exports = module.exports
    table = SymbolTable(
        module_name=name,
        exports=None if exports is None else frozenset(str(item) for item in exports),
    )
    for member_name, member in module.members.items():
        if member.is_alias or member_name.startswith("_"):
            continue
        if table.exports is not None and member_name not in table.exports:
            continue
        kind = _GRIFFE_KINDS.get(member.kind.value, SymbolKind.OTHER)
        if kind is SymbolKind.MODULE:
            continue
        docstring = member.docstring.value if member.docstring else ""
        signature = ""
        if kind is SymbolKind.FUNCTION:
            signature = _static_signature(member_name, list(member.parameters))
        elif kind is SymbolKind.CLASS and "__init__" in member.members:
            signature = _static_signature(member_name, list(member.members["__init__"].parameters))
        doc = SymbolDoc(name=member_name, docstring=docstring, kind=kind, signature=signature)
        if doc.documented or include_undocumented:
            table.add(doc)
    return table
