"""Shared fixtures for the refsite test suite."""

from __future__ import annotations

import importlib
import logging
import threading
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import ModuleType

import pytest

from refsite.settings import reset_settings_cache
from refsite.symbols import SymbolTable, collect_symbols

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep settings and root logging state from leaking between tests."""
    for name in ("REFSITE_REPO", "REFSITE_DOCS_DIR", "REFSITE_LOG_LEVEL", "REFSITE_LOG_JSON"):
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    reset_settings_cache()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def sample_module(monkeypatch: pytest.MonkeyPatch) -> ModuleType:
    """Import ``tests/fixtures/samplepkg.py`` as ``samplepkg``."""
    monkeypatch.syspath_prepend(str(FIXTURES_DIR))
    return importlib.import_module("samplepkg")


@pytest.fixture
def sample_table(sample_module: ModuleType) -> SymbolTable:
    return collect_symbols(sample_module)


@pytest.fixture
def docs_tree(tmp_path: Path) -> Path:
    """Project root with a README, a changelog, articles and a tutorial section."""
    (tmp_path / "README.md").write_text("# samplepkg\n\nLoads items.\n", encoding="utf-8")
    (tmp_path / "NEWS.md").write_text(
        "# samplepkg 1.1.0 (2024-05-01)\n\n"
        "## Bug Fixes\n\n"
        "- Fixed #12 reported by @alice\n\n"
        "## New Features\n\n"
        "- Added `save_items()`\n\n"
        "# samplepkg 1.0.0 (2024-01-01)\n\n"
        "- Initial release\n",
        encoding="utf-8",
    )
    docs = tmp_path / "docs"
    articles = docs / "articles"
    articles.mkdir(parents=True)
    (articles / "basics.qmd").write_text(
        "---\ntitle: Basics\norder: 1\ndescription: First steps\n---\n\nText.\n",
        encoding="utf-8",
    )
    (articles / "advanced-usage.qmd").write_text("# Going further\n\nText.\n", encoding="utf-8")
    tutorials = docs / "tutorials"
    tutorials.mkdir()
    (tutorials / "first.qmd").write_text("---\ntitle: First tutorial\n---\n", encoding="utf-8")
    return tmp_path


class FakeResponse:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code


class FakeSession:
    """In-memory stand-in for :class:`requests.Session`.

    ``head`` and ``get`` map URLs to a status code or an exception instance;
    unknown URLs answer 200. Every call is recorded.
    """

    def __init__(
        self,
        head: Mapping[str, int | Exception] | None = None,
        get: Mapping[str, int | Exception] | None = None,
    ) -> None:
        self._head = dict(head or {})
        self._get = dict(get or {})
        self._lock = threading.Lock()
        self.calls: list[tuple[str, str]] = []

    def _respond(self, method: str, table: Mapping[str, int | Exception], url: str) -> FakeResponse:
        with self._lock:
            self.calls.append((method, url))
        outcome = table.get(url, 200)
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)

    def head(self, url: str, *, timeout: float, allow_redirects: bool) -> FakeResponse:
        return self._respond("HEAD", self._head, url)

    def get(self, url: str, *, timeout: float, allow_redirects: bool) -> FakeResponse:
        return self._respond("GET", self._get, url)

    def count(self, url: str, method: str = "HEAD") -> int:
        return sum(1 for called, target in self.calls if called == method and target == url)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def session_factory() -> type[FakeSession]:
    return FakeSession
