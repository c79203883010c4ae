"""Tests for the refsite command-line interface."""

from __future__ import annotations

import json
from pathlib import Path
from types import ModuleType

import pytest
from typer.testing import CliRunner

from refsite.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _fixed_repo(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep git detection out of CLI runs."""
    monkeypatch.setenv("REFSITE_REPO", "acme/samplepkg")


class TestBuildCommand:
    """Tests for ``refsite build``."""

    @pytest.mark.usefixtures("sample_module")
    def test_build(self, docs_tree: Path) -> None:
        docs = docs_tree / "docs"
        result = runner.invoke(app, ["build", "--docs-dir", str(docs), "--module", "samplepkg"])
        assert result.exit_code == 0, result.output
        assert "Built 4 symbol pages" in result.output
        assert (docs / "reference" / "load_items.qmd").is_file()
        assert "acme/samplepkg" in (docs / "_quarto.yml").read_text(encoding="utf-8")

    def test_static_build_reads_config_file(self, docs_tree: Path, fixtures_dir: Path) -> None:
        docs = docs_tree / "docs"
        (docs / "_refsite.toml").write_text(
            '[project]\nmodule = "samplepkg"\ntitle = "Sample"\n', encoding="utf-8"
        )
        result = runner.invoke(
            app,
            ["build", "--docs-dir", str(docs), "--static", "--search-path", str(fixtures_dir)],
        )
        assert result.exit_code == 0, result.output
        assert "Built 5 symbol pages" in result.output
        assert (docs / "reference" / "DEFAULT_LIMIT.qmd").is_file()

    def test_missing_module_prints_problem(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["build", "--docs-dir", str(tmp_path / "docs")])
        assert result.exit_code == 1
        assert "config-invalid" in result.output
        assert not (tmp_path / "docs").exists()

    def test_invalid_settings_exit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REFSITE_LINKCHECK_WORKERS", "0")
        result = runner.invoke(app, ["coverage", "json"])
        assert result.exit_code == 1
        assert "settings-invalid" in result.output


class TestNewsCommands:
    """Tests for ``refsite news``."""

    def test_render(self, docs_tree: Path) -> None:
        docs = docs_tree / "docs"
        result = runner.invoke(app, ["news", "render", "--docs-dir", str(docs)])
        assert result.exit_code == 0, result.output
        page = (docs / "news.qmd").read_text(encoding="utf-8")
        assert "[@alice](https://github.com/alice)" in page

    def test_summary(self, docs_tree: Path) -> None:
        result = runner.invoke(app, ["news", "summary", str(docs_tree / "NEWS.md"), "--limit", "1"])
        assert result.exit_code == 0
        assert "### Latest: v1.1.0 (2024-05-01)" in result.output

    def test_init(self, tmp_path: Path) -> None:
        news = tmp_path / "NEWS.md"
        first = runner.invoke(app, ["news", "init", "samplepkg", "--file", str(news)])
        assert "Created" in first.output
        assert news.read_text(encoding="utf-8").startswith("# samplepkg 0.1.0")
        second = runner.invoke(app, ["news", "init", "samplepkg", "--file", str(news)])
        assert "already exists" in second.output


class TestLinkcheckCommand:
    """Tests for ``refsite linkcheck``."""

    def test_broken_internal_link_fails(self, tmp_path: Path) -> None:
        docs = tmp_path / "docs"
        docs.mkdir()
        (docs / "index.qmd").write_text("[gone](missing.qmd)\n", encoding="utf-8")
        result = runner.invoke(
            app, ["linkcheck", "--docs-dir", str(docs), "--no-external"]
        )
        assert result.exit_code == 1
        assert "## Broken Links" in result.output
        assert "index.qmd:1" in result.output

    def test_json_report_to_file(self, tmp_path: Path) -> None:
        docs = tmp_path / "docs"
        docs.mkdir()
        (docs / "index.qmd").write_text("[about](about.qmd)\n", encoding="utf-8")
        (docs / "about.qmd").write_text("# About\n", encoding="utf-8")
        output = tmp_path / "report" / "links.json"
        result = runner.invoke(
            app,
            [
                "linkcheck",
                "--docs-dir",
                str(docs),
                "--no-external",
                "--json",
                "--output",
                str(output),
            ],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["total"] == 1
        assert payload["ok"] == 1


class TestCoverageCommands:
    """Tests for ``refsite coverage`` and ``refsite reference-report``."""

    @pytest.mark.usefixtures("sample_module")
    def test_coverage_threshold(self) -> None:
        result = runner.invoke(app, ["coverage", "samplepkg", "--fail-under", "90"])
        assert result.exit_code == 1
        assert "samplepkg: 4/5 documented (80.0%)" in result.output
        assert "missing: undocumented" in result.output

    @pytest.mark.usefixtures("sample_module")
    def test_coverage_passes(self) -> None:
        result = runner.invoke(app, ["coverage", "samplepkg", "--fail-under", "50"])
        assert result.exit_code == 0

    def test_coverage_unknown_module(self) -> None:
        result = runner.invoke(app, ["coverage", "refsite_missing_module_for_tests"])
        assert result.exit_code == 1
        assert "config-invalid" in result.output

    def test_reference_report(self, sample_module: ModuleType) -> None:
        result = runner.invoke(app, ["reference-report", sample_module.__name__])
        assert result.exit_code == 0
        assert "# Symbol Reference: samplepkg" in result.output
        assert "| `Loader` | [Loader](reference/Loader.qmd) |" in result.output


class TestScaffoldCommands:
    """Tests for ``workflow``, ``versions`` and ``init``."""

    def test_workflow(self, tmp_path: Path) -> None:
        args = ["workflow", "--root", str(tmp_path), "--kind", "versioned", "-p", "samplepkg"]
        result = runner.invoke(app, args)
        assert result.exit_code == 0, result.output
        assert "Created workflow" in result.output
        assert (tmp_path / ".github" / "workflows" / "docs.yml").is_file()
        assert (tmp_path / "docs" / "make.py").is_file()
        again = runner.invoke(app, args)
        assert "Kept existing workflow" in again.output

    def test_versions(self, tmp_path: Path) -> None:
        site = tmp_path / "site"
        result = runner.invoke(
            app, ["versions", "--current", "v1.1.0", "v1.0.0", "dev", "--output", str(site)]
        )
        assert result.exit_code == 0, result.output
        assert "(3 versions)" in result.output
        rerun = runner.invoke(app, ["versions", "--current", "v1.2.0", "--output", str(site)])
        assert "(4 versions)" in rerun.output
        payload = json.loads((site / "versions.json").read_text(encoding="utf-8"))
        assert payload["stable"] == "v1.2.0"

    def test_init(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["init", "samplepkg", "--root", str(tmp_path)])
        assert result.exit_code == 0, result.output
        config = (tmp_path / "docs" / "_refsite.toml").read_text(encoding="utf-8")
        assert 'repo = "acme/samplepkg"' in config
        assert (tmp_path / "NEWS.md").is_file()
        assert (tmp_path / "docs" / "articles" / "get-started.qmd").is_file()
        assert (tmp_path / ".github" / "workflows" / "docs.yml").is_file()
        assert "GitHub Pages setup" in result.output
