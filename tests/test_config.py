"""Tests for refsite.config."""

from __future__ import annotations

import logging
import subprocess
import tomllib
from pathlib import Path
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from refsite import config as config_module
from refsite.config import (
    SectionConfig,
    SiteConfig,
    ThemeConfig,
    config_from_mapping,
    detect_repo,
    get_dark_theme,
    load_config,
    merge_config,
    render_config_template,
    require_module,
    validate_config,
)
from refsite.errors import ConfigurationError

TOML_CONFIG = """\
[project]
module = "samplepkg"
repo = "acme/samplepkg"
title = "Sample"

[execution]
freeze = false

[[reference]]
title = "Loading"
desc = "Reading items"
contents = ["starts_with:load", "Loader"]

[[sections]]
title = "Tutorials"
dir = "tutorials"
order = 1
dropdown_limit = 3

[theme]
bootswatch = "lux"
"""


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_returns_none(self, tmp_path: Path) -> None:
        assert load_config(tmp_path / "_refsite.toml") is None

    def test_toml_tables_are_flattened(self, tmp_path: Path) -> None:
        path = tmp_path / "_refsite.toml"
        path.write_text(TOML_CONFIG, encoding="utf-8")
        config = load_config(path)
        assert config is not None
        assert config.module == "samplepkg"
        assert config.repo == "acme/samplepkg"
        assert config.freeze is False
        assert config.reference[0].description == "Reading items"
        assert config.reference[0].contents == ["starts_with:load", "Loader"]
        section = config.sections[0]
        assert section.directory == "tutorials"
        assert section.dropdown_item_limit == 3
        assert config.theme.bootswatch == "lux"

    def test_yaml_config(self, tmp_path: Path) -> None:
        path = tmp_path / "_refsite.yml"
        path.write_text(
            "module: samplepkg\ncomments: false\ngiscus_repo: acme/discussions\n",
            encoding="utf-8",
        )
        config = load_config(path)
        assert config is not None
        assert config.comments.enabled is False
        assert config.giscus_repo == "acme/discussions"

    def test_empty_yaml_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "_refsite.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == SiteConfig()

    def test_unparseable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "_refsite.toml"
        path.write_text("module = ", encoding="utf-8")
        with pytest.raises(ConfigurationError) as info:
            load_config(path)
        assert info.value.problem is not None
        assert info.value.problem["field"] == "<file>"

    def test_non_mapping_root(self, tmp_path: Path) -> None:
        path = tmp_path / "_refsite.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)

    def test_unknown_field_reports_location(self) -> None:
        with pytest.raises(ConfigurationError) as info:
            config_from_mapping({"theme": {"colour": "red"}}, source="test.toml")
        assert "test.toml" in str(info.value)
        assert info.value.problem is not None
        assert info.value.problem["field"] == "theme.colour"


class TestModels:
    """Tests for the configuration models."""

    def test_defaults(self) -> None:
        config = SiteConfig()
        assert config.module is None
        assert config.site_title == "Documentation"
        assert config.articles.directory == "articles"
        assert config.news.file == "NEWS.md"
        assert config.freeze == "auto"

    def test_models_are_frozen(self) -> None:
        config = SiteConfig(module="samplepkg")
        with pytest.raises(ValidationError):
            config.module = "other"  # type: ignore[misc]

    def test_sections_sorted_by_order_then_title(self) -> None:
        config = SiteConfig(
            sections=[
                SectionConfig(title="Zeta", order=1),
                SectionConfig(title="Alpha", order=2),
                SectionConfig(title="Beta", order=1),
            ]
        )
        assert [section.title for section in config.ordered_sections] == ["Beta", "Zeta", "Alpha"]

    def test_section_index_path(self) -> None:
        assert SectionConfig(title="How To Guides").index_path == "how-to-guides.qmd"
        assert SectionConfig(title="T", directory="tutorials").index_path == "tutorials.qmd"
        assert SectionConfig(title="T", index_file="custom.qmd").index_path == "custom.qmd"

    def test_custom_scss_detection(self) -> None:
        assert not ThemeConfig().has_custom_scss
        assert ThemeConfig(primary="#336699").has_custom_scss


def test_merge_config_only_applies_explicit_fields() -> None:
    base = SiteConfig(module="samplepkg", repo="acme/samplepkg", title="Base")
    merged = merge_config(base, SiteConfig(title="Override"))
    assert merged.title == "Override"
    assert merged.module == "samplepkg"
    assert merged.repo == "acme/samplepkg"


class TestValidateConfig:
    """Tests for validate_config and require_module."""

    def test_clean_config(self) -> None:
        assert validate_config(SiteConfig(module="m", repo="a/b")) == []

    def test_warnings_are_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        config = SiteConfig(
            theme=ThemeConfig(bootswatch="neon"),
            sections=[
                SectionConfig(title="A", directory="guides"),
                SectionConfig(title="B", directory="guides"),
            ],
        )
        with caplog.at_level(logging.WARNING, logger="refsite.config"):
            warnings = validate_config(config)
        assert len(warnings) == 3
        assert any("neon" in warning for warning in warnings)
        assert any("guides" in warning for warning in warnings)
        assert len(caplog.records) == 3

    def test_require_module(self) -> None:
        assert require_module(SiteConfig(module="m")) == "m"
        with pytest.raises(ConfigurationError):
            require_module(SiteConfig())


class TestDetectRepo:
    """Tests for detect_repo."""

    def test_environment_override_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REFSITE_REPO", "acme/override")

        def fail(*args: object, **kwargs: object) -> None:
            raise AssertionError("git must not be called")

        monkeypatch.setattr(config_module.subprocess, "run", fail)
        assert detect_repo() == "acme/override"

    @pytest.mark.parametrize(
        "remote",
        ["git@github.com:acme/widgets.git", "https://github.com/acme/widgets"],
    )
    def test_parses_remote(self, monkeypatch: pytest.MonkeyPatch, remote: str) -> None:
        monkeypatch.setattr(
            config_module.subprocess,
            "run",
            lambda *args, **kwargs: SimpleNamespace(stdout=f"{remote}\n"),
        )
        assert detect_repo() == "acme/widgets"

    def test_git_failure_gives_empty_string(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fail(*args: object, **kwargs: object) -> None:
            raise subprocess.CalledProcessError(128, "git")

        monkeypatch.setattr(config_module.subprocess, "run", fail)
        assert detect_repo() == ""


def test_get_dark_theme() -> None:
    assert get_dark_theme("flatly") == "darkly"
    assert get_dark_theme("unknown") == "darkly"


def test_config_template_round_trips() -> None:
    template = render_config_template("samplepkg", repo="acme/samplepkg")
    config = config_from_mapping(tomllib.loads(template))
    assert config.module == "samplepkg"
    assert config.repo == "acme/samplepkg"
