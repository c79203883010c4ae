"""Site configuration models.

Every field carries a default so ``SiteConfig()`` is a valid (if minimal)
configuration. Files are read from TOML (``tomllib``) or YAML (``PyYAML``);
``[project]`` and ``[execution]`` tables are flattened into the top level so
hand-written configs stay short:

.. code-block:: toml

    [project]
    module = "mypkg"
    repo = "me/mypkg"

    [[reference]]
    title = "Core"
    contents = ["main", "starts_with:util_"]

    [[sections]]
    title = "Tutorials"
    dir = "tutorials"
    order = 1
"""

from __future__ import annotations

import os
import re
import subprocess
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Final, Literal

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from refsite.errors import ConfigurationError, configuration_problem
from refsite.logging import get_logger, with_fields

__all__ = [
    "DARK_THEME_MAP",
    "VALID_BOOTSWATCH_THEMES",
    "ArticlesConfig",
    "CommentsConfig",
    "FooterConfig",
    "NavbarItem",
    "NewsConfig",
    "ReferenceGroup",
    "SectionConfig",
    "Selector",
    "SiteConfig",
    "ThemeConfig",
    "VersionsConfig",
    "config_from_mapping",
    "default_config",
    "detect_repo",
    "get_dark_theme",
    "load_config",
    "merge_config",
    "render_config_template",
    "require_module",
    "validate_config",
]

LOGGER = get_logger(__name__)

Selector = str | Callable[[str], bool]

REPO_ENV_VAR: Final[str] = "REFSITE_REPO"
_GITHUB_REMOTE = re.compile(r"github\.com[:/](.+/.+?)(?:\.git)?$")

DARK_THEME_MAP: Final[Mapping[str, str]] = {
    "cerulean": "cyborg",
    "cosmo": "cyborg",
    "flatly": "darkly",
    "journal": "slate",
    "litera": "superhero",
    "lumen": "solar",
    "lux": "superhero",
    "materia": "slate",
    "minty": "vapor",
    "morph": "vapor",
    "pulse": "quartz",
    "sandstone": "slate",
    "simplex": "superhero",
    "sketchy": "slate",
    "spacelab": "cyborg",
    "united": "slate",
    "yeti": "slate",
    "zephyr": "vapor",
}

VALID_BOOTSWATCH_THEMES: Final[frozenset[str]] = frozenset(
    {
        "cerulean", "cosmo", "cyborg", "darkly", "flatly", "journal", "litera",
        "lumen", "lux", "materia", "minty", "morph", "pulse", "quartz",
        "sandstone", "simplex", "sketchy", "slate", "solar", "spacelab",
        "superhero", "united", "vapor", "yeti", "zephyr",
    }
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)


class ReferenceGroup(_Frozen):
    """A titled group on the reference index page.

    ``contents`` holds selectors applied in declaration order: literal symbol
    names, ``"kind:argument"`` selector strings, or predicates over names.
    """

    title: str
    description: str = Field(default="", validation_alias=AliasChoices("description", "desc"))
    subtitle: str = ""
    contents: list[Selector] = Field(default_factory=list)


class NavbarItem(_Frozen):
    """A navbar entry; ``menu`` turns it into a dropdown."""

    text: str = ""
    href: str = ""
    icon: str = ""
    menu: list[NavbarItem] = Field(default_factory=list)

    def to_manifest(self) -> dict[str, Any]:
        entry: dict[str, Any] = {}
        if self.icon:
            entry["icon"] = self.icon
        if self.text:
            entry["text"] = self.text
        if self.menu:
            entry["menu"] = [item.to_manifest() for item in self.menu]
        elif self.href:
            entry["href"] = self.href
        return entry


class SectionConfig(_Frozen):
    """A navbar section backed by a directory of pages.

    Attributes
    ----------
    title : str
        Navbar label.
    directory : str
        Directory under the docs root holding the section's ``.qmd`` pages.
        ``dir`` is accepted as an alias in configuration files.
    order : int
        Sort key in the navbar; ties are broken by ``title``.
    dropdown : bool
        Render the section as a dropdown menu.
    dropdown_item_limit : int
        Above this page count the dropdown degrades to a single link to the
        section index page.
    """

    title: str
    directory: str = Field(default="", validation_alias=AliasChoices("directory", "dir"))
    description: str = Field(default="", validation_alias=AliasChoices("description", "desc"))
    dropdown: bool = True
    dropdown_item_limit: int = Field(
        default=15, ge=0, validation_alias=AliasChoices("dropdown_item_limit", "dropdown_limit")
    )
    index_file: str = ""
    sidebar: bool = True
    order: int = 100

    @property
    def index_path(self) -> str:
        """Return the section index page, relative to the docs root."""
        if self.index_file:
            return self.index_file
        return f"{self.directory or _slug(self.title)}.qmd"

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.order, self.title)


class ArticlesConfig(_Frozen):
    """Authored long-form articles (vignettes)."""

    enabled: bool = True
    title: str = "Articles"
    description: str = Field(default="", validation_alias=AliasChoices("description", "desc"))
    directory: str = Field(default="articles", validation_alias=AliasChoices("directory", "dir"))
    dropdown: bool = True
    dropdown_item_limit: int = Field(
        default=10, ge=0, validation_alias=AliasChoices("dropdown_item_limit", "dropdown_limit")
    )
    recursive: bool = True
    listing: bool = False
    contents: list[str] = Field(default_factory=list)


class NewsConfig(_Frozen):
    enabled: bool = True
    file: str = "NEWS.md"


class VersionsConfig(_Frozen):
    """Multi-version deployment: selector assets and retention count."""

    enabled: bool = False
    keep: int = Field(default=5, ge=1)
    dev_label: str = "dev"


class CommentsConfig(_Frozen):
    """Giscus comment integration; ``giscus_repo`` falls back to the site repo."""

    enabled: bool = True
    giscus_repo: str = ""
    mapping: str = "pathname"
    reactions_enabled: bool = True


class ThemeConfig(_Frozen):
    bootswatch: str = "flatly"
    dark_mode: bool = True
    primary: str = ""
    bg: str = ""
    fg: str = ""
    accent: str = ""
    font_base: str = ""
    font_heading: str = ""
    font_code: str = ""
    code_highlight: str = "github"
    custom_css: str = ""
    custom_scss: str = ""

    @property
    def has_custom_scss(self) -> bool:
        """Return ``True`` when any SCSS variable or custom SCSS is configured."""
        return any(
            (
                self.primary,
                self.bg,
                self.fg,
                self.accent,
                self.font_base,
                self.font_heading,
                self.font_code,
                self.custom_scss,
            )
        )


class FooterConfig(_Frozen):
    left: str = ""
    center: str = ""
    right: str = ""


class SiteConfig(_Frozen):
    """Top-level configuration for one documentation site.

    Attributes
    ----------
    module : str | None
        Dotted import name of the documented module. Required by
        :func:`refsite.build.build_site` unless symbols are passed explicitly.
    repo : str
        GitHub repository in ``owner/name`` form, used for changelog links,
        the navbar GitHub icon and Giscus comments.
    external_docs : dict[str, str]
        Extra package name to documentation URL entries for cross-package
        linking, layered on top of the standard registry when
        ``use_standard_registry`` is set.
    """

    module: str | None = None
    title: str = ""
    output_dir: str = "site"
    repo: str = ""

    freeze: bool | Literal["auto"] = "auto"
    cache: bool = True
    warning: bool = False

    reference: list[ReferenceGroup] = Field(default_factory=list)
    sections: list[SectionConfig] = Field(default_factory=list)
    get_started: str = ""
    articles: ArticlesConfig = Field(default_factory=ArticlesConfig)
    news: NewsConfig = Field(default_factory=NewsConfig)
    versions: VersionsConfig = Field(default_factory=VersionsConfig)

    navbar_left: list[NavbarItem] = Field(default_factory=list)
    navbar_right: list[NavbarItem] = Field(default_factory=list)

    comments: CommentsConfig = Field(default_factory=CommentsConfig)
    theme: ThemeConfig = Field(default_factory=ThemeConfig)
    footer: FooterConfig = Field(default_factory=FooterConfig)

    external_docs: dict[str, str] = Field(default_factory=dict)
    use_standard_registry: bool = True

    @property
    def site_title(self) -> str:
        if self.title:
            return self.title
        return self.module or "Documentation"

    @property
    def giscus_repo(self) -> str:
        return self.comments.giscus_repo or self.repo

    @property
    def ordered_sections(self) -> list[SectionConfig]:
        """Return sections sorted by ``order`` then ``title``."""
        return sorted(self.sections, key=lambda section: section.sort_key)


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def get_dark_theme(light_theme: str) -> str:
    """Return the dark bootswatch theme paired with ``light_theme``."""
    return DARK_THEME_MAP.get(light_theme.lower(), "darkly")


def detect_repo(cwd: Path | None = None) -> str:
    """Return the ``owner/name`` GitHub repository of ``cwd``.

    The ``REFSITE_REPO`` environment variable wins over the git remote so
    builds can rehost documentation without touching git configuration.

    Parameters
    ----------
    cwd : Path | None, optional
        Working tree to inspect. Defaults to the process working directory.

    Returns
    -------
    str
        Repository identifier, or ``""`` when it cannot be determined.
    """
    override = os.environ.get(REPO_ENV_VAR, "").strip()
    if override:
        return override
    command = ("git", "remote", "get-url", "origin")
    try:
        completed = subprocess.run(  # noqa: S603 - fixed argv
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=10.0,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        with_fields(LOGGER, operation="detect_repo").debug("Unable to detect git remote: %s", exc)
        return ""
    match = _GITHUB_REMOTE.search(completed.stdout.strip())
    return match.group(1) if match else ""


def default_config(module: str) -> SiteConfig:
    """Return a configuration for ``module`` with the repository auto-detected."""
    return SiteConfig(module=module, repo=detect_repo())


def load_config(path: Path | str = "_refsite.toml") -> SiteConfig | None:
    """Load a :class:`SiteConfig` from a TOML or YAML file.

    Parameters
    ----------
    path : Path | str, optional
        Configuration file. ``.yml``/``.yaml`` files are read as YAML, anything
        else as TOML.

    Returns
    -------
    SiteConfig | None
        Parsed configuration, or ``None`` when ``path`` does not exist.

    Raises
    ------
    ConfigurationError
        Raised when the file cannot be parsed or fails validation.
    """
    config_path = Path(path)
    if not config_path.is_file():
        return None

    try:
        if config_path.suffix in {".yml", ".yaml"}:
            with config_path.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        else:
            with config_path.open("rb") as handle:
                payload = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
        message = f"Could not parse {config_path}: {exc}"
        raise ConfigurationError(
            message, problem=configuration_problem(message, field="<file>")
        ) from exc

    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        message = f"{config_path} must contain a mapping at the top level"
        raise ConfigurationError(message, problem=configuration_problem(message, field="<root>"))
    return config_from_mapping(payload, source=str(config_path))


def config_from_mapping(data: Mapping[str, Any], *, source: str = "<mapping>") -> SiteConfig:
    """Validate ``data`` into a :class:`SiteConfig`, flattening grouping tables."""
    flattened = dict(data)
    for table in ("project", "execution"):
        nested = flattened.pop(table, None)
        if isinstance(nested, Mapping):
            flattened.update(nested)
    if isinstance(flattened.get("comments"), bool):
        flattened["comments"] = {"enabled": flattened["comments"]}
    giscus_repo = flattened.pop("giscus_repo", None)
    if giscus_repo is not None:
        comments = dict(flattened.get("comments") or {})
        comments.setdefault("giscus_repo", giscus_repo)
        flattened["comments"] = comments
    try:
        return SiteConfig.model_validate(flattened)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {"loc": ("<root>",), "msg": str(exc)}
        field = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
        message = f"Invalid configuration in {source}: {field}: {first.get('msg', '')}"
        raise ConfigurationError(
            message,
            problem=configuration_problem(
                message, field=field, extensions={"error_count": exc.error_count()}
            ),
        ) from exc


def merge_config(base: SiteConfig, overrides: SiteConfig) -> SiteConfig:
    """Return ``base`` updated with every field explicitly set on ``overrides``."""
    update = {name: getattr(overrides, name) for name in overrides.model_fields_set}
    return base.model_copy(update=update)


def validate_config(config: SiteConfig) -> list[str]:
    """Return non-fatal configuration warnings, logging each one.

    Missing required fields are not reported here; see :func:`require_module`.
    """
    logger = with_fields(LOGGER, operation="validate_config")
    warnings: list[str] = []
    if not config.repo:
        warnings.append("repo is not set; GitHub links and comments will be disabled")
    bootswatch = config.theme.bootswatch
    if bootswatch and bootswatch.lower() not in VALID_BOOTSWATCH_THEMES:
        warnings.append(f"unknown bootswatch theme {bootswatch!r}")
    directories = [section.directory for section in config.sections if section.directory]
    duplicates = sorted({name for name in directories if directories.count(name) > 1})
    if duplicates:
        warnings.append(f"sections share directories: {', '.join(duplicates)}")
    for message in warnings:
        logger.warning("Configuration warning: %s", message)
    return warnings


def require_module(config: SiteConfig) -> str:
    """Return the configured module name or raise :class:`ConfigurationError`."""
    if not config.module:
        message = "No module configured; set 'module' in the site configuration"
        raise ConfigurationError(message, problem=configuration_problem(message, field="module"))
    return config.module


_CONFIG_TEMPLATE: Final[str] = """\
[project]
module = "{module}"
repo = "{repo}"

[theme]
bootswatch = "flatly"
dark_mode = true

[news]
enabled = true
file = "NEWS.md"

[articles]
directory = "articles"

# [[reference]]
# title = "Core"
# contents = ["starts_with:load", "matches:^build_"]

# [[sections]]
# title = "Tutorials"
# dir = "tutorials"
# order = 1
"""


def render_config_template(module: str, repo: str = "") -> str:
    """Return a starter ``_refsite.toml`` for ``module``."""
    return _CONFIG_TEMPLATE.format(module=module, repo=repo)
