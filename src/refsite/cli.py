"""Command-line interface for building and checking documentation sites."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Annotated

import typer

from refsite.articles import create_article_template
from refsite.autolink import build_index, create_reference_report
from refsite.build import build_site
from refsite.config import (
    SiteConfig,
    detect_repo,
    load_config,
    merge_config,
    render_config_template,
    require_module,
)
from refsite.errors import RefsiteError
from refsite.fileio import create_if_absent
from refsite.linkcheck import (
    LinkCheckReport,
    check_internal_links,
    check_links,
    format_linkcheck_report,
)
from refsite.logging import LoggerAdapter, get_logger, setup_logging, with_fields
from refsite.news import create_news_template, load_news, news_summary, write_news_page
from refsite.problem_details import render_problem
from refsite.selectors import documentation_coverage
from refsite.settings import RefsiteSettings, SettingsError, load_settings
from refsite.symbols import import_documented_module, load_symbols_static
from refsite.versions import (
    generate_versions_manifest,
    read_versions_manifest,
    write_versions_manifest,
)
from refsite.workflows import (
    WorkflowKind,
    WorkflowOptions,
    setup_instructions,
    write_make_script,
    write_workflow,
)

__all__ = ["app"]

LOGGER = get_logger(__name__)
CONFIG_FILE_NAME = "_refsite.toml"

app = typer.Typer(
    help="Generate Quarto reference sites for Python packages.",
    no_args_is_help=True,
    add_completion=False,
)
news_app = typer.Typer(help="Render and scaffold the changelog.", no_args_is_help=True)
app.add_typer(news_app, name="news")


def _settings(ctx: typer.Context) -> RefsiteSettings:
    settings = ctx.find_root().obj
    if isinstance(settings, RefsiteSettings):
        return settings
    return load_settings(RefsiteSettings)


def _fail(exc: RefsiteError, logger: LoggerAdapter) -> typer.Exit:
    if exc.problem is not None:
        typer.echo(render_problem(exc.problem, indent=2), err=True)
    else:
        typer.echo(f"Error: {exc}", err=True)
    logger.error("Command failed: %s", exc, extra={"status": "error"})
    return typer.Exit(code=1)


def _resolve_config(
    config_path: Path, module: str | None, settings: RefsiteSettings
) -> SiteConfig:
    config = SiteConfig(repo=settings.repo or detect_repo())
    loaded = load_config(config_path)
    if loaded is not None:
        config = merge_config(config, loaded)
    if module:
        config = merge_config(config, SiteConfig(module=module))
    return config


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log at DEBUG level.")
    ] = False,
) -> None:
    """Load ``REFSITE_*`` settings and configure logging."""
    try:
        settings = load_settings(RefsiteSettings)
    except SettingsError as exc:
        typer.echo(render_problem(exc.problem or {}, indent=2), err=True)
        raise typer.Exit(code=1) from exc
    setup_logging("DEBUG" if verbose else settings.log_level, json_format=settings.log_json)
    ctx.obj = settings


@app.command()
def build(
    ctx: typer.Context,
    docs_dir: Annotated[
        Path | None, typer.Option("--docs-dir", "-d", help="Documentation root.")
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Site configuration file."),
    ] = None,
    module: Annotated[
        str | None, typer.Option("--module", "-m", help="Module to document.")
    ] = None,
    overwrite: Annotated[
        bool, typer.Option("--overwrite", help="Replace index.qmd and .gitignore.")
    ] = False,
    static: Annotated[
        bool, typer.Option("--static", help="Read source with griffe instead of importing.")
    ] = False,
    search_path: Annotated[
        list[Path] | None,
        typer.Option("--search-path", help="Source directories for --static loading."),
    ] = None,
) -> None:
    """Generate reference pages, navigation and the Quarto manifest."""
    settings = _settings(ctx)
    root_docs = docs_dir or settings.docs_dir
    logger = with_fields(LOGGER, operation="build", docs_dir=str(root_docs))
    logger.info("Build command started")
    start = time.monotonic()
    try:
        config = _resolve_config(config_path or root_docs / CONFIG_FILE_NAME, module, settings)
        symbols = None
        if static:
            paths = [str(path) for path in search_path or [Path("src"), Path()]]
            symbols = load_symbols_static(require_module(config), search_paths=paths)
        report = build_site(config, root_docs, symbols=symbols, overwrite=overwrite)
    except RefsiteError as exc:
        raise _fail(exc, logger) from exc
    typer.echo(report.summary())
    for warning in report.warnings:
        typer.echo(f"warning: {warning}", err=True)
    logger.info(
        "Build command completed",
        extra={"duration_seconds": round(time.monotonic() - start, 3)},
    )


@news_app.command("render")
def news_render(
    ctx: typer.Context,
    docs_dir: Annotated[Path | None, typer.Option("--docs-dir", "-d")] = None,
    config_path: Annotated[Path | None, typer.Option("--config", "-c")] = None,
    root: Annotated[
        Path | None, typer.Option("--root", help="Project root holding the changelog.")
    ] = None,
) -> None:
    """Render the changelog into ``news.qmd``."""
    settings = _settings(ctx)
    root_docs = docs_dir or settings.docs_dir
    logger = with_fields(LOGGER, operation="news_render")
    try:
        config = _resolve_config(config_path or root_docs / CONFIG_FILE_NAME, None, settings)
    except RefsiteError as exc:
        raise _fail(exc, logger) from exc
    path = write_news_page(config, root_docs, root=root)
    typer.echo(f"Wrote {path}" if path is not None else "No changelog versions found")


@news_app.command("summary")
def news_summary_command(
    news_file: Annotated[Path, typer.Argument(help="Changelog file.")] = Path("NEWS.md"),
    limit: Annotated[int, typer.Option("--limit", min=1)] = 5,
) -> None:
    """Print a summary of the latest changelog version."""
    summary = news_summary(load_news(news_file), limit=limit)
    typer.echo(summary or "No changelog versions found")


@news_app.command("init")
def news_init(
    package: Annotated[str, typer.Argument(help="Package name for the first header.")],
    news_file: Annotated[Path, typer.Option("--file")] = Path("NEWS.md"),
    overwrite: Annotated[bool, typer.Option("--overwrite")] = False,
) -> None:
    """Create a starter changelog."""
    created = create_news_template(news_file, package, overwrite=overwrite)
    typer.echo(f"Created {news_file}" if created else f"{news_file} already exists")


@app.command()
def linkcheck(
    ctx: typer.Context,
    docs_dir: Annotated[Path | None, typer.Option("--docs-dir", "-d")] = None,
    external: Annotated[
        bool, typer.Option("--external/--no-external", help="Probe http(s) URLs.")
    ] = True,
    internal: Annotated[
        bool, typer.Option("--internal/--no-internal", help="Resolve relative links.")
    ] = True,
    timeout: Annotated[float | None, typer.Option("--timeout", min=0.1)] = None,
    workers: Annotated[int | None, typer.Option("--workers", min=1, max=64)] = None,
    ignore: Annotated[
        list[str] | None, typer.Option("--ignore", help="Regex of URLs to skip.")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Emit JSON.")] = False,
    include_ok: Annotated[bool, typer.Option("--include-ok")] = False,
    output: Annotated[Path | None, typer.Option("--output", "-o")] = None,
) -> None:
    """Check links in the documentation sources; exit 1 when any fail."""
    settings = _settings(ctx)
    root_docs = docs_dir or settings.docs_dir
    logger = with_fields(LOGGER, operation="linkcheck", docs_dir=str(root_docs))
    report = LinkCheckReport.from_results([])
    if internal:
        report = report.merge(check_internal_links(root_docs))
    if external:
        report = report.merge(
            check_links(
                root_docs,
                timeout=timeout or settings.linkcheck_timeout,
                workers=workers or settings.linkcheck_workers,
                ignore=[*settings.linkcheck_ignore, *(ignore or [])],
            )
        )
    rendered = (
        report.to_json() + "\n"
        if json_output
        else format_linkcheck_report(report, include_ok=include_ok)
    )
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(rendered, encoding="utf-8")
    else:
        typer.echo(rendered, nl=False)
    logger.info("Link check finished", extra={"total": report.total, "passed": report.passed})
    if not report.passed:
        raise typer.Exit(code=1)


@app.command()
def workflow(
    kind: Annotated[WorkflowKind, typer.Option("--kind", "-k")] = WorkflowKind.PAGES,
    root: Annotated[Path, typer.Option("--root")] = Path(),
    package: Annotated[str | None, typer.Option("--package", "-p")] = None,
    python_version: Annotated[str, typer.Option("--python-version")] = "3.12",
    keep_versions: Annotated[int, typer.Option("--keep-versions", min=1)] = 5,
    overwrite: Annotated[bool, typer.Option("--overwrite")] = False,
    instructions: Annotated[
        bool, typer.Option("--instructions", help="Print GitHub Pages setup steps.")
    ] = False,
) -> None:
    """Write the GitHub Actions workflow and ``docs/make.py``."""
    options = WorkflowOptions(
        package=package or root.resolve().name,
        python_version=python_version,
        keep_versions=keep_versions,
    )
    for label, path in (
        ("workflow", write_workflow(root, kind, options, overwrite=overwrite)),
        ("build script", write_make_script(root, options, overwrite=overwrite)),
    ):
        typer.echo(f"Created {label}: {path}" if path else f"Kept existing {label}")
    if instructions:
        typer.echo(setup_instructions(options))


@app.command()
def coverage(
    module: Annotated[str, typer.Argument(help="Importable module name.")],
    all_names: Annotated[
        bool, typer.Option("--all", help="Include public names missing from __all__.")
    ] = False,
    fail_under: Annotated[float | None, typer.Option("--fail-under", min=0, max=100)] = None,
) -> None:
    """Report docstring coverage for ``module``."""
    logger = with_fields(LOGGER, operation="coverage", module=module)
    try:
        result = documentation_coverage(
            import_documented_module(module), exported_only=not all_names
        )
    except RefsiteError as exc:
        raise _fail(exc, logger) from exc
    typer.echo(f"{module}: {result.documented}/{result.total} documented ({result.coverage}%)")
    for name in result.missing_symbols:
        typer.echo(f"  missing: {name}")
    if fail_under is not None and result.coverage < fail_under:
        raise typer.Exit(code=1)


@app.command("reference-report")
def reference_report(
    module: Annotated[str, typer.Argument(help="Importable module name.")],
    base_path: Annotated[str, typer.Option("--base-path")] = "reference",
) -> None:
    """Print a table of every documented symbol and its page."""
    logger = with_fields(LOGGER, operation="reference_report", module=module)
    try:
        index = build_index(import_documented_module(module), base_path=base_path)
    except RefsiteError as exc:
        raise _fail(exc, logger) from exc
    typer.echo(create_reference_report(index, module), nl=False)


@app.command()
def versions(
    current: Annotated[str, typer.Option("--current", help="Version being published.")],
    existing: Annotated[
        list[str] | None, typer.Argument(help="Versions already published.")
    ] = None,
    output: Annotated[Path, typer.Option("--output", "-o")] = Path("site"),
    stable: Annotated[str, typer.Option("--stable")] = "",
    keep: Annotated[int | None, typer.Option("--keep", min=1)] = None,
) -> None:
    """Write ``versions.json`` for a multi-version deployment."""
    known = [*read_versions_manifest(output / "versions.json"), *(existing or [])]
    manifest = generate_versions_manifest(current, existing=known, stable=stable, keep=keep)
    path = write_versions_manifest(manifest, output)
    typer.echo(f"Wrote {path} ({len(manifest.published())} versions)")


@app.command()
def init(
    ctx: typer.Context,
    module: Annotated[str, typer.Argument(help="Module to document.")],
    root: Annotated[Path, typer.Option("--root")] = Path(),
    overwrite: Annotated[bool, typer.Option("--overwrite")] = False,
) -> None:
    """Scaffold configuration, changelog, a first article and CI files."""
    settings = _settings(ctx)
    docs_dir = root / settings.docs_dir
    repo = settings.repo or detect_repo(root)
    options = WorkflowOptions(package=module, docs_dir=settings.docs_dir.as_posix())
    config_file = docs_dir / CONFIG_FILE_NAME
    news_file = root / "NEWS.md"
    created: list[Path | None] = [
        config_file
        if create_if_absent(config_file, render_config_template(module, repo), overwrite=overwrite)
        else None,
        news_file if create_news_template(news_file, module, overwrite=overwrite) else None,
        create_article_template(
            docs_dir, "get-started", title="Get Started", package=module, overwrite=overwrite
        ),
        write_make_script(root, options, overwrite=overwrite),
        write_workflow(root, WorkflowKind.PAGES, options, overwrite=overwrite),
    ]
    for path in created:
        if path is not None:
            typer.echo(f"Created {path}")
    typer.echo(setup_instructions(options))


if __name__ == "__main__":  # pragma: no cover - manual execution entrypoint
    app()
