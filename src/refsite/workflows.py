"""GitHub Actions workflows, the docs build script and setup instructions.

Everything here is string templating over :class:`WorkflowOptions`; writers go
through :func:`refsite.fileio.create_if_absent` because authors routinely edit
these files after scaffolding.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from string import Template
from typing import Final

from refsite.fileio import create_if_absent

__all__ = [
    "WorkflowKind",
    "WorkflowOptions",
    "render_make_script",
    "render_workflow",
    "setup_instructions",
    "write_make_script",
    "write_workflow",
]


class WorkflowKind(enum.StrEnum):
    PAGES = "pages"
    GH_PAGES = "gh-pages"
    VERSIONED = "versioned"


@dataclass(frozen=True, slots=True)
class WorkflowOptions:
    """Parameters shared by every workflow template."""

    package: str = "mypackage"
    branches: tuple[str, ...] = ("main", "master")
    deploy_branch: str = "gh-pages"
    python_version: str = "3.12"
    quarto_version: str = "release"
    docs_dir: str = "docs"
    output_dir: str = "site"
    keep_versions: int = 5
    extras: tuple[str, ...] = ()

    def substitutions(self) -> dict[str, str]:
        install_target = f".[{','.join(self.extras)}]" if self.extras else "."
        return {
            "branches": ", ".join(f'"{branch}"' for branch in self.branches),
            "deploy_branch": self.deploy_branch,
            "python_version": self.python_version,
            "quarto_version": self.quarto_version,
            "docs_dir": self.docs_dir,
            "output_dir": self.output_dir,
            "keep_versions": str(self.keep_versions),
            "install_target": install_target,
            "package": self.package,
        }


_BUILD_STEPS: Final[str] = """\
      - name: Checkout repository
        uses: actions/checkout@v4
        with:
          fetch-depth: 0

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "$python_version"
          cache: pip

      - name: Install package and refsite
        run: |
          python -m pip install --upgrade pip
          python -m pip install "$install_target" refsite

      - name: Generate documentation sources
        run: python $docs_dir/make.py

      - name: Set up Quarto
        uses: quarto-dev/quarto-actions/setup@v2
        with:
          version: $quarto_version

      - name: Render Quarto site
        run: quarto render $docs_dir
"""

_PAGES_WORKFLOW: Final[str] = """\
name: Build and Deploy Documentation

on:
  push:
    branches: [$branches]
  pull_request:
    branches: [$branches]
  workflow_dispatch:

permissions:
  contents: read
  pages: write
  id-token: write

concurrency:
  group: "pages"
  cancel-in-progress: false

jobs:
  build:
    runs-on: ubuntu-latest
    steps:
$build_steps
      - name: Upload artifact
        uses: actions/upload-pages-artifact@v3
        with:
          path: $docs_dir/$output_dir

  deploy:
    needs: build
    if: github.event_name != 'pull_request'
    runs-on: ubuntu-latest
    environment:
      name: github-pages
      url: $${{ steps.deployment.outputs.page_url }}
    steps:
      - name: Deploy to GitHub Pages
        id: deployment
        uses: actions/deploy-pages@v4
"""

_GH_PAGES_WORKFLOW: Final[str] = """\
name: Build and Deploy Documentation

on:
  push:
    branches: [$branches]
  workflow_dispatch:

permissions:
  contents: write

jobs:
  deploy:
    runs-on: ubuntu-latest
    steps:
$build_steps
      - name: Deploy to $deploy_branch
        uses: peaceiris/actions-gh-pages@v4
        with:
          github_token: $${{ secrets.GITHUB_TOKEN }}
          publish_dir: $docs_dir/$output_dir
          publish_branch: $deploy_branch
"""

_VERSIONED_WORKFLOW: Final[str] = """\
name: Build and Deploy Versioned Documentation

on:
  push:
    branches: [$branches]
    tags: ["v*"]
  workflow_dispatch:

permissions:
  contents: write

concurrency:
  group: "docs-$${{ github.ref }}"
  cancel-in-progress: false

jobs:
  deploy:
    runs-on: ubuntu-latest
    steps:
$build_steps
      - name: Determine version
        id: version
        run: |
          if [[ "$${{ github.ref_type }}" == "tag" ]]; then
            echo "name=$${{ github.ref_name }}" >> "$$GITHUB_OUTPUT"
          else
            echo "name=dev" >> "$$GITHUB_OUTPUT"
          fi

      - name: Check out $deploy_branch
        uses: actions/checkout@v4
        with:
          ref: $deploy_branch
          path: _deploy
        continue-on-error: true

      - name: Publish version and prune old releases
        run: |
          version="$${{ steps.version.outputs.name }}"
          mkdir -p _deploy
          rm -rf "_deploy/$$version"
          cp -r $docs_dir/$output_dir "_deploy/$$version"
          if [[ "$$version" != "dev" ]]; then
            rm -rf _deploy/stable
            cp -r $docs_dir/$output_dir _deploy/stable
          fi
          ls -1 _deploy | grep -E '^v[0-9]' | sort -rV | tail -n +$$(( $keep_versions + 1 )) \\
            | xargs -r -I{} rm -rf "_deploy/{}"
          existing=$$(ls -1 _deploy | grep -E '^(v[0-9].*|dev)$$' || true)
          refsite versions --output _deploy --current "$$version" --keep $keep_versions $$existing

      - name: Push $deploy_branch
        uses: peaceiris/actions-gh-pages@v4
        with:
          github_token: $${{ secrets.GITHUB_TOKEN }}
          publish_dir: _deploy
          publish_branch: $deploy_branch
          keep_files: false
"""

_TEMPLATES: Final[dict[WorkflowKind, str]] = {
    WorkflowKind.PAGES: _PAGES_WORKFLOW,
    WorkflowKind.GH_PAGES: _GH_PAGES_WORKFLOW,
    WorkflowKind.VERSIONED: _VERSIONED_WORKFLOW,
}


def render_workflow(kind: WorkflowKind, options: WorkflowOptions | None = None) -> str:
    """Return the workflow YAML for ``kind``."""
    values = (options or WorkflowOptions()).substitutions()
    values["build_steps"] = Template(_BUILD_STEPS).substitute(values)
    return Template(_TEMPLATES[kind]).substitute(values)


def write_workflow(
    root: Path,
    kind: WorkflowKind = WorkflowKind.PAGES,
    options: WorkflowOptions | None = None,
    *,
    overwrite: bool = False,
) -> Path | None:
    """Write ``.github/workflows/docs.yml`` under ``root`` unless it exists."""
    path = root / ".github" / "workflows" / "docs.yml"
    written = create_if_absent(path, render_workflow(kind, options), overwrite=overwrite)
    return path if written else None


_MAKE_SCRIPT: Final[str] = '''\
"""Generate the documentation sources for $package."""

from __future__ import annotations

from pathlib import Path

from refsite.build import build_site
from refsite.config import default_config, load_config, merge_config

DOCS_DIR = Path(__file__).resolve().parent


def main() -> None:
    config = default_config("$package")
    loaded = load_config(DOCS_DIR / "_refsite.toml")
    if loaded is not None:
        config = merge_config(config, loaded)
    report = build_site(config, DOCS_DIR)
    print(report.summary())
    print("Run 'quarto render $docs_dir' to produce the HTML site.")


if __name__ == "__main__":
    main()
'''


def render_make_script(options: WorkflowOptions | None = None) -> str:
    return Template(_MAKE_SCRIPT).substitute((options or WorkflowOptions()).substitutions())


def write_make_script(
    root: Path, options: WorkflowOptions | None = None, *, overwrite: bool = False
) -> Path | None:
    """Write ``<docs_dir>/make.py`` under ``root`` unless it exists."""
    resolved = options or WorkflowOptions()
    path = root / resolved.docs_dir / "make.py"
    written = create_if_absent(path, render_make_script(resolved), overwrite=overwrite)
    return path if written else None


_INSTRUCTIONS: Final[str] = """\
## GitHub Pages setup

### Option 1: GitHub Actions deployment (recommended)

1. Generate the workflow: `refsite workflow --kind pages`
2. In the repository go to **Settings** > **Pages** and select
   **GitHub Actions** under "Build and deployment".
3. Push to one of: $branches.

### Option 2: `$deploy_branch` branch

1. Generate the workflow: `refsite workflow --kind gh-pages`
2. In **Settings** > **Pages** select **Deploy from a branch**, then the
   `$deploy_branch` branch and the `/ (root)` folder.

### Option 3: versioned documentation

1. Generate the workflow: `refsite workflow --kind versioned`
2. Tags matching `v*` publish a version; the newest $keep_versions releases
   are kept alongside `dev` and `stable`.

### Local preview

```bash
python $docs_dir/make.py
quarto preview $docs_dir
```
"""


def setup_instructions(options: WorkflowOptions | None = None) -> str:
    return Template(_INSTRUCTIONS).substitute((options or WorkflowOptions()).substitutions())
