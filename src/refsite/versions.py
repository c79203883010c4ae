"""Multi-version documentation: ``versions.json`` and the selector assets.

The manifest lists every published version with its URL. A ``stable`` alias
entry points at the newest semantic version unless one is given explicitly.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path
from typing import Final

import msgspec

from refsite.fileio import write_if_changed
from refsite.logging import get_logger, with_fields

__all__ = [
    "SELECTOR_ASSETS",
    "VersionEntry",
    "VersionsManifest",
    "generate_versions_manifest",
    "read_versions_manifest",
    "render_versions_manifest",
    "version_selector_css",
    "version_selector_html",
    "version_selector_js",
    "write_version_assets",
    "write_versions_manifest",
]

LOGGER = get_logger(__name__)

_SEMVER = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)")


class VersionEntry(msgspec.Struct, frozen=True, omit_defaults=True):
    """One selectable version."""

    version: str
    url: str
    aliases: tuple[str, ...] = ()


class VersionsManifest(msgspec.Struct, frozen=True):
    """Contents of ``versions.json``."""

    current: str
    stable: str = ""
    dev: str = "dev"
    versions: tuple[VersionEntry, ...] = ()

    def published(self) -> list[str]:
        """Return version names, excluding the ``stable`` alias entry."""
        return [entry.version for entry in self.versions if entry.version != "stable"]


def _semver_key(version: str) -> tuple[int, int, int] | None:
    match = _SEMVER.match(version)
    if match is None:
        return None
    return (int(match.group(1)), int(match.group(2)), int(match.group(3)))


def _ordered(versions: Iterable[str], dev: str) -> list[str]:
    unique = list(dict.fromkeys(versions))
    semver = sorted(
        (v for v in unique if _semver_key(v) is not None),
        key=lambda v: _semver_key(v) or (0, 0, 0),
        reverse=True,
    )
    others = sorted(v for v in unique if v != dev and _semver_key(v) is None)
    return ([dev] if dev in unique else []) + semver + others


def generate_versions_manifest(
    current: str,
    *,
    existing: Iterable[str] = (),
    stable: str = "",
    dev: str = "dev",
    keep: int | None = None,
) -> VersionsManifest:
    """Build the manifest for a deployment of ``current``.

    Parameters
    ----------
    current : str
        Version being published, e.g. ``"v1.2.0"`` or ``"dev"``.
    existing : Iterable[str], optional
        Versions already published.
    stable : str, optional
        Version aliased as ``stable``; defaults to the newest semantic version.
    dev : str, optional
        Name of the development version, listed first.
    keep : int | None, optional
        Retain only the newest ``keep`` semantic versions.

    Returns
    -------
    VersionsManifest
        Manifest with ``dev`` first, then versions newest-first.
    """
    ordered = _ordered([*existing, current], dev)
    if keep is not None:
        releases = [v for v in ordered if _semver_key(v) is not None]
        dropped = set(releases[keep:])
        ordered = [v for v in ordered if v not in dropped]
    if not stable:
        stable = next((v for v in ordered if _semver_key(v) is not None), "")
    entries: list[VersionEntry] = []
    if stable:
        entries.append(VersionEntry(version="stable", url="/stable/", aliases=(stable,)))
    entries.extend(VersionEntry(version=v, url=f"/{v}/") for v in ordered)
    return VersionsManifest(current=current, stable=stable, dev=dev, versions=tuple(entries))


def render_versions_manifest(manifest: VersionsManifest) -> str:
    return msgspec.json.format(msgspec.json.encode(manifest), indent=2).decode("utf-8") + "\n"


def write_versions_manifest(manifest: VersionsManifest, output_dir: Path) -> Path:
    """Write ``output_dir/versions.json`` when its content changed."""
    path = output_dir / "versions.json"
    write_if_changed(path, render_versions_manifest(manifest))
    return path


def read_versions_manifest(path: Path) -> list[str]:
    """Return the published versions in ``path``.

    A missing or unreadable manifest yields ``[]``; the latter is logged.
    """
    if not path.is_file():
        return []
    try:
        manifest = msgspec.json.decode(path.read_bytes(), type=VersionsManifest)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        with_fields(LOGGER, operation="read_versions_manifest", path=str(path)).warning(
            "Could not read versions manifest %s: %s", path, exc
        )
        return []
    return manifest.published()


def version_selector_js() -> str:
    return """\
// Version selector: reads versions.json and switches between published versions.
document.addEventListener('DOMContentLoaded', function () {
  const selector = document.getElementById('version-selector');
  if (!selector) return;
  const segments = window.location.pathname.split('/').filter(Boolean);
  const candidates = [window.location.origin + '/versions.json'];
  if (segments.length > 0) {
    candidates.push(window.location.origin + '/' + segments[0] + '/../versions.json');
  }

  function populate(data) {
    selector.innerHTML = '';
    data.versions.forEach(function (entry) {
      const option = document.createElement('option');
      option.value = entry.url;
      option.text = entry.version;
      if (entry.aliases && entry.aliases.length > 0) {
        option.text += ' (' + entry.aliases.join(', ') + ')';
      }
      if (window.location.pathname.startsWith(entry.url)) {
        option.selected = true;
      }
      selector.appendChild(option);
    });
    const container = selector.closest('.version-selector-container');
    if (container) container.style.display = 'flex';
  }

  function load(index) {
    if (index >= candidates.length) return;
    fetch(candidates[index])
      .then(function (response) {
        if (!response.ok) throw new Error('missing');
        return response.json();
      })
      .then(populate)
      .catch(function () { load(index + 1); });
  }

  selector.addEventListener('change', function (event) {
    const target = event.target.value;
    const match = window.location.pathname.match(/^\\/[^\\/]+\\/(.*)$/);
    const page = match ? match[1] : '';
    fetch(target + page, { method: 'HEAD' })
      .then(function (response) {
        window.location.href = response.ok ? target + page : target;
      })
      .catch(function () { window.location.href = target; });
  });

  load(0);
});
"""


def version_selector_css() -> str:
    return """\
.version-selector-container {
  display: none;
  align-items: center;
  gap: 0.5rem;
  margin: 0 0.5rem 0 1rem;
}

.version-selector-container select {
  padding: 0.15rem 0.5rem;
  border-radius: 0.25rem;
  font-size: 0.875rem;
}
"""


def version_selector_html() -> str:
    return """\
<div class="version-selector-container">
  <label for="version-selector">Version:</label>
  <select id="version-selector" aria-label="Select documentation version">
    <option value="#">Loading...</option>
  </select>
</div>
<script src="/version-selector.js"></script>
"""


SELECTOR_ASSETS: Final[dict[str, str]] = {
    "version-selector.js": version_selector_js(),
    "version-selector.css": version_selector_css(),
    "_version-selector.html": version_selector_html(),
}


def write_version_assets(docs_dir: Path) -> list[Path]:
    """Write the selector script, stylesheet and HTML fragment under ``docs_dir``.

    Returns
    -------
    list[Path]
        Every asset path, whether or not it had to be rewritten.
    """
    paths: list[Path] = []
    for name, content in SELECTOR_ASSETS.items():
        path = docs_dir / name
        write_if_changed(path, content)
        paths.append(path)
    return paths
