"""File writers for generated and scaffolded documentation files.

Generated files go through :func:`write_if_changed` so repeated builds leave
unchanged files untouched. Scaffolding (``index.qmd``, ``.gitignore``,
templates) goes through :func:`create_if_absent`, which never replaces a file
the author may have edited unless ``overwrite`` is set.
"""

from __future__ import annotations

from pathlib import Path

from refsite.logging import get_logger, with_fields

__all__ = ["create_if_absent", "write_if_changed"]

LOGGER = get_logger(__name__)


def write_if_changed(path: Path, content: str) -> bool:
    """Write ``content`` to ``path`` when the file content differs.

    Returns
    -------
    bool
        ``True`` when the file was written.
    """
    previous = path.read_text(encoding="utf-8") if path.exists() else None
    if previous == content:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return True


def create_if_absent(path: Path, content: str, *, overwrite: bool = False) -> bool:
    """Create ``path`` unless it exists; existing files are kept with a warning.

    Returns
    -------
    bool
        ``True`` when the file was written.
    """
    if path.exists() and not overwrite:
        with_fields(LOGGER, operation="create_if_absent", path=str(path)).warning(
            "%s already exists; skipping (pass overwrite to replace it)", path
        )
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return True
