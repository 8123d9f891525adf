"""Remove a split glossary from the project manifest.

The update always starts from the pre-split backup (``specs.unsplit.json``),
which is created the first time a project is split and never overwritten.
Once the glossary entry is gone, the intro file written by the split is
listed in its place so the rendered spec keeps its introduction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from specup_migrate.adapters import io_manifest
from specup_migrate.errors import SplitIOError
from specup_migrate.manifest import (
    BACKUP_FILENAME,
    INTRO_FILENAME,
    MANIFEST_FILENAME,
    update_markdown_paths,
)

logger = logging.getLogger(__name__)


@dataclass
class ManifestUpdate:
    success: bool = False
    backup_created: bool = False
    removed: str | None = None
    added: str | None = None
    messages: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.removed is not None


def _baseline(project_dir: Path, dry_run: bool) -> Path:
    """Return the manifest copy the update starts from."""
    backup = io_manifest.backup_path(project_dir)
    if dry_run:
        return backup if backup.exists() else io_manifest.manifest_path(project_dir)
    return backup


def _prepare(project_dir: Path, result: ManifestUpdate, verbose: bool) -> None:
    try:
        result.backup_created = io_manifest.ensure_backup(project_dir)
        io_manifest.restore_from_backup(project_dir)
    except OSError as exc:
        raise SplitIOError(
            io_manifest.backup_path(project_dir), "manifest backup", exc
        ) from exc
    if result.backup_created:
        result.messages.append(f"✅ Created backup: {BACKUP_FILENAME}")
    elif verbose:
        result.messages.append(f"ℹ️ Backup {BACKUP_FILENAME} already exists")


def update_manifest_after_split(
    source: str | Path,
    project_dir: str | Path,
    *,
    dry_run: bool = False,
    verbose: bool = False,
) -> ManifestUpdate:
    """Remove ``source`` from the first spec's ``markdown_paths``.

    When the intro file exists next to ``source`` (or, with ``dry_run``,
    would be created there) it is added to ``markdown_paths`` too. A source
    that is not listed is not an error: the result reports success without
    a change. With ``dry_run`` nothing is written and no backup is created.
    """
    project = Path(project_dir)
    result = ManifestUpdate()
    if dry_run:
        if not io_manifest.backup_path(project).exists():
            result.messages.append(f"🔍 Would create backup: {BACKUP_FILENAME}")
    else:
        _prepare(project, result, verbose)

    data = io_manifest.load_manifest_data(_baseline(project, dry_run))
    add_intro = dry_run or (Path(source).parent / INTRO_FILENAME).exists()
    updated, removed, added = update_markdown_paths(
        data, source, project, add_intro=add_intro
    )
    result.removed = removed
    if removed is None:
        result.messages.append(
            "ℹ️ Source terms file not found in markdown_paths - no changes needed"
        )
        result.success = True
        return result

    result.messages.append(
        f"{'🔍 Would remove' if dry_run else '✅ Removed'} '{removed}' from markdown_paths"
    )
    if added:
        result.added = INTRO_FILENAME
        result.messages.append(
            f"{'🔍 Would add' if dry_run else '✅ Added'} '{INTRO_FILENAME}' to markdown_paths"
        )
    if not dry_run:
        path = io_manifest.manifest_path(project)
        try:
            io_manifest.write_manifest_data(path, updated)
        except OSError as exc:
            raise SplitIOError(path, "manifest write", exc) from exc
        result.messages.append(f"✅ Updated {MANIFEST_FILENAME}")
    logger.debug(
        "manifest update: removed=%r added=%r dry_run=%s", removed, result.added, dry_run
    )
    result.success = True
    return result
