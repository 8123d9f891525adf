"""Manifest IO adapter: load, write, back up and restore ``specs.json``."""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict

from specup_migrate.adapters.fs import atomic_write_text, read_text
from specup_migrate.errors import ManifestError
from specup_migrate.manifest import BACKUP_FILENAME, MANIFEST_FILENAME

logger = logging.getLogger(__name__)


def manifest_path(project_dir: str | Path) -> Path:
    return Path(project_dir) / MANIFEST_FILENAME


def backup_path(project_dir: str | Path) -> Path:
    return Path(project_dir) / BACKUP_FILENAME


def load_manifest_data(path: str | Path) -> Dict[str, Any]:
    """Return the parsed JSON object stored at ``path``."""
    try:
        data = json.loads(read_text(path))
    except FileNotFoundError as exc:
        raise ManifestError(f"{Path(path).name} not found") from exc
    except OSError as exc:
        raise ManifestError(f"cannot read {path}: {exc.strerror or exc}") from exc
    except json.JSONDecodeError as exc:
        raise ManifestError(f"{Path(path).name} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"{Path(path).name} must contain a JSON object")
    return data


def write_manifest_data(path: str | Path, data: Dict[str, Any]) -> None:
    atomic_write_text(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def ensure_backup(project_dir: str | Path) -> bool:
    """Copy the manifest to the backup name unless a backup already exists.

    Returns True only when this call created the backup.
    """
    backup = backup_path(project_dir)
    if backup.exists():
        logger.debug("backup %s already exists", backup)
        return False
    shutil.copyfile(manifest_path(project_dir), backup)
    logger.debug("created backup %s", backup)
    return True


def restore_from_backup(project_dir: str | Path) -> None:
    """Overwrite the manifest with the pre-split backup."""
    shutil.copyfile(backup_path(project_dir), manifest_path(project_dir))
