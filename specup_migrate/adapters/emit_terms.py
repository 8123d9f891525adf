"""Term file emitter.

Writes the introduction segment and the planned term files. Files are
written one at a time; on failure a ``SplitIOError`` carries every path that
was already written so callers can report partial progress.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from specup_migrate.adapters.fs import write_text
from specup_migrate.errors import SplitIOError
from specup_migrate.manifest import INTRO_FILENAME

logger = logging.getLogger(__name__)


def intro_path(source: str | Path) -> Path:
    """Return the introduction file location next to ``source``."""
    return Path(source).parent / INTRO_FILENAME


def planned_paths(
    source: str | Path, terms_dir: str | Path, files: Iterable[Mapping[str, Any]]
) -> list[str]:
    """Return the intro path followed by every term file path, in write order."""
    return [str(intro_path(source)), *(str(Path(terms_dir) / f["name"]) for f in files)]


def _targets(
    source: str | Path, terms_dir: str | Path, intro: str, files: Iterable[Mapping[str, Any]]
) -> list[tuple[Path, str]]:
    materialized = list(files)
    paths = planned_paths(source, terms_dir, materialized)
    contents = [intro, *(f["content"] for f in materialized)]
    return [(Path(p), c) for p, c in zip(paths, contents)]


def write(
    source: str | Path,
    terms_dir: str | Path,
    intro: str,
    files: Iterable[Mapping[str, Any]],
) -> list[str]:
    """Write the intro and term files, returning the created paths in order."""
    created: list[str] = []
    try:
        Path(terms_dir).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise SplitIOError(terms_dir, "create terms directory", exc, created) from exc
    for path, content in _targets(source, terms_dir, intro, files):
        try:
            write_text(path, content)
        except OSError as exc:
            raise SplitIOError(path, "write", exc, created) from exc
        created.append(str(path))
        logger.debug("wrote %s (%d chars)", path, len(content))
    return created
