"""Glossary IO adapter: read a glossary and persist its normalized form."""

from __future__ import annotations

import logging
from pathlib import Path

from specup_migrate.adapters.fs import atomic_write_text, read_text
from specup_migrate.config import DEFAULT_MARKER
from specup_migrate.glossary import normalize_glossary

logger = logging.getLogger(__name__)


def read_glossary(path: str | Path) -> str:
    return read_text(path)


def write_normalized(path: str | Path, original: str, normalized: str) -> bool:
    """Overwrite ``path`` with ``normalized`` when it differs from ``original``."""
    if normalized == original:
        logger.debug("%s already normalized", path)
        return False
    atomic_write_text(path, normalized)
    logger.debug("normalized %s in place", path)
    return True


def normalize_glossary_file(
    path: str | Path, marker: str = DEFAULT_MARKER, *, dry_run: bool = False
) -> str:
    """Normalize the glossary at ``path`` in place and return the new text.

    With ``dry_run`` the file is left untouched and only the normalized
    text is returned.
    """
    original = read_glossary(path)
    normalized = normalize_glossary(original, marker)
    if not dry_run:
        write_normalized(path, original, normalized)
    return normalized
