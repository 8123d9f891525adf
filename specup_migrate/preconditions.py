"""Safety checks that gate a glossary split before anything is written."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from specup_migrate.adapters import io_manifest
from specup_migrate.manifest import MANIFEST_FILENAME

logger = logging.getLogger(__name__)

MANIFEST_MISSING = "manifest-missing"
SOURCE_MISSING = "source-missing"
UNSAFE_OUTPUT_DIRECTORY = "unsafe-output-directory"

_SPLIT_PATTERNS = ("[[def:", "[[tref:")


@dataclass
class SplitConditions:
    manifest_exists: bool = False
    source_exists: bool = False
    output_dir_safe: bool = False
    reasons: List[str] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)

    @property
    def can_proceed(self) -> bool:
        return self.manifest_exists and self.source_exists and self.output_dir_safe


def _is_readable_file(path: Path) -> bool:
    try:
        with path.open("rb"):
            return True
    except OSError:
        return False


def _markdown_files(directory: Path) -> List[Path]:
    return sorted(p for p in directory.iterdir() if p.suffix.lower() == ".md" and p.is_file())


def _looks_split(files: List[Path]) -> bool:
    """Return True when any of ``files`` already holds definition markers."""

    def has_patterns(path: Path) -> bool:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return False
        return any(p in text for p in _SPLIT_PATTERNS)

    return any(has_patterns(p) for p in files)


def _fail(conditions: SplitConditions, reason: str, message: str) -> SplitConditions:
    conditions.reasons.append(reason)
    conditions.messages.append(message)
    logger.debug("precondition failed: %s", reason)
    return conditions


def check_split_conditions(
    source: str | Path, terms_dir: str | Path, project_dir: str | Path
) -> SplitConditions:
    """Check, in order, manifest presence, source presence and output safety.

    Checking stops at the first failing condition. A missing output
    directory is safe; an existing one must not contain any ``.md`` file.
    """
    conditions = SplitConditions()

    if not io_manifest.manifest_path(project_dir).is_file():
        return _fail(conditions, MANIFEST_MISSING, f"❌ {MANIFEST_FILENAME} not found")
    conditions.manifest_exists = True

    if not _is_readable_file(Path(source)):
        return _fail(conditions, SOURCE_MISSING, f"❌ File not found: {source}")
    conditions.source_exists = True

    out = Path(terms_dir)
    if out.is_dir():
        conditions.messages.append(
            "ℹ️ Output directory found. Checking for existing .md files..."
        )
        existing = _markdown_files(out)
        if existing:
            hint = (
                " They already contain definition markers; the glossary appears to be split."
                if _looks_split(existing)
                else ""
            )
            return _fail(
                conditions,
                UNSAFE_OUTPUT_DIRECTORY,
                f"❌ There are {len(existing)} .md files in {out}. "
                f"Stopping to prevent overwriting.{hint}",
            )
    elif out.exists():
        return _fail(
            conditions,
            UNSAFE_OUTPUT_DIRECTORY,
            f"❌ Output path {out} exists and is not a directory",
        )
    conditions.output_dir_safe = True
    conditions.messages.append("✅ All conditions met. Ready to split.")
    return conditions
