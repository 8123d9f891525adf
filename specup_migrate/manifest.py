"""Project manifest (``specs.json``) model and pure update logic.

The manifest is validated with pydantic for reading, but updates are applied
to the raw mapping so unknown keys and key order survive a rewrite.
"""

from __future__ import annotations

import copy
import logging
import os
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from specup_migrate.errors import ManifestError
from specup_migrate.glossary import has_definition_marker

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "specs.json"
BACKUP_FILENAME = "specs.unsplit.json"
DEFAULT_SPEC_DIRECTORY = "./spec"
DEFAULT_TERMS_DIRECTORY = "terms-definitions"
_PLACEHOLDER_TERMS_DIRECTORY = "spec_terms_directory"
INTRO_FILENAME = "glossary-intro-created-by-split-tool.md"
TERMS_INTRO_FILENAME = "terms-and-definitions-intro.md"


class ManifestSpec(BaseModel):
    """One entry of the manifest's ``specs`` list."""

    model_config = ConfigDict(extra="allow")

    spec_directory: str = DEFAULT_SPEC_DIRECTORY
    markdown_paths: List[str] | None = None
    spec_terms_directory: str = DEFAULT_TERMS_DIRECTORY

    @field_validator("spec_directory", mode="before")
    @classmethod
    def _default_spec_directory(cls, value: Any) -> Any:
        return value or DEFAULT_SPEC_DIRECTORY

    @field_validator("spec_terms_directory", mode="before")
    @classmethod
    def _default_terms_directory(cls, value: Any) -> Any:
        return value or DEFAULT_TERMS_DIRECTORY


class Manifest(BaseModel):
    model_config = ConfigDict(extra="allow")

    specs: List[ManifestSpec] = Field(default_factory=list)


def parse_manifest(data: Any) -> Manifest:
    """Validate raw manifest data, raising ``ManifestError`` when malformed."""
    if not isinstance(data, Mapping):
        raise ManifestError(f"{MANIFEST_FILENAME} must contain a JSON object")
    try:
        return Manifest.model_validate(data)
    except ValidationError as exc:
        raise ManifestError(f"invalid {MANIFEST_FILENAME}: {exc}") from exc


def first_spec(manifest: Manifest) -> ManifestSpec:
    if not manifest.specs:
        raise ManifestError(f"No specs configuration found in {MANIFEST_FILENAME}")
    return manifest.specs[0]


def resolve_terms_dir(project_dir: str | Path, spec: ManifestSpec) -> Path:
    """Resolve ``spec_terms_directory`` the way Spec-Up-T does.

    Absolute paths are used as is, ``./`` and ``../`` paths are relative to
    the project root, anything else is relative to the spec directory.
    """
    terms = spec.spec_terms_directory
    if terms == _PLACEHOLDER_TERMS_DIRECTORY:
        raise ManifestError(
            "Invalid spec_terms_directory configuration: appears to be a placeholder value"
        )
    if os.path.isabs(terms):
        return Path(terms)
    if terms.startswith(("./", "../")):
        return Path(project_dir) / terms
    return Path(project_dir) / spec.spec_directory / terms


@dataclass(frozen=True)
class SplitterConfig:
    source_terms_file: Path
    term_files_dir: Path
    spec_directory: str
    markdown_paths: List[str]
    spec_terms_directory: str


def _contains_marker(path: Path, marker: str) -> bool:
    try:
        return has_definition_marker(path.read_text(encoding="utf-8"), marker)
    except (OSError, UnicodeDecodeError):
        logger.debug("skipping unreadable markdown path %s", path)
        return False


def splitter_config(
    manifest: Manifest, project_dir: str | Path, marker: str
) -> SplitterConfig:
    """Locate the glossary source and the terms directory for the first spec.

    The source is the first listed file with a line that starts with
    ``marker``.
    """
    spec = first_spec(manifest)
    paths = spec.markdown_paths or []
    if not paths:
        raise ManifestError("No markdown_paths found in specs configuration")
    terms_dir = resolve_terms_dir(project_dir, spec)
    spec_dir = Path(project_dir) / spec.spec_directory
    source = next(
        (spec_dir / p for p in paths if _contains_marker(spec_dir / p, marker)),
        None,
    )
    if source is None:
        raise ManifestError(
            f"No file with glossary definitions (containing {marker} markers) "
            "found in markdown_paths"
        )
    return SplitterConfig(
        source_terms_file=source,
        term_files_dir=terms_dir,
        spec_directory=spec.spec_directory,
        markdown_paths=list(paths),
        spec_terms_directory=spec.spec_terms_directory,
    )


def _relative_source(source: str | Path, project_dir: str | Path, spec_directory: str) -> str:
    spec_dir = (Path(project_dir) / spec_directory).resolve()
    rel = os.path.relpath(Path(source).resolve(), spec_dir)
    return Path(rel).as_posix()


def find_source_entry(
    markdown_paths: Sequence[str],
    source: str | Path,
    project_dir: str | Path,
    spec_directory: str = DEFAULT_SPEC_DIRECTORY,
) -> int | None:
    """Return the index of the entry naming ``source``, or None.

    An entry matches by path relative to the spec directory, by plain file
    name, or by basename.
    """
    name = Path(source).name
    relative = _relative_source(source, project_dir, spec_directory)

    def matches(entry: str) -> bool:
        normalized = posixpath.normpath(entry.replace("\\", "/"))
        return entry == name or normalized == relative or posixpath.basename(normalized) == name

    return next((i for i, entry in enumerate(markdown_paths) if matches(entry)), None)


def _basename(entry: str) -> str:
    return posixpath.basename(posixpath.normpath(entry.replace("\\", "/")))


def _intro_position(paths: Sequence[str], fallback: int) -> int:
    """Index before ``terms-and-definitions-intro.md``, else ``fallback``."""
    return next(
        (i for i, entry in enumerate(paths) if _basename(entry) == TERMS_INTRO_FILENAME),
        fallback,
    )


def update_markdown_paths(
    data: Mapping[str, Any],
    source: str | Path,
    project_dir: str | Path,
    *,
    add_intro: bool = False,
) -> tuple[Dict[str, Any], str | None, bool]:
    """Return a copy of ``data`` with the source entry removed.

    With ``add_intro`` the split intro file is listed as well: before
    ``terms-and-definitions-intro.md`` when that file is listed, otherwise
    where the source used to be. The result is ``(updated, removed, added)``;
    ``removed`` is None when the source is not listed, and the copy is then
    equal to ``data``. Other entries keep their order.
    """
    spec = first_spec(parse_manifest(data))
    if spec.markdown_paths is None:
        raise ManifestError("No markdown_paths found in specs configuration")
    updated = copy.deepcopy(dict(data))
    paths: List[str] = updated["specs"][0]["markdown_paths"]
    index = find_source_entry(paths, source, project_dir, spec.spec_directory)
    if index is None:
        return updated, None, False
    removed = paths.pop(index)
    logger.debug("removing %r from markdown_paths", removed)
    if not add_intro or INTRO_FILENAME in paths:
        return updated, removed, False
    paths.insert(_intro_position(paths, index), INTRO_FILENAME)
    return updated, removed, True
