"""Project-wide definition harvesting.

Unlike ``splitter``, which partitions one glossary document, these helpers
scan every file listed in ``markdown_paths``:

- ``extract_all_definitions`` copies each compact definition block (marker
  line plus its ``~`` lines) into its own term file;
- ``convert_definitions_to_irefs`` replaces those blocks in the source
  files with ``[[iref: <term>]]`` references.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

from specup_migrate.adapters import io_manifest
from specup_migrate.adapters.fs import atomic_write_text, read_text, write_text
from specup_migrate.config import DEFAULT_MARKER
from specup_migrate.errors import SplitIOError, SplitterError
from specup_migrate.glossary import DefinitionBlock, iter_definition_blocks, term_filename
from specup_migrate.manifest import first_spec, parse_manifest, resolve_terms_dir

logger = logging.getLogger(__name__)

IREF_TEMPLATE = "[[iref: {term}]]"


@dataclass
class ExtractResult:
    success: bool = False
    files_scanned: List[str] = field(default_factory=list)
    definitions_found: List[Dict[str, str]] = field(default_factory=list)
    files_created: List[str] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    error: SplitterError | None = None


@dataclass
class ConversionResult:
    success: bool = False
    files_processed: List[Dict[str, object]] = field(default_factory=list)
    conversions: List[Dict[str, str]] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    error: SplitterError | None = None


def _project_layout(project_dir: Path) -> Tuple[Path, Path, List[str]]:
    """Return spec directory, terms directory and markdown paths of the first spec."""
    data = io_manifest.load_manifest_data(io_manifest.manifest_path(project_dir))
    spec = first_spec(parse_manifest(data))
    spec_dir = project_dir / spec.spec_directory
    return spec_dir, resolve_terms_dir(project_dir, spec), list(spec.markdown_paths or [])


def _read_markdown(path: Path, md_path: str, messages: List[str], verbose: bool) -> str | None:
    try:
        return read_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("cannot read %s: %s", path, exc)
        if verbose:
            messages.append(f"⚠️ Could not read {md_path}: {exc}")
        return None


def _collect(
    spec_dir: Path,
    md_paths: List[str],
    marker: str,
    result: ExtractResult,
    verbose: bool,
) -> Dict[str, Tuple[DefinitionBlock, str]]:
    found: Dict[str, Tuple[DefinitionBlock, str]] = {}
    for md_path in md_paths:
        text = _read_markdown(spec_dir / md_path, md_path, result.messages, verbose)
        if text is None:
            continue
        result.files_scanned.append(md_path)
        for block in iter_definition_blocks(text, marker):
            filename = f"{term_filename(block.header)}.md"
            if filename in found:
                result.messages.append(
                    f"⚠️ Duplicate definition '{block.term}' found in {md_path} "
                    f"(already in {found[filename][1]})"
                )
                continue
            found[filename] = (block, md_path)
            result.definitions_found.append(
                {"term": block.term, "source_file": md_path, "filename": filename}
            )
            if verbose:
                result.messages.append(f"✅ Found: {block.term} in {md_path}")
    return found


def extract_all_definitions(
    directory: str | Path = ".",
    *,
    dry_run: bool = False,
    verbose: bool = False,
    marker: str = DEFAULT_MARKER,
) -> ExtractResult:
    """Write one term file per unique definition found in ``markdown_paths``.

    The first occurrence of a term wins; later duplicates are reported.
    Existing term files are never overwritten.
    """
    result = ExtractResult()
    project = Path(directory)
    try:
        spec_dir, terms_dir, md_paths = _project_layout(project)
    except SplitterError as exc:
        result.error = exc
        result.messages.append(f"❌ Error during extraction: {exc}")
        return result

    result.messages.append(f"📁 Scanning {len(md_paths)} markdown files")
    found = _collect(spec_dir, md_paths, marker, result, verbose)
    result.messages.append(f"📊 Found {len(found)} unique definitions")

    for filename, (block, _) in found.items():
        target = terms_dir / filename
        if target.exists():
            result.messages.append(f"⚠️ {filename} already exists, skipped")
            continue
        if not dry_run:
            try:
                write_text(target, f"{block.text}\n")
            except OSError as exc:
                result.error = SplitIOError(target, "write", exc, result.files_created)
                result.messages.append(f"❌ Could not write {target}: {exc.strerror or exc}")
                return result
        result.files_created.append(str(target))
        result.messages.append(f"{'🔍 Would create' if dry_run else '✅ Created'}: {filename}")

    result.success = True
    result.messages.append(
        f"✅ Extraction {'simulation ' if dry_run else ''}completed: "
        f"{len(result.files_created)} files {'would be created' if dry_run else 'created'}"
    )
    return result


def replace_with_irefs(text: str, marker: str = DEFAULT_MARKER) -> Tuple[str, List[DefinitionBlock]]:
    """Return ``text`` with every definition block replaced by an iref."""
    blocks = list(iter_definition_blocks(text, marker))
    converted = text
    for block in reversed(blocks):
        iref = IREF_TEMPLATE.format(term=block.term)
        converted = converted[: block.start] + iref + converted[block.end :]
    return converted, blocks


def convert_definitions_to_irefs(
    directory: str | Path = ".",
    *,
    dry_run: bool = False,
    verbose: bool = False,
    marker: str = DEFAULT_MARKER,
) -> ConversionResult:
    """Replace definition blocks in every ``markdown_paths`` file with irefs."""
    result = ConversionResult()
    project = Path(directory)
    try:
        spec_dir, _, md_paths = _project_layout(project)
    except SplitterError as exc:
        result.error = exc
        result.messages.append(f"❌ Error during conversion: {exc}")
        return result

    result.messages.append(f"📁 Processing {len(md_paths)} markdown files")
    for md_path in md_paths:
        path = spec_dir / md_path
        text = _read_markdown(path, md_path, result.messages, verbose)
        if text is None:
            continue
        converted, blocks = replace_with_irefs(text, marker)
        if not blocks:
            continue
        if not dry_run:
            try:
                atomic_write_text(path, converted)
            except OSError as exc:
                result.error = SplitIOError(
                    path, "write", exc, [p["file"] for p in result.files_processed]
                )
                result.messages.append(f"❌ Could not write {md_path}: {exc.strerror or exc}")
                return result
        result.conversions.extend(
            {
                "file": md_path,
                "term": b.term,
                "original": b.text,
                "replacement": IREF_TEMPLATE.format(term=b.term),
            }
            for b in blocks
        )
        if verbose:
            result.messages.extend(f"  ✅ {md_path}: {b.term}" for b in blocks)
        result.files_processed.append({"file": md_path, "conversions": len(blocks)})
        result.messages.append(
            f"{'🔍 Would convert' if dry_run else '✅ Converted'} "
            f"{len(blocks)} definition(s) in {md_path}"
        )

    result.success = True
    result.messages.append(
        f"📊 Total conversions: {len(result.conversions)} [[def:]] → [[iref:]]"
    )
    return result
