"""Split one aggregated glossary into per-term files.

``split`` resolves the glossary and terms directory from ``specs.json`` and
delegates to ``split_glossary_file``, which walks the states

    start -> preconditions-checked -> extracted -> normalized
          -> files-written -> manifest-updated -> done

Term files and the intro are cut from the glossary as read. The normalized
layout is computed in memory by the first analysis pass and only persisted as
the rewrite of the source, right before the term files, so a malformed
glossary is rejected before anything is written. The run stops at the first
failure. Failures never escape as exceptions: they are recorded on the
returned ``SplitResult`` together with every file that was written before
the failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from specup_migrate.adapters import emit_terms, io_glossary, io_manifest
from specup_migrate.config import CONFIG_FILENAME, DEFAULT_MARKER, PipelineSpec, load_spec
from specup_migrate.core import run_analysis
from specup_migrate.errors import (
    ConfigurationError,
    ManifestError,
    PreconditionError,
    SplitIOError,
    SplitterError,
)
from specup_migrate.manifest import MANIFEST_FILENAME, SplitterConfig, parse_manifest, splitter_config
from specup_migrate.manifest_update import update_manifest_after_split
from specup_migrate.preconditions import check_split_conditions

logger = logging.getLogger(__name__)


@dataclass
class SplitResult:
    success: bool = False
    dry_run: bool = False
    files_created: list[str] = field(default_factory=list)
    backup_created: bool = False
    manifest_changed: bool = False
    messages: list[str] = field(default_factory=list)
    phase: str = "start"
    error: SplitterError | None = None
    timings: dict[str, float] = field(default_factory=dict)


def get_splitter_config(
    project_dir: str | Path = ".", marker: str = DEFAULT_MARKER
) -> SplitterConfig:
    """Read ``specs.json`` and locate the glossary source and terms directory."""
    try:
        data = io_manifest.load_manifest_data(io_manifest.manifest_path(project_dir))
        return splitter_config(parse_manifest(data), project_dir, marker)
    except ManifestError as exc:
        raise ConfigurationError(f"Failed to read splitter configuration: {exc}") from exc


def _summary(result: SplitResult) -> str:
    count = len(result.files_created)
    if result.dry_run:
        files = f"{count} files would be created"
        manifest = "would be updated" if result.manifest_changed else "would not change"
    else:
        files = f"{count} files created"
        manifest = "updated" if result.manifest_changed else "unchanged"
    return f"📊 {files}; {MANIFEST_FILENAME} {manifest}"


def _fail(result: SplitResult, error: SplitterError, message: str) -> SplitResult:
    result.error = error
    result.messages.append(message)
    result.messages.append(_summary(result))
    logger.debug("split stopped after %s: %s", result.phase, error)
    return result


def _analyse(
    source: Path, spec: PipelineSpec, result: SplitResult, require_definitions: bool
) -> tuple[str, dict[str, Any]]:
    """Read ``source`` and run the analysis passes; return original text and payload."""
    try:
        original = io_glossary.read_glossary(source)
    except OSError as exc:
        raise SplitIOError(source, "read", exc) from exc
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"{source} is not valid UTF-8: {exc}") from exc
    try:
        artifact, timings = run_analysis(original, source, spec)
    except SplitterError:
        raise
    except (KeyError, ValueError) as exc:
        raise ConfigurationError(f"invalid pipeline configuration: {exc}") from exc
    if require_definitions and not artifact.payload.get("definitions"):
        raise ConfigurationError(
            f"no {spec.marker} definitions found in {source}; check the definition marker"
        )
    result.timings = timings
    result.phase = "extracted"
    result.messages.extend(f"⚠️ {w}" for w in (artifact.meta or {}).get("warnings", []))
    return original, artifact.payload


def _write_outputs(
    source: Path,
    terms_dir: Path,
    original: str,
    payload: dict[str, Any],
    result: SplitResult,
) -> None:
    files = payload.get("files", [])
    verb = "Would create" if result.dry_run else "Created"
    if result.dry_run:
        result.files_created = emit_terms.planned_paths(source, terms_dir, files)
    else:
        try:
            io_glossary.write_normalized(
                source, original, payload.get("normalized_text", original)
            )
        except OSError as exc:
            raise SplitIOError(source, "normalize", exc) from exc
        result.phase = "normalized"
        try:
            result.files_created = emit_terms.write(source, terms_dir, payload["intro"], files)
        except SplitIOError as exc:
            result.files_created = list(exc.created)
            result.messages.extend(f"✅ Created: {Path(p).name}" for p in exc.created)
            raise
    icon = "🔍" if result.dry_run else "✅"
    result.messages.extend(f"{icon} {verb}: {Path(p).name}" for p in result.files_created)
    result.phase = "files-written"


def split_glossary_file(
    source: str | Path,
    terms_dir: str | Path,
    *,
    project_dir: str | Path = ".",
    dry_run: bool = False,
    verbose: bool = False,
    spec: PipelineSpec | None = None,
    require_definitions: bool = False,
) -> SplitResult:
    """Split the glossary at ``source`` into ``terms_dir`` and update the manifest.

    With ``dry_run`` every read-only step runs exactly as in a real split
    and ``files_created`` lists what would be written, but nothing on disk
    changes. With ``require_definitions`` a glossary without definitions is
    rejected before anything is written.
    """
    source, terms_dir = Path(source), Path(terms_dir)
    spec = spec or PipelineSpec()
    result = SplitResult(dry_run=dry_run)

    conditions = check_split_conditions(source, terms_dir, project_dir)
    result.messages.extend(conditions.messages)
    if not conditions.can_proceed:
        result.phase = "aborted"
        return _fail(
            result, PreconditionError(conditions), "❌ Splitting conditions not met. Aborting."
        )
    result.phase = "preconditions-checked"
    if dry_run:
        result.messages.append("🔍 Dry run mode - no files will be modified")

    try:
        original, payload = _analyse(source, spec, result, require_definitions)
        _write_outputs(source, terms_dir, original, payload, result)
        update = update_manifest_after_split(
            source, project_dir, dry_run=dry_run, verbose=verbose
        )
        result.phase = "manifest-updated"
    except SplitterError as exc:
        return _fail(result, exc, f"❌ Error during splitting ({result.phase}): {exc}")

    result.messages.extend(update.messages)
    result.backup_created = update.backup_created
    result.manifest_changed = update.changed
    result.phase = "done"
    result.success = True
    result.messages.append(
        f"✅ Splitting {'simulation ' if dry_run else ''}completed successfully"
    )
    result.messages.append(_summary(result))
    return result


def split(
    directory: str | Path = ".",
    *,
    dry_run: bool = False,
    verbose: bool = False,
    spec: PipelineSpec | None = None,
) -> SplitResult:
    """Split the glossary configured in ``directory/specs.json``.

    Pipeline options are read from ``directory/splitter.yaml`` when no
    ``spec`` is given.
    """
    project = Path(directory)
    try:
        spec = spec or load_spec(project / CONFIG_FILENAME)
        config = get_splitter_config(project, spec.marker)
    except (TypeError, ValueError) as exc:
        error = exc if isinstance(exc, SplitterError) else ConfigurationError(str(exc))
        result = SplitResult(dry_run=dry_run, phase="aborted")
        return _fail(result, error, f"❌ {error}")

    logger.info("source file: %s", config.source_terms_file)
    logger.info("output directory: %s", config.term_files_dir)
    return split_glossary_file(
        config.source_terms_file,
        config.term_files_dir,
        project_dir=project,
        dry_run=dry_run,
        verbose=verbose,
        spec=spec,
        require_definitions=True,
    )
