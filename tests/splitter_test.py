from __future__ import annotations

import errno
from pathlib import Path

import pytest

from specup_migrate.adapters import emit_terms
from specup_migrate.errors import (
    ConfigurationError,
    EmptyHeaderError,
    MalformedDefinitionError,
    PreconditionError,
    SplitIOError,
)
from specup_migrate.preconditions import UNSAFE_OUTPUT_DIRECTORY
from specup_migrate.splitter import get_splitter_config, split, split_glossary_file

from tests.utils.project import GLOSSARY_FILE, read_manifest, snapshot

TERM_FILES = [
    "access-control.md",
    "authentication.md",
    "authorization.md",
    "multi-factor-authentication.md",
]


def _terms_dir(project: Path) -> Path:
    return project / "spec" / "terms-definitions"


def test_split_writes_intro_terms_and_updates_manifest(project):
    result = split(project)

    assert result.success, result.messages
    assert result.phase == "done"
    assert result.error is None
    assert [Path(p).name for p in result.files_created] == [emit_terms.INTRO_FILENAME, *TERM_FILES]
    assert sorted(p.name for p in _terms_dir(project).iterdir()) == TERM_FILES
    assert result.backup_created and result.manifest_changed
    assert read_manifest(project)["specs"][0]["markdown_paths"] == [
        "spec-head.md",
        emit_terms.INTRO_FILENAME,
        "spec-body.md",
    ]
    assert result.messages[-1] == "📊 5 files created; specs.json updated"


def test_split_file_contents(project):
    split(project)
    terms = _terms_dir(project)

    assert (terms / "access-control.md").read_text() == (
        "[[def: Access Control]]\n~ The process of granting or denying requests.\n\n"
    )
    assert (terms / "multi-factor-authentication.md").read_text() == (
        "[[def: Multi-Factor Authentication, MFA]]\n"
        "~ Authentication using two or more factors.\n"
    )
    assert (project / "spec" / emit_terms.INTRO_FILENAME).read_text() == (
        "## Terms and Definitions\n\n"
        "The following terms are used throughout this document.\n\n"
    )
    assert (project / "spec" / GLOSSARY_FILE).read_text().startswith("~ ## Terms")


def test_split_scenario_end_to_end(make_project):
    project = make_project(
        "Intro text\n\n[[def: Term A]]\nBody A\n\n[[def: Term B, alias]]\nBody B\n"
    )

    result = split(project)

    assert result.success, result.messages
    assert (project / "spec" / emit_terms.INTRO_FILENAME).read_text() == "Intro text\n\n"
    assert (_terms_dir(project) / "term-a.md").read_text() == "[[def: Term A]]\nBody A\n\n"
    assert (_terms_dir(project) / "term-b.md").read_text() == (
        "[[def: Term B, alias]]\nBody B\n"
    )
    assert (project / "spec" / GLOSSARY_FILE).read_text() == (
        "~ Intro text\n\n[[def: Term A]]\n\n~ Body A\n\n[[def: Term B, alias]]\n\n~ Body B\n"
    )


def test_dry_run_is_pure_and_plans_the_same_files(project):
    before = snapshot(project)

    preview = split(project, dry_run=True)

    assert preview.success and preview.dry_run
    assert snapshot(project) == before
    assert preview.manifest_changed and not preview.backup_created
    assert "🔍 Would create: access-control.md" in preview.messages
    assert f"🔍 Would add '{emit_terms.INTRO_FILENAME}' to markdown_paths" in preview.messages
    assert preview.messages[-1] == "📊 5 files would be created; specs.json would be updated"

    real = split(project)

    assert real.files_created == preview.files_created


def test_existing_markdown_blocks_split(project):
    _terms_dir(project).mkdir()
    (_terms_dir(project) / "existing.md").write_text("keep me\n")
    before = snapshot(project)

    result = split(project)

    assert not result.success
    assert result.phase == "aborted"
    assert isinstance(result.error, PreconditionError)
    assert result.error.conditions.reasons == [UNSAFE_OUTPUT_DIRECTORY]
    assert result.files_created == []
    assert snapshot(project) == before
    assert "❌ Splitting conditions not met. Aborting." in result.messages


def test_second_split_is_refused(project):
    assert split(project).success
    assert not split(project).success


def test_malformed_glossary_aborts_before_mutation(make_project):
    project = make_project("Intro\n\n[[def: Broken\n~ body\n")
    before = snapshot(project)

    result = split(project)

    assert not result.success
    assert isinstance(result.error, MalformedDefinitionError)
    assert result.phase == "preconditions-checked"
    assert snapshot(project) == before


def test_colliding_terms_are_kept_with_warning(make_project):
    project = make_project("[[def: Term]]\n~ one\n\n[[def: term, alias]]\n~ two\n")

    result = split(project)

    assert result.success
    assert sorted(p.name for p in _terms_dir(project).iterdir()) == ["term-2.md", "term.md"]
    assert any(m.startswith("⚠️") and "term-2.md" in m for m in result.messages)


@pytest.mark.parametrize("count", [0, 1, 3])
def test_n_markers_yield_n_plus_one_files(make_project, count):
    glossary = "Intro\n\n" + "".join(f"[[def: Term {i}]]\n~ body {i}\n\n" for i in range(count))
    project = make_project(glossary)

    result = split_glossary_file(
        project / "spec" / GLOSSARY_FILE, _terms_dir(project), project_dir=project
    )

    assert result.success
    assert len(result.files_created) == count + 1


def test_partial_write_failure_reports_created_files(project, monkeypatch):
    calls: list[Path] = []
    real_write = emit_terms.write_text

    def flaky(path, text):
        calls.append(Path(path))
        if len(calls) == 3:
            raise OSError(errno.ENOSPC, "No space left on device")
        real_write(path, text)

    monkeypatch.setattr("specup_migrate.adapters.emit_terms.write_text", flaky)
    manifest_before = (project / "specs.json").read_bytes()

    result = split(project)

    assert not result.success
    assert isinstance(result.error, SplitIOError)
    assert result.phase == "normalized"
    assert [Path(p).name for p in result.files_created] == [
        emit_terms.INTRO_FILENAME,
        "access-control.md",
    ]
    assert all(Path(p).exists() for p in result.files_created)
    assert (project / "specs.json").read_bytes() == manifest_before
    assert not (project / "specs.unsplit.json").exists()
    assert result.messages[-1] == "📊 2 files created; specs.json unchanged"


def test_missing_manifest_is_a_configuration_failure(tmp_path):
    result = split(tmp_path)

    assert not result.success
    assert result.phase == "aborted"
    assert isinstance(result.error, ConfigurationError)


def test_get_splitter_config_wraps_manifest_errors(tmp_path):
    with pytest.raises(ConfigurationError, match="Failed to read splitter configuration"):
        get_splitter_config(tmp_path)


def test_invalid_pipeline_config_fails_cleanly(project):
    (project / "splitter.yaml").write_text("pipeline: [glossary_normalize]\n")

    result = split(project)

    assert not result.success
    assert isinstance(result.error, ConfigurationError)
    assert "definition_extract" in str(result.error)


def test_custom_marker_from_project_config(make_project):
    project = make_project("Intro\n\n[[term: Gear]]\nA toothed wheel.\n")
    (project / "splitter.yaml").write_text(
        'options:\n  definition_extract:\n    marker: "[[term:"\n'
    )

    result = split(project)

    assert result.success, result.messages
    assert (_terms_dir(project) / "gear.md").read_text() == "[[term: Gear]]\nA toothed wheel.\n"
    assert (project / "spec" / GLOSSARY_FILE).read_text() == (
        "~ Intro\n\n[[term: Gear]]\n\n~ A toothed wheel.\n"
    )


def test_conflicting_markers_fail_before_mutation(make_project):
    project = make_project("Intro\n\n[[term: Gear]]\n~ A toothed wheel.\n")
    (project / "splitter.yaml").write_text(
        'options:\n  glossary_normalize:\n    marker: "[[def:"\n'
        '  definition_extract:\n    marker: "[[term:"\n'
    )
    before = snapshot(project)

    result = split(project)

    assert not result.success
    assert result.phase == "aborted"
    assert isinstance(result.error, ConfigurationError)
    assert "conflicting definition markers" in str(result.error)
    assert snapshot(project) == before


def test_inline_marker_mention_is_not_chosen_as_source(project):
    (project / "spec" / "spec-head.md").write_text(
        "# Test Specification\n\nUse the `[[def: Term]]` syntax.\n", encoding="utf-8"
    )

    assert get_splitter_config(project).source_terms_file == project / "spec" / GLOSSARY_FILE

    result = split(project)

    assert result.success, result.messages
    assert sorted(p.name for p in _terms_dir(project).iterdir()) == TERM_FILES
    assert "Use the `[[def: Term]]` syntax." in (project / "spec" / "spec-head.md").read_text()


def test_source_without_definitions_is_a_configuration_error(make_project):
    project = make_project("Only an introduction.\n")
    before = snapshot(project)

    result = split_glossary_file(
        project / "spec" / GLOSSARY_FILE,
        _terms_dir(project),
        project_dir=project,
        require_definitions=True,
    )

    assert not result.success
    assert isinstance(result.error, ConfigurationError)
    assert "no [[def: definitions" in str(result.error)
    assert snapshot(project) == before


def test_header_without_term_name_aborts_before_mutation(make_project):
    project = make_project("Intro\n\n[[def: , alias]]\n~ body\n")
    before = snapshot(project)

    result = split(project)

    assert not result.success
    assert isinstance(result.error, EmptyHeaderError)
    assert result.error.line == 3
    assert snapshot(project) == before
    assert not (_terms_dir(project) / ".md").exists()


def test_timings_are_recorded(project):
    result = split(project, dry_run=True)
    assert set(result.timings) == {"glossary_normalize", "definition_extract", "term_files_plan"}
