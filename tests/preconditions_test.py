from pathlib import Path

from specup_migrate.preconditions import (
    MANIFEST_MISSING,
    SOURCE_MISSING,
    UNSAFE_OUTPUT_DIRECTORY,
    check_split_conditions,
)

from tests.utils.project import GLOSSARY_FILE


def _paths(root: Path) -> tuple[Path, Path]:
    return root / "spec" / GLOSSARY_FILE, root / "spec" / "terms-definitions"


def test_fresh_project_can_proceed(project):
    source, terms = _paths(project)
    conditions = check_split_conditions(source, terms, project)

    assert conditions.can_proceed
    assert conditions.reasons == []
    assert conditions.messages[-1] == "✅ All conditions met. Ready to split."


def test_missing_manifest_stops_first(project):
    (project / "specs.json").unlink()
    source, terms = _paths(project)
    conditions = check_split_conditions(source, terms, project)

    assert not conditions.can_proceed
    assert conditions.reasons == [MANIFEST_MISSING]
    assert not conditions.source_exists


def test_missing_source(project):
    _, terms = _paths(project)
    conditions = check_split_conditions(project / "spec" / "nope.md", terms, project)

    assert conditions.manifest_exists
    assert conditions.reasons == [SOURCE_MISSING]


def test_existing_markdown_in_output_directory_is_unsafe(project):
    source, terms = _paths(project)
    terms.mkdir()
    (terms / "notes.md").write_text("plain notes\n")

    conditions = check_split_conditions(source, terms, project)

    assert conditions.reasons == [UNSAFE_OUTPUT_DIRECTORY]
    assert "There are 1 .md files" in conditions.messages[-1]
    assert "appears to be split" not in conditions.messages[-1]


def test_already_split_hint(project):
    source, terms = _paths(project)
    terms.mkdir()
    (terms / "term.md").write_text("[[def: Term]]\n~ body\n")

    conditions = check_split_conditions(source, terms, project)

    assert "appears to be split" in conditions.messages[-1]


def test_output_directory_without_markdown_is_safe(project):
    source, terms = _paths(project)
    terms.mkdir()
    (terms / "README.txt").write_text("keep\n")

    assert check_split_conditions(source, terms, project).can_proceed


def test_output_path_that_is_a_file_is_unsafe(project):
    source, terms = _paths(project)
    terms.write_text("not a directory")

    conditions = check_split_conditions(source, terms, project)

    assert conditions.reasons == [UNSAFE_OUTPUT_DIRECTORY]
