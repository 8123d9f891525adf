from pathlib import Path

import pytest

from specup_migrate.errors import ConfigurationError, ManifestError
from specup_migrate.manifest import (
    INTRO_FILENAME,
    ManifestSpec,
    find_source_entry,
    first_spec,
    parse_manifest,
    resolve_terms_dir,
    splitter_config,
    update_markdown_paths,
)

from tests.utils.project import GLOSSARY_FILE, manifest, read_manifest


def test_manifest_error_is_a_configuration_error():
    assert issubclass(ManifestError, ConfigurationError)
    assert issubclass(ManifestError, ValueError)


@pytest.mark.parametrize("data", [[], "specs", {"specs": "not-a-list"}])
def test_parse_manifest_rejects_malformed_data(data):
    with pytest.raises(ManifestError):
        parse_manifest(data)


def test_first_spec_requires_specs():
    with pytest.raises(ManifestError, match="No specs configuration"):
        first_spec(parse_manifest({"specs": []}))


def test_spec_defaults_apply_to_empty_values():
    spec = ManifestSpec.model_validate({"spec_directory": "", "spec_terms_directory": None})
    assert spec.spec_directory == "./spec"
    assert spec.spec_terms_directory == "terms-definitions"


@pytest.mark.parametrize(
    "terms, expected",
    [
        ("terms-definitions", ("spec", "terms-definitions")),
        ("./glossary", ("glossary",)),
        ("../shared/terms", ("..", "shared", "terms")),
    ],
)
def test_resolve_terms_dir(tmp_path, terms, expected):
    spec = ManifestSpec(spec_terms_directory=terms)
    assert resolve_terms_dir(tmp_path, spec) == tmp_path.joinpath(*expected)


def test_resolve_absolute_terms_dir(tmp_path):
    absolute = tmp_path / "elsewhere"
    spec = ManifestSpec(spec_terms_directory=str(absolute))
    assert resolve_terms_dir("project", spec) == absolute


def test_placeholder_terms_dir_rejected(tmp_path):
    with pytest.raises(ManifestError, match="placeholder"):
        resolve_terms_dir(tmp_path, ManifestSpec(spec_terms_directory="spec_terms_directory"))


def test_splitter_config_locates_glossary(project):
    config = splitter_config(parse_manifest(read_manifest(project)), project, "[[def:")

    assert config.source_terms_file == project / "spec" / GLOSSARY_FILE
    assert config.term_files_dir == project / "spec" / "terms-definitions"
    assert config.markdown_paths[1] == GLOSSARY_FILE


def test_splitter_config_skips_inline_marker_mentions(project):
    (project / "spec" / "spec-head.md").write_text(
        "# Test Specification\n\nUse the `[[def: Term]]` syntax.\n", encoding="utf-8"
    )

    config = splitter_config(parse_manifest(read_manifest(project)), project, "[[def:")

    assert config.source_terms_file == project / "spec" / GLOSSARY_FILE


def test_splitter_config_without_markdown_paths(tmp_path):
    with pytest.raises(ManifestError, match="markdown_paths"):
        splitter_config(parse_manifest(manifest(paths=[])), tmp_path, "[[def:")


def test_splitter_config_without_definitions(project):
    with pytest.raises(ManifestError, match=r"containing \[\[term: markers"):
        splitter_config(parse_manifest(read_manifest(project)), project, "[[term:")


def test_find_source_entry_by_relative_path(tmp_path):
    source = tmp_path / "spec" / "sub" / "glossary.md"
    paths = ["intro.md", "./sub/glossary.md"]
    assert find_source_entry(paths, source, tmp_path, "./spec") == 1


def test_find_source_entry_by_name_or_basename(tmp_path):
    source = tmp_path / "spec" / "glossary.md"
    assert find_source_entry(["a.md", "glossary.md"], source, tmp_path) == 1
    assert find_source_entry(["a.md", "nested/glossary.md"], source, tmp_path) == 1
    assert find_source_entry(["a.md", "b.md"], source, tmp_path) is None


def test_update_markdown_paths_keeps_order_and_unknown_keys(tmp_path):
    data = {"custom": {"keep": True}, **manifest(paths=["a.md", "glossary.md", "b.md"])}
    updated, removed, added = update_markdown_paths(
        data, tmp_path / "spec" / "glossary.md", tmp_path
    )

    assert removed == "glossary.md"
    assert not added
    assert updated["specs"][0]["markdown_paths"] == ["a.md", "b.md"]
    assert updated["custom"] == {"keep": True}
    assert updated["specs"][0]["title"] == "Test Specification"
    assert data["specs"][0]["markdown_paths"] == ["a.md", "glossary.md", "b.md"]


def test_update_markdown_paths_not_listed(tmp_path):
    data = manifest(paths=["a.md"])
    updated, removed, added = update_markdown_paths(
        data, Path(tmp_path / "spec" / "x.md"), tmp_path, add_intro=True
    )
    assert removed is None
    assert not added
    assert updated == data


def test_update_markdown_paths_requires_markdown_paths(tmp_path):
    with pytest.raises(ManifestError):
        update_markdown_paths({"specs": [{"spec_directory": "./spec"}]}, "x.md", tmp_path)


@pytest.mark.parametrize(
    "paths, expected",
    [
        (
            ["a.md", "glossary.md", "b.md"],
            ["a.md", INTRO_FILENAME, "b.md"],
        ),
        (
            ["a.md", "glossary.md", "b.md", "terms-and-definitions-intro.md", "c.md"],
            ["a.md", "b.md", INTRO_FILENAME, "terms-and-definitions-intro.md", "c.md"],
        ),
        (
            ["glossary.md", INTRO_FILENAME, "b.md"],
            [INTRO_FILENAME, "b.md"],
        ),
    ],
)
def test_update_markdown_paths_lists_intro_file(tmp_path, paths, expected):
    updated, removed, added = update_markdown_paths(
        manifest(paths=paths), tmp_path / "spec" / "glossary.md", tmp_path, add_intro=True
    )

    assert removed == "glossary.md"
    assert added == (INTRO_FILENAME not in paths)
    assert updated["specs"][0]["markdown_paths"] == expected
