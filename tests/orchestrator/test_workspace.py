"""Tests for loading librarian.yaml and library lookups."""

from __future__ import annotations

from pathlib import Path

import pytest

from librarian.orchestrator.errors import ConfigurationError, LibraryNotFoundError
from librarian.orchestrator.execution.resolver import resolve_library
from librarian.orchestrator.workspace import find_library, find_library_for_api, load_workspace_config

CONFIG = """\
language: rust
version: 0.1.0
repo: googleapis/google-cloud-rust
unknown_top_level_key: ignored
sources:
  googleapis:
    commit: 9fcfbea0aa5b50fa22e190faceb073d74504172b
    sha256: 81e6057ffd85154af5268c2c3c8f2408745ca0f7fa03d43c68f4847f31eb5f98
default:
  output: src/generated
  keep: [Cargo.toml]
  rust:
    disabled_rustdoc_warnings: [broken_intra_doc_links]
libraries:
  - name: google-cloud-secretmanager-v1
  - name: google-cloud-storage
    veneer: true
    output: src/storage
    apis:
      - path: google/storage/v2
"""


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "librarian.yaml"
    path.write_text(CONFIG, encoding="utf-8")
    return path


def test_load(config_path: Path) -> None:
    config = load_workspace_config(config_path)

    assert config.language == "rust"
    assert config.sources.googleapis.commit.startswith("9fcfbea0")
    assert config.default.keep == ["Cargo.toml"]
    assert [lib.name for lib in config.libraries] == ["google-cloud-secretmanager-v1", "google-cloud-storage"]
    assert config.libraries[1].veneer


def test_load_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="cannot read"):
        load_workspace_config(tmp_path / "librarian.yaml")


def test_load_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "librarian.yaml"
    path.write_text("libraries: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="not valid YAML"):
        load_workspace_config(path)


def test_load_schema_mismatch(tmp_path: Path) -> None:
    path = tmp_path / "librarian.yaml"
    path.write_text("libraries:\n  - output: missing-name\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="invalid configuration"):
        load_workspace_config(path)


def test_empty_file_is_empty_config(tmp_path: Path) -> None:
    path = tmp_path / "librarian.yaml"
    path.write_text("", encoding="utf-8")

    config = load_workspace_config(path)
    assert config.libraries == []
    assert config.sources is None


def test_find_library(config_path: Path) -> None:
    config = load_workspace_config(config_path)

    assert find_library(config, "google-cloud-storage").output == "src/storage"
    with pytest.raises(LibraryNotFoundError):
        find_library(config, "google-cloud-kms")


def test_find_library_for_api_uses_derived_paths(config_path: Path) -> None:
    config = load_workspace_config(config_path)
    libraries = [resolve_library(config.language, lib, config.default) for lib in config.libraries]

    library = find_library_for_api(libraries, "google/cloud/secretmanager/v1")
    assert library.name == "google-cloud-secretmanager-v1"
    assert library.output == "src/generated/cloud/secretmanager/v1"
    assert library.keep == ["Cargo.toml"]
    assert find_library_for_api(libraries, "google/storage/v2").name == "google-cloud-storage"

    with pytest.raises(LibraryNotFoundError):
        find_library_for_api(libraries, "google/cloud/kms/v1")
