"""Per-language naming conventions for derived output and API paths."""

from __future__ import annotations

import posixpath

from librarian.orchestrator.models.enums import Language


def derive_api_path(language: str, name: str) -> str:
    """Guess the corpus path of an API from a library name.

    ``google-cloud-secretmanager-v1`` becomes ``google/cloud/secretmanager/v1``
    for Rust; Dart names use underscores instead of dashes.
    """
    if language == Language.DART:
        return _reroot(name, "google_cloud_", "_")
    if language == Language.RUST:
        return _reroot(name, "google-cloud-", "-")
    return name.replace("-", "/")


def _reroot(name: str, prefix: str, separator: str) -> str:
    if not name.startswith(prefix):
        return name.replace(separator, "/")
    return "google/cloud/" + name.removeprefix(prefix).replace(separator, "/")


def default_output(language: str, name: str, api_path: str, default_out: str) -> str:
    """Compute the output directory of a library without an explicit one."""
    if language in (Language.DART, Language.PYTHON):
        return posixpath.join(default_out, name)
    if language == Language.RUST:
        return posixpath.join(default_out, api_path.removeprefix("google/"))
    return default_out
