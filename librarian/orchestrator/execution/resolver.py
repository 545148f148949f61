"""Library resolver -- merges workspace defaults into a library and derives
the fields needed by the generation pipeline.

Resolution order:

1. Ensure the library declares at least one API; derive empty API paths from
   the library name (skipped for veneers).
2. Derive the output directory if unset.  Veneers must set it explicitly.
3. Fill common fields from ``default`` (keep-list appended; output, release
   level and transport only when unset on the library).
4. Merge the language sub-record.  The populated sub-record on ``default``
   selects which merge runs; the library always wins.

Every function here is pure: inputs are never mutated, a resolved copy is
returned.
"""

from __future__ import annotations

from librarian.orchestrator.backends.naming import default_output, derive_api_path
from librarian.orchestrator.errors import VeneerOutputError
from librarian.orchestrator.models.config import (
    API,
    DartPackage,
    Default,
    JavaDefault,
    JavaPackage,
    Library,
    PythonDefault,
    PythonPackage,
    RustCrate,
    RustDefault,
    RustPackageDependency,
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def resolve_library(language: str, library: Library, defaults: Default | None) -> Library:
    """Return a copy of ``library`` with defaults applied and paths derived.

    Parameters
    ----------
    language:
        Workspace language; selects the naming convention.
    library:
        Library as declared in ``librarian.yaml``.  Left untouched.
    defaults:
        Workspace ``default`` record, if any.

    Raises
    ------
    VeneerOutputError:
        The library is a veneer and declares no output directory.
    """
    apis = [api.model_copy() for api in library.apis] or [API()]
    if not library.veneer:
        for api in apis:
            if not api.path:
                api.path = derive_api_path(language, library.name)

    output = library.output
    if not output:
        if library.veneer:
            raise VeneerOutputError(library.name)
        output = default_output(language, library.name, apis[0].path, defaults.output if defaults else "")

    resolved = library.model_copy(deep=True, update={"apis": apis, "output": output})
    return fill_defaults(resolved, defaults)


def api_paths(language: str, library: Library) -> list[str]:
    """Corpus paths ``library`` generates, derived the way ``resolve_library`` does.

    Needs no defaults and never raises, so it can be used to find the owner
    of an API without resolving unrelated libraries.
    """
    paths = [api.path for api in library.apis if api.path]
    if not library.veneer and (not library.apis or len(paths) < len(library.apis)):
        paths.append(derive_api_path(language, library.name))
    return paths


def fill_defaults(library: Library, defaults: Default | None) -> Library:
    """Inherit unset fields of ``library`` from ``defaults``."""
    if defaults is None:
        return library

    update: dict[str, object] = {
        "keep": [*library.keep, *defaults.keep],
        "output": _first(library.output, defaults.output),
        "release_level": _first(library.release_level, defaults.release_level),
        "transport": _first(library.transport, defaults.transport),
    }

    # Only one language sub-record is expected on the defaults; the first
    # populated one decides.
    if defaults.rust is not None:
        update["rust"] = merge_rust(library.rust, defaults.rust)
    elif defaults.dart is not None:
        update["version"] = _first(library.version, defaults.dart.version)
        update["dart"] = merge_dart(library.dart, defaults.dart)
    elif defaults.python is not None:
        update["python"] = merge_python(library.python, defaults.python)
    elif defaults.java is not None:
        update["java"] = merge_java(library.java, defaults.java)

    return library.model_copy(update=update)


# -- Per-language merges -----------------------------------------------------


def merge_rust(crate: RustCrate | None, defaults: RustDefault) -> RustCrate:
    """Merge Rust defaults into a crate.

    - ``package_dependencies``: merged by name, library entries win.
    - ``disabled_rustdoc_warnings``: replaced only when the library list is empty.
    - sample flags: inherited when unset, then pushed down into modules that
      leave them unset.
    """
    crate = crate.model_copy(deep=True) if crate else RustCrate()
    crate.package_dependencies = merge_package_dependencies(defaults.package_dependencies, crate.package_dependencies)
    if not crate.disabled_rustdoc_warnings:
        crate.disabled_rustdoc_warnings = list(defaults.disabled_rustdoc_warnings)
    crate.generate_setter_samples = _first(crate.generate_setter_samples, defaults.generate_setter_samples)
    crate.generate_rpc_samples = _first(crate.generate_rpc_samples, defaults.generate_rpc_samples)
    for module in crate.modules:
        module.generate_setter_samples = _first(module.generate_setter_samples, crate.generate_setter_samples)
        module.generate_rpc_samples = _first(module.generate_rpc_samples, crate.generate_rpc_samples)
    return crate


def merge_dart(package: DartPackage | None, defaults: DartPackage) -> DartPackage:
    package = package.model_copy(deep=True) if package else DartPackage()
    package.api_keys_environment_variables = _first(
        package.api_keys_environment_variables,
        defaults.api_keys_environment_variables,
    )
    package.issue_tracker_url = _first(package.issue_tracker_url, defaults.issue_tracker_url)
    package.packages = merge_maps(package.packages, defaults.packages)
    package.prefixes = merge_maps(package.prefixes, defaults.prefixes)
    package.protos = merge_maps(package.protos, defaults.protos)
    package.dependencies = merge_comma_list(package.dependencies, defaults.dependencies)
    return package


def merge_python(package: PythonPackage | None, defaults: PythonDefault) -> PythonPackage:
    """Defaults' ``common_gapic_paths`` come first, the library's follow."""
    package = package.model_copy(deep=True) if package else PythonPackage()
    package.common_gapic_paths = [*defaults.common_gapic_paths, *package.common_gapic_paths]
    return package


def merge_java(package: JavaPackage | None, defaults: JavaDefault) -> JavaPackage:
    package = package.model_copy(deep=True) if package else JavaPackage()
    package.formatter_jar = _first(package.formatter_jar, defaults.formatter_jar)
    package.generator_jar = _first(package.generator_jar, defaults.generator_jar)
    package.grpc_plugin = _first(package.grpc_plugin, defaults.grpc_plugin)
    return package


# -- Generic merge rules -----------------------------------------------------


def merge_package_dependencies(
    defaults: list[RustPackageDependency],
    library: list[RustPackageDependency],
) -> list[RustPackageDependency]:
    """Library entries first and winning on name; default-only entries appended as copies."""
    seen = {dep.name for dep in library}
    merged = list(library)
    merged.extend(dep.model_copy() for dep in defaults if dep.name not in seen)
    return merged


def merge_comma_list(library: str, defaults: str) -> str:
    """Union of two comma-joined lists, deduplicated by trimmed element.

    Library order is preserved; default-only elements are appended.
    """
    merged: list[str] = []
    for raw in (library, defaults):
        for item in raw.split(","):
            item = item.strip()
            if item and item not in merged:
                merged.append(item)
    return ",".join(merged)


def merge_maps(library: dict[str, str], defaults: dict[str, str]) -> dict[str, str]:
    """Key-wise union; library values win on collision."""
    return {**defaults, **library}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _first(value: str, default: str) -> str:
    """Return ``value`` unless it is empty."""
    return value if value else default
