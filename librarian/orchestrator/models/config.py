"""Workspace configuration models (``librarian.yaml``).

Pure pydantic models mirroring the on-disk YAML document.  Unknown keys are
ignored so newer configuration files still load with older tooling.  The
models carry no behaviour; merging defaults into libraries lives in
``librarian.orchestrator.execution.resolver``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# -- Sources -----------------------------------------------------------------


class Source(BaseModel):
    """A pinned external repository, or a local directory override.

    When ``dir`` is set, ``commit`` and ``sha256`` are ignored entirely.
    """

    commit: str = ""
    sha256: str = ""
    dir: str = ""
    branch: str = ""
    subpath: str = Field(default="", description="Directory inside the fetched archive used as its root")


class Sources(BaseModel):
    googleapis: Source | None = None
    discovery: Source | None = None
    protobuf: Source | None = None
    conformance: Source | None = None
    showcase: Source | None = None


# -- Release -----------------------------------------------------------------


class Tool(BaseModel):
    name: str
    version: str = ""


class Release(BaseModel):
    """Parameters consumed by publishing commands."""

    branch: str = ""
    remote: str = ""
    ignored_changes: list[str] = Field(default_factory=list)
    preinstalled: dict[str, str] = Field(default_factory=dict)
    roots_pem: str = ""
    tools: dict[str, list[Tool]] = Field(default_factory=dict)


# -- Language sub-records ----------------------------------------------------


class JavaDefault(BaseModel):
    formatter_jar: str = ""
    generator_jar: str = ""
    grpc_plugin: str = ""


class JavaPackage(JavaDefault):
    skip_format: bool = False


class RustPackageDependency(BaseModel):
    name: str
    package: str = ""
    source: str = ""
    feature: str = ""
    used_if: str = ""
    force_used: bool = False
    ignore: bool = False


class RustModule(BaseModel):
    """A generation target inside a veneer crate."""

    api_path: str = ""
    output: str = ""
    template: str = ""
    generate_setter_samples: str = ""
    generate_rpc_samples: str = ""


class RustDefault(BaseModel):
    package_dependencies: list[RustPackageDependency] = Field(default_factory=list)
    disabled_rustdoc_warnings: list[str] = Field(default_factory=list)
    generate_setter_samples: str = ""
    generate_rpc_samples: str = ""


class RustCrate(RustDefault):
    modules: list[RustModule] = Field(default_factory=list)


class PythonDefault(BaseModel):
    common_gapic_paths: list[str] = Field(default_factory=list)


class PythonPackage(PythonDefault):
    opt_args: list[str] = Field(default_factory=list)
    opt_args_by_api: dict[str, list[str]] = Field(default_factory=dict)
    proto_only_apis: list[str] = Field(default_factory=list)


class DartPackage(BaseModel):
    """Dart settings; the same record is used for defaults and libraries."""

    version: str = ""
    api_keys_environment_variables: str = ""
    issue_tracker_url: str = ""
    dependencies: str = Field(default="", description="Comma-separated dependency names")
    packages: dict[str, str] = Field(default_factory=dict)
    prefixes: dict[str, str] = Field(default_factory=dict)
    protos: dict[str, str] = Field(default_factory=dict)


class GoModule(BaseModel):
    module_path_version: str = ""
    nested_module: str = ""
    delete_generation_output_paths: list[str] = Field(default_factory=list)


# -- Defaults / libraries ----------------------------------------------------


class Default(BaseModel):
    """Workspace-wide settings inherited by every library."""

    keep: list[str] = Field(default_factory=list)
    output: str = ""
    release_level: str = ""
    tag_format: str = ""
    transport: str = ""

    dart: DartPackage | None = None
    java: JavaDefault | None = None
    rust: RustDefault | None = None
    python: PythonDefault | None = None


class API(BaseModel):
    path: str = ""


class Library(BaseModel):
    """One client library.  ``name`` is unique within a workspace."""

    name: str
    version: str = ""
    apis: list[API] = Field(default_factory=list)
    copyright_year: str = ""
    description_override: str = ""
    keep: list[str] = Field(default_factory=list)
    output: str = ""
    release_level: str = ""
    roots: list[str] = Field(default_factory=list)
    skip_generate: bool = False
    skip_release: bool = False
    specification_format: str = ""
    transport: str = ""
    veneer: bool = Field(default=False, description="Hand-written wrapper; requires an explicit output")

    dart: DartPackage | None = None
    go: GoModule | None = None
    java: JavaPackage | None = None
    python: PythonPackage | None = None
    rust: RustCrate | None = None


class WorkspaceConfig(BaseModel):
    """Top-level ``librarian.yaml`` document."""

    language: str = ""
    version: str = ""
    repo: str = ""
    sources: Sources | None = None
    release: Release | None = None
    default: Default | None = None
    libraries: list[Library] = Field(default_factory=list)
