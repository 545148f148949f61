"""Java backend -- protoc + gapic-generator-java, laid out as Maven modules.

For library ``secretmanager`` generating ``google/cloud/secretmanager/v1``
the output directory ends up as::

    {output}/google-cloud-secretmanager/src/{main,test}/...
    {output}/proto-google-cloud-secretmanager-v1/src/main/{java,proto}/...
    {output}/grpc-google-cloud-secretmanager-v1/src/main/java/...
    {output}/samples/snippets/generated/...

protoc writes into a per-version staging directory which is moved into the
module layout and then removed.
"""

from __future__ import annotations

import contextlib
import os
import re
import shlex
import shutil
import tempfile
import zipfile
from collections.abc import Callable, Iterator
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING

import jinja2
from anyio import to_thread
from loguru import logger

from librarian.orchestrator.backends.base import BaseBackend, output_dir
from librarian.orchestrator.errors import GenerationError
from librarian.orchestrator.models.enums import Language
from librarian.orchestrator.process import run_command

if TYPE_CHECKING:
    from librarian.orchestrator.execution.sources import SourceBundle
    from librarian.orchestrator.models.config import JavaPackage, Library

CLIRR_FILENAME = "clirr-ignored-differences.xml"
SAMPLES_DIR = Path("samples", "snippets", "generated")
DEFAULT_TRANSPORT = "grpc+rest"

# Hand-written integration tests living inside generated modules.
_IT_TEST = re.compile(r"google-cloud-.*/src/test/java/com/google/cloud/.*/v.*/it/IT.*Test\.java$")

_CLIRR_TEMPLATE = jinja2.Environment(autoescape=False, keep_trailing_newline=True).from_string(  # noqa: S701
    """<?xml version="1.0" encoding="UTF-8"?>
<!-- see https://www.mojohaus.org/clirr-maven-plugin/examples/ignored-differences.html -->
<differences>
{%- for path in proto_paths %}
  <difference>
    <differenceType>7012</differenceType>
    <className>{{ path }}/*OrBuilder</className>
    <method>* get*(*)</method>
  </difference>
  <difference>
    <differenceType>7012</differenceType>
    <className>{{ path }}/*OrBuilder</className>
    <method>boolean contains*(*)</method>
  </difference>
  <difference>
    <differenceType>7012</differenceType>
    <className>{{ path }}/*OrBuilder</className>
    <method>boolean has*(*)</method>
  </difference>
{%- endfor %}
</differences>
"""
)


class JavaBackend(BaseBackend):
    language = Language.JAVA

    # -- Clean -----------------------------------------------------------------

    async def clean(self, library: Library) -> None:
        """Remove generated modules, keeping keep-list entries, IT tests and clirr files."""
        output_dir(library)
        await to_thread.run_sync(partial(clean_library, library))

    async def clean_api(self, library: Library, api_path: str) -> None:
        """Remove the modules and shared-module packages of one API version."""
        output_dir(library)
        await to_thread.run_sync(partial(clean_api_output, library, api_path))

    # -- Generate --------------------------------------------------------------

    async def generate(self, libraries: list[Library], sources: SourceBundle) -> None:
        googleapis = sources.googleapis.resolve()
        for library in libraries:
            if not library.apis:
                raise GenerationError(f"no apis configured for library '{library.name}'")
            outdir = Path(library.output).resolve()
            outdir.mkdir(parents=True, exist_ok=True)
            for api in library.apis:
                try:
                    await self._generate_api(api.path, library, googleapis, outdir)
                except GenerationError as exc:
                    raise GenerationError(
                        f"library '{library.name}': failed to generate api '{api.path}': {exc}",
                        command=exc.command,
                        returncode=exc.returncode,
                    ) from exc
            logger.info("Generated {} ({} apis)", library.name, len(library.apis))

    async def _generate_api(self, api_path: str, library: Library, googleapis: Path, outdir: Path) -> None:
        version = extract_version(api_path)
        if not version:
            raise GenerationError(f"cannot extract version from api path '{api_path}'")

        staging = outdir / version
        gapic_dir, grpc_dir, proto_dir = staging / "gapic", staging / "grpc", staging / "proto"
        for directory in (gapic_dir, grpc_dir, proto_dir):
            directory.mkdir(parents=True, exist_ok=True)

        protos = sorted((googleapis / api_path).glob("*.proto"))
        if not protos:
            raise GenerationError(f"no protos found in api '{api_path}'")
        protos.append(googleapis / "google" / "cloud" / "common_resources.proto")

        command: list[str | Path] = ["protoc", "--experimental_allow_proto3_optional", f"-I={googleapis}"]
        command.extend(protos)
        command.extend(protoc_options(library.transport, proto_dir, grpc_dir, gapic_dir))

        with plugin_wrappers(library.java) as env:
            await run_command(command, env=env)

        await to_thread.run_sync(partial(_finish_api, outdir, library.name, version, googleapis, protos))

    # -- Format ----------------------------------------------------------------

    async def format(self, library: Library) -> None:
        java = library.java
        if java is None or java.skip_format or not java.formatter_jar:
            return
        files = await to_thread.run_sync(partial(_java_sources, Path(library.output)))
        if not files:
            return
        jar = Path(java.formatter_jar).resolve()
        await run_command(["java", "-jar", jar, "--replace", *files])


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


def module_name(name: str) -> str:
    """``secretmanager`` -> ``google-cloud-secretmanager``."""
    return name if name.startswith("google-cloud-") else f"google-cloud-{name}"


def extract_version(api_path: str) -> str:
    """Last path segment starting with ``v``, or ``""``."""
    for part in reversed(api_path.split("/")):
        if part.startswith("v"):
            return part
    return ""


def protoc_options(transport: str, proto_dir: Path, grpc_dir: Path, gapic_dir: Path) -> list[str]:
    transport = transport or DEFAULT_TRANSPORT
    options = [f"--java_out={proto_dir}"]
    if transport != "rest":
        options.append(f"--java_grpc_out={grpc_dir}")
    gapic_opts = ["metadata", f"transport={transport}", "rest-numeric-enums"]
    options.append(f"--java_gapic_out=metadata:{gapic_dir}")
    options.append("--java_gapic_opt=" + ",".join(gapic_opts))
    return options


@contextlib.contextmanager
def plugin_wrappers(java: JavaPackage | None) -> Iterator[dict[str, str] | None]:
    """Expose the configured plugin jars to protoc as ``protoc-gen-*`` scripts.

    Yields the environment overrides for the protoc process (``None`` when
    no plugin is configured).  The scripts are removed on exit.
    """
    if java is None or not (java.generator_jar or java.grpc_plugin):
        yield None
        return

    with tempfile.TemporaryDirectory(prefix="librarian-java-plugin-") as tmp:
        scripts: dict[str, str] = {}
        if java.generator_jar:
            jar = shlex.quote(str(Path(java.generator_jar).resolve()))
            scripts["protoc-gen-java_gapic"] = f"exec java -cp {jar} com.google.api.generator.Main \"$@\""
        if java.grpc_plugin:
            plugin = shlex.quote(str(Path(java.grpc_plugin).resolve()))
            scripts["protoc-gen-java_grpc"] = f'exec {plugin} "$@"'
        for name, body in scripts.items():
            script = Path(tmp) / name
            script.write_text(f"#!/bin/bash\nset -e\n{body}\n", encoding="utf-8")
            script.chmod(0o755)
        yield {"PATH": f"{tmp}{os.pathsep}{os.environ.get('PATH', '')}"}


# ---------------------------------------------------------------------------
# Sync helpers (run in thread pool)
# ---------------------------------------------------------------------------


def clean_library(library: Library) -> None:
    root = Path(library.output)
    name = module_name(library.name)
    keep = set(library.keep)
    for pattern in (f"proto-{name}-*", f"grpc-{name}-*", name, SAMPLES_DIR.as_posix()):
        for match in sorted(root.glob(pattern)):
            _clean_path(match, root, keep)


def clean_api_output(library: Library, api_path: str) -> None:
    """Clean one API version of a multi-version library.

    Its ``proto-`` and ``grpc-`` modules go entirely; in the shared client
    module and the samples only paths with a ``{version}`` segment are removed.
    """
    version = extract_version(api_path)
    if not version:
        raise GenerationError(f"cannot extract version from api path '{api_path}'")
    root = Path(library.output)
    name = module_name(library.name)
    keep = set(library.keep)
    for pattern in (f"proto-{name}-{version}", f"grpc-{name}-{version}"):
        for match in sorted(root.glob(pattern)):
            _clean_path(match, root, keep)
    for shared in (root / name, root / SAMPLES_DIR):
        if shared.is_dir():
            _clean_path(shared, root, keep, selected=partial(_has_segment, shared, version))


def _has_segment(base: Path, segment: str, path: Path) -> bool:
    return segment in path.relative_to(base).parts


def _clean_path(
    target: Path,
    root: Path,
    keep: set[str],
    selected: Callable[[Path], bool] | None = None,
) -> None:
    def removable(path: Path) -> bool:
        if selected is not None and not selected(path):
            return False
        rel = path.relative_to(root).as_posix()
        return not (rel in keep or path.name == CLIRR_FILENAME or _IT_TEST.search(path.as_posix()))

    if not target.is_dir():
        if removable(target):
            target.unlink()
        return

    walked: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(target):
        dirnames[:] = sorted(d for d in dirnames if d not in {".git", ".github", ".gemini"})
        walked.append(Path(dirpath))
        for filename in filenames:
            path = Path(dirpath) / filename
            if removable(path):
                path.unlink()

    for directory in reversed(walked):
        if directory.relative_to(root).as_posix() in keep:
            continue
        if selected is not None and not selected(directory):
            continue
        with contextlib.suppress(OSError):
            directory.rmdir()


def _finish_api(outdir: Path, library_name: str, version: str, googleapis: Path, protos: list[Path]) -> None:
    gapic_dir = outdir / version / "gapic"
    srcjar = gapic_dir / "temp-codegen.srcjar"
    if srcjar.exists():
        unzip(srcjar, gapic_dir)
    restructure_output(outdir, library_name, version, googleapis, protos)
    shutil.rmtree(outdir / version)


def unzip(archive: Path, dest: Path) -> None:
    """Extract ``archive`` into ``dest``, rejecting entries that escape it."""
    dest = dest.resolve()
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            target = (dest / info.filename).resolve()
            if not target.is_relative_to(dest) or target == dest:
                raise GenerationError(f"illegal file path in {archive.name}: {info.filename}")
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, target.open("wb") as dst:
                shutil.copyfileobj(src, dst)


def restructure_output(outdir: Path, library_name: str, version: str, googleapis: Path, protos: list[Path]) -> None:
    """Move protoc output from ``{outdir}/{version}`` into Maven modules."""
    staging = outdir / version
    name = module_name(library_name)
    proto_module = f"proto-{name}-{version}"

    proto_src = staging / "proto"
    proto_dest = outdir / proto_module / "src" / "main" / "java"
    moves = [
        (proto_src, proto_dest),
        (staging / "grpc", outdir / f"grpc-{name}-{version}" / "src" / "main" / "java"),
        (staging / "gapic" / "src" / "main", outdir / name / "src" / "main"),
        (staging / "gapic" / "src" / "test", outdir / name / "src" / "test"),
        (staging / "gapic" / "samples" / "snippets" / "generated" / "src" / "main" / "java", outdir / SAMPLES_DIR),
        (staging / "gapic" / "proto" / "src" / "main" / "java", proto_dest),
    ]
    for _, dest in moves:
        dest.mkdir(parents=True, exist_ok=True)

    # Location classes and CommonResources are shipped by shared modules.
    shutil.rmtree(proto_src / "com" / "google" / "cloud" / "location", ignore_errors=True)
    with contextlib.suppress(FileNotFoundError):
        (proto_src / "google" / "cloud" / "CommonResources.java").unlink()

    for src, dest in moves:
        if src.exists():
            _move_and_merge(src, dest)

    write_clirr_ignores(outdir / proto_module)
    _copy_protos(googleapis, protos, outdir / proto_module / "src" / "main" / "proto")


def write_clirr_ignores(proto_module: Path) -> None:
    """Create ``clirr-ignored-differences.xml`` unless one is already maintained."""
    target = proto_module / CLIRR_FILENAME
    if target.exists():
        return
    src_dir = proto_module / "src" / "main" / "java"
    packages = sorted({p.parent.relative_to(src_dir).as_posix() for p in src_dir.rglob("*OrBuilder.java")} - {"."})
    if not packages:
        return
    target.write_text(_CLIRR_TEMPLATE.render(proto_paths=packages), encoding="utf-8")


def _copy_protos(googleapis: Path, protos: list[Path], dest: Path) -> None:
    for proto in protos:
        rel = proto.relative_to(googleapis)
        if rel.as_posix() == "google/cloud/common_resources.proto":
            continue
        target = dest / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(proto, target)


def _move_and_merge(src: Path, dest: Path) -> None:
    for entry in src.iterdir():
        target = dest / entry.name
        if entry.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            _move_and_merge(entry, target)
        else:
            os.replace(entry, target)


def _java_sources(root: Path) -> list[Path]:
    """``.java`` files under ``root``, excluding generated samples."""
    samples = SAMPLES_DIR.as_posix()
    return sorted(p for p in root.rglob("*.java") if samples not in p.as_posix())
