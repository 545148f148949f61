"""Unit tests for SourceProvider.

Downloads are served by ``httpx.MockTransport`` from in-memory tarballs.
"""

from __future__ import annotations

import hashlib
import io
import tarfile
from pathlib import Path

import httpx
import pytest

from librarian.orchestrator.errors import (
    ConfigurationError,
    EmptySourcesError,
    IntegrityError,
    LibrarianError,
    MissingPinError,
)
from librarian.orchestrator.execution.sources import SourceProvider
from librarian.orchestrator.models.config import Source, Sources

COMMIT = "9fcfbea0aa5b50fa22e190faceb073d74504172b"


def _tarball(files: dict[str, str], top: str = f"googleapis-{COMMIT}") -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as archive:
        for name, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(f"{top}/{name}")
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buf.getvalue()


TARBALL = _tarball({"google/cloud/secretmanager/v1/service.proto": 'syntax = "proto3";\n', "README.md": "corpus\n"})
SHA256 = hashlib.sha256(TARBALL).hexdigest()


class _Server:
    """Serves archives by URL path and records requests."""

    def __init__(self, archives: dict[str, bytes]) -> None:
        self.archives = archives
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request.url.path)
        payload = self.archives.get(request.url.path)
        if payload is None:
            return httpx.Response(404)
        return httpx.Response(200, content=payload)


@pytest.fixture
def server() -> _Server:
    return _Server({f"/googleapis/googleapis/archive/{COMMIT}.tar.gz": TARBALL})


@pytest.fixture
async def provider(tmp_path: Path, server: _Server):
    async with httpx.AsyncClient(transport=httpx.MockTransport(server)) as client:
        yield SourceProvider(
            tmp_path / "cache",
            download_url="https://github.test/{repo}/archive/{commit}.tar.gz",
            http_client=client,
        )


# ---------------------------------------------------------------------------
# Local overrides and pins
# ---------------------------------------------------------------------------


async def test_local_dir_is_used_verbatim(provider: SourceProvider, server: _Server, tmp_path: Path) -> None:
    local = tmp_path / "googleapis"
    local.mkdir()

    # commit / sha256 are ignored entirely when dir is set.
    root = await provider.load("googleapis", Source(dir=str(local), commit="x", sha256="bad"))

    assert root == local
    assert server.requests == []


async def test_missing_pin(provider: SourceProvider) -> None:
    with pytest.raises(MissingPinError, match="googleapis"):
        await provider.load("googleapis", Source())


async def test_commit_without_sha256(provider: SourceProvider) -> None:
    with pytest.raises(ConfigurationError, match="sha256"):
        await provider.load("googleapis", Source(commit=COMMIT))


# ---------------------------------------------------------------------------
# Fetch / verify / extract
# ---------------------------------------------------------------------------


async def test_fetch_extracts_and_caches(provider: SourceProvider, server: _Server, tmp_path: Path) -> None:
    source = Source(commit=COMMIT, sha256=SHA256)

    root = await provider.load("googleapis", source)

    assert root == tmp_path / "cache" / f"googleapis/googleapis@{COMMIT}"
    assert (root / "google/cloud/secretmanager/v1/service.proto").is_file()
    assert (root / "README.md").read_text() == "corpus\n"

    # Second load is served from the cache.
    again = await provider.load("googleapis", source)
    assert again == root
    assert len(server.requests) == 1


async def test_hash_mismatch(provider: SourceProvider, tmp_path: Path) -> None:
    with pytest.raises(IntegrityError) as exc_info:
        await provider.load("googleapis", Source(commit=COMMIT, sha256="0" * 64))

    assert exc_info.value.actual == SHA256
    # Nothing lands in the cache.
    assert not (tmp_path / "cache" / f"googleapis/googleapis@{COMMIT}").exists()


async def test_download_failure(provider: SourceProvider) -> None:
    with pytest.raises(LibrarianError, match="failed to fetch"):
        await provider.load("protobuf", Source(commit=COMMIT, sha256=SHA256))


async def test_subpath(provider: SourceProvider) -> None:
    root = await provider.load("googleapis", Source(commit=COMMIT, sha256=SHA256, subpath="google/cloud"))
    assert (root / "secretmanager/v1/service.proto").is_file()


async def test_subpath_outside_archive(provider: SourceProvider) -> None:
    with pytest.raises(ConfigurationError, match="subpath"):
        await provider.load("googleapis", Source(commit=COMMIT, sha256=SHA256, subpath="../.."))


async def test_archive_escaping_target_is_rejected(tmp_path: Path) -> None:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as archive:
        data = b"owned"
        info = tarfile.TarInfo("../escape.txt")
        info.size = len(data)
        archive.addfile(info, io.BytesIO(data))
    payload = buf.getvalue()

    server = _Server({f"/googleapis/googleapis/archive/{COMMIT}.tar.gz": payload})
    async with httpx.AsyncClient(transport=httpx.MockTransport(server)) as client:
        provider = SourceProvider(
            tmp_path / "cache",
            download_url="https://github.test/{repo}/archive/{commit}.tar.gz",
            http_client=client,
        )
        with pytest.raises(IntegrityError):
            await provider.load("googleapis", Source(commit=COMMIT, sha256=hashlib.sha256(payload).hexdigest()))

    assert not (tmp_path / "cache" / "googleapis" / "escape.txt").exists()


# ---------------------------------------------------------------------------
# Bundles
# ---------------------------------------------------------------------------


async def test_bundle_requires_googleapis(provider: SourceProvider) -> None:
    with pytest.raises(EmptySourcesError):
        await provider.load_bundle("java", None)
    with pytest.raises(EmptySourcesError):
        await provider.load_bundle("java", Sources(protobuf=Source(dir="/tmp")))


async def test_bundle_auxiliary_sources_only_for_rust_and_dart(provider: SourceProvider, tmp_path: Path) -> None:
    for name in ("googleapis", "protobuf", "showcase"):
        (tmp_path / name).mkdir()
    sources = Sources(
        googleapis=Source(dir=str(tmp_path / "googleapis")),
        protobuf=Source(dir=str(tmp_path / "protobuf")),
        showcase=Source(dir=str(tmp_path / "showcase")),
    )

    java = await provider.load_bundle("java", sources)
    assert java.googleapis == tmp_path / "googleapis"
    assert java.protobuf is None

    rust = await provider.load_bundle("rust", sources)
    assert rust.root("protobuf") == tmp_path / "protobuf"
    assert rust.root("showcase") == tmp_path / "showcase"
    assert rust.discovery is None
