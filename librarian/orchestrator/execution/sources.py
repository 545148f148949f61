"""Source provider -- materialises external corpora for generation.

A ``Source`` is either a local directory override (returned as-is, no fetch,
no verification) or a pinned ``commit`` + ``sha256``.  Pinned sources are
downloaded once as a GitHub tarball, verified, and extracted into the cache::

    {cache_dir}/{owner}/{name}@{commit}/

Subsequent loads of the same ``(repo, commit)`` reuse the cached tree.
Extraction happens in a sibling temp directory that is renamed into place,
so a crash never leaves a half-populated cache entry behind.
"""

from __future__ import annotations

import contextlib
import hashlib
import io
import os
import shutil
import tarfile
import tempfile
from functools import partial
from pathlib import Path

import httpx
from anyio import to_thread
from loguru import logger
from pydantic import BaseModel

from librarian.orchestrator.errors import (
    ConfigurationError,
    EmptySourcesError,
    IntegrityError,
    LibrarianError,
    MissingPinError,
)
from librarian.orchestrator.models.config import Source, Sources
from librarian.orchestrator.models.enums import Language

# Repository identity of each named corpus.
REPOSITORIES: dict[str, str] = {
    "googleapis": "googleapis/googleapis",
    "discovery": "googleapis/discovery-artifact-manager",
    "protobuf": "protocolbuffers/protobuf",
    "conformance": "googleapis/conformance-tests",
    "showcase": "googleapis/gapic-showcase",
}

# Languages whose generators read auxiliary corpora besides googleapis.
AUXILIARY_LANGUAGES = frozenset({Language.RUST, Language.DART})
AUXILIARY_SOURCES = ("discovery", "protobuf", "conformance", "showcase")

_DOWNLOAD_TIMEOUT = 300.0

# ---------------------------------------------------------------------------
# Output model
# ---------------------------------------------------------------------------


class SourceBundle(BaseModel):
    """Named corpus roots handed to a backend's generate phase."""

    googleapis: Path
    discovery: Path | None = None
    protobuf: Path | None = None
    conformance: Path | None = None
    showcase: Path | None = None

    def root(self, name: str) -> Path | None:
        return getattr(self, name, None)


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class SourceProvider:
    """Fetch-or-use-local resolution of corpus sources.

    An ``httpx.AsyncClient`` may be injected (tests pass one backed by
    ``httpx.MockTransport``); otherwise one is created per download.
    """

    def __init__(
        self,
        cache_dir: str | Path,
        *,
        download_url: str = "https://github.com/{repo}/archive/{commit}.tar.gz",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._cache_dir = Path(cache_dir)
        self._download_url = download_url
        self._http_client = http_client

    # -- Public ----------------------------------------------------------------

    async def load_bundle(self, language: str, sources: Sources | None) -> SourceBundle:
        """Resolve every corpus ``language`` needs.

        Raises
        ------
        EmptySourcesError:
            No ``sources`` section, or no ``googleapis`` entry in it.
        MissingPinError:
            A declared source has neither ``dir`` nor ``commit``.
        IntegrityError:
            A downloaded archive does not match its ``sha256``.
        """
        if sources is None or sources.googleapis is None:
            raise EmptySourcesError

        roots: dict[str, Path] = {"googleapis": await self.load("googleapis", sources.googleapis)}
        if language in AUXILIARY_LANGUAGES:
            for name in AUXILIARY_SOURCES:
                source = getattr(sources, name)
                if source is not None:
                    roots[name] = await self.load(name, source)
        return SourceBundle(**roots)

    async def load(self, name: str, source: Source) -> Path:
        """Return the local root of one corpus."""
        if source.dir:
            logger.debug("Using local {} at {}", name, source.dir)
            return Path(source.dir)
        if not source.commit:
            raise MissingPinError(name)
        if not source.sha256:
            raise ConfigurationError(f"source '{name}' requires 'sha256' when 'commit' is set")

        repo = REPOSITORIES.get(name, name)
        target = self._cache_dir / f"{repo}@{source.commit}"
        if not await to_thread.run_sync(target.is_dir):
            payload = await self._download(repo, source.commit)
            _verify(repo, payload, source.sha256)
            await to_thread.run_sync(partial(_extract_archive, payload, target))
            logger.info("Fetched {}@{} into {}", repo, source.commit, target)
        else:
            logger.debug("Cache hit for {}@{}", repo, source.commit)

        return _apply_subpath(target, source.subpath)

    # -- Internal --------------------------------------------------------------

    async def _download(self, repo: str, commit: str) -> bytes:
        url = self._download_url.format(repo=repo, commit=commit)
        logger.info("Downloading {}", url)
        client = self._http_client
        own_client = client is None
        if client is None:
            client = httpx.AsyncClient(timeout=_DOWNLOAD_TIMEOUT, follow_redirects=True)
        try:
            response = await client.get(url)
            response.raise_for_status()
            return response.content
        except httpx.HTTPError as exc:
            raise LibrarianError(f"failed to fetch {repo}@{commit}: {exc}") from exc
        finally:
            if own_client:
                await client.aclose()


# ---------------------------------------------------------------------------
# Sync helpers (run in thread pool)
# ---------------------------------------------------------------------------


def _verify(repo: str, payload: bytes, expected: str) -> None:
    actual = hashlib.sha256(payload).hexdigest()
    if actual != expected.lower():
        raise IntegrityError(repo, expected, actual)


def _extract_archive(payload: bytes, target: Path) -> None:
    """Extract a GitHub tarball into ``target``, dropping its top-level folder.

    Members that would land outside the extraction directory (absolute paths,
    ``..`` components, links pointing out) are rejected by the ``data`` filter.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(dir=target.parent, prefix=f".{target.name}-"))
    try:
        with tarfile.open(fileobj=io.BytesIO(payload), mode="r:*") as archive:
            archive.extractall(staging, filter="data")
        entries = list(staging.iterdir())
        root = entries[0] if len(entries) == 1 and entries[0].is_dir() else staging
        os.rename(root, target)
    except tarfile.TarError as exc:
        raise IntegrityError(str(target), "a valid tar archive", f"unreadable archive ({exc})") from exc
    finally:
        with contextlib.suppress(OSError):
            shutil.rmtree(staging)


def _apply_subpath(root: Path, subpath: str) -> Path:
    if not subpath:
        return root
    narrowed = (root / subpath).resolve()
    if not narrowed.is_relative_to(root.resolve()) or not narrowed.is_dir():
        raise ConfigurationError(f"subpath '{subpath}' is not a directory inside {root}")
    return narrowed
