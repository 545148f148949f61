"""Incremental update engine -- regenerate APIs whose corpus history moved.

For every API recorded in the language repository's pipeline state the
engine asks the corpus for commits since ``last_generated_commit``.  APIs
with new commits are regenerated, cleaned, copied over the repository,
recorded, committed, and built.  The build must leave the tree clean.

The first failure aborts the run.  Each successful API is committed and
its state saved before the next one starts, so an aborted run can simply
be re-run.  The corpus checkout is reset afterwards (success or failure)
unless it had local modifications to begin with.

``configure`` onboards an API the repository does not generate yet through
the same generate, clean, copy, commit, and build steps.
"""

from __future__ import annotations

import contextlib
import shutil
import tempfile
from collections.abc import Iterator
from datetime import datetime
from functools import partial
from pathlib import Path

import anyio
from anyio import to_thread
from loguru import logger

from librarian.orchestrator.backends.registry import BackendRegistry
from librarian.orchestrator.errors import (
    ConfigurationError,
    ConsistencyError,
    LibrarianError,
    MissingTokenError,
)
from librarian.orchestrator.execution.toolchain import (
    ContainerToolchain,
    UpdateToolchain,
    WorkspaceToolchain,
    derive_image,
)
from librarian.orchestrator.models.enums import AutomationLevel, Toolchain
from librarian.orchestrator.models.requests import ConfigureRequest, UpdateRequest
from librarian.orchestrator.models.state import ApiGenerationState, PipelineState
from librarian.orchestrator.settings import get_settings
from librarian.orchestrator.store.base import StateStore
from librarian.orchestrator.store.local import GENERATOR_INPUT_DIR, LocalStateStore
from librarian.orchestrator.vcs.base import Commit, GitWorkspace, ReviewPublisher
from librarian.orchestrator.vcs.github import GitHubPublisher
from librarian.orchestrator.vcs.repo import GitRepository

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"
PROVENANCE_PREFIX = "PiperOrigin-RevId: "
SOURCE_LINK = "Source-Link: https://github.com/googleapis/googleapis/commit/{hash}"
GOOGLEAPIS_URL = "https://github.com/googleapis/googleapis"


# ---------------------------------------------------------------------------
# Commit message
# ---------------------------------------------------------------------------


def create_commit_message(commits: list[Commit]) -> str:
    """Build the regeneration commit message from corpus commits (newest first).

    Commits are replayed oldest first.  Provenance lines (starting with
    ``PiperOrigin-RevId: ``) are gathered after the message bodies, followed
    by one ``Source-Link`` line per commit.
    """
    body: list[str] = []
    provenance: list[str] = []
    links: list[str] = []
    for commit in reversed(commits):
        links.append(SOURCE_LINK.format(hash=commit.hash))
        for line in commit.message.split("\n"):
            if line.startswith(PROVENANCE_PREFIX):
                provenance.append(line)
            else:
                body.append(line)
    return "".join(f"{line}\n" for line in (*body, *provenance, *links))


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class UpdateEngine:
    """Runs the per-API update loop against injected collaborators.

    Parameters
    ----------
    api_repo:
        Corpus checkout queried for history and mounted into the toolchain.
    language_repo:
        Repository receiving generated code and one commit per API.
    toolchain:
        Configure / generate / clean / build implementation.
    store:
        Pipeline state persistence inside ``language_repo``.
    output_root:
        Parent of the per-API output directories.
    generator_input:
        Where the repository's generator-input directory is copied before
        generation.
    api_path:
        Only update this API when given.
    push / token / publisher:
        Publishing settings.  ``push`` without a token is rejected here,
        before any work.
    started_at:
        Run start; names the pushed branch and the review request.
    """

    def __init__(
        self,
        *,
        api_repo: GitWorkspace,
        language_repo: GitWorkspace,
        toolchain: UpdateToolchain,
        store: StateStore,
        output_root: Path,
        generator_input: Path,
        api_path: str | None = None,
        push: bool = False,
        token: str = "",
        publisher: ReviewPublisher | None = None,
        started_at: datetime | None = None,
    ) -> None:
        if push and not token:
            raise MissingTokenError
        self._api_repo = api_repo
        self._language_repo = language_repo
        self._toolchain = toolchain
        self._store = store
        self._output_root = Path(output_root)
        self._generator_input = Path(generator_input)
        self._api_path = api_path
        self._push = push
        self._token = token
        self._publisher = publisher
        self.started_at = started_at or datetime.now()
        self.state: PipelineState | None = None

    @property
    def timestamp(self) -> str:
        return self.started_at.strftime(TIMESTAMP_FORMAT)

    async def run(self) -> str | None:
        """Update every eligible API, then publish if requested.

        Returns the review request URL, or ``None`` when nothing was published.
        """
        reset_api_repo = await self._api_repo.is_clean()
        if not reset_api_repo:
            logger.warning("API repo has modifications, so will not be reset after generation")

        hash_before = await self._language_repo.head_hash()
        try:
            self.state = await _load_state(self._store)
            await self._stage_generator_input()
            for record in list(self.state.api_generation_states):
                await self.update_api(record)
        finally:
            if reset_api_repo:
                with anyio.CancelScope(shield=True):
                    await self._api_repo.reset_hard()

        return await self._finish(hash_before)

    async def update_api(self, record: ApiGenerationState) -> ApiGenerationState:
        """Regenerate one API if its corpus history moved.

        Returns the record as persisted afterwards (unchanged when skipped).
        """
        api_id = record.id
        if self._api_path and api_id != self._api_path:
            return record
        if record.blocked:
            logger.info("Ignoring blocked API: '{}'", api_id)
            return record

        commits = await self._api_repo.commits_since(api_id, record.last_generated_commit)
        if not commits:
            logger.info("API '{}' has no changes.", api_id)
            return record

        logger.info("Generating '{}' with {} new commit(s)", api_id, len(commits))
        await self._regenerate(api_id)

        # Saved before committing so the state change is part of the commit.
        updated = record.model_copy(update={"last_generated_commit": commits[0].hash})
        await self._save(updated)

        await self._commit_and_build(api_id, create_commit_message(commits))
        return updated

    async def configure(self, api_id: str) -> str | None:
        """Onboard ``api_id``, then publish if requested.

        The new record points at the newest corpus commit touching the API,
        so the next update only picks up later changes.

        Raises
        ------
        ConfigurationError:
            The pipeline state already tracks ``api_id``.
        """
        hash_before = await self._language_repo.head_hash()
        if (await _load_state(self._store)).find(api_id) is not None:
            raise ConfigurationError(f"API '{api_id}' is already configured")

        with _stage(api_id, "configure"):
            await self._toolchain.configure(
                api_id, self._api_repo.path, self._language_repo.path / GENERATOR_INPUT_DIR
            )
        # The configure step may have edited the repository's generator input.
        self.state = await _load_state(self._store)
        await self._stage_generator_input()

        logger.info("Generating newly configured API '{}'", api_id)
        await self._regenerate(api_id)

        commits = await self._api_repo.commits_since(api_id, "")
        newest = commits[0].hash if commits else await self._api_repo.head_hash()
        record = self.state.find(api_id) or ApiGenerationState(id=api_id, automation_level=AutomationLevel.AUTOMATIC)
        await self._save(record.model_copy(update={"last_generated_commit": newest}))

        await self._commit_and_build(api_id, f"Configured API {api_id}")
        return await self._finish(hash_before)

    async def publish(self) -> str:
        branch = f"librarian-{self.timestamp}"
        await self._language_repo.push(branch, self._token)
        if self._publisher is None:
            logger.info("Pushed {}; no publisher configured", branch)
            return ""
        return await self._publisher.open_review_request(
            self._language_repo,
            branch,
            f"feat: API regeneration: {self.timestamp}",
        )

    # -- Steps -----------------------------------------------------------------

    async def _stage_generator_input(self) -> None:
        source = self._language_repo.path / GENERATOR_INPUT_DIR
        await to_thread.run_sync(partial(_copy_tree, source, self._generator_input))

    async def _regenerate(self, api_id: str) -> None:
        """Generate into the work area, clean the repository, copy the result over."""
        output_dir = self._output_root / api_id
        repo_root = self._language_repo.path
        with _stage(api_id, "generate"):
            await to_thread.run_sync(partial(output_dir.mkdir, parents=True, exist_ok=True))
            await self._toolchain.generate(api_id, self._api_repo.path, output_dir, self._generator_input)
        with _stage(api_id, "clean"):
            await self._toolchain.clean(repo_root, api_id)
        with _stage(api_id, "copy"):
            await to_thread.run_sync(partial(_copy_tree, output_dir, repo_root))

    async def _save(self, record: ApiGenerationState) -> None:
        self.state = await self._store.save_one(record.id, record)

    async def _commit_and_build(self, api_id: str, message: str) -> None:
        repo_root = self._language_repo.path
        with _stage(api_id, "commit"):
            await self._language_repo.commit_all(message)
        with _stage(api_id, "build"):
            await self._toolchain.build(repo_root, api_id)
        if not await self._language_repo.is_clean():
            raise ConsistencyError(api_id)

    async def _finish(self, hash_before: str) -> str | None:
        if not self._push:
            logger.info("Pushing not specified; update complete.")
            return None
        if await self._language_repo.head_hash() == hash_before:
            logger.info("No changes generated; nothing to push.")
            return None
        return await self.publish()


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


async def run_update(
    request: UpdateRequest,
    *,
    registry: BackendRegistry | None = None,
    publisher: ReviewPublisher | None = None,
    started_at: datetime | None = None,
) -> str | None:
    """Prepare the work root and collaborators, then run ``UpdateEngine``.

    Raises
    ------
    MissingTokenError:
        ``push`` requested without a token; raised before anything is touched.
    ConfigurationError:
        The language repository is dirty, or the container toolchain has no
        language to name its image after.
    """
    engine = await create_engine(request, "update", registry=registry, publisher=publisher, started_at=started_at)
    return await engine.run()


async def run_configure(
    request: ConfigureRequest,
    *,
    registry: BackendRegistry | None = None,
    publisher: ReviewPublisher | None = None,
    started_at: datetime | None = None,
) -> str | None:
    """Add ``request.api_path`` to a language repository and publish it if requested."""
    if not request.api_path:
        raise ConfigurationError("--api-path is required")
    engine = await create_engine(request, "configure", registry=registry, publisher=publisher, started_at=started_at)
    return await engine.configure(request.api_path)


async def create_engine(
    request: UpdateRequest,
    action: str,
    *,
    registry: BackendRegistry | None = None,
    publisher: ReviewPublisher | None = None,
    started_at: datetime | None = None,
) -> UpdateEngine:
    """Check the request, prepare the work root and repositories, and build the engine."""
    settings = get_settings()
    token = request.token or (settings.github_token.get_secret_value() if settings.github_token else "")
    if request.push and not token:
        raise MissingTokenError
    if request.toolchain == Toolchain.CONTAINER and not (request.image or settings.image or request.language):
        raise ConfigurationError("--language is required to derive the generator image")

    started_at = started_at or datetime.now()
    work_root = await to_thread.run_sync(
        partial(create_work_root, started_at, request.work_root or settings.work_root)
    )
    logger.info("Using work root {}", work_root)

    if request.api_root is not None:
        api_repo = await GitRepository.open(request.api_root)
    else:
        api_repo = await GitRepository.clone(GOOGLEAPIS_URL, work_root / "googleapis")

    output_root = Path(request.output) if request.output else work_root / "output"
    await to_thread.run_sync(partial(output_root.mkdir, parents=True, exist_ok=True))

    language_repo = await GitRepository.open(request.repo_root)
    if not await language_repo.is_clean():
        raise ConfigurationError(f"language repo must be clean before {action}")

    store = LocalStateStore(language_repo.path)
    if request.toolchain == Toolchain.CONTAINER:
        image = derive_image(
            await _load_state(store),
            request.language or "",
            image=request.image or settings.image,
            repository=settings.repository,
        )
        toolchain: UpdateToolchain = ContainerToolchain(image)
    else:
        toolchain = WorkspaceToolchain(language_repo.path, registry)

    if publisher is None and request.push:
        publisher = GitHubPublisher(token, api_url=settings.github_api_url)

    return UpdateEngine(
        api_repo=api_repo,
        language_repo=language_repo,
        toolchain=toolchain,
        store=store,
        output_root=output_root,
        generator_input=work_root / GENERATOR_INPUT_DIR,
        api_path=request.api_path,
        push=request.push,
        token=token,
        publisher=publisher,
        started_at=started_at,
    )


def create_work_root(started_at: datetime, work_root: Path | None = None) -> Path:
    """Return ``work_root`` (created if missing) or a fresh timestamped temp dir."""
    if work_root is not None:
        path = Path(work_root)
        path.mkdir(parents=True, exist_ok=True)
        return path

    path = Path(tempfile.gettempdir()) / f"librarian-{started_at.strftime(TIMESTAMP_FORMAT)}"
    if path.exists():
        raise ConfigurationError(f"work root '{path}' already exists")
    path.mkdir(parents=True)
    return path


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _copy_tree(source: Path, dest: Path) -> None:
    """Copy ``source`` over ``dest``, replacing files that already exist."""
    shutil.copytree(source, dest, dirs_exist_ok=True)


@contextlib.contextmanager
def _stage(api_id: str, step: str) -> Iterator[None]:
    try:
        yield
    except LibrarianError as exc:
        exc.add_note(f"API '{api_id}': {step} failed")
        raise


async def _load_state(store: StateStore) -> PipelineState:
    try:
        return await store.load()
    except FileNotFoundError as exc:
        raise ConfigurationError(f"pipeline state not found: {exc.filename}") from exc
