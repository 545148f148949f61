"""Local filesystem state store.

Stores pipeline state as a JSON file inside the language repository::

    {repo_root}/generator-input/pipeline-state.json

Uses ``anyio.to_thread.run_sync`` for non-blocking file I/O.

Writes are atomic: data is written to a temporary file in the same directory,
then renamed to the target path.  This prevents corrupt reads if the process
crashes mid-write.

The store keeps the last state it loaded or saved.  ``save_one`` merges into
that copy, so a run always writes back every record and the image tag even
if the file was removed from the working tree in the meantime.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from functools import partial
from pathlib import Path

from anyio import to_thread
from loguru import logger

from librarian.orchestrator.models.state import ApiGenerationState, PipelineState

GENERATOR_INPUT_DIR = "generator-input"
STATE_FILENAME = "pipeline-state.json"


class LocalStateStore:
    """Local filesystem implementation of the StateStore protocol."""

    def __init__(self, repo_root: str | Path) -> None:
        self._path = Path(repo_root) / GENERATOR_INPUT_DIR / STATE_FILENAME
        self._state: PipelineState | None = None

    @property
    def path(self) -> Path:
        return self._path

    # -- Read ------------------------------------------------------------------

    async def load(self) -> PipelineState:
        raw = await to_thread.run_sync(partial(_read_file, self._path))
        self._state = PipelineState.model_validate_json(raw)
        return self._state

    # -- Write -----------------------------------------------------------------

    async def save(self, state: PipelineState) -> None:
        data = state.model_dump_json(by_alias=True, indent=2) + "\n"
        await to_thread.run_sync(partial(_atomic_write, self._path, data))
        self._state = state

    async def save_one(self, api_id: str, record: ApiGenerationState) -> PipelineState:
        if record.id != api_id:
            raise ValueError(f"record id '{record.id}' does not match '{api_id}'")
        # Raises FileNotFoundError when there is neither a loaded nor a stored state.
        current = self._state if self._state is not None else await self.load()
        state = current.with_record(record)
        await self.save(state)
        logger.debug("Saved state for {} (lastGeneratedCommit={})", api_id, record.last_generated_commit)
        return state


# -- Sync helpers (run in thread pool) -----------------------------------------


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    The temp file is created in the same directory so ``os.rename`` is
    atomic on POSIX.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.rename(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _read_file(path: Path) -> str:
    """Read file contents.  Raises ``FileNotFoundError`` if missing."""
    return path.read_text(encoding="utf-8")
