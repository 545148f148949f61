"""Git working tree driven through the ``git`` command line."""

from __future__ import annotations

import base64
from pathlib import Path

from loguru import logger

from librarian.orchestrator.errors import GitError, PublishError
from librarian.orchestrator.process import run_command
from librarian.orchestrator.vcs.base import Commit

# Separators emitted by the ``%x00`` / ``%x1e`` placeholders in ``git log --format``.
_FIELD_SEP = "\x00"
_RECORD_SEP = "\x1e"


class GitRepository:
    """Implementation of the ``GitWorkspace`` protocol for a local checkout."""

    def __init__(self, path: str | Path, remote: str = "origin") -> None:
        self.path = Path(path).resolve()
        self.remote = remote

    def __repr__(self) -> str:
        return f"GitRepository({str(self.path)!r})"

    # -- Construction ----------------------------------------------------------

    @classmethod
    async def open(cls, path: str | Path) -> GitRepository:
        """Open an existing checkout.  Raises ``GitError`` if ``path`` is not one."""
        repo = cls(path)
        await repo._git("rev-parse", "--git-dir")
        return repo

    @classmethod
    async def clone(cls, url: str, dest: str | Path) -> GitRepository:
        logger.info("Cloning {} into {}", url, dest)
        await run_command(["git", "clone", url, str(dest)], error_cls=GitError)
        return cls(dest)

    # -- Query -----------------------------------------------------------------

    async def commits_since(self, path: str, since: str) -> list[Commit]:
        revision = f"{since}..HEAD" if since else "HEAD"
        out = await self._git("log", "--format=%H%x00%B%x1e", revision, "--", path)
        commits: list[Commit] = []
        for record in out.split(_RECORD_SEP):
            record = record.lstrip("\n")
            if not record:
                continue
            commit_hash, _, message = record.partition(_FIELD_SEP)
            commits.append(Commit(hash=commit_hash, message=message))
        return commits

    async def is_clean(self) -> bool:
        return not (await self._git("status", "--porcelain")).strip()

    async def head_hash(self) -> str:
        return (await self._git("rev-parse", "HEAD")).strip()

    async def current_branch(self) -> str:
        return (await self._git("rev-parse", "--abbrev-ref", "HEAD")).strip()

    async def remote_url(self) -> str:
        return (await self._git("remote", "get-url", self.remote)).strip()

    # -- Mutation --------------------------------------------------------------

    async def commit_all(self, message: str) -> bool:
        await self._git("add", "--all")
        status = await self._git("status", "--short")
        if not status.strip():
            logger.info("No modifications to commit.")
            return False
        logger.info("Committing changes in {}:\n{}", self.path, status.rstrip())
        await self._git("commit", "--quiet", "--message", message)
        return True

    async def reset_hard(self) -> None:
        """Discard every local modification, including untracked files."""
        await self._git("reset", "--hard", "--quiet", "HEAD")
        await self._git("clean", "-fd", "--quiet")

    async def push(self, branch: str, token: str) -> None:
        # Passed via GIT_CONFIG_* so the token never appears on a command line or in logs.
        credentials = base64.b64encode(f"x-access-token:{token}".encode()).decode()
        env = {
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "http.extraHeader",
            "GIT_CONFIG_VALUE_0": f"Authorization: Basic {credentials}",
        }
        logger.info("Pushing {} to {}", branch, self.remote)
        await run_command(
            ["git", "push", self.remote, f"HEAD:refs/heads/{branch}"],
            cwd=self.path,
            env=env,
            error_cls=PublishError,
        )

    # -- Internal --------------------------------------------------------------

    async def _git(self, *args: str) -> str:
        return await run_command(["git", *args], cwd=self.path, error_cls=GitError)
