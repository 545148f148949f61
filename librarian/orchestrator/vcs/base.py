"""Interfaces the update engine needs from version control and code review."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


class Commit(BaseModel):
    """A corpus commit as seen by the update engine."""

    hash: str
    message: str


@runtime_checkable
class GitWorkspace(Protocol):
    """A git working tree the engine reads from or commits to."""

    path: Path

    async def commits_since(self, path: str, since: str) -> list[Commit]:
        """Commits touching ``path`` after ``since``, newest first.

        An empty ``since`` means the whole history of ``path``.
        """
        ...

    async def is_clean(self) -> bool:
        """True if there are no staged, unstaged, or untracked changes."""
        ...

    async def commit_all(self, message: str) -> bool:
        """Stage everything and commit.  Returns ``False`` when there was nothing to commit."""
        ...

    async def reset_hard(self) -> None:
        ...

    async def head_hash(self) -> str:
        ...

    async def current_branch(self) -> str:
        ...

    async def remote_url(self) -> str:
        ...

    async def push(self, branch: str, token: str) -> None:
        """Push ``HEAD`` to ``branch`` on the default remote."""
        ...


@runtime_checkable
class ReviewPublisher(Protocol):
    """Opens a review request (pull request) for a pushed branch."""

    async def open_review_request(self, repo: GitWorkspace, branch: str, title: str, body: str = "") -> str:
        """Return the URL of the created review request."""
        ...
