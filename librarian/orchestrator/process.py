"""External process invocation.

Every generator, formatter, build, container, and git call goes through
``run_command`` so failures surface uniformly as ``GenerationError`` (or a
caller-chosen subclass of ``LibrarianError``) with the command and exit
status attached.  ``anyio.run_process`` is a cancellation point, so a
cancelled run aborts before the next external process starts.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping, Sequence
from pathlib import Path

import anyio
from loguru import logger

from librarian.orchestrator.errors import GenerationError, LibrarianError


async def run_command(
    command: Sequence[str | Path],
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    error_cls: type[LibrarianError] = GenerationError,
) -> str:
    """Run ``command`` to completion and return its decoded stdout.

    Parameters
    ----------
    command:
        Program and arguments.  Never passed through a shell.
    cwd:
        Working directory for the child.
    env:
        Extra environment variables layered over the current environment.
    error_cls:
        Exception raised on a non-zero exit.  ``GenerationError`` receives
        the command and exit status as attributes.

    Raises
    ------
    GenerationError:
        The program is missing or exited non-zero (unless ``error_cls``
        overrides the class).
    """
    argv = [str(part) for part in command]
    display = shlex.join(argv)
    logger.debug("Running: {} (cwd={})", display, cwd or ".")

    child_env = {**os.environ, **env} if env else None
    try:
        result = await anyio.run_process(argv, cwd=cwd, env=child_env, check=False)
    except FileNotFoundError as exc:
        raise _make_error(error_cls, f"{argv[0]}: command not found", argv, None) from exc

    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace").strip()
        message = f"{display} exited with status {result.returncode}"
        if stderr:
            message = f"{message}: {stderr}"
        raise _make_error(error_cls, message, argv, result.returncode)
    return result.stdout.decode(errors="replace")


def _make_error(
    error_cls: type[LibrarianError],
    message: str,
    argv: list[str],
    returncode: int | None,
) -> LibrarianError:
    if issubclass(error_cls, GenerationError):
        return error_cls(message, command=argv, returncode=returncode)
    return error_cls(message)

