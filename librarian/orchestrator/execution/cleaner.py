"""Keep-list cleaner.

Deletes everything under a generated output directory except an explicit
set of preserved paths, so that no stale generated artifact survives a
regeneration.  Runs in two passes:

1. every file outside the keep set is removed, as is every symlink to a
   directory (control directories such as ``.git`` are not descended into);
2. remaining directories are removed deepest-first; non-empty ones (which
   still hold a kept path) are left in place.

The operation is idempotent and never removes a kept path or one of its
ancestors.  ``librarian.yaml`` and ``generator-input/`` at the top of the
directory are always preserved.
"""

from __future__ import annotations

import os
from functools import partial
from pathlib import Path

from anyio import to_thread
from loguru import logger

from librarian.orchestrator.errors import KeepFileMissingError, NotADirectoryCleanError
from librarian.orchestrator.store.local import GENERATOR_INPUT_DIR
from librarian.orchestrator.workspace import CONFIG_FILENAME

SKIPPED_DIRS = frozenset({".git", ".github", ".gemini"})


async def check_and_clean(directory: str | Path, keep: list[str]) -> None:
    """Validate ``keep`` against ``directory`` and clean it.

    Nothing is deleted unless every keep entry exists.
    """
    await to_thread.run_sync(partial(check_and_clean_sync, Path(directory), keep))


def check_and_clean_sync(directory: Path, keep: list[str]) -> None:
    keep_set = check(directory, keep)
    if keep_set is None:
        logger.debug("Nothing to clean, {} does not exist", directory)
        return
    clean(directory, keep_set)


def check(directory: Path, keep: list[str]) -> set[Path] | None:
    """Return the normalised keep set, or ``None`` if ``directory`` is absent.

    Raises
    ------
    NotADirectoryCleanError:
        ``directory`` exists but is a file.
    KeepFileMissingError:
        A keep entry does not exist under ``directory``.
    """
    if not directory.exists():
        return None
    if not directory.is_dir():
        raise NotADirectoryCleanError(str(directory))

    keep_set: set[Path] = set()
    for entry in keep:
        path = directory / entry
        if not path.exists():
            raise KeepFileMissingError(entry)
        keep_set.add(Path(os.path.normpath(entry)))
    return keep_set


def clean(directory: Path, keep_set: set[Path]) -> None:
    """Remove every file and directory under ``directory`` not in ``keep_set``.

    A kept directory preserves its whole subtree.
    """
    removed = 0
    walked_dirs: list[Path] = []

    for root, dirnames, filenames in os.walk(directory):
        root_path = Path(root)
        skipped = SKIPPED_DIRS | {GENERATOR_INPUT_DIR} if root_path == directory else SKIPPED_DIRS
        dirnames[:] = sorted(d for d in dirnames if d not in skipped)
        if root_path != directory:
            walked_dirs.append(root_path)

        # os.walk lists directory symlinks as directories without following them.
        links = [d for d in dirnames if (root_path / d).is_symlink()]
        dirnames[:] = [d for d in dirnames if d not in links]

        for filename in [*filenames, *links]:
            path = root_path / filename
            rel = path.relative_to(directory)
            if rel == Path(CONFIG_FILENAME) or _is_kept(rel, keep_set):
                continue
            path.unlink()
            removed += 1

    # Deepest first; os.rmdir refuses non-empty directories, which is what
    # keeps the ancestors of preserved files alive.
    for path in reversed(walked_dirs):
        if _is_kept(path.relative_to(directory), keep_set):
            continue
        try:
            path.rmdir()
        except OSError:
            continue

    logger.debug("Cleaned {}: removed {} files, kept {} entries", directory, removed, len(keep_set))


def _is_kept(rel: Path, keep_set: set[Path]) -> bool:
    return rel in keep_set or any(parent in keep_set for parent in rel.parents)
