"""Fake backend used to exercise the pipeline without real generators.

Clean is a no-op.  Generate writes a ``README.md`` (and a ``STARTER.md`` the
first time) into each library's output; format appends a marker to the
README; post-generate drops ``POST_GENERATE_README.md`` into the working directory.
"""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING

import jinja2
from anyio import to_thread
from loguru import logger

from librarian.orchestrator.backends.base import BaseBackend
from librarian.orchestrator.models.enums import Language

if TYPE_CHECKING:
    from librarian.orchestrator.execution.sources import SourceBundle
    from librarian.orchestrator.models.config import Library

POST_GENERATE_FILENAME = "POST_GENERATE_README.md"

_env = jinja2.Environment(autoescape=False, keep_trailing_newline=True)  # noqa: S701
_README = _env.from_string("# {{ name }}\n\nGenerated library\n")
_STARTER = _env.from_string("# {{ name }}\n\nThis is a starter file.\n")
_FORMATTED_SUFFIX = "\n---\nFormatted\n"
_POST_GENERATE = _env.from_string("# Post-generate\n")


class FakeBackend(BaseBackend):
    language = Language.FAKE

    def __init__(self, root: str | Path | None = None) -> None:
        # Post-generate output goes to ``root``, or the cwd at call time.
        self._root = Path(root) if root is not None else None

    async def clean(self, library: Library) -> None:
        return None

    async def clean_api(self, library: Library, api_path: str) -> None:
        return None

    async def generate(self, libraries: list[Library], sources: SourceBundle) -> None:
        for library in libraries:
            await to_thread.run_sync(partial(_write_library, library))
            logger.info("Generated {} into {}", library.name, library.output)

    async def format(self, library: Library) -> None:
        readme = Path(library.output) / "README.md"
        await to_thread.run_sync(partial(_append, readme, _FORMATTED_SUFFIX))

    async def post_generate(self) -> None:
        root = self._root or Path.cwd()
        await to_thread.run_sync(partial((root / POST_GENERATE_FILENAME).write_text, _POST_GENERATE.render()))


def _write_library(library: Library) -> None:
    output = Path(library.output)
    output.mkdir(parents=True, exist_ok=True)
    (output / "README.md").write_text(_README.render(name=library.name), encoding="utf-8")
    starter = output / "STARTER.md"
    if not starter.exists():
        starter.write_text(_STARTER.render(name=library.name), encoding="utf-8")


def _append(path: Path, text: str) -> None:
    with path.open("a", encoding="utf-8") as f:
        f.write(text)
