"""Tests for external process invocation."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from librarian.orchestrator.errors import GenerationError, GitError
from librarian.orchestrator.process import run_command


async def test_returns_stdout(tmp_path: Path) -> None:
    out = await run_command([sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path)
    assert Path(out.strip()).resolve() == tmp_path.resolve()


async def test_env_is_layered() -> None:
    out = await run_command(
        [sys.executable, "-c", "import os; print(os.environ['LIBRARIAN_TEST_VALUE'], bool(os.environ.get('PATH')))"],
        env={"LIBRARIAN_TEST_VALUE": "42"},
    )
    assert out.split() == ["42", "True"]


async def test_non_zero_exit() -> None:
    with pytest.raises(GenerationError) as exc_info:
        await run_command([sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"])

    assert exc_info.value.returncode == 3
    assert exc_info.value.command[0] == sys.executable
    assert "boom" in str(exc_info.value)


async def test_missing_program() -> None:
    with pytest.raises(GenerationError, match="command not found"):
        await run_command(["librarian-definitely-not-installed"])


async def test_error_class_override() -> None:
    with pytest.raises(GitError):
        await run_command([sys.executable, "-c", "raise SystemExit(1)"], error_cls=GitError)
