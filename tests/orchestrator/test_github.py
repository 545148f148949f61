"""Unit tests for the GitHub pull request publisher."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from librarian.orchestrator.errors import PublishError
from librarian.orchestrator.vcs.base import ReviewPublisher
from librarian.orchestrator.vcs.github import GitHubPublisher, parse_remote


class _Repo:
    path = Path("/repo")

    def __init__(self, remote: str, branch: str = "main") -> None:
        self._remote = remote
        self._branch = branch

    async def remote_url(self) -> str:
        return self._remote

    async def current_branch(self) -> str:
        return self._branch


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/googleapis/google-cloud-python",
        "https://github.com/googleapis/google-cloud-python.git",
        "git@github.com:googleapis/google-cloud-python.git",
        "https://github.com/googleapis/google-cloud-python/",
    ],
)
def test_parse_remote(url: str) -> None:
    assert parse_remote(url) == ("googleapis", "google-cloud-python")


def test_parse_remote_rejects_other_hosts() -> None:
    with pytest.raises(PublishError):
        parse_remote("https://gitlab.com/googleapis/google-cloud-python")


async def test_open_review_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"html_url": "https://github.com/googleapis/google-cloud-python/pull/7"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        publisher = GitHubPublisher("t0k", api_url="https://api.github.test/", http_client=client)
        assert isinstance(publisher, ReviewPublisher)

        url = await publisher.open_review_request(
            _Repo("git@github.com:googleapis/google-cloud-python.git", branch="HEAD"),
            "librarian-20250101T000000",
            "feat: API regeneration: 20250101T000000",
        )

    assert url == "https://github.com/googleapis/google-cloud-python/pull/7"
    (request,) = seen
    assert request.method == "POST"
    assert str(request.url) == "https://api.github.test/repos/googleapis/google-cloud-python/pulls"
    assert request.headers["Authorization"] == "Bearer t0k"
    assert json.loads(request.content) == {
        "title": "feat: API regeneration: 20250101T000000",
        "head": "librarian-20250101T000000",
        "base": "main",
        "body": "",
    }


async def test_open_review_request_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "Validation Failed"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        publisher = GitHubPublisher("t0k", http_client=client)
        with pytest.raises(PublishError, match="failed to open pull request"):
            await publisher.open_review_request(_Repo("https://github.com/o/r"), "branch", "title")
