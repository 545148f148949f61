"""Opening pull requests through the GitHub REST API."""

from __future__ import annotations

import re

import httpx
from loguru import logger

from librarian.orchestrator.errors import PublishError
from librarian.orchestrator.vcs.base import GitWorkspace

_REMOTE_RE = re.compile(r"github\.com[:/](?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$")


def parse_remote(url: str) -> tuple[str, str]:
    """Extract ``(owner, name)`` from an https or ssh GitHub remote URL."""
    match = _REMOTE_RE.search(url.strip())
    if match is None:
        raise PublishError(f"not a GitHub remote: {url}")
    return match["owner"], match["name"]


class GitHubPublisher:
    """``ReviewPublisher`` backed by ``POST /repos/{owner}/{repo}/pulls``.

    An ``httpx.AsyncClient`` may be injected; otherwise one is created per call.
    """

    def __init__(
        self,
        token: str,
        *,
        api_url: str = "https://api.github.com",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._http_client = http_client

    async def open_review_request(self, repo: GitWorkspace, branch: str, title: str, body: str = "") -> str:
        owner, name = parse_remote(await repo.remote_url())
        base = await repo.current_branch()
        if base == "HEAD":
            base = "main"

        payload = {"title": title, "head": branch, "base": base, "body": body}
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        url = f"{self._api_url}/repos/{owner}/{name}/pulls"

        client = self._http_client
        own_client = client is None
        if client is None:
            client = httpx.AsyncClient(timeout=30.0)
        try:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PublishError(f"failed to open pull request for {owner}/{name}:{branch}: {exc}") from exc
        finally:
            if own_client:
                await client.aclose()

        html_url = response.json().get("html_url", "")
        logger.info("Opened pull request {}", html_url or f"{owner}/{name}:{branch}")
        return html_url
