"""Version control and code review collaborators of the update engine."""

from librarian.orchestrator.vcs.base import Commit, GitWorkspace, ReviewPublisher
from librarian.orchestrator.vcs.github import GitHubPublisher, parse_remote
from librarian.orchestrator.vcs.repo import GitRepository

__all__ = ["Commit", "GitHubPublisher", "GitRepository", "GitWorkspace", "ReviewPublisher", "parse_remote"]
