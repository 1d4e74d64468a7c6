"""Commit sources feeding report rendering."""

from gitreporter.source.errors import GitHubConfigError, SourceUnavailableError
from gitreporter.source.github import GitHubCommitSource, GitHubConfig
from gitreporter.source.models import CommitRecord
from gitreporter.source.protocol import CommitSource

__all__ = [
    "CommitRecord",
    "CommitSource",
    "GitHubCommitSource",
    "GitHubConfig",
    "GitHubConfigError",
    "SourceUnavailableError",
]
