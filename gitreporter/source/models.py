"""Commit records returned by commit sources."""

from __future__ import annotations

import datetime as dt  # noqa: TC003

import msgspec

_SHORT_SHA_LENGTH = 7


class CommitRecord(msgspec.Struct, kw_only=True, frozen=True):
    """A single commit on a repository's default branch."""

    sha: str
    message: str
    author: str
    date: dt.datetime
    additions: int = 0
    deletions: int = 0

    @property
    def short_sha(self) -> str:
        """Return the abbreviated commit hash."""
        return self.sha[:_SHORT_SHA_LENGTH]

    @property
    def summary(self) -> str:
        """Return the first line of the commit message."""
        lines = self.message.strip().splitlines()
        return lines[0].strip() if lines else ""
