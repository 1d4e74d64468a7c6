"""Build the data context substituted into report templates.

The context is derived entirely from the commit list and the reporting
window, so the same inputs always yield the same context and therefore the
same rendered text.
"""

from __future__ import annotations

import datetime as dt
import enum
import re
import typing as typ

import msgspec

from gitreporter.common.time import require_aware, resolve_timezone
from gitreporter.source.models import CommitRecord  # noqa: TC001

type ContextValue = str | int | tuple[CommitRecord, ...]

_TYPE_TOKEN = re.compile(r"^\s*([a-z]+)")


class CommitGroup(enum.StrEnum):
    """Conventional-commit buckets exposed to templates."""

    FEAT = "feat"
    FIX = "fix"
    DOCS = "docs"
    OTHERS = "others"


_GROUP_ALIASES: dict[str, CommitGroup] = {
    "feat": CommitGroup.FEAT,
    "feature": CommitGroup.FEAT,
    "fix": CommitGroup.FIX,
    "bug": CommitGroup.FIX,
    "docs": CommitGroup.DOCS,
    "doc": CommitGroup.DOCS,
}


def classify_commit(message: str) -> CommitGroup:
    """Return the group for a commit message's leading type token.

    Examples
    --------
    >>> classify_commit("feat(api): add pagination")
    <CommitGroup.FEAT: 'feat'>
    >>> classify_commit("Bump dependencies")
    <CommitGroup.OTHERS: 'others'>

    """
    match = _TYPE_TOKEN.match(message.lower())
    if match is None:
        return CommitGroup.OTHERS
    return _GROUP_ALIASES.get(match.group(1), CommitGroup.OTHERS)


class RenderContext(msgspec.Struct, kw_only=True, frozen=True):
    """Values available to template placeholders."""

    repo_name: str
    commits: tuple[CommitRecord, ...]
    date: str
    date_range: str
    version: str
    author: str
    contributor_count: int
    lines_added: int
    lines_removed: int

    def grouped(self, group: CommitGroup) -> tuple[CommitRecord, ...]:
        """Return the commits whose message falls into ``group``."""
        return tuple(
            commit
            for commit in self.commits
            if classify_commit(commit.message) == group
        )

    def fields(self) -> dict[str, ContextValue]:
        """Return the placeholder name to value mapping."""
        return {
            "repoName": self.repo_name,
            "commits": self.commits,
            "commitCount": len(self.commits),
            "date": self.date,
            "dateRange": self.date_range,
            "author": self.author,
            "contributorCount": self.contributor_count,
            "linesAdded": self.lines_added,
            "linesRemoved": self.lines_removed,
            "featCommits": self.grouped(CommitGroup.FEAT),
            "fixCommits": self.grouped(CommitGroup.FIX),
            "docsCommits": self.grouped(CommitGroup.DOCS),
            "othersCommits": self.grouped(CommitGroup.OTHERS),
            "version": self.version,
        }


CONTEXT_FIELDS: tuple[str, ...] = (
    "repoName",
    "commits",
    "commitCount",
    "date",
    "dateRange",
    "author",
    "contributorCount",
    "linesAdded",
    "linesRemoved",
    "featCommits",
    "fixCommits",
    "docsCommits",
    "othersCommits",
    "version",
)


def _distinct_authors(commits: typ.Iterable[CommitRecord]) -> list[str]:
    return list(dict.fromkeys(commit.author for commit in commits))


def build_render_context(
    repo_name: str,
    commits: typ.Sequence[CommitRecord],
    *,
    window_start: dt.datetime,
    window_end: dt.datetime,
    tz: str | dt.tzinfo = "UTC",
) -> RenderContext:
    """Assemble a :class:`RenderContext` for one reporting window.

    Parameters
    ----------
    repo_name
        Repository slug shown in the report.
    commits
        Commits fetched for the window, in source order.
    window_start, window_end
        Aware bounds of the window; dates are formatted in ``tz``.
    tz
        Time zone used for the human readable dates.

    Returns
    -------
    RenderContext
        Context with aggregate statistics and formatted dates.

    """
    zone = resolve_timezone(tz)
    start_day = require_aware(window_start, "window_start").astimezone(zone).date()
    end_day = require_aware(window_end, "window_end").astimezone(zone).date()
    authors = _distinct_authors(commits)
    return RenderContext(
        repo_name=repo_name,
        commits=tuple(commits),
        date=end_day.isoformat(),
        date_range=f"{start_day.isoformat()} to {end_day.isoformat()}",
        version=end_day.strftime("%Y.%m.%d"),
        author=", ".join(authors),
        contributor_count=len(authors),
        lines_added=sum(commit.additions for commit in commits),
        lines_removed=sum(commit.deletions for commit in commits),
    )
