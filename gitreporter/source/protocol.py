"""Port for commit data sources consumed by the scheduler."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt

    from gitreporter.source.models import CommitRecord


@typ.runtime_checkable
class CommitSource(typ.Protocol):
    """Fetch commits for a repository within a time window."""

    async def fetch_commits(
        self,
        source_repo: str,
        *,
        since: dt.datetime,
        until: dt.datetime | None = None,
    ) -> list[CommitRecord]:
        """Return commits newer than ``since``, newest first.

        Raises
        ------
        SourceUnavailableError
            If the source cannot be reached or rejects the request.

        """
        ...
