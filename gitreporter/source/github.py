"""GitHub GraphQL implementation of :class:`CommitSource`."""

from __future__ import annotations

import dataclasses
import datetime as dt
import os
import typing as typ

import httpx

from gitreporter.common.slug import parse_repo_slug
from gitreporter.common.time import require_aware
from gitreporter.logging import get_logger, log_debug
from gitreporter.source.errors import GitHubConfigError, SourceUnavailableError
from gitreporter.source.models import CommitRecord

logger = get_logger(__name__)

_HTTP_ERROR_STATUS_THRESHOLD = 400
_PAGE_SIZE = 100
_DEFAULT_ENDPOINT = "https://api.github.com/graphql"


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubConfig:
    """Configuration for the GitHub GraphQL commit source."""

    token: str
    endpoint: str = _DEFAULT_ENDPOINT
    timeout_s: float = 20.0
    user_agent: str = "gitreporter/0.1"
    max_commits: int = 100

    @classmethod
    def from_env(cls) -> GitHubConfig:
        """Build configuration from ``GITREPORTER_GITHUB_*`` variables."""
        token = os.environ.get("GITREPORTER_GITHUB_TOKEN", "").strip()
        if not token:
            raise GitHubConfigError.missing_token()
        endpoint = os.environ.get("GITREPORTER_GITHUB_ENDPOINT", "").strip()
        return cls(token=token, endpoint=endpoint or _DEFAULT_ENDPOINT)


_HISTORY_QUERY = """
query(
  $owner: String!
  $name: String!
  $since: GitTimestamp!
  $until: GitTimestamp
  $after: String
  $first: Int!
) {
  repository(owner: $owner, name: $name) {
    defaultBranchRef {
      target {
        ... on Commit {
          history(first: $first, since: $since, until: $until, after: $after) {
            pageInfo {
              hasNextPage
              endCursor
            }
            nodes {
              oid
              message
              committedDate
              additions
              deletions
              author {
                name
                email
              }
            }
          }
        }
      }
    }
  }
}
"""


def _parse_github_datetime(value: str) -> dt.datetime:
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        msg = f"GitHub datetime missing timezone: {value}"
        raise ValueError(msg)
    return parsed.astimezone(dt.UTC)


def _author_name(author: object) -> str:
    if not isinstance(author, dict):
        return "unknown"
    for key in ("name", "email"):
        value = author.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return "unknown"


def _commit_from_node(node: dict[str, typ.Any]) -> CommitRecord:
    oid = node.get("oid")
    committed = node.get("committedDate")
    if not isinstance(oid, str) or not isinstance(committed, str):
        raise SourceUnavailableError.missing("history.nodes.oid")
    try:
        date = _parse_github_datetime(committed)
        additions = int(node.get("additions") or 0)
        deletions = int(node.get("deletions") or 0)
    except (TypeError, ValueError) as exc:
        raise SourceUnavailableError.missing(f"history.nodes[{oid}]") from exc
    return CommitRecord(
        sha=oid,
        message=str(node.get("message") or ""),
        author=_author_name(node.get("author")),
        date=date,
        additions=additions,
        deletions=deletions,
    )


def _extract_history(
    data: dict[str, typ.Any], slug: str
) -> dict[str, typ.Any] | None:
    """Return the history connection, or ``None`` for an empty repository."""
    repository = data.get("repository")
    if repository is None:
        raise SourceUnavailableError.repository_not_found(slug)
    if not isinstance(repository, dict):
        raise SourceUnavailableError.missing("repository")
    branch = repository.get("defaultBranchRef")
    if branch is None:
        return None
    target = branch.get("target") if isinstance(branch, dict) else None
    history = target.get("history") if isinstance(target, dict) else None
    if not isinstance(history, dict):
        raise SourceUnavailableError.missing("defaultBranchRef.target.history")
    return history


class GitHubCommitSource:
    """Fetch default-branch commits through the GitHub GraphQL API."""

    def __init__(
        self,
        config: GitHubConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the source with API configuration and an optional client."""
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "Authorization": f"Bearer {config.token}",
                "User-Agent": config.user_agent,
                "Accept": "application/json",
            },
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch_commits(
        self,
        source_repo: str,
        *,
        since: dt.datetime,
        until: dt.datetime | None = None,
    ) -> list[CommitRecord]:
        """Return up to ``max_commits`` commits made after ``since``."""
        try:
            owner, name = parse_repo_slug(source_repo)
        except ValueError as exc:
            raise SourceUnavailableError(str(exc)) from exc
        variables: dict[str, typ.Any] = {
            "owner": owner,
            "name": name,
            "since": require_aware(since, "since").isoformat(),
            "until": (
                None if until is None else require_aware(until, "until").isoformat()
            ),
            "after": None,
            "first": min(_PAGE_SIZE, self._config.max_commits),
        }

        commits: list[CommitRecord] = []
        while len(commits) < self._config.max_commits:
            data = await self._graphql(variables)
            history = _extract_history(data, source_repo)
            if history is None:
                break
            nodes = history.get("nodes")
            if not isinstance(nodes, list):
                raise SourceUnavailableError.missing("history.nodes")
            commits.extend(
                _commit_from_node(node) for node in nodes if isinstance(node, dict)
            )
            page_info = history.get("pageInfo")
            if not isinstance(page_info, dict) or not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")
            if not isinstance(cursor, str):
                break
            variables["after"] = cursor

        log_debug(logger, "Fetched %d commits for %s", len(commits), source_repo)
        return commits[: self._config.max_commits]

    async def _graphql(self, variables: dict[str, typ.Any]) -> dict[str, typ.Any]:
        try:
            response = await self._client.post(
                self._config.endpoint,
                json={"query": _HISTORY_QUERY, "variables": variables},
            )
        except httpx.HTTPError as exc:
            raise SourceUnavailableError.transport(exc) from exc
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise SourceUnavailableError.http_error(response.status_code)
        try:
            payload = response.json()
        except ValueError as exc:
            raise SourceUnavailableError.missing("response") from exc
        if not isinstance(payload, dict):
            raise SourceUnavailableError.missing("response")
        if payload.get("errors"):
            raise SourceUnavailableError.graphql_errors(payload["errors"])
        data = payload.get("data")
        if not isinstance(data, dict):
            raise SourceUnavailableError.missing("data")
        return data
