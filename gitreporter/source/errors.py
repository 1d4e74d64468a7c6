"""Errors raised by commit sources."""

from __future__ import annotations

from gitreporter.errors import GitReporterError


class SourceUnavailableError(GitReporterError):
    """Raised when commit data cannot be fetched.

    An empty history is not an error; sources return an empty list instead.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int) -> SourceUnavailableError:
        """Return an error for non-2xx HTTP responses."""
        return cls(f"GitHub GraphQL HTTP {status_code}", status_code=status_code)

    @classmethod
    def graphql_errors(cls, errors: object) -> SourceUnavailableError:
        """Return an error for GraphQL ``errors`` payloads."""
        return cls(f"GitHub GraphQL errors: {errors}")

    @classmethod
    def transport(cls, exc: BaseException) -> SourceUnavailableError:
        """Return an error for network level failures."""
        return cls(f"GitHub request failed: {type(exc).__name__}: {exc}")

    @classmethod
    def repository_not_found(cls, slug: str) -> SourceUnavailableError:
        """Return an error when the repository does not exist or is hidden."""
        return cls(f"Repository {slug} not found or not accessible")

    @classmethod
    def missing(cls, field: str) -> SourceUnavailableError:
        """Return an error for a response missing an expected field."""
        return cls(f"GitHub GraphQL response missing expected field: {field}")


class GitHubConfigError(GitReporterError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def missing_token(cls) -> GitHubConfigError:
        """Return an error when no GitHub token is configured."""
        return cls("GITREPORTER_GITHUB_TOKEN is required for the GitHub source")
