"""Repository slug utilities.

Commit sources are addressed by GitHub-style ``owner/name`` slugs. The slug
is validated when a schedule is written so the engine never has to reject a
malformed source name mid-run.
"""

from __future__ import annotations

import re

_SEGMENT = re.compile(r"^[A-Za-z0-9_.-]+$")


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """Split ``owner/name`` into its two segments.

    Raises
    ------
    ValueError
        If the slug does not contain exactly two non-empty segments made of
        GitHub-safe characters.

    Examples
    --------
    >>> parse_repo_slug("acme/widgets")
    ('acme', 'widgets')

    """
    parts = slug.strip().split("/")
    if len(parts) != 2 or not all(_SEGMENT.match(part) for part in parts):  # noqa: PLR2004
        msg = f"Invalid repository slug: expected 'owner/name', got {slug!r}"
        raise ValueError(msg)
    return parts[0], parts[1]
