"""Placeholder substitution for report templates.

Templates reference context fields as ``{{fieldName}}``. Rendering is pure:
unknown fields are left exactly as written and an unterminated ``{{`` is
emitted literally together with a :class:`RenderWarning`, so a template
mistake never prevents a scheduled report from being sent.
"""

from __future__ import annotations

import enum
import re
import typing as typ

import msgspec

from gitreporter.source.models import CommitRecord

if typ.TYPE_CHECKING:
    from gitreporter.rendering.context import ContextValue, RenderContext

_OPEN = "{{"
_CLOSE = "}}"
_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RenderWarningCode(enum.StrEnum):
    """Machine readable render warning identifiers."""

    UNTERMINATED_PLACEHOLDER = "unterminated-placeholder"


class RenderWarning(msgspec.Struct, kw_only=True, frozen=True):
    """Structured warning attached to a run when a template is malformed."""

    code: RenderWarningCode
    message: str
    offset: int


class RenderResult(msgspec.Struct, kw_only=True, frozen=True):
    """Rendered text and any warnings raised while producing it."""

    text: str
    warnings: tuple[RenderWarning, ...] = ()


def format_commit_lines(commits: typ.Iterable[CommitRecord]) -> str:
    """Render commits as ``- {summary} ({short sha})`` lines."""
    return "\n".join(f"- {commit.summary} ({commit.short_sha})" for commit in commits)


def _format_value(value: ContextValue) -> str:
    if isinstance(value, tuple):
        return format_commit_lines(
            commit for commit in value if isinstance(commit, CommitRecord)
        )
    return str(value)


def _iter_placeholders(
    content: str,
) -> typ.Iterator[tuple[int, int, str | None]]:
    """Yield ``(start, end, inner)`` for each ``{{`` in ``content``.

    ``inner`` is ``None`` for an opener with no ``}}`` before the next ``{{``;
    its span then stops at that next opener or at the end of the text.
    """
    position = 0
    while (start := content.find(_OPEN, position)) != -1:
        body = start + len(_OPEN)
        end = content.find(_CLOSE, body)
        reopen = content.find(_OPEN, body)
        if end == -1 or -1 < reopen < end:
            stop = len(content) if reopen == -1 else reopen
            yield start, stop, None
            position = stop
            continue
        yield start, end + len(_CLOSE), content[body:end]
        position = end + len(_CLOSE)


def placeholder_names(content: str) -> list[str]:
    """Return the distinct field names referenced by ``content`` in order."""
    names = (
        inner.strip()
        for _, _, inner in _iter_placeholders(content)
        if inner is not None
    )
    return list(dict.fromkeys(name for name in names if _FIELD_NAME.match(name)))


def _unterminated(offset: int) -> RenderWarning:
    return RenderWarning(
        code=RenderWarningCode.UNTERMINATED_PLACEHOLDER,
        message=f"Unterminated placeholder at offset {offset}",
        offset=offset,
    )


def render_template(content: str, context: RenderContext) -> RenderResult:
    """Substitute context fields into ``content``.

    Parameters
    ----------
    content
        Template text containing ``{{fieldName}}`` placeholders.
    context
        Values available for substitution.

    Returns
    -------
    RenderResult
        The rendered text and any structured warnings.

    Examples
    --------
    >>> result = render_template("Repo {{repoName}} {{unknown}}", context)
    >>> result.text
    'Repo acme/widgets {{unknown}}'

    """
    values = context.fields()
    pieces: list[str] = []
    warnings: list[RenderWarning] = []
    position = 0
    for start, end, inner in _iter_placeholders(content):
        pieces.append(content[position:start])
        if inner is None:
            warnings.append(_unterminated(start))
            pieces.append(content[start:end])
        elif (name := inner.strip()) in values:
            pieces.append(_format_value(values[name]))
        else:
            pieces.append(content[start:end])
        position = end

    pieces.append(content[position:])
    return RenderResult(text="".join(pieces), warnings=tuple(warnings))
