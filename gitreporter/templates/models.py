"""Records exchanged with the template service."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt  # noqa: TC003
import typing as typ

from gitreporter.rendering.defaults import TemplateVariable

if typ.TYPE_CHECKING:
    from gitreporter.schedules.storage import ReportTemplate


@dc.dataclass(frozen=True, slots=True)
class TemplateRecord:
    """Snapshot of a stored template."""

    id: str
    owner_id: str
    name: str
    description: str | None
    content: str
    variables: tuple[TemplateVariable, ...]
    is_default: bool
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_row(cls, row: ReportTemplate) -> TemplateRecord:
        """Copy an ORM row into a detached record."""
        return cls(
            id=row.id,
            owner_id=row.owner_id,
            name=row.name,
            description=row.description,
            content=row.content,
            variables=tuple(
                TemplateVariable(
                    name=str(item.get("name", "")),
                    description=str(item.get("description", "")),
                    example=str(item.get("example", "")),
                )
                for item in row.variables or ()
            ),
            is_default=row.is_default,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


@dc.dataclass(frozen=True, slots=True)
class TemplateDraft:
    """Values for a new owner template."""

    name: str
    content: str
    description: str | None = None
    variables: tuple[TemplateVariable, ...] = ()


@dc.dataclass(frozen=True, slots=True)
class TemplatePatch:
    """Partial update to an owner template; ``None`` leaves a field as is."""

    name: str | None = None
    content: str | None = None
    description: str | None = None
    variables: tuple[TemplateVariable, ...] | None = None


@dc.dataclass(frozen=True, slots=True)
class TemplateValidation:
    """Result of checking template content before it is saved."""

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        """Return whether the content can be saved."""
        return not self.errors
