"""Template management and resolution for scheduled runs.

System templates are seeded once at bootstrap and are read-only afterwards.
Owner templates are editable by their owner only. Deleting a template that
schedules still reference detaches it from those schedules; at render time a
missing template resolves to :data:`DEFAULT_TEMPLATE_CONTENT`.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

import msgspec
from sqlalchemy import or_, select, update

from gitreporter.common.time import utcnow
from gitreporter.logging import get_logger, log_info
from gitreporter.rendering.context import CONTEXT_FIELDS, build_render_context
from gitreporter.rendering.defaults import DEFAULT_TEMPLATE_CONTENT, SYSTEM_TEMPLATES
from gitreporter.rendering.renderer import placeholder_names, render_template
from gitreporter.schedules.storage import (
    ReportTemplate,
    Schedule,
    persistence_transaction,
)
from gitreporter.source.models import CommitRecord
from gitreporter.templates.errors import (
    TemplateNotFoundError,
    TemplatePermissionError,
    TemplateValidationError,
)
from gitreporter.templates.models import TemplateRecord, TemplateValidation

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import CursorResult
    from sqlalchemy.ext.asyncio import AsyncSession

    from gitreporter.rendering.defaults import TemplateVariable
    from gitreporter.rendering.renderer import RenderResult
    from gitreporter.schedules.storage import SessionFactory
    from gitreporter.templates.models import TemplateDraft, TemplatePatch

logger = get_logger(__name__)

SYSTEM_OWNER_ID = "system"

_PREVIEW_END = dt.datetime(2025, 12, 1, 9, 0, tzinfo=dt.UTC)
_PREVIEW_COMMITS: tuple[CommitRecord, ...] = (
    CommitRecord(
        sha="a1b2c3d4e5f60718293a4b5c6d7e8f9012345678",
        message="feat: add user authentication",
        author="Ada",
        date=_PREVIEW_END - dt.timedelta(hours=3),
        additions=120,
        deletions=8,
    ),
    CommitRecord(
        sha="b2c3d4e5f60718293a4b5c6d7e8f901234567890",
        message="fix: handle empty repository history",
        author="Grace",
        date=_PREVIEW_END - dt.timedelta(hours=6),
        additions=14,
        deletions=3,
    ),
    CommitRecord(
        sha="c3d4e5f60718293a4b5c6d7e8f90123456789012",
        message="docs: document cron syntax",
        author="Ada",
        date=_PREVIEW_END - dt.timedelta(hours=9),
        additions=30,
        deletions=0,
    ),
)


def validate_content(
    content: str, variables: typ.Iterable[str] = ()
) -> TemplateValidation:
    """Check template content before it is saved.

    Empty content is an error. Placeholders that are neither declared in
    ``variables`` nor known render fields produce warnings, because they will
    be left verbatim in delivered reports.
    """
    if not content.strip():
        return TemplateValidation(errors=("Template content must not be empty",))
    allowed = set(CONTEXT_FIELDS) | set(variables)
    warnings = tuple(
        f"Placeholder {{{{{name}}}}} is not a known field and will render verbatim"
        for name in placeholder_names(content)
        if name not in allowed
    )
    return TemplateValidation(warnings=warnings)


def preview_template(content: str) -> RenderResult:
    """Render ``content`` against fixed sample data."""
    context = build_render_context(
        "acme/widgets",
        _PREVIEW_COMMITS,
        window_start=_PREVIEW_END - dt.timedelta(days=1),
        window_end=_PREVIEW_END,
    )
    return render_template(content, context)


def _variables_payload(
    variables: typ.Iterable[TemplateVariable],
) -> list[dict[str, str]]:
    return [msgspec.to_builtins(variable) for variable in variables]


class TemplateService:
    """Create, edit, delete and resolve report templates."""

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        clock: typ.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Bind the service to a session factory."""
        self._session_factory = session_factory
        self._clock = clock

    async def seed_default_templates(self) -> int:
        """Insert any missing system templates; return how many were added."""
        async with persistence_transaction(
            self._session_factory, "seed templates"
        ) as session:
            existing = set(
                (
                    await session.scalars(
                        select(ReportTemplate.name).where(
                            ReportTemplate.is_default.is_(True)
                        )
                    )
                ).all()
            )
            created = 0
            for template in SYSTEM_TEMPLATES:
                if template.name in existing:
                    continue
                session.add(
                    ReportTemplate(
                        owner_id=SYSTEM_OWNER_ID,
                        name=template.name,
                        description=template.description,
                        content=template.content,
                        variables=_variables_payload(template.variables),
                        is_default=True,
                    )
                )
                created += 1
        if created:
            log_info(logger, "Seeded %d default templates", created)
        return created

    async def get(self, template_id: str) -> TemplateRecord:
        """Return a template or raise :class:`TemplateNotFoundError`."""
        async with persistence_transaction(
            self._session_factory, "template get"
        ) as session:
            row = await session.get(ReportTemplate, template_id)
            if row is None:
                raise TemplateNotFoundError(template_id)
            return TemplateRecord.from_row(row)

    async def list_for_owner(self, owner_id: str) -> list[TemplateRecord]:
        """Return system templates followed by the owner's own templates."""
        stmt = (
            select(ReportTemplate)
            .where(
                or_(
                    ReportTemplate.is_default.is_(True),
                    ReportTemplate.owner_id == owner_id,
                )
            )
            .order_by(ReportTemplate.is_default.desc(), ReportTemplate.name)
        )
        async with persistence_transaction(
            self._session_factory, "template list"
        ) as session:
            rows = (await session.scalars(stmt)).all()
            return [TemplateRecord.from_row(row) for row in rows]

    async def create(self, owner_id: str, draft: TemplateDraft) -> TemplateRecord:
        """Store a new owner template after validating it."""
        if not draft.name.strip():
            raise TemplateValidationError.empty("name")
        if not draft.content.strip():
            raise TemplateValidationError.empty("content")
        async with persistence_transaction(
            self._session_factory, "template create"
        ) as session:
            row = ReportTemplate(
                owner_id=owner_id,
                name=draft.name.strip(),
                description=draft.description,
                content=draft.content,
                variables=_variables_payload(draft.variables),
                is_default=False,
            )
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return TemplateRecord.from_row(row)

    async def update(
        self, template_id: str, owner_id: str, patch: TemplatePatch
    ) -> TemplateRecord:
        """Apply ``patch`` to an owner template.

        Raises
        ------
        TemplateNotFoundError
            If the template does not exist.
        TemplatePermissionError
            If the template is a system template or belongs to someone else.
        TemplateValidationError
            If the patch blanks the name or content.

        """
        if patch.name is not None and not patch.name.strip():
            raise TemplateValidationError.empty("name")
        if patch.content is not None and not patch.content.strip():
            raise TemplateValidationError.empty("content")
        async with persistence_transaction(
            self._session_factory, "template update"
        ) as session:
            row = await self._load_writable(session, template_id, owner_id)
            if patch.name is not None:
                row.name = patch.name.strip()
            if patch.content is not None:
                row.content = patch.content
            if patch.description is not None:
                row.description = patch.description
            if patch.variables is not None:
                row.variables = _variables_payload(patch.variables)
            row.updated_at = self._clock()
            await session.flush()
            return TemplateRecord.from_row(row)

    async def delete(self, template_id: str, owner_id: str) -> int:
        """Delete an owner template; return how many schedules were detached."""
        async with persistence_transaction(
            self._session_factory, "template delete"
        ) as session:
            row = await self._load_writable(session, template_id, owner_id)
            result = await session.execute(
                update(Schedule)
                .where(Schedule.template_id == template_id)
                .values(template_id=None)
                .execution_options(synchronize_session=False)
            )
            await session.delete(row)
            detached = typ.cast("CursorResult[typ.Any]", result).rowcount
        log_info(
            logger,
            "Deleted template %s; %d schedules fall back to the default",
            template_id,
            detached,
        )
        return detached

    async def resolve_content(self, template_id: str | None) -> str:
        """Return the content to render for a schedule's template reference."""
        if template_id is None:
            return DEFAULT_TEMPLATE_CONTENT
        async with persistence_transaction(
            self._session_factory, "template resolve"
        ) as session:
            row = await session.get(ReportTemplate, template_id)
            return DEFAULT_TEMPLATE_CONTENT if row is None else row.content

    def validate_content(
        self, content: str, variables: typ.Iterable[str] = ()
    ) -> TemplateValidation:
        """Check content before saving; see :func:`validate_content`."""
        return validate_content(content, variables)

    def preview(self, content: str) -> RenderResult:
        """Render ``content`` against sample data."""
        return preview_template(content)

    @staticmethod
    async def _load_writable(
        session: AsyncSession,
        template_id: str,
        owner_id: str,
    ) -> ReportTemplate:
        row = await session.get(ReportTemplate, template_id)
        if row is None:
            raise TemplateNotFoundError(template_id)
        if row.is_default:
            raise TemplatePermissionError.read_only_default(template_id)
        if row.owner_id != owner_id:
            raise TemplatePermissionError.not_owner(template_id, owner_id)
        return row
