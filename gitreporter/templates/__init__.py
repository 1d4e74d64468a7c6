"""Report template management."""

from gitreporter.templates.errors import (
    TemplateNotFoundError,
    TemplatePermissionError,
    TemplateValidationError,
)
from gitreporter.templates.models import (
    TemplateDraft,
    TemplatePatch,
    TemplateRecord,
    TemplateValidation,
)
from gitreporter.templates.service import (
    SYSTEM_OWNER_ID,
    TemplateService,
    preview_template,
    validate_content,
)

__all__ = [
    "SYSTEM_OWNER_ID",
    "TemplateDraft",
    "TemplateNotFoundError",
    "TemplatePatch",
    "TemplatePermissionError",
    "TemplateRecord",
    "TemplateService",
    "TemplateValidation",
    "TemplateValidationError",
    "preview_template",
    "validate_content",
]
