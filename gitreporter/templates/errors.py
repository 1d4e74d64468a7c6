"""Errors raised by template management."""

from __future__ import annotations

from gitreporter.errors import GitReporterError, ValidationError


class TemplateNotFoundError(GitReporterError, LookupError):
    """Raised when a template identifier does not exist."""

    def __init__(self, template_id: str) -> None:
        """Record the missing template identifier."""
        super().__init__(f"Template {template_id} not found")
        self.template_id = template_id


class TemplatePermissionError(GitReporterError, PermissionError):
    """Raised when a caller may not modify a template."""

    @classmethod
    def read_only_default(cls, template_id: str) -> TemplatePermissionError:
        """Return an error for attempts to change a system template."""
        return cls(f"Template {template_id} is a default template and is read-only")

    @classmethod
    def not_owner(cls, template_id: str, owner_id: str) -> TemplatePermissionError:
        """Return an error for attempts to change another user's template."""
        return cls(f"Template {template_id} is not owned by {owner_id}")


class TemplateValidationError(ValidationError):
    """Raised when template fields are rejected."""

    @classmethod
    def empty(cls, field: str) -> TemplateValidationError:
        """Return an error for a required field left blank."""
        return cls(f"Template {field} must not be empty")
