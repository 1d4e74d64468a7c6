"""Template rendering for scheduled reports.

Public API
----------
RenderContext
    Values substituted into ``{{fieldName}}`` placeholders.
build_render_context
    Derive a context from commits and the reporting window.
render_template
    Pure placeholder substitution returning text and warnings.
DEFAULT_TEMPLATE_CONTENT
    Content used when a schedule has no usable template.

"""

from gitreporter.rendering.context import (
    CONTEXT_FIELDS,
    CommitGroup,
    RenderContext,
    build_render_context,
    classify_commit,
)
from gitreporter.rendering.defaults import (
    DEFAULT_TEMPLATE_CONTENT,
    SYSTEM_TEMPLATES,
    SystemTemplate,
    TemplateVariable,
)
from gitreporter.rendering.renderer import (
    RenderResult,
    RenderWarning,
    RenderWarningCode,
    format_commit_lines,
    placeholder_names,
    render_template,
)

__all__ = [
    "CONTEXT_FIELDS",
    "DEFAULT_TEMPLATE_CONTENT",
    "SYSTEM_TEMPLATES",
    "CommitGroup",
    "RenderContext",
    "RenderResult",
    "RenderWarning",
    "RenderWarningCode",
    "SystemTemplate",
    "TemplateVariable",
    "build_render_context",
    "classify_commit",
    "format_commit_lines",
    "placeholder_names",
    "render_template",
]
