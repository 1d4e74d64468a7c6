"""Built-in template content.

``DEFAULT_TEMPLATE_CONTENT`` renders schedules that have no template or whose
template has since been deleted. ``SYSTEM_TEMPLATES`` are seeded into storage
as read-only default templates users can pick from.
"""

from __future__ import annotations

import msgspec

DEFAULT_TEMPLATE_CONTENT = """# Automated report - {{repoName}}

Date: {{date}}
Period: {{dateRange}}
Commits: {{commitCount}}
Stats: +{{linesAdded}} / -{{linesRemoved}}

## Commits
{{commits}}
"""


class TemplateVariable(msgspec.Struct, kw_only=True, frozen=True):
    """Documented placeholder declared by a template."""

    name: str
    description: str
    example: str = ""


class SystemTemplate(msgspec.Struct, kw_only=True, frozen=True):
    """Definition of a seeded default template."""

    name: str
    description: str
    content: str
    variables: tuple[TemplateVariable, ...]


_REPO = TemplateVariable(
    name="repoName", description="Repository slug", example="acme/widgets"
)
_COUNT = TemplateVariable(
    name="commitCount", description="Number of commits", example="5"
)
_COMMITS = TemplateVariable(
    name="commits",
    description="Commit summary lines",
    example="- feat: add login (a1b2c3d)",
)
_DATE = TemplateVariable(name="date", description="Report date", example="2025-12-01")

SYSTEM_TEMPLATES: tuple[SystemTemplate, ...] = (
    SystemTemplate(
        name="Daily Standup",
        description="Daily summary of repository activity",
        content=(
            "# Daily Standup - {{date}}\n\n"
            "## Repository: {{repoName}}\n\n"
            "### Today's commits ({{commitCount}})\n\n"
            "{{commits}}\n\n"
            "---\n"
            "Generated automatically by gitreporter"
        ),
        variables=(_DATE, _REPO, _COUNT, _COMMITS),
    ),
    SystemTemplate(
        name="Weekly Review",
        description="Weekly summary of activity and contributors",
        content=(
            "# Weekly Review - {{dateRange}}\n\n"
            "## Week summary\n\n"
            "**Repository**: {{repoName}}\n"
            "**Commits**: {{commitCount}}\n"
            "**Contributors**: {{contributorCount}}\n\n"
            "### Commits this week\n\n"
            "{{commits}}\n\n"
            "### Statistics\n"
            "- Lines added: {{linesAdded}}\n"
            "- Lines removed: {{linesRemoved}}\n\n"
            "---\n"
            "Generated automatically by gitreporter"
        ),
        variables=(
            TemplateVariable(
                name="dateRange",
                description="Reporting period",
                example="2025-11-24 to 2025-12-01",
            ),
            _REPO,
            _COUNT,
            TemplateVariable(
                name="contributorCount",
                description="Number of distinct authors",
                example="3",
            ),
            _COMMITS,
            TemplateVariable(
                name="linesAdded", description="Lines added", example="150"
            ),
            TemplateVariable(
                name="linesRemoved", description="Lines removed", example="50"
            ),
        ),
    ),
    SystemTemplate(
        name="Release Notes",
        description="Changes grouped by conventional-commit type",
        content=(
            "# Release Notes - {{version}}\n\n"
            "## New features\n\n"
            "{{featCommits}}\n\n"
            "## Bug fixes\n\n"
            "{{fixCommits}}\n\n"
            "## Documentation\n\n"
            "{{docsCommits}}\n\n"
            "---\n"
            "Release date: {{date}}\n"
            "Repository: {{repoName}}"
        ),
        variables=(
            TemplateVariable(
                name="version", description="Date based version", example="2025.12.01"
            ),
            TemplateVariable(
                name="featCommits",
                description="Feature commits",
                example="- feat: add dashboard (a1b2c3d)",
            ),
            TemplateVariable(
                name="fixCommits",
                description="Fix commits",
                example="- fix: handle empty input (d4e5f6a)",
            ),
            TemplateVariable(
                name="docsCommits",
                description="Documentation commits",
                example="- docs: update README (b7c8d9e)",
            ),
            _DATE,
            _REPO,
        ),
    ),
)
