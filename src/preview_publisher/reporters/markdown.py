"""Markdown reporter for run summaries.

This module provides a reporter that renders the outcome of a publishing run
as a Markdown table using Jinja2 templates, suitable for a CI job summary.
"""

from datetime import UTC, datetime
from importlib.resources import files
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, Template

from preview_publisher.pipeline import PipelineResult
from preview_publisher.reporters.base import BaseReporter


class MarkdownReporter(BaseReporter):
    """Reporter that renders a Markdown run summary.

    Attributes:
        template: The Jinja2 template to use for rendering.
    """

    def __init__(self, template_path: Optional[Path] = None) -> None:
        """Initialize the Markdown reporter.

        Args:
            template_path: Optional path to a custom Jinja2 template.
                If not provided, uses the default bundled template.
        """
        if template_path:
            env = Environment(
                loader=FileSystemLoader(template_path.parent),
                autoescape=False,
            )
            self.template = env.get_template(template_path.name)
        else:
            self.template = self._load_default_template()

    def _load_default_template(self) -> Template:
        """Load the default bundled Jinja2 template."""
        template_content = (
            files("preview_publisher.templates")
            .joinpath("summary.md.j2")
            .read_text(encoding="utf-8")
        )
        env = Environment(autoescape=False, trim_blocks=True, lstrip_blocks=True)
        return env.from_string(template_content)

    def render(self, result: PipelineResult) -> str:
        deleted = sum(len(report.deleted) for report in result.cleanup)
        return self.template.render(
            published=result.published,
            failures=result.failures,
            cleanup=result.cleanup,
            deleted_count=deleted,
            generated_at=datetime.now(UTC),
        )

    @property
    def format_name(self) -> str:
        return "markdown"

    @property
    def default_extension(self) -> str:
        return ".md"
