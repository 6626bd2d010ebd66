"""Output reporters for run summaries.

This module provides reporters for rendering the outcome of a publishing run
to JSON and Markdown.
"""

from preview_publisher.reporters.base import BaseReporter
from preview_publisher.reporters.json_output import JsonReporter
from preview_publisher.reporters.markdown import MarkdownReporter

__all__ = ["BaseReporter", "JsonReporter", "MarkdownReporter"]
