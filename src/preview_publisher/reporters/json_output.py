"""JSON reporter listing the packages published in a run."""

import json
from typing import Optional

from preview_publisher.pipeline import PipelineResult
from preview_publisher.reporters.base import BaseReporter


class JsonReporter(BaseReporter):
    """Renders published packages as a JSON array.

    Each entry has the keys "name", "version", "tag" and "isNew".

    Attributes:
        indent: Indentation passed to json.dumps; None for a single line.
    """

    def __init__(self, indent: Optional[int] = None) -> None:
        self.indent = indent

    def render(self, result: PipelineResult) -> str:
        return json.dumps(
            [package.to_dict() for package in result.published], indent=self.indent
        )

    @property
    def format_name(self) -> str:
        return "json"

    @property
    def default_extension(self) -> str:
        return ".json"
