"""Base interface for run summary reporters.

Reporters render the outcome of a publishing run (JSON for downstream
workflow steps, Markdown for job summaries).
"""

from abc import ABC, abstractmethod
from pathlib import Path

from preview_publisher.pipeline import PipelineResult


class BaseReporter(ABC):
    """Abstract base class for run summary reporters."""

    @abstractmethod
    def render(self, result: PipelineResult) -> str:
        """Render a pipeline result.

        Args:
            result: Outcome of the publishing run.

        Returns:
            Rendered output as a string.
        """
        ...

    def write(self, result: PipelineResult, output_path: Path) -> None:
        """Render and write output to a file, replacing its content."""
        output_path.write_text(self.render(result), encoding="utf-8")

    def append(self, result: PipelineResult, output_path: Path) -> None:
        """Render and append output to a file.

        GitHub Actions collects job summaries by appending to the file named
        in GITHUB_STEP_SUMMARY.
        """
        with open(output_path, "a", encoding="utf-8") as f:
            f.write(self.render(result))

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Return the output format name, e.g. "markdown" or "json"."""
        ...

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Return the default file extension for this format."""
        ...
