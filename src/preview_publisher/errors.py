"""Exception hierarchy for preview_publisher.

Filesystem failures (missing dist folders, unreadable files) are reported
with the built-in ``OSError`` family and are not wrapped here.
"""


class PreviewPublishError(Exception):
    """Base class for all errors raised by preview_publisher."""


class ValidationError(PreviewPublishError, ValueError):
    """Malformed input to a pure function (version strings, branch names)."""


class RegistryError(PreviewPublishError):
    """A registry or source-control host request failed."""


class ConflictError(RegistryError):
    """The registry refused a publish because the version already exists.

    This is the expected outcome of two runs racing to publish the same
    content and is handled by tagging the existing version.
    """


class ManifestError(PreviewPublishError):
    """A package manifest is missing or cannot be parsed."""


class BuildError(PreviewPublishError):
    """The external build command exited unsuccessfully."""
