"""Base interface for package manifest accessors.

Manifests are read to discover a package's name and declared version, and
their version field is temporarily overwritten while a preview version is
published.
"""

import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)


class BaseManifest(ABC):
    """Abstract base class for package manifests.

    Attributes:
        package_dir: Directory containing the manifest file.
    """

    def __init__(self, package_dir: Path) -> None:
        """Initialize the manifest accessor.

        Args:
            package_dir: Directory containing the manifest file.
        """
        self.package_dir = package_dir

    @property
    def path(self) -> Path:
        """Return the path to the manifest file."""
        return self.package_dir / self.manifest_name

    @property
    @abstractmethod
    def manifest_name(self) -> str:
        """Return the manifest file name, e.g. "package.json"."""
        ...

    @classmethod
    @abstractmethod
    def can_handle(cls, package_dir: Path) -> bool:
        """Check if this accessor can handle the given package directory."""
        ...

    @abstractmethod
    def read_name(self) -> str:
        """Read the package name field.

        Raises:
            ManifestError: If the manifest is missing or invalid.
        """
        ...

    @abstractmethod
    def write_name(self, value: str) -> None:
        """Overwrite the package name field."""
        ...

    @abstractmethod
    def read_version(self) -> str:
        """Read the version field.

        Raises:
            ManifestError: If the manifest is missing or invalid.
        """
        ...

    @abstractmethod
    def write_version(self, value: str) -> None:
        """Overwrite the version field."""
        ...

    def is_private(self) -> bool:
        """Return True if the package must never be published."""
        return False

    @contextlib.contextmanager
    def override_version(self, version: str) -> Iterator[str]:
        """Temporarily set the version field, restoring it on every exit path.

        A failure to restore is logged rather than raised so that it never
        masks the outcome of the body; a dirty manifest is repaired by the
        next run.

        Args:
            version: Version to write for the duration of the block.

        Yields:
            The original version value.
        """
        original = self.read_version()
        self.write_version(version)
        logger.debug("Set %s version to %s (was %s)", self.path, version, original)
        try:
            yield original
        finally:
            try:
                self.write_version(original)
            except Exception as e:
                logger.warning("Failed to restore %s version: %s", self.path, e)
