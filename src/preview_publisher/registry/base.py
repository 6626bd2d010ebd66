"""Base interface for package registry clients.

A registry supports publish-by-version (failing if the version exists),
multi-valued dist-tags, listing of published versions with their tags and
publish times, and deletion of a single version.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from preview_publisher.models import PublishedVersionRecord


class BaseRegistry(ABC):
    """Abstract base class for registry clients.

    All operations are async; failures are reported as RegistryError, and a
    publish of an existing version as ConflictError.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the registry name for logging, e.g. "npm"."""
        ...

    @abstractmethod
    async def version_exists(self, package_name: str, version: str) -> bool:
        """Check whether a version of a package has been published.

        Raises:
            RegistryError: If the registry cannot be queried.
        """
        ...

    @abstractmethod
    async def list_versions(self, package_name: str) -> list[PublishedVersionRecord]:
        """List published preview versions of a package.

        Returns:
            Records with their tags and publish times. Empty if the package
            has never been published.

        Raises:
            RegistryError: If the registry cannot be queried.
        """
        ...

    @abstractmethod
    async def publish(self, package_dir: Path, version: str, tag: str) -> None:
        """Publish the package in package_dir with an initial dist-tag.

        The package manifest must already carry the version being published.

        Raises:
            ConflictError: If the version already exists.
            RegistryError: If publishing fails for any other reason.
        """
        ...

    @abstractmethod
    async def add_tag(self, package_name: str, version: str, tag: str) -> None:
        """Point a dist-tag at an existing version.

        Raises:
            RegistryError: If tagging fails.
        """
        ...

    @abstractmethod
    async def delete_version(self, package_name: str, version: str) -> None:
        """Delete a single published version.

        Raises:
            RegistryError: If deletion fails.
        """
        ...
