"""Publish coordination for preview versions.

Ensures a resolved preview version exists in the registry and carries the
branch tag. Concurrent runs for different branches may race to publish the
same content; "publish, and treat a conflict as already published" makes the
race converge on a single version without any cross-process lock.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from preview_publisher.errors import ConflictError
from preview_publisher.manifests import BaseManifest, get_manifest
from preview_publisher.models import PublishedPackage, PublishResult, ResolvedVersion
from preview_publisher.registry.base import BaseRegistry

logger = logging.getLogger(__name__)


class PublishCoordinator:
    """Publishes new preview versions or tags existing ones.

    Attributes:
        registry: Registry client.
        manifest_factory: Returns the manifest accessor for a package
            directory.
    """

    def __init__(
        self,
        registry: BaseRegistry,
        manifest_factory: Callable[[Path], BaseManifest] = get_manifest,
    ) -> None:
        self.registry = registry
        self.manifest_factory = manifest_factory

    async def ensure_published(self, resolved: ResolvedVersion) -> PublishResult:
        """Make sure the preview version exists and carries the branch tag.

        Args:
            resolved: Package and its computed preview version and tag.

        Returns:
            PublishResult with created=True if this call published the
            version, False if it already existed and was only tagged.

        Raises:
            RegistryError: If the registry cannot be queried, published to
                or tagged.
            ManifestError: If the package manifest cannot be read.
        """
        name = resolved.name
        version = resolved.preview_version
        tag = resolved.branch_tag

        if await self.registry.version_exists(name, version):
            logger.info("Version %s@%s already exists", name, version)
            await self.registry.add_tag(name, version, tag)
            return PublishResult(created=False)

        logger.info("Publishing new version %s@%s", name, version)
        manifest = self.manifest_factory(resolved.package.path)
        try:
            with manifest.override_version(version):
                await self.registry.publish(resolved.package.path, version, tag)
        except ConflictError:
            # Another run published the same content since the check above
            logger.info("Version %s@%s already published, adding tag only", name, version)
            await self.registry.add_tag(name, version, tag)
            return PublishResult(created=False)

        return PublishResult(created=True)

    async def publish(self, resolved: ResolvedVersion) -> PublishedPackage:
        """Ensure a version is published and return its run output entry."""
        result = await self.ensure_published(resolved)
        return PublishedPackage(
            name=resolved.name,
            version=resolved.preview_version,
            tag=resolved.branch_tag,
            is_new=result.created,
        )
