"""Run pipeline tying version resolution, cleanup and publishing together.

For each package: fingerprint the build output and resolve its preview
version, run retention cleanup once for all resolved packages, then ensure
each preview version is published and tagged. Packages are processed
sequentially and a failing package never stops its siblings.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from preview_publisher.branches import BaseBranchOracle
from preview_publisher.cleanup import cleanup_old_versions
from preview_publisher.config import DEFAULT_HASH_LENGTH
from preview_publisher.errors import PreviewPublishError
from preview_publisher.models import (
    CleanupReport,
    PackageDescriptor,
    PublishedPackage,
    ResolvedVersion,
    RetentionPolicy,
)
from preview_publisher.publish import PublishCoordinator
from preview_publisher.registry.base import BaseRegistry
from preview_publisher.versions import resolve_package

logger = logging.getLogger(__name__)

# Errors that abort a single package; anything else fails the whole run
PACKAGE_ERRORS = (PreviewPublishError, OSError)


@dataclass
class PipelineResult:
    """Outcome of a pipeline run.

    Attributes:
        resolved: Packages whose preview version was computed.
        published: Packages that now carry their branch tag.
        failures: Package name -> error message for failed packages.
        cleanup: Retention cleanup reports, one per resolved package.
    """

    resolved: list[ResolvedVersion] = field(default_factory=list)
    published: list[PublishedPackage] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    cleanup: list[CleanupReport] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class PreviewPipeline:
    """Orchestrates a preview publishing run.

    Attributes:
        registry: Registry client.
        branch_oracle: Source of live branch names for cleanup.
        policy: Retention limits.
        hash_length: Fingerprint width in hex characters.
        cleanup_enabled: Whether to run retention cleanup before publishing.
    """

    def __init__(
        self,
        registry: BaseRegistry,
        branch_oracle: BaseBranchOracle,
        policy: Optional[RetentionPolicy] = None,
        hash_length: int = DEFAULT_HASH_LENGTH,
        cleanup_enabled: bool = True,
    ) -> None:
        self.registry = registry
        self.branch_oracle = branch_oracle
        self.policy = policy or RetentionPolicy()
        self.hash_length = hash_length
        self.cleanup_enabled = cleanup_enabled
        self.coordinator = PublishCoordinator(registry)

    def resolve_all(
        self,
        packages: list[PackageDescriptor],
        branch_name: str,
        result: PipelineResult,
    ) -> list[ResolvedVersion]:
        """Resolve preview versions, recording per-package failures."""
        for package in packages:
            try:
                resolved = resolve_package(
                    package, branch_name, hash_length=self.hash_length
                )
            except PACKAGE_ERRORS as e:
                logger.error("Failed to compute version for %s: %s", package.name, e)
                result.failures[package.name] = str(e)
                continue

            logger.info(
                "%s: %s (hash: %s)",
                resolved.name,
                resolved.preview_version,
                resolved.fingerprint,
            )
            result.resolved.append(resolved)

        return result.resolved

    async def publish_all(
        self, resolved_versions: list[ResolvedVersion], result: PipelineResult
    ) -> list[PublishedPackage]:
        """Publish or tag every resolved version, recording failures."""
        for resolved in resolved_versions:
            logger.info("Processing %s...", resolved.name)
            try:
                published = await self.coordinator.publish(resolved)
            except PACKAGE_ERRORS as e:
                logger.error("Failed to publish %s: %s", resolved.name, e)
                result.failures[resolved.name] = str(e)
                continue
            result.published.append(published)

        return result.published

    async def run(
        self,
        packages: list[PackageDescriptor],
        branch_name: str,
        now: Optional[datetime] = None,
    ) -> PipelineResult:
        """Resolve, clean up and publish the given packages.

        Args:
            packages: Packages to process.
            branch_name: Branch being built.
            now: Decision time for retention. Defaults to the current time.

        Returns:
            PipelineResult with published packages and per-package failures.
        """
        result = PipelineResult()
        resolved_versions = self.resolve_all(packages, branch_name, result)

        if self.cleanup_enabled and resolved_versions:
            result.cleanup = await cleanup_old_versions(
                [resolved.name for resolved in resolved_versions],
                self.registry,
                self.branch_oracle,
                self.policy,
                now=now,
            )

        await self.publish_all(resolved_versions, result)

        logger.info(
            "Processed %d packages: %d published, %d failed",
            len(packages),
            len(result.published),
            len(result.failures),
        )
        return result
