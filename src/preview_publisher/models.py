"""Core data models for preview_publisher.

This module defines the value objects passed between the hasher, the version
resolver, the retention planner and the publish coordinator. All of them are
per-run, per-package values with no shared mutable state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from preview_publisher.config import DEFAULT_MAX_VERSIONS, DEFAULT_MIN_AGE_DAYS
from preview_publisher.errors import ValidationError


@dataclass(frozen=True)
class PackageDescriptor:
    """Identity of a publishable package.

    Frozen for hashability so descriptors can key result dictionaries.

    Attributes:
        name: Registry-qualified package name (e.g., "@acme/widgets").
        path: Package directory containing the manifest.
        declared_version: Version declared in the manifest
            (e.g., "1.0.0-in-development").
        dist_path: Build output directory that is fingerprinted.
    """

    name: str
    path: Path
    declared_version: str
    dist_path: Path

    def __post_init__(self) -> None:
        if not self.name:
            raise ValidationError("Package name must not be empty")


@dataclass(frozen=True)
class VersionTarget:
    """Publish target computed from a declared version, fingerprint and branch.

    Attributes:
        base_version: Declared version with any pre-release suffix stripped.
        preview_version: "<base_version>-preview.<fingerprint>".
        branch_tag: "branch-<sanitized branch name>".
    """

    base_version: str
    preview_version: str
    branch_tag: str


@dataclass(frozen=True)
class ResolvedVersion:
    """A package descriptor together with its computed publish target."""

    package: PackageDescriptor
    fingerprint: str
    preview_version: str
    branch_tag: str

    @property
    def name(self) -> str:
        return self.package.name


@dataclass(frozen=True)
class PublishedVersionRecord:
    """A preview version as observed in the registry.

    Attributes:
        version: Published version string.
        published_at: Time the version was published.
        tags: Dist-tags currently pointing at this version. A version with
            no tags is orphaned.
    """

    version: str
    published_at: datetime
    tags: frozenset[str] = frozenset()


@dataclass(frozen=True)
class DeletionCandidate:
    """A published version eligible for deletion, with its age at decision time."""

    record: PublishedVersionRecord
    age_days: float

    @property
    def version(self) -> str:
        return self.record.version


@dataclass(frozen=True)
class RetentionDecision:
    """Versions selected for deletion for one package in one run.

    Attributes:
        deletions: Selected candidates, oldest first.
        total_versions: Number of versions in the package history.
        candidate_count: Number of versions that were eligible, including
            those left alone because the quota was already met.
    """

    deletions: tuple[DeletionCandidate, ...] = ()
    total_versions: int = 0
    candidate_count: int = 0

    @property
    def versions(self) -> list[str]:
        return [candidate.version for candidate in self.deletions]

    def __len__(self) -> int:
        return len(self.deletions)


@dataclass(frozen=True)
class RetentionPolicy:
    """Retention limits applied to every package.

    Attributes:
        max_versions: Ceiling on retained preview versions per package.
        min_age_days: Versions younger than this are never deleted.
    """

    max_versions: int = DEFAULT_MAX_VERSIONS
    min_age_days: int = DEFAULT_MIN_AGE_DAYS

    def __post_init__(self) -> None:
        if self.max_versions < 1:
            raise ValidationError("max_versions must be at least 1")
        if self.min_age_days < 0:
            raise ValidationError("min_age_days must not be negative")


@dataclass(frozen=True)
class PublishResult:
    """Outcome of ensuring a preview version exists in the registry."""

    created: bool


@dataclass(frozen=True)
class PublishedPackage:
    """Per-package entry of the run output.

    Attributes:
        name: Package name.
        version: Preview version that now carries the branch tag.
        tag: Branch tag attached to the version.
        is_new: True if the version was newly published, False if an
            existing version was tagged.
    """

    name: str
    version: str
    tag: str
    is_new: bool

    def to_dict(self) -> dict:
        """Return the JSON wire form consumed by downstream workflow steps."""
        return {
            "name": self.name,
            "version": self.version,
            "tag": self.tag,
            "isNew": self.is_new,
        }


@dataclass
class CleanupReport:
    """Result of running retention cleanup for one package.

    Attributes:
        package_name: Package that was inspected.
        decision: Planner output, or None if cleanup was skipped.
        deleted: Versions that were deleted.
        failed: Versions whose deletion failed.
        skipped_reason: Why cleanup was skipped, if it was.
    """

    package_name: str
    decision: Optional[RetentionDecision] = None
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None
