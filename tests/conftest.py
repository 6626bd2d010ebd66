"""Pytest configuration and fixtures."""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

import pytest

from preview_publisher.branches import BaseBranchOracle
from preview_publisher.errors import ConflictError, RegistryError
from preview_publisher.models import PackageDescriptor, PublishedVersionRecord
from preview_publisher.registry.base import BaseRegistry


class InMemoryRegistry(BaseRegistry):
    """Registry double holding versions and dist-tags in memory.

    Attributes:
        versions: package name -> version -> publish time.
        dist_tags: package name -> tag -> version.
        published_manifest_versions: Version field of package.json observed
            at each publish call.
        racing_versions: Versions that a concurrent run publishes between
            the existence check and our publish call.
        failing_deletes: Versions whose deletion fails.
    """

    def __init__(self) -> None:
        self.versions: dict[str, dict[str, datetime]] = {}
        self.dist_tags: dict[str, dict[str, str]] = {}
        self.published_manifest_versions: list[str] = []
        self.racing_versions: set[str] = set()
        self.failing_deletes: set[str] = set()
        self.fail_listing = False
        self.fail_publish: Optional[Exception] = None
        self.deleted: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "memory"

    def add_version(
        self,
        package_name: str,
        version: str,
        published_at: datetime,
        tags: tuple[str, ...] = (),
    ) -> None:
        self.versions.setdefault(package_name, {})[version] = published_at
        for tag in tags:
            self.dist_tags.setdefault(package_name, {})[tag] = version

    def tags_for(self, package_name: str, version: str) -> set[str]:
        return {
            tag
            for tag, tagged in self.dist_tags.get(package_name, {}).items()
            if tagged == version
        }

    async def version_exists(self, package_name: str, version: str) -> bool:
        return version in self.versions.get(package_name, {})

    async def list_versions(self, package_name: str) -> list[PublishedVersionRecord]:
        if self.fail_listing:
            raise RegistryError("registry unavailable")
        return [
            PublishedVersionRecord(
                version=version,
                published_at=published_at,
                tags=frozenset(self.tags_for(package_name, version)),
            )
            for version, published_at in self.versions.get(package_name, {}).items()
        ]

    async def publish(self, package_dir: Path, version: str, tag: str) -> None:
        manifest = json.loads((package_dir / "package.json").read_text())
        self.published_manifest_versions.append(manifest["version"])
        name = manifest["name"]

        if self.fail_publish is not None:
            raise self.fail_publish

        if version in self.racing_versions:
            self.add_version(name, version, datetime.now(UTC), ("branch-other",))
            self.racing_versions.discard(version)

        if version in self.versions.get(name, {}):
            raise ConflictError(f"Cannot publish over existing version {version}")

        self.add_version(name, version, datetime.now(UTC), (tag,))

    async def add_tag(self, package_name: str, version: str, tag: str) -> None:
        if version not in self.versions.get(package_name, {}):
            raise RegistryError(f"{package_name}@{version} does not exist")
        self.dist_tags.setdefault(package_name, {})[tag] = version

    async def delete_version(self, package_name: str, version: str) -> None:
        if version in self.failing_deletes:
            raise RegistryError(f"Failed to delete {version}")
        del self.versions[package_name][version]
        self.deleted.append((package_name, version))


class StaticBranchOracle(BaseBranchOracle):
    """Branch oracle returning a fixed set of branches, or failing."""

    def __init__(
        self, branches: set[str], error: Optional[Exception] = None
    ) -> None:
        self.branches = branches
        self.error = error
        self.calls = 0

    async def list_branch_names(self) -> set[str]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return set(self.branches)


@pytest.fixture
def now() -> datetime:
    """Fixed decision time for retention tests."""
    return datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def make_record(now: datetime) -> Callable[..., PublishedVersionRecord]:
    """Factory for published version records of a given age in days."""

    def _make(
        version: str, age_days: float, tags: tuple[str, ...] = ()
    ) -> PublishedVersionRecord:
        return PublishedVersionRecord(
            version=version,
            published_at=now - timedelta(days=age_days),
            tags=frozenset(tags),
        )

    return _make


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., PackageDescriptor]:
    """Factory creating a package directory with package.json and dist files."""

    def _make(
        dirname: str = "widgets",
        name: str = "@acme/widgets",
        version: str = "1.0.0-in-development",
        files: Optional[dict[str, str]] = None,
        private: bool = False,
    ) -> PackageDescriptor:
        package_dir = tmp_path / "packages" / dirname
        dist_dir = package_dir / "dist"
        dist_dir.mkdir(parents=True)

        manifest = {"name": name, "version": version}
        if private:
            manifest["private"] = True
        (package_dir / "package.json").write_text(
            json.dumps(manifest, indent=2) + "\n", encoding="utf-8"
        )

        for relative_path, content in (files or {"index.js": "export {}\n"}).items():
            target = dist_dir / relative_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")

        return PackageDescriptor(
            name=name,
            path=package_dir,
            declared_version=version,
            dist_path=dist_dir,
        )

    return _make


@pytest.fixture
def registry() -> InMemoryRegistry:
    """Empty in-memory registry."""
    return InMemoryRegistry()


@pytest.fixture
def branch_oracle() -> StaticBranchOracle:
    """Oracle reporting only the main branch."""
    return StaticBranchOracle({"main"})


@pytest.fixture
def make_oracle() -> Callable[..., StaticBranchOracle]:
    """Factory for branch oracles with a given branch set or error."""
    return StaticBranchOracle
