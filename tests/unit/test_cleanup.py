"""Unit tests for retention cleanup against the registry."""

from datetime import datetime, timedelta

import pytest

from preview_publisher.cleanup import cleanup_old_versions, cleanup_package
from preview_publisher.errors import RegistryError
from preview_publisher.models import RetentionPolicy

PACKAGE = "@acme/widgets"


@pytest.fixture
def full_registry(registry, now: datetime):
    """Registry holding six old versions of branches that are gone."""
    for i in range(6):
        registry.add_version(
            PACKAGE,
            f"1.0.0-preview.{i:012d}",
            now - timedelta(days=100 + i),
            (f"branch-gone-{i}",),
        )
    return registry


@pytest.fixture
def policy() -> RetentionPolicy:
    return RetentionPolicy(max_versions=4, min_age_days=30)


class TestCleanupPackage:
    """Test cleanup of a single package."""

    @pytest.mark.asyncio
    async def test_deletes_oldest(self, full_registry, policy, now) -> None:
        """Test that the oldest eligible versions are deleted."""
        report = await cleanup_package(PACKAGE, full_registry, {"main"}, policy, now=now)

        assert report.deleted == [
            "1.0.0-preview.000000000005",
            "1.0.0-preview.000000000004",
            "1.0.0-preview.000000000003",
        ]
        assert report.failed == []
        assert len(full_registry.versions[PACKAGE]) == 3

    @pytest.mark.asyncio
    async def test_dry_run_deletes_nothing(self, full_registry, policy, now) -> None:
        """Test that a dry run only plans."""
        report = await cleanup_package(
            PACKAGE, full_registry, {"main"}, policy, now=now, dry_run=True
        )

        assert len(report.decision) == 3
        assert report.deleted == []
        assert full_registry.deleted == []

    @pytest.mark.asyncio
    async def test_failed_delete_does_not_stop_others(
        self, full_registry, policy, now
    ) -> None:
        """Test that deletions are independent."""
        full_registry.failing_deletes.add("1.0.0-preview.000000000004")

        report = await cleanup_package(PACKAGE, full_registry, {"main"}, policy, now=now)

        assert report.failed == ["1.0.0-preview.000000000004"]
        assert report.deleted == [
            "1.0.0-preview.000000000005",
            "1.0.0-preview.000000000003",
        ]

    @pytest.mark.asyncio
    async def test_unknown_branches_skip(self, full_registry, policy, now) -> None:
        """Test that unknown branch liveness skips cleanup."""
        report = await cleanup_package(PACKAGE, full_registry, None, policy, now=now)

        assert report.skipped
        assert full_registry.deleted == []

    @pytest.mark.asyncio
    async def test_listing_failure_skips(self, full_registry, policy, now) -> None:
        """Test that a registry listing failure skips cleanup."""
        full_registry.fail_listing = True

        report = await cleanup_package(PACKAGE, full_registry, {"main"}, policy, now=now)

        assert report.skipped
        assert "version listing failed" in report.skipped_reason
        assert full_registry.deleted == []

    @pytest.mark.asyncio
    async def test_unpublished_package(self, registry, policy, now) -> None:
        """Test that a package without versions needs no cleanup."""
        report = await cleanup_package("@acme/new", registry, {"main"}, policy, now=now)

        assert not report.skipped
        assert not report.decision
        assert report.deleted == []


class TestCleanupOldVersions:
    """Test cleanup across packages."""

    @pytest.mark.asyncio
    async def test_oracle_consulted_once(self, full_registry, policy, now, make_oracle) -> None:
        """Test one branch listing serves every package."""
        oracle = make_oracle({"main"})

        reports = await cleanup_old_versions(
            [PACKAGE, "@acme/other"], full_registry, oracle, policy, now=now
        )

        assert oracle.calls == 1
        assert [r.package_name for r in reports] == [PACKAGE, "@acme/other"]
        assert len(reports[0].deleted) == 3

    @pytest.mark.asyncio
    async def test_branch_listing_failure_never_deletes(
        self, full_registry, policy, now, make_oracle
    ) -> None:
        """Test that a failed branch listing skips cleanup for all packages."""
        oracle = make_oracle(set(), error=RegistryError("GitHub API returned 500"))

        reports = await cleanup_old_versions(
            [PACKAGE], full_registry, oracle, policy, now=now
        )

        assert all(report.skipped for report in reports)
        assert full_registry.deleted == []

    @pytest.mark.asyncio
    async def test_unexpected_oracle_error_never_deletes(
        self, full_registry, policy, now, make_oracle
    ) -> None:
        """Test that any oracle exception is treated as unknown branches."""
        oracle = make_oracle(set(), error=KeyError("name"))

        reports = await cleanup_old_versions(
            [PACKAGE], full_registry, oracle, policy, now=now
        )

        assert reports[0].skipped
        assert full_registry.deleted == []
