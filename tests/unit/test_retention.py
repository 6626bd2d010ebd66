"""Unit tests for the retention planner."""

from datetime import datetime, timedelta

import pytest

from preview_publisher.models import PublishedVersionRecord
from preview_publisher.retention import (
    age_in_days,
    all_branches_deleted,
    branch_names_for_tag,
    deletion_quota,
    is_branch_live,
    plan,
)

LIVE = {"main", "feature/alive"}


class TestBranchMapping:
    """Test reverse mapping of branch tags to branch names."""

    def test_literal_and_slash_restored(self) -> None:
        """Test both candidate names are produced."""
        assert branch_names_for_tag("branch-feature-x") == ("feature-x", "feature/x")

    def test_no_hyphen_single_candidate(self) -> None:
        """Test a tag without hyphens maps to one name."""
        assert branch_names_for_tag("branch-main") == ("main",)

    def test_non_branch_tag(self) -> None:
        """Test that other tags map to nothing."""
        assert branch_names_for_tag("latest") == ()

    @pytest.mark.parametrize(
        ("live", "expected"),
        [
            (set(), False),
            ({"feature-x"}, True),
            ({"feature/x"}, True),
            ({"feature.x"}, False),
        ],
    )
    def test_is_branch_live(self, live: set[str], expected: bool) -> None:
        """Test liveness checks literal and slash-restored names only."""
        assert is_branch_live("branch-feature-x", live) is expected

    def test_orphaned_version_counts_as_deleted(self) -> None:
        """Test that a version without branch tags is treated as abandoned."""
        assert all_branches_deleted([], LIVE)
        assert all_branches_deleted(["latest"], LIVE)

    def test_any_live_branch_keeps_version(self) -> None:
        """Test that one live branch among several protects the version."""
        tags = ["branch-gone", "branch-feature-alive"]
        assert not all_branches_deleted(tags, LIVE)

    def test_all_dead_branches(self) -> None:
        """Test that a version whose branches are all gone is abandoned."""
        assert all_branches_deleted(["branch-gone", "branch-old-thing"], LIVE)


class TestQuotaAndAge:
    """Test helper arithmetic."""

    @pytest.mark.parametrize(
        ("total", "max_versions", "expected"),
        [(8, 5, 4), (5, 5, 1), (4, 5, 0), (150, 150, 1)],
    )
    def test_deletion_quota(self, total: int, max_versions: int, expected: int) -> None:
        """Test that the quota frees exactly one slot below the ceiling."""
        assert deletion_quota(total, max_versions) == expected

    def test_age_in_days_is_fractional(self, now: datetime) -> None:
        """Test fractional day computation."""
        assert age_in_days(now - timedelta(hours=36), now) == pytest.approx(1.5)

    def test_naive_timestamps_are_utc(self, now: datetime) -> None:
        """Test that naive and aware datetimes can be mixed."""
        naive = (now - timedelta(days=2)).replace(tzinfo=None)
        assert age_in_days(naive, now) == pytest.approx(2.0)


class TestPlan:
    """Test the retention policy."""

    def test_under_ceiling_deletes_nothing(self, make_record, now: datetime) -> None:
        """Test that packages below max_versions are never cleaned up."""
        history = [make_record(f"1.0.0-preview.{i:012x}", 400) for i in range(4)]

        decision = plan(history, LIVE, max_versions=5, min_age_days=30, now=now)

        assert not decision
        assert decision.versions == []
        assert decision.total_versions == 4

    def test_age_floor_is_absolute(self, make_record, now: datetime) -> None:
        """Test that young versions are never selected, even over the ceiling."""
        history = [
            make_record(f"1.0.0-preview.{i:012x}", 29.9, ("branch-gone",))
            for i in range(10)
        ]

        decision = plan(history, LIVE, max_versions=5, min_age_days=30, now=now)

        assert not decision
        assert decision.candidate_count == 0

    def test_exactly_min_age_is_eligible(self, make_record, now: datetime) -> None:
        """Test that a version exactly min_age_days old passes the floor."""
        history = [make_record("1.0.0-preview.000000000001", 30)]

        decision = plan(history, LIVE, max_versions=1, min_age_days=30, now=now)

        assert decision.versions == ["1.0.0-preview.000000000001"]

    def test_branch_liveness(self, make_record, now: datetime) -> None:
        """Test that versions with a live branch survive."""
        history = [
            make_record("1.0.0-preview.000000000001", 90, ("branch-feature-x",)),
            make_record("1.0.0-preview.000000000002", 80, ("branch-feature-x",)),
        ]

        alive_slash = plan(history, {"feature/x"}, max_versions=1, min_age_days=30, now=now)
        alive_literal = plan(history, {"feature-x"}, max_versions=1, min_age_days=30, now=now)
        dead = plan(history, {"main"}, max_versions=1, min_age_days=30, now=now)

        assert not alive_slash
        assert not alive_literal
        assert dead.candidate_count == 2

    def test_orphaned_versions_are_candidates(self, make_record, now: datetime) -> None:
        """Test that untagged versions past the age floor are eligible."""
        history = [
            make_record("1.0.0-preview.000000000001", 60),
            make_record("1.0.0-preview.000000000002", 60, ("branch-main",)),
        ]

        decision = plan(history, LIVE, max_versions=2, min_age_days=30, now=now)

        assert decision.versions == ["1.0.0-preview.000000000001"]

    def test_quota_oldest_first(self, make_record, now: datetime) -> None:
        """Test that exactly total - max + 1 of the oldest are selected."""
        ages = [45, 300, 120, 31, 200, 90, 60, 250]
        history = [
            make_record(f"1.0.0-preview.{age:012d}", age, ("branch-gone",))
            for age in ages
        ]

        decision = plan(history, LIVE, max_versions=5, min_age_days=30, now=now)

        assert len(decision) == 4
        assert decision.candidate_count == 8
        assert [round(c.age_days) for c in decision.deletions] == [300, 250, 200, 120]

    def test_partial_cleanup_when_too_few_candidates(
        self, make_record, now: datetime
    ) -> None:
        """Test that ineligible versions are never used to meet the quota."""
        history = [
            make_record("1.0.0-preview.000000000001", 100, ("branch-gone",)),
            make_record("1.0.0-preview.000000000002", 100, ("branch-main",)),
            make_record("1.0.0-preview.000000000003", 5, ("branch-gone",)),
            make_record("1.0.0-preview.000000000004", 100, ("branch-feature-alive",)),
        ]

        decision = plan(history, LIVE, max_versions=2, min_age_days=30, now=now)

        assert decision.versions == ["1.0.0-preview.000000000001"]

    @pytest.mark.parametrize("live", [None, set()])
    def test_unknown_branches_delete_nothing(
        self, make_record, now: datetime, live
    ) -> None:
        """Test that missing branch information never causes deletions."""
        history = [make_record(f"1.0.0-preview.{i:012x}", 365) for i in range(10)]

        decision = plan(history, live, max_versions=5, min_age_days=30, now=now)

        assert not decision
        assert decision.total_versions == 10

    def test_default_now(self) -> None:
        """Test that now defaults to the current time."""
        record = PublishedVersionRecord(
            version="1.0.0-preview.000000000001",
            published_at=datetime(2000, 1, 1),
        )

        decision = plan([record], {"main"}, max_versions=1, min_age_days=30)

        assert decision.versions == ["1.0.0-preview.000000000001"]
