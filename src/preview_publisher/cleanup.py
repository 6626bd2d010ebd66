"""Retention cleanup of old preview versions.

Gathers the inputs of the retention planner (registry history, live
branches), runs it, and deletes the selected versions. Failures degrade
towards deleting nothing: an unreachable branch oracle or registry skips
cleanup, and a failed deletion never stops the remaining ones.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Optional

from preview_publisher import retention
from preview_publisher.branches import BaseBranchOracle
from preview_publisher.errors import RegistryError
from preview_publisher.models import CleanupReport, RetentionPolicy
from preview_publisher.registry.base import BaseRegistry

logger = logging.getLogger(__name__)


async def fetch_live_branches(oracle: BaseBranchOracle) -> Optional[set[str]]:
    """List live branches, returning None if they cannot be determined."""
    try:
        return await oracle.list_branch_names()
    except Exception as e:
        logger.warning("Failed to fetch branches, skipping cleanup: %s", e)
        return None


async def cleanup_package(
    package_name: str,
    registry: BaseRegistry,
    live_branches: Optional[set[str]],
    policy: RetentionPolicy,
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> CleanupReport:
    """Plan and apply retention for a single package.

    Args:
        package_name: Package to clean up.
        registry: Registry client.
        live_branches: Branches currently in the repository, or None if
            unknown.
        policy: Retention limits.
        now: Decision time. Defaults to the current UTC time.
        dry_run: Plan only, without deleting anything.

    Returns:
        CleanupReport describing what was (or would be) deleted.
    """
    report = CleanupReport(package_name=package_name)

    if live_branches is None:
        report.skipped_reason = "branch list unavailable"
        return report

    try:
        history = await registry.list_versions(package_name)
    except RegistryError as e:
        logger.warning("Failed to get versions for %s, skipping cleanup: %s", package_name, e)
        report.skipped_reason = f"version listing failed: {e}"
        return report

    logger.info("%s: %d preview versions", package_name, len(history))

    decision = retention.plan(
        history,
        live_branches,
        max_versions=policy.max_versions,
        min_age_days=policy.min_age_days,
        now=now or datetime.now(UTC),
    )
    report.decision = decision

    if not decision:
        logger.info("%s: no cleanup needed", package_name)
        return report

    logger.info(
        "%s: %d deletion candidates, deleting %d",
        package_name,
        decision.candidate_count,
        len(decision),
    )

    for candidate in decision.deletions:
        if dry_run:
            logger.info(
                "Would delete %s@%s (%d days old)",
                package_name,
                candidate.version,
                int(candidate.age_days),
            )
            continue

        logger.info(
            "Deleting %s@%s (%d days old)",
            package_name,
            candidate.version,
            int(candidate.age_days),
        )
        try:
            await registry.delete_version(package_name, candidate.version)
        except Exception as e:
            logger.warning("Failed to delete %s@%s: %s", package_name, candidate.version, e)
            report.failed.append(candidate.version)
        else:
            report.deleted.append(candidate.version)

    return report


async def cleanup_old_versions(
    package_names: Iterable[str],
    registry: BaseRegistry,
    branch_oracle: BaseBranchOracle,
    policy: RetentionPolicy,
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> list[CleanupReport]:
    """Apply retention to several packages, consulting the oracle once.

    Args:
        package_names: Packages to clean up.
        registry: Registry client.
        branch_oracle: Source of live branch names.
        policy: Retention limits.
        now: Decision time. Defaults to the current UTC time.
        dry_run: Plan only, without deleting anything.

    Returns:
        One CleanupReport per package, in input order.
    """
    logger.info(
        "Max versions: %d, min age: %d days", policy.max_versions, policy.min_age_days
    )
    live_branches = await fetch_live_branches(branch_oracle)
    now = now or datetime.now(UTC)

    reports = []
    for name in package_names:
        reports.append(
            await cleanup_package(
                name, registry, live_branches, policy, now=now, dry_run=dry_run
            )
        )
    return reports
