"""Retention planning for published preview versions.

Decides which preview versions of a package are safe to delete. The planner
is pure: it works on a snapshot of the registry history and the set of live
branches, and never performs I/O. See ``preview_publisher.cleanup`` for the
caller that gathers those inputs and acts on the decision.

Policy, in order:

1. Packages below ``max_versions`` are left alone.
2. Versions younger than ``min_age_days`` are never deleted.
3. A version is a candidate only if every branch referenced by its
   ``branch-`` tags is gone. Versions without branch tags are orphaned and
   always candidates.
4. Candidates are deleted oldest first, only as many as needed to get one
   slot below the ceiling.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Optional

from preview_publisher.models import (
    DeletionCandidate,
    PublishedVersionRecord,
    RetentionDecision,
)
from preview_publisher.versions import BRANCH_TAG_PREFIX

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def age_in_days(published_at: datetime, now: datetime) -> float:
    """Return the fractional number of days between publish time and now."""
    delta = _as_utc(now) - _as_utc(published_at)
    return delta.total_seconds() / SECONDS_PER_DAY


def branch_names_for_tag(tag: str) -> tuple[str, ...]:
    """Return the branch names a branch tag may have been produced from.

    Sanitization is lossy, so a tag is mapped back both literally and with
    every "-" restored to "/". Non-branch tags map to nothing.

    Example:
        "branch-feature-x" -> ("feature-x", "feature/x")
    """
    if not tag.startswith(BRANCH_TAG_PREFIX):
        return ()

    literal = tag[len(BRANCH_TAG_PREFIX) :]
    slashed = literal.replace("-", "/")
    if slashed == literal:
        return (literal,)
    return (literal, slashed)


def is_branch_live(tag: str, live_branches: set[str]) -> bool:
    """Check whether the branch behind a branch tag still exists."""
    return any(name in live_branches for name in branch_names_for_tag(tag))


def all_branches_deleted(tags: Iterable[str], live_branches: set[str]) -> bool:
    """Check whether every branch referenced by the given tags is gone.

    Tags without the branch prefix (e.g. "latest") are ignored. A version
    with no branch tags at all is orphaned and counts as deleted.
    """
    branch_tags = [tag for tag in tags if tag.startswith(BRANCH_TAG_PREFIX)]
    return not any(is_branch_live(tag, live_branches) for tag in branch_tags)


def deletion_quota(total_versions: int, max_versions: int) -> int:
    """Number of deletions needed to get one slot below the ceiling."""
    return max(0, total_versions - max_versions + 1)


def plan(
    history: Sequence[PublishedVersionRecord],
    live_branches: Optional[set[str]],
    max_versions: int,
    min_age_days: int,
    now: Optional[datetime] = None,
) -> RetentionDecision:
    """Select the preview versions of one package to delete.

    Args:
        history: Every preview version of the package, with tags and
            publish times.
        live_branches: Branch names currently in the repository. None (or
            an empty set) means branch liveness is unknown, in which case
            nothing is selected.
        max_versions: Ceiling on retained versions.
        min_age_days: Versions younger than this are never selected.
        now: Decision time. Defaults to the current UTC time.

    Returns:
        RetentionDecision with the selected versions, oldest first.
    """
    total = len(history)
    if total < max_versions:
        return RetentionDecision(total_versions=total)

    if not live_branches:
        logger.warning(
            "No live branches known; refusing to select any of %d versions "
            "for deletion",
            total,
        )
        return RetentionDecision(total_versions=total)

    now = now or datetime.now(UTC)
    candidates: list[DeletionCandidate] = []

    for record in history:
        age_days = age_in_days(record.published_at, now)

        # Age is a hard floor, not a tie-break
        if age_days < min_age_days:
            continue

        if all_branches_deleted(record.tags, live_branches):
            candidates.append(DeletionCandidate(record=record, age_days=age_days))

    candidates.sort(key=lambda c: c.age_days, reverse=True)
    selected = candidates[: deletion_quota(total, max_versions)]

    logger.debug(
        "Retention plan: %d versions, %d candidates, %d selected",
        total,
        len(candidates),
        len(selected),
    )
    return RetentionDecision(
        deletions=tuple(selected),
        total_versions=total,
        candidate_count=len(candidates),
    )
