"""Branch-liveness oracles.

An oracle reports which branches currently exist in the source repository.
Retention cleanup uses it to decide whether the branches behind a version's
tags are gone. Failures are raised, never reported as "no branches": an
empty answer would make every version look abandoned.
"""

import logging
from abc import ABC, abstractmethod

from preview_publisher.registry.github import GitHubClient

logger = logging.getLogger(__name__)


class BaseBranchOracle(ABC):
    """Abstract base class for branch-liveness oracles."""

    @abstractmethod
    async def list_branch_names(self) -> set[str]:
        """Return the names of every branch currently in the repository.

        Raises:
            RegistryError: If the branch list cannot be retrieved.
        """
        ...


class GitHubBranchOracle(BaseBranchOracle):
    """Lists branches of a GitHub repository.

    Attributes:
        client: GitHub API client.
        owner: Repository owner.
        repo: Repository name.
    """

    def __init__(self, client: GitHubClient, owner: str, repo: str) -> None:
        self.client = client
        self.owner = owner
        self.repo = repo

    async def list_branch_names(self) -> set[str]:
        branches = await self.client.list_branch_names(self.owner, self.repo)
        logger.info(
            "Found %d branches in %s/%s", len(branches), self.owner, self.repo
        )
        return branches
