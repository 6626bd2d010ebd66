"""Registry clients for querying and mutating published package versions.

This module provides an npm registry client and a GitHub Packages variant
that deletes versions through the GitHub REST API.
"""

from preview_publisher.registry.base import BaseRegistry
from preview_publisher.registry.github import GitHubClient, GitHubPackagesRegistry
from preview_publisher.registry.http import HttpClient
from preview_publisher.registry.npm import NpmRegistry

__all__ = [
    "BaseRegistry",
    "GitHubClient",
    "GitHubPackagesRegistry",
    "HttpClient",
    "NpmRegistry",
]
