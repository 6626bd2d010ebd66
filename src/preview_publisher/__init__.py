"""Preview Publisher - content-addressed preview packages for CI.

This package computes reproducible preview versions from build output,
publishes them to an npm registry tagged per branch, and retires preview
versions whose branches are gone.
"""

__version__ = "0.1.0"
__author__ = "forkrul"

from preview_publisher.models import (
    PackageDescriptor,
    PublishedPackage,
    PublishedVersionRecord,
    ResolvedVersion,
    RetentionDecision,
    RetentionPolicy,
)

__all__ = [
    "__version__",
    "PackageDescriptor",
    "PublishedPackage",
    "PublishedVersionRecord",
    "ResolvedVersion",
    "RetentionDecision",
    "RetentionPolicy",
]
