"""Preview version and branch tag resolution.

A preview version is derived from the package's declared version and the
fingerprint of its build output, never from the branch name. The branch only
determines the dist-tag that points at the version.
"""

import logging
import re
from typing import Optional

from preview_publisher import hasher
from preview_publisher.config import DEFAULT_HASH_LENGTH
from preview_publisher.errors import ValidationError
from preview_publisher.models import PackageDescriptor, ResolvedVersion, VersionTarget

logger = logging.getLogger(__name__)

IN_DEVELOPMENT_SUFFIX = "-in-development"
PREVIEW_MARKER = "-preview."
BRANCH_TAG_PREFIX = "branch-"
REF_HEADS_PREFIX = "refs/heads/"

_UNSAFE_TAG_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def base_version(declared_version: str) -> str:
    """Strip pre-release information from a declared version.

    A trailing "-in-development" marker is removed first, then everything
    from the first remaining hyphen onward. "1.0.0-in-development" and
    "2.3.0-rc.1" become "1.0.0" and "2.3.0"; "0.0.1" is unchanged.

    Args:
        declared_version: Version as declared in the package manifest.

    Returns:
        The base version.

    Raises:
        ValidationError: If the declared version is empty or has no base.
    """
    if not declared_version or not declared_version.strip():
        raise ValidationError("Declared version must not be empty")

    version = declared_version.strip().removesuffix(IN_DEVELOPMENT_SUFFIX)
    base = version.split("-", 1)[0]
    if not base:
        raise ValidationError(f"No base version in '{declared_version}'")
    return base


def sanitize_branch_name(branch_name: str) -> str:
    """Replace every character outside [A-Za-z0-9_-] with "-".

    The mapping is many-to-one: "feature/x" and "feature.x" both become
    "feature-x".
    """
    return _UNSAFE_TAG_CHARS.sub("-", branch_name)


def branch_tag(branch_name: str) -> str:
    """Return the dist-tag name for a branch."""
    if not branch_name:
        raise ValidationError("Branch name must not be empty")
    return f"{BRANCH_TAG_PREFIX}{sanitize_branch_name(branch_name)}"


def branch_from_ref(ref: str) -> str:
    """Turn a git ref such as "refs/heads/feature/login" into a branch name."""
    return ref.removeprefix(REF_HEADS_PREFIX)


def is_preview_version(version: str) -> bool:
    return PREVIEW_MARKER in version


def resolve(declared_version: str, fingerprint: str, branch_name: str) -> VersionTarget:
    """Compute the preview version and branch tag for a package.

    Pure function: the preview version depends only on the declared version
    and the fingerprint, the tag only on the branch name.

    Args:
        declared_version: Version as declared in the package manifest.
        fingerprint: Content fingerprint of the build output.
        branch_name: Branch being built.

    Returns:
        The resolved VersionTarget.

    Raises:
        ValidationError: If any input is empty.
    """
    if not fingerprint:
        raise ValidationError("Fingerprint must not be empty")

    base = base_version(declared_version)
    return VersionTarget(
        base_version=base,
        preview_version=f"{base}{PREVIEW_MARKER}{fingerprint}",
        branch_tag=branch_tag(branch_name),
    )


def resolve_package(
    package: PackageDescriptor,
    branch_name: str,
    hash_length: int = DEFAULT_HASH_LENGTH,
    content_hash: Optional[str] = None,
) -> ResolvedVersion:
    """Fingerprint a package's build output and resolve its preview version.

    Args:
        package: Package to resolve.
        branch_name: Branch being built.
        hash_length: Number of hex characters kept from the digest.
        content_hash: Precomputed fingerprint; computed from
            package.dist_path when omitted.

    Returns:
        ResolvedVersion for the package.

    Raises:
        FileNotFoundError: If the package has no build output directory.
        ValidationError: If the declared version or branch name is malformed.
    """
    if content_hash is None:
        if not package.dist_path.is_dir():
            raise FileNotFoundError(
                f"Package {package.name} has no dist folder at {package.dist_path}"
            )
        content_hash = hasher.fingerprint(package.dist_path, length=hash_length)

    target = resolve(package.declared_version, content_hash, branch_name)
    logger.debug(
        "Resolved %s %s -> %s (%s)",
        package.name,
        package.declared_version,
        target.preview_version,
        target.branch_tag,
    )
    return ResolvedVersion(
        package=package,
        fingerprint=content_hash,
        preview_version=target.preview_version,
        branch_tag=target.branch_tag,
    )
