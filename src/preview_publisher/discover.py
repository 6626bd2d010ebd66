"""Discovery of publishable packages in a monorepo packages directory."""

import logging
from pathlib import Path
from typing import Optional

from preview_publisher.config import DEFAULT_DIST_DIR
from preview_publisher.errors import ManifestError, ValidationError
from preview_publisher.manifests import BaseManifest, get_manifest
from preview_publisher.models import PackageDescriptor

logger = logging.getLogger(__name__)


def apply_scope(package_name: str, scope: str) -> str:
    """Replace or add the npm scope of a package name.

    Example:
        apply_scope("@old/widgets", "acme") -> "@acme/widgets"
    """
    scope = scope.lstrip("@")
    bare_name = package_name.split("/", 1)[1] if package_name.startswith("@") else package_name
    return f"@{scope}/{bare_name}"


def _describe(
    package_dir: Path,
    manifest: BaseManifest,
    scope: Optional[str],
    dist_dir: str,
) -> PackageDescriptor:
    name = manifest.read_name()
    if scope:
        scoped_name = apply_scope(name, scope)
        if scoped_name != name:
            logger.debug("Rewriting package name %s -> %s", name, scoped_name)
            manifest.write_name(scoped_name)
            name = scoped_name

    return PackageDescriptor(
        name=name,
        path=package_dir,
        declared_version=manifest.read_version(),
        dist_path=package_dir / dist_dir,
    )


def discover_packages(
    packages_dir: Path,
    package_list: Optional[list[str]] = None,
    scope: Optional[str] = None,
    dist_dir: str = DEFAULT_DIST_DIR,
) -> list[PackageDescriptor]:
    """Find the packages to publish.

    With an explicit package list, each entry names a subdirectory of
    packages_dir and must contain a manifest. Otherwise every subdirectory
    with a manifest that is not marked private is used, in name order.

    Args:
        packages_dir: Directory holding one subdirectory per package.
        package_list: Optional explicit list of package subdirectories.
        scope: Optional npm scope to enforce on package names. The manifest
            is rewritten when its name differs.
        dist_dir: Build output directory name inside each package.

    Returns:
        Descriptors of the discovered packages.

    Raises:
        ManifestError: If a listed package has no valid manifest.
        ValidationError: If auto-discovery finds no packages.
        FileNotFoundError: If packages_dir does not exist.
    """
    if package_list:
        packages = []
        for entry in package_list:
            package_dir = packages_dir / entry
            try:
                manifest = get_manifest(package_dir)
                packages.append(_describe(package_dir, manifest, scope, dist_dir))
            except ManifestError as e:
                raise ManifestError(f"Failed to read manifest for {entry}: {e}") from e
        return packages

    if not packages_dir.is_dir():
        raise FileNotFoundError(f"Packages directory not found: {packages_dir}")

    packages = []
    for package_dir in sorted(p for p in packages_dir.iterdir() if p.is_dir()):
        try:
            manifest = get_manifest(package_dir)
            if manifest.is_private():
                logger.debug("Skipping private package in %s", package_dir)
                continue
            packages.append(_describe(package_dir, manifest, scope, dist_dir))
        except ManifestError as e:
            logger.debug("Skipping %s: %s", package_dir, e)
            continue

    if not packages:
        raise ValidationError(f"No packages found in {packages_dir}")

    return packages
