"""Package manifest accessors.

This module provides readers/writers for the manifest files that declare a
package's name and version.
"""

from pathlib import Path

from preview_publisher.errors import ManifestError
from preview_publisher.manifests.base import BaseManifest
from preview_publisher.manifests.package_json import PackageJsonManifest

__all__ = [
    "BaseManifest",
    "PackageJsonManifest",
    "get_manifest",
]

# Registry of available manifest formats in priority order
_MANIFESTS: list[type[BaseManifest]] = [
    PackageJsonManifest,
]


def get_manifest(package_dir: Path) -> BaseManifest:
    """Get the manifest accessor for a package directory.

    Args:
        package_dir: Directory containing the package.

    Returns:
        Manifest accessor for the directory.

    Raises:
        ManifestError: If no supported manifest is present.
    """
    for manifest_cls in _MANIFESTS:
        if manifest_cls.can_handle(package_dir):
            return manifest_cls(package_dir)

    raise ManifestError(
        f"No manifest found in '{package_dir}'. Supported files: package.json"
    )
