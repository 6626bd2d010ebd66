"""Configuration defaults for preview_publisher.

Runtime values are supplied through CLI options (with environment variable
fallbacks); this module only holds their defaults and parsing helpers.
"""

from typing import Optional

from preview_publisher.errors import ValidationError

DEFAULT_REGISTRY = "https://npm.pkg.github.com"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_PACKAGES_DIR = "packages"
DEFAULT_BUILD_COMMAND = "yarn build"
DEFAULT_DIST_DIR = "dist"

# Retention
DEFAULT_MAX_VERSIONS = 150
DEFAULT_MIN_AGE_DAYS = 30

# 12 hex chars = 48 bits. With 150 retained versions per package the chance
# of any collision is about 150**2 / 2**49, i.e. below 1e-10.
DEFAULT_HASH_LENGTH = 12


def parse_repository(value: str) -> tuple[str, str]:
    """Split an "owner/repo" string into its components.

    Args:
        value: Repository slug, as found in GITHUB_REPOSITORY.

    Returns:
        Tuple of (owner, repo).

    Raises:
        ValidationError: If the value is not of the form "owner/repo".
    """
    owner, sep, repo = value.strip().partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise ValidationError(
            f"Repository must be given as 'owner/repo', got '{value}'"
        )
    return owner, repo


def parse_package_list(value: Optional[str]) -> list[str]:
    """Split a comma-separated package list, dropping blank entries."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]
