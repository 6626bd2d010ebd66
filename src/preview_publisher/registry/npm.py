"""npm registry client.

Reads package metadata (the "packument") over the registry's HTTP API and
performs mutations (publish, dist-tag, unpublish) through the npm CLI, which
handles tarball packing and registry authentication.
"""

import asyncio
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote, urlparse

import aiohttp

from preview_publisher.config import DEFAULT_REGISTRY
from preview_publisher.errors import ConflictError, RegistryError
from preview_publisher.models import PublishedVersionRecord
from preview_publisher.registry.base import BaseRegistry
from preview_publisher.registry.http import HttpClient
from preview_publisher.versions import is_preview_version

logger = logging.getLogger(__name__)

# Markers npm prints when a version already exists in the registry
CONFLICT_MARKERS = (
    "E409",
    "409 Conflict",
    "EPUBLISHCONFLICT",
    "Cannot publish over existing version",
    "cannot publish over the previously published versions",
)


def is_conflict_output(output: str) -> bool:
    """Check whether npm output reports a publish over an existing version."""
    lowered = output.lower()
    return any(marker.lower() in lowered for marker in CONFLICT_MARKERS)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_packument(
    data: dict[str, Any], now: Optional[datetime] = None
) -> list[PublishedVersionRecord]:
    """Extract preview version records from a registry packument.

    Dist-tags are inverted into per-version tag sets. A version without a
    recorded publish time is treated as published now, which keeps it out
    of retention until a real timestamp is available.

    Args:
        data: Packument JSON as returned by GET /{package}.
        now: Fallback publish time. Defaults to the current UTC time.

    Returns:
        Records for every version containing "-preview.".
    """
    now = now or datetime.now(UTC)

    versions = data.get("versions") or {}
    if isinstance(versions, str):
        versions = [versions]
    times = data.get("time") or {}
    dist_tags = data.get("dist-tags") or {}

    version_tags: dict[str, set[str]] = {}
    for tag, version in dist_tags.items():
        version_tags.setdefault(version, set()).add(tag)

    records = []
    for version in versions:
        if not is_preview_version(version):
            continue
        records.append(
            PublishedVersionRecord(
                version=version,
                published_at=_parse_timestamp(times.get(version)) or now,
                tags=frozenset(version_tags.get(version, ())),
            )
        )
    return records


class NpmRegistry(HttpClient, BaseRegistry):
    """Client for npm-compatible registries such as GitHub Packages.

    Use as an async context manager or call close() when done.

    Attributes:
        registry_url: Base URL of the registry, without trailing slash.
        npm_executable: npm binary used for mutations.
    """

    def __init__(
        self,
        registry_url: str = DEFAULT_REGISTRY,
        token: Optional[str] = None,
        npm_executable: str = "npm",
    ) -> None:
        """Initialize the npm registry client.

        Args:
            registry_url: Base URL of the registry.
            token: Registry auth token, used both as HTTP bearer token and
                as the npm CLI auth token for the registry host.
            npm_executable: npm binary used for mutations.
        """
        super().__init__(token=token)
        self.registry_url = registry_url.rstrip("/")
        self.npm_executable = npm_executable

    @property
    def name(self) -> str:
        return "npm"

    def _default_headers(self) -> dict[str, str]:
        headers = super()._default_headers()
        # Full packument, including publish times
        headers["Accept"] = "application/json"
        return headers

    def packument_url(self, package_name: str) -> str:
        """Return the metadata URL for a package ("/" in scopes is escaped)."""
        return f"{self.registry_url}/{quote(package_name, safe='@')}"

    async def _fetch_packument(self, package_name: str) -> Optional[dict[str, Any]]:
        """Fetch the packument of a package.

        Returns:
            Parsed JSON, or None if the package does not exist.

        Raises:
            RegistryError: On network errors, timeouts, unexpected statuses
                or a body that is not a JSON object.
        """
        url = self.packument_url(package_name)
        logger.debug("Fetching packument from %s", url)

        try:
            session = await self._get_session()
            async with session.get(url) as response:
                if response.status == 404:
                    return None
                if response.status != 200:
                    raise RegistryError(
                        f"Registry returned status {response.status} for {package_name}"
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RegistryError(
                f"Network error fetching {package_name} from {self.registry_url}: {e!r}"
            ) from e
        except ValueError as e:
            raise RegistryError(
                f"Invalid JSON from {self.registry_url} for {package_name}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise RegistryError(f"Unexpected packument format for {package_name}")
        return data

    async def version_exists(self, package_name: str, version: str) -> bool:
        packument = await self._fetch_packument(package_name)
        if packument is None:
            return False
        return version in (packument.get("versions") or {})

    async def list_versions(self, package_name: str) -> list[PublishedVersionRecord]:
        packument = await self._fetch_packument(package_name)
        if packument is None:
            logger.debug("Package %s not found, no versions", package_name)
            return []
        return parse_packument(packument)

    def _npm_env(self) -> dict[str, str]:
        env = dict(os.environ)
        if self.token:
            host = urlparse(self.registry_url).netloc
            env[f"NPM_CONFIG_//{host}/:_authToken"] = self.token
        return env

    async def _run_npm(self, *args: str, cwd: Optional[Path] = None) -> tuple[int, str]:
        """Run an npm command against this registry.

        Returns:
            Tuple of (exit code, combined stdout and stderr).

        Raises:
            RegistryError: If npm cannot be started.
        """
        command = [self.npm_executable, *args, f"--registry={self.registry_url}"]
        logger.debug("Running %s", " ".join(command))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd,
                env=self._npm_env(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RegistryError(f"Failed to run {self.npm_executable}: {e}") from e

        stdout, stderr = await process.communicate()
        output = stdout.decode(errors="replace") + stderr.decode(errors="replace")
        return process.returncode, output

    async def publish(self, package_dir: Path, version: str, tag: str) -> None:
        returncode, output = await self._run_npm("publish", "--tag", tag, cwd=package_dir)
        if returncode == 0:
            logger.info("Published %s as %s with tag %s", package_dir, version, tag)
            return

        if is_conflict_output(output):
            raise ConflictError(f"Version {version} already exists: {output.strip()}")
        raise RegistryError(
            f"npm publish failed for {package_dir} ({returncode}): {output.strip()}"
        )

    async def add_tag(self, package_name: str, version: str, tag: str) -> None:
        returncode, output = await self._run_npm(
            "dist-tag", "add", f"{package_name}@{version}", tag
        )
        if returncode != 0:
            raise RegistryError(
                f"Failed to add dist-tag {tag} to {package_name}@{version}: "
                f"{output.strip()}"
            )
        logger.info("Tagged %s@%s as %s", package_name, version, tag)

    async def delete_version(self, package_name: str, version: str) -> None:
        returncode, output = await self._run_npm(
            "unpublish", f"{package_name}@{version}", "--force"
        )
        if returncode != 0:
            raise RegistryError(
                f"Failed to delete {package_name}@{version}: {output.strip()}"
            )
        logger.info("Deleted %s@%s", package_name, version)
