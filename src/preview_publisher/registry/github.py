"""GitHub REST API client and GitHub Packages registry.

GitHub Packages speaks the npm protocol for reads and publishes, but does not
support ``npm unpublish``; versions are deleted through the REST API instead.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from preview_publisher.config import DEFAULT_GITHUB_API_URL, DEFAULT_REGISTRY
from preview_publisher.errors import RegistryError
from preview_publisher.registry.http import HttpClient
from preview_publisher.registry.npm import NpmRegistry

logger = logging.getLogger(__name__)

PER_PAGE = 100


class GitHubClient(HttpClient):
    """Minimal async client for the GitHub REST API.

    Follows Link-header pagination and retries rate-limited requests
    (403/429) honouring Retry-After, otherwise with exponential backoff.

    Attributes:
        api_url: Base URL of the GitHub API.
        max_retries: Retries allowed for a rate-limited request.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = DEFAULT_GITHUB_API_URL,
        max_retries: int = 3,
    ) -> None:
        """Initialize GitHubClient.

        Args:
            token: GitHub token. Needs read access to the repository and
                delete access to packages for cleanup.
            api_url: Base URL of the GitHub API.
            max_retries: Retries allowed for a rate-limited request.
        """
        super().__init__(token=token)
        self.api_url = api_url.rstrip("/")
        self.max_retries = max_retries

    def _default_headers(self) -> dict[str, str]:
        headers = super()._default_headers()
        headers["Accept"] = "application/vnd.github+json"
        headers["X-GitHub-Api-Version"] = "2022-11-28"
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        retry_count: int = 0,
    ) -> tuple[Any, Optional[str]]:
        """Send a request and return its JSON body and the next page URL.

        Raises:
            RegistryError: On network errors, timeouts, exhausted retries,
                any non-2xx status or a body that is not JSON.
        """
        session = await self._get_session()

        try:
            async with session.request(method, url, params=params) as response:
                if response.status in (403, 429) and retry_count < self.max_retries:
                    retry_after = response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        wait_time = int(retry_after)
                    else:
                        # Exponential backoff: 1s, 2s, 4s
                        wait_time = 2**retry_count

                    logger.debug(
                        "GitHub API rate limited on %s, retrying in %ds", url, wait_time
                    )
                    await asyncio.sleep(wait_time)
                    return await self._request(method, url, params, retry_count + 1)

                if response.status >= 300:
                    body = await response.text()
                    raise RegistryError(
                        f"GitHub API {method} {url} returned {response.status}: {body}"
                    )

                data = None
                if response.status != 204:
                    data = await response.json(content_type=None)

                next_link = response.links.get("next")
                next_url = str(next_link["url"]) if next_link else None
                return data, next_url

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RegistryError(f"Network error calling GitHub API {url}: {e!r}") from e
        except ValueError as e:
            raise RegistryError(f"Invalid JSON from GitHub API {url}: {e}") from e

    async def paginate(
        self, path: str, params: Optional[dict[str, Any]] = None
    ) -> list[Any]:
        """Collect every item of a paginated list endpoint.

        Args:
            path: API path, e.g. "/repos/octo/app/branches".
            params: Query parameters for the first page.

        Returns:
            Items from all pages, in order.
        """
        items: list[Any] = []
        url: Optional[str] = f"{self.api_url}{path}"
        page_params = {"per_page": PER_PAGE, **(params or {})}

        while url:
            data, url = await self._request("GET", url, params=page_params)
            # The next-page URL already carries the query string
            page_params = None
            if not isinstance(data, list):
                raise RegistryError(f"Expected a list from GitHub API {path}")
            items.extend(data)

        return items

    async def list_branch_names(self, owner: str, repo: str) -> set[str]:
        """Return the names of every branch in a repository."""
        branches = await self.paginate(f"/repos/{owner}/{repo}/branches")
        return {branch["name"] for branch in branches}

    def _packages_path(self, owner: str, package_name: str, owner_type: str) -> str:
        return f"/{owner_type}/{owner}/packages/npm/{package_name}/versions"

    async def list_package_versions(
        self, owner: str, package_name: str, owner_type: str = "orgs"
    ) -> list[dict[str, Any]]:
        """List every version of an npm package hosted on GitHub Packages.

        Args:
            owner: Organization or user owning the package.
            package_name: Package name without its scope.
            owner_type: "orgs" or "users".
        """
        return await self.paginate(self._packages_path(owner, package_name, owner_type))

    async def delete_package_version(
        self,
        owner: str,
        package_name: str,
        version_id: int,
        owner_type: str = "orgs",
    ) -> None:
        """Delete one package version by its GitHub id."""
        path = self._packages_path(owner, package_name, owner_type)
        await self._request("DELETE", f"{self.api_url}{path}/{version_id}")


class GitHubPackagesRegistry(NpmRegistry):
    """npm registry hosted on GitHub Packages.

    Reads, publishes and tags through the npm protocol; deletes through the
    GitHub REST API.

    Attributes:
        github: GitHub API client used for deletions.
        owner: Organization or user owning the packages.
        owner_type: "orgs" or "users".
    """

    def __init__(
        self,
        github: GitHubClient,
        owner: str,
        registry_url: str = DEFAULT_REGISTRY,
        token: Optional[str] = None,
        owner_type: str = "orgs",
        npm_executable: str = "npm",
    ) -> None:
        super().__init__(
            registry_url=registry_url, token=token, npm_executable=npm_executable
        )
        if owner_type not in ("orgs", "users"):
            raise ValueError(f"owner_type must be 'orgs' or 'users', got '{owner_type}'")
        self.github = github
        self.owner = owner
        self.owner_type = owner_type

    @property
    def name(self) -> str:
        return "GitHub Packages"

    async def delete_version(self, package_name: str, version: str) -> None:
        bare_name = package_name.split("/")[-1]
        versions = await self.github.list_package_versions(
            self.owner, bare_name, self.owner_type
        )

        match = next((v for v in versions if v.get("name") == version), None)
        if match is None:
            logger.warning("Version %s not found for %s", version, package_name)
            return

        await self.github.delete_package_version(
            self.owner, bare_name, match["id"], self.owner_type
        )
        logger.info("Deleted %s@%s", package_name, version)
