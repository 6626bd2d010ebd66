"""Shared aiohttp session handling for HTTP-backed clients."""

from typing import Optional

import aiohttp

DEFAULT_TIMEOUT_SECONDS = 30


class HttpClient:
    """Base class for clients that make HTTP requests.

    Manages a shared aiohttp.ClientSession for connection pooling and reuse,
    authenticated with an optional bearer token.

    Attributes:
        token: Optional bearer token sent with every request.
        timeout: Total timeout per request, in seconds.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the HttpClient.

        Args:
            token: Optional bearer token.
            timeout: Total timeout per request, in seconds.
        """
        self.token = token
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    def _default_headers(self) -> dict[str, str]:
        """Return headers sent with every request.

        Subclasses can extend this to add content negotiation headers.
        """
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session.

        Returns:
            The shared aiohttp ClientSession.
        """
        if self._session is None or self._session.closed:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> aiohttp.ClientSession:
        """Create a new aiohttp.ClientSession.

        Returns:
            A new aiohttp.ClientSession instance.
        """
        return aiohttp.ClientSession(
            headers=self._default_headers(),
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )

    async def close(self) -> None:
        """Close the aiohttp session.

        Should be called when done using the client to release resources.
        """
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
