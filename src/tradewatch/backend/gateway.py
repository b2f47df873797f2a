"""HTTP gateway to the trading-bot backend via aiohttp.

Resolves the backend base address for the current host context and issues
single JSON GET requests. Failures are mapped onto the FetchError taxonomy;
nothing is retried here.
"""

import asyncio
from typing import Any

import aiohttp

from tradewatch.config import BackendSettings
from tradewatch.exceptions import DecodeError, HttpStatusError, NetworkError
from tradewatch.logging import get_logger

logger = get_logger(__name__)

_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def resolve_base_url(settings: BackendSettings, host: str | None = None) -> str:
    """Pick the backend base URL for a host context.

    Pure function of its inputs: an explicit ``base_url`` wins; otherwise a
    local hostname (or no hostname at all, as when rendering server-side)
    selects ``local_url`` and anything else selects ``deployed_url``.

    Args:
        settings: Backend settings holding the candidate URLs.
        host: Hostname the dashboard is served under. Defaults to settings.host.

    Returns:
        Base URL without a trailing slash.
    """
    if settings.base_url:
        return settings.base_url.rstrip("/")

    hostname = (settings.host if host is None else host).strip().lower()
    if not hostname or hostname in _LOCAL_HOSTS:
        return settings.local_url.rstrip("/")
    return settings.deployed_url.rstrip("/")


class BackendGateway:
    """Thin async JSON client for the backend's read-only endpoints."""

    def __init__(
        self,
        base_url: str,
        request_timeout: float = 8.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings: BackendSettings) -> "BackendGateway":
        return cls(resolve_base_url(settings), request_timeout=settings.request_timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def start(self) -> None:
        """Open the HTTP session. Must run inside the event loop."""
        self._ensure_session()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
            logger.info("backend_gateway_started", base_url=self._base_url)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this gateway created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            logger.info("backend_gateway_closed")
        self._session = None

    async def __aenter__(self) -> "BackendGateway":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def get_json(self, path: str, query: dict[str, str] | None = None) -> Any:
        """Perform one GET and return the parsed JSON body.

        Raises:
            NetworkError: Connection failure or timeout.
            HttpStatusError: Non-2xx response.
            DecodeError: Body is not valid JSON.
        """
        session = self._ensure_session()

        url = f"{self._base_url}{path}"
        try:
            async with session.get(url, params=query, timeout=self._timeout) as resp:
                if not 200 <= resp.status < 300:
                    raise HttpStatusError(resp.status, url)
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise DecodeError(f"malformed JSON from {url}: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"timeout fetching {url}") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"request to {url} failed: {e}") from e
