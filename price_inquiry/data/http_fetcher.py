"""
aiohttp-backed Fetcher.

Error Handling:
    - Non-2xx status: raises UpstreamUnavailableError (with status_code)
    - Network errors: raises UpstreamUnavailableError (retried upstream)
    - Decoding problems: undecodable bytes are replaced, never fatal

Deadlines are enforced by the retry controller, not here.

Usage:
    async with HttpFetcher() as fetcher:
        body = await fetcher.fetch(url, {"encoding": "gbk"})
"""

from typing import Any, Dict, Optional

import aiohttp
import structlog

from price_inquiry.data.interfaces import Fetcher
from price_inquiry.exceptions import UpstreamUnavailableError

logger = structlog.get_logger(__name__)


class HttpFetcher(Fetcher):
    """Minimal text client over a lazily created aiohttp session."""

    def __init__(self, default_headers: Optional[Dict[str, str]] = None):
        self.default_headers = dict(default_headers or {})
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        self._get_session()
        return self

    async def __aexit__(self, *args):
        """Async context manager exit."""
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self.default_headers)
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session. Safe to call multiple times."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch(self, url: str, options: Optional[Dict[str, Any]] = None) -> str:
        options = options or {}
        headers = options.get("headers") or {}
        encoding = options.get("encoding") or "utf-8"
        session = self._get_session()

        try:
            async with session.get(url, headers=headers) as response:
                if not 200 <= response.status < 300:
                    logger.debug("upstream_http_error", url=url, status=response.status)
                    raise UpstreamUnavailableError(
                        f"HTTP {response.status}: {response.reason}",
                        status_code=response.status,
                    )
                raw = await response.read()
        except aiohttp.ClientError as e:
            logger.debug("upstream_network_error", url=url, error=str(e))
            raise UpstreamUnavailableError(f"Network error: {e}") from e

        return raw.decode(encoding, errors="replace")
