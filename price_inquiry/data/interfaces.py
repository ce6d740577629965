from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class Fetcher(ABC):
    """
    Abstract Base Class for outbound text transports.

    The engine only ever needs "give me the body of this URL as text", so any
    transport (aiohttp, a recorded fixture, a test double) can be dropped in.
    """

    @abstractmethod
    async def fetch(self, url: str, options: Optional[Dict[str, Any]] = None) -> str:
        """
        Returns the decoded response body.

        Options understood by every implementation:
            headers: extra request headers
            encoding: charset used to decode the body (default utf-8)

        Raises UpstreamUnavailableError on transport failure or non-2xx status.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release transport resources. Safe to call multiple times."""
        pass
