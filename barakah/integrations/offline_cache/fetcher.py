# barakah/integrations/offline_cache/fetcher.py
"""
Network Fetcher - the single network attempt behind every caching strategy.
Wraps one shared aiohttp session; connection problems surface as NetworkError.
"""

import asyncio
import logging
from typing import Dict, Optional

import aiohttp

from ...core.exceptions import NetworkError
from .models import CachedResponse, FetchRequest

logger = logging.getLogger(__name__)

# Headers that describe the hop, not the resource
HOP_BY_HOP_HEADERS = {
    'connection', 'keep-alive', 'proxy-authenticate', 'proxy-authorization',
    'te', 'trailers', 'transfer-encoding', 'upgrade', 'host', 'content-length',
}

# aiohttp decompresses bodies, so the stored body is never encoded
STRIPPED_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | {'content-encoding'}


def _filter_headers(headers, excluded) -> Dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in excluded}


class NetworkFetcher:
    """Performs real HTTP requests for the service worker."""

    def __init__(self, timeout_seconds: float = 30.0):
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
            )
        return self._session

    async def fetch(self, request: FetchRequest) -> CachedResponse:
        """
        Perform one network attempt.

        Returns the response whatever its status; only transport failures raise.

        Raises:
            NetworkError: connection refused, DNS failure, timeout
        """
        session = await self._get_session()
        headers = _filter_headers(request.headers, HOP_BY_HOP_HEADERS | {'accept-encoding'})

        try:
            async with session.request(
                request.method,
                request.url,
                headers=headers,
                data=request.body,
                allow_redirects=True
            ) as response:
                body = await response.read()
                return CachedResponse(
                    url=request.url,
                    status=response.status,
                    headers=_filter_headers(response.headers, STRIPPED_RESPONSE_HEADERS),
                    body=body
                )

        except asyncio.TimeoutError as e:
            logger.debug(f"⏱️ Fetch timed out: {request.method} {request.url}")
            raise NetworkError(request.url, "timeout") from e
        except aiohttp.ClientError as e:
            logger.debug(f"🌐 Fetch failed: {request.method} {request.url}: {e}")
            raise NetworkError(request.url, str(e) or type(e).__name__) from e

    async def __call__(self, request: FetchRequest) -> CachedResponse:
        return await self.fetch(request)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
