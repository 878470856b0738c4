# barakah/integrations/offline_cache/cache_router.py
"""
Cache Router - picks a caching strategy for every intercepted request.

Decision order:
    1. non-GET                          -> passthrough (never cached)
    2. backend-as-a-service host        -> passthrough (authenticated, per-user)
    3. navigation                       -> network-first, cached page, cached root
    4. static asset extension           -> cache-first + background refresh
    5. anything else                    -> network, cache fallback

Only the single network attempt is made; failures fall back to the cache or
raise OfflineFetchError.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set
from urllib.parse import urldefrag

from ...core.exceptions import NetworkError, OfflineFetchError
from .cache_store import CacheStorage
from .models import CachedResponse, FetchRequest, RequestMode, Strategy

logger = logging.getLogger(__name__)

ASSET_EXTENSIONS = (
    '.js', '.css',
    '.png', '.jpg', '.jpeg', '.webp', '.ico', '.svg',
    '.woff', '.woff2',
)

Fetcher = Callable[[FetchRequest], Awaitable[CachedResponse]]


def cache_key(url: str) -> str:
    """Cache entries are keyed by URL without fragment."""
    return urldefrag(url).url


class CacheRouter:
    """Applies network-first / cache-first / network-with-fallback policies."""

    def __init__(
        self,
        storage: CacheStorage,
        cache_name: str,
        fetcher: Fetcher,
        origin: str,
        backend_host_marker: str = "supabase"
    ):
        self.storage = storage
        self.cache_name = cache_name
        self.fetcher = fetcher
        self.origin = origin.rstrip("/")
        self.backend_host_marker = backend_host_marker.lower()
        self._background: Set[asyncio.Task] = set()

    @property
    def root_url(self) -> str:
        return f"{self.origin}/"

    # =========================================================================
    # Classification
    # =========================================================================

    def classify(self, request: FetchRequest) -> Strategy:
        if request.method.upper() != "GET":
            return Strategy.PASSTHROUGH

        if self.backend_host_marker and self.backend_host_marker in request.hostname.lower():
            return Strategy.PASSTHROUGH

        if request.mode == RequestMode.NAVIGATE:
            return Strategy.NETWORK_FIRST

        if request.path.lower().endswith(ASSET_EXTENSIONS):
            return Strategy.CACHE_FIRST

        return Strategy.NETWORK_WITH_CACHE_FALLBACK

    async def handle(self, request: FetchRequest) -> Optional[CachedResponse]:
        """
        Answer an intercepted request.

        Returns:
            The response to serve, or None when the request is passed through
            untouched and the caller must go to the network itself.

        Raises:
            OfflineFetchError: network failed and nothing cached can stand in
        """
        strategy = self.classify(request)

        if strategy == Strategy.PASSTHROUGH:
            return None
        if strategy == Strategy.NETWORK_FIRST:
            return await self._network_first(request)
        if strategy == Strategy.CACHE_FIRST:
            return await self._cache_first(request)
        return await self._network_with_cache_fallback(request)

    # =========================================================================
    # Strategies
    # =========================================================================

    async def _network_first(self, request: FetchRequest) -> CachedResponse:
        try:
            response = await self.fetcher(request)
        except NetworkError as e:
            logger.info(f"📴 Navigation offline, serving from cache: {request.url} ({e.reason})")
            cached = await self.storage.match(cache_key(request.url))
            if cached is None:
                cached = await self.storage.match(self.root_url)
            if cached is None:
                raise OfflineFetchError(request.url) from e
            return cached

        await self._store(request, response)
        return response

    async def _cache_first(self, request: FetchRequest) -> CachedResponse:
        cached = await self.storage.match(cache_key(request.url))
        if cached is not None:
            self._refresh_in_background(request)
            return cached

        try:
            response = await self.fetcher(request)
        except NetworkError as e:
            raise OfflineFetchError(request.url) from e

        await self._store(request, response)
        return response

    async def _network_with_cache_fallback(self, request: FetchRequest) -> CachedResponse:
        try:
            response = await self.fetcher(request)
        except NetworkError as e:
            cached = await self.storage.match(cache_key(request.url))
            if cached is None:
                raise OfflineFetchError(request.url) from e
            logger.info(f"📴 Serving cached copy of {request.url}")
            return cached

        await self._store(request, response)
        return response

    # =========================================================================
    # Cache writes
    # =========================================================================

    async def _store(self, request: FetchRequest, response: CachedResponse) -> None:
        if not response.ok:
            logger.debug(f"Not caching {request.url}: HTTP {response.status}")
            return
        cache = await self.storage.open(self.cache_name)
        await cache.put(cache_key(request.url), response.clone())

    def _refresh_in_background(self, request: FetchRequest) -> None:
        task = asyncio.create_task(self._refresh(request))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _refresh(self, request: FetchRequest) -> None:
        try:
            response = await self.fetcher(request)
        except NetworkError as e:
            logger.debug(f"Background refresh skipped for {request.url}: {e.reason}")
            return
        except Exception as e:
            logger.error(f"❌ Background refresh error for {request.url}: {e}")
            return
        await self._store(request, response)

    async def wait_for_background(self) -> None:
        """Wait until every pending background refresh has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def cancel_background(self) -> None:
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
