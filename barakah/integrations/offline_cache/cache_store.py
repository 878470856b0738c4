# barakah/integrations/offline_cache/cache_store.py
"""
Cache Store - versioned named caches of request URL -> captured response.

Mirrors the browser Cache Storage API the worker relies on:
    storage = CacheStorage()
    cache = await storage.open("baraka-cache-v1")
    await cache.put(url, response)
    cached = await storage.match(url)

Entries are overwritten by key with no version check (last writer wins).
When a persist path is given every mutation rewrites a JSON snapshot so the
cache survives gateway restarts.
"""

import asyncio
import json
import logging
import os
from typing import Any, Callable, Awaitable, Dict, Iterable, List, Optional

from ...core.exceptions import CacheInstallError, NetworkError
from .models import CachedResponse, FetchRequest

logger = logging.getLogger(__name__)

Fetcher = Callable[[FetchRequest], Awaitable[CachedResponse]]


class NamedCache:
    """One named cache: absolute URL -> CachedResponse."""

    def __init__(self, name: str, storage: Optional['CacheStorage'] = None):
        self.name = name
        self._entries: Dict[str, CachedResponse] = {}
        self._storage = storage

    async def match(self, url: str) -> Optional[CachedResponse]:
        entry = self._entries.get(url)
        return entry.clone() if entry else None

    async def put(self, url: str, response: CachedResponse) -> None:
        self._entries[url] = response.clone()
        self._changed()

    async def delete(self, url: str) -> bool:
        removed = self._entries.pop(url, None) is not None
        if removed:
            self._changed()
        return removed

    async def keys(self) -> List[str]:
        return list(self._entries.keys())

    async def add_all(self, urls: Iterable[str], fetcher: Fetcher) -> None:
        """
        Fetch every URL and store all responses, or store nothing.

        Raises:
            CacheInstallError: a fetch failed or returned a non-2xx status
        """
        urls = list(urls)
        results = await asyncio.gather(
            *(fetcher(FetchRequest(url=url)) for url in urls),
            return_exceptions=True
        )

        failures = []
        for url, result in zip(urls, results):
            if isinstance(result, NetworkError):
                failures.append(f"{url} ({result.reason or 'network error'})")
            elif isinstance(result, BaseException):
                raise result
            elif not result.ok:
                failures.append(f"{url} (HTTP {result.status})")

        if failures:
            raise CacheInstallError(f"Failed to pre-cache: {', '.join(failures)}")

        for url, response in zip(urls, results):
            self._entries[url] = response.clone()
        self._changed()

    def __len__(self) -> int:
        return len(self._entries)

    def _changed(self) -> None:
        if self._storage is not None:
            self._storage.save()


class CacheStorage:
    """All named caches for one origin, in creation order."""

    def __init__(self, persist_path: Optional[str] = None):
        self.persist_path = persist_path
        self._caches: Dict[str, NamedCache] = {}
        if persist_path:
            self._load()

    async def open(self, name: str) -> NamedCache:
        """Open the named cache, creating it if missing."""
        if name not in self._caches:
            self._caches[name] = NamedCache(name, storage=self)
            logger.debug(f"🗃️ Created cache {name}")
            self.save()
        return self._caches[name]

    async def has(self, name: str) -> bool:
        return name in self._caches

    async def delete(self, name: str) -> bool:
        removed = self._caches.pop(name, None) is not None
        if removed:
            self.save()
        return removed

    async def keys(self) -> List[str]:
        return list(self._caches.keys())

    async def match(self, url: str, cache_name: Optional[str] = None) -> Optional[CachedResponse]:
        """First matching entry across caches (or within one named cache)."""
        if cache_name is not None:
            cache = self._caches.get(cache_name)
            return await cache.match(url) if cache else None

        for cache in self._caches.values():
            found = await cache.match(url)
            if found is not None:
                return found
        return None

    def describe(self) -> Dict[str, Any]:
        return {
            name: {'entries': len(cache), 'urls': sorted(cache._entries.keys())}
            for name, cache in self._caches.items()
        }

    # =========================================================================
    # Persistence
    # =========================================================================

    def save(self) -> None:
        """Write a JSON snapshot of every cache (no-op without persist_path)."""
        if not self.persist_path:
            return

        snapshot = {
            name: {url: response.to_dict() for url, response in cache._entries.items()}
            for name, cache in self._caches.items()
        }
        try:
            directory = os.path.dirname(self.persist_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = f"{self.persist_path}.tmp"
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(snapshot, f)
            os.replace(tmp_path, self.persist_path)
        except OSError as e:
            logger.warning(f"⚠️ Failed to persist cache storage to {self.persist_path}: {e}")

    def _load(self) -> None:
        if not os.path.exists(self.persist_path):
            return

        try:
            with open(self.persist_path, 'r', encoding='utf-8') as f:
                snapshot = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"⚠️ Ignoring unreadable cache snapshot {self.persist_path}: {e}")
            return

        if not isinstance(snapshot, dict):
            return

        for name, entries in snapshot.items():
            cache = NamedCache(name, storage=self)
            for url, raw in (entries or {}).items():
                try:
                    cache._entries[url] = CachedResponse.from_dict(raw)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"⚠️ Skipping corrupt cache entry {url}: {e}")
            self._caches[name] = cache

        logger.info(f"🗃️ Loaded {len(self._caches)} cache(s) from {self.persist_path}")
