# barakah/integrations/offline_cache/worker.py
"""
Service Worker - owns every piece of worker-wide state for one cache version.

Lifecycle:  PARSED -> INSTALLING -> ACTIVATED -> SUPERSEDED
            (INSTALLING -> REDUNDANT when pre-caching fails)

    install()   open the versioned cache, pre-cache the static assets, skip waiting
    activate()  delete every cache with another name, claim open windows

A new version is brought up with initialize_service_worker(); it reuses the
previous worker's cache storage and windows so activation can clean up the
old caches, then marks the previous worker SUPERSEDED.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urljoin

from config.settings import settings
from ...core.exceptions import CacheInstallError
from ...core.safe_logger import log_summary
from .cache_router import CacheRouter, Fetcher
from .cache_store import CacheStorage
from .clients import ClientRegistry
from .fetcher import NetworkFetcher
from .models import CachedResponse, FetchRequest, Notification, WindowClient, WorkerState
from .notification_bridge import NotificationBridge, PushPayload

logger = logging.getLogger(__name__)


class ServiceWorker:
    """Coordinator for caching, notifications and background sync of one version."""

    def __init__(
        self,
        version: str,
        origin: str,
        static_assets: Iterable[str],
        storage: Optional[CacheStorage] = None,
        fetcher: Optional[Fetcher] = None,
        clients: Optional[ClientRegistry] = None,
        app_origin: Optional[str] = None,
        backend_host_marker: str = "supabase"
    ):
        self.version = version
        self.origin = origin.rstrip("/")
        self.static_assets: List[str] = list(static_assets)
        self.state = WorkerState.PARSED
        self.skip_waiting = False
        self.installed_at: Optional[str] = None
        self.activated_at: Optional[str] = None

        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or NetworkFetcher(timeout_seconds=settings.fetch_timeout_seconds)
        self.storage = storage if storage is not None else CacheStorage()
        self.clients = clients if clients is not None else ClientRegistry()

        self.router = CacheRouter(
            storage=self.storage,
            cache_name=self.cache_name,
            fetcher=self.fetcher,
            origin=self.origin,
            backend_host_marker=backend_host_marker
        )
        self.notifications = NotificationBridge(
            app_origin=app_origin or self.origin,
            clients=self.clients,
            controller_id=self.version
        )

    @property
    def cache_name(self) -> str:
        return self.version

    @property
    def static_asset_urls(self) -> List[str]:
        return [urljoin(f"{self.origin}/", path) for path in self.static_assets]

    @property
    def is_active(self) -> bool:
        return self.state == WorkerState.ACTIVATED

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def install(self) -> None:
        """
        Pre-cache the static asset list into the versioned cache.

        Raises:
            CacheInstallError: any asset failed; the worker becomes REDUNDANT
        """
        if self.state != WorkerState.PARSED:
            raise RuntimeError(f"Cannot install worker in state {self.state.value}")

        self.state = WorkerState.INSTALLING
        logger.info(f"📦 Installing service worker {self.version}: caching static assets")

        created = not await self.storage.has(self.cache_name)
        try:
            cache = await self.storage.open(self.cache_name)
            await cache.add_all(self.static_asset_urls, self.fetcher)
        except CacheInstallError as e:
            self.state = WorkerState.REDUNDANT
            # Only drop a cache this install created; a live one keeps serving
            if created:
                await self.storage.delete(self.cache_name)
            logger.error(f"❌ Install of {self.version} failed: {e}")
            raise

        self.skip_waiting = True
        self.installed_at = datetime.now(timezone.utc).isoformat()

    async def activate(self) -> Dict[str, Any]:
        """Delete stale caches and claim every open window."""
        if self.state != WorkerState.INSTALLING or not self.skip_waiting:
            raise RuntimeError(f"Cannot activate worker in state {self.state.value}")

        deleted = []
        for name in await self.storage.keys():
            if name != self.cache_name:
                logger.info(f"🗑️ Deleting old cache: {name}")
                await self.storage.delete(name)
                deleted.append(name)

        claimed = await self.clients.claim(self.version)

        self.state = WorkerState.ACTIVATED
        self.activated_at = datetime.now(timezone.utc).isoformat()

        report = {
            'cache': self.cache_name,
            'deleted_caches': deleted,
            'claimed_clients': claimed,
        }
        log_summary("Service worker activated", report, logger_name=__name__)
        return report

    async def start(self) -> Dict[str, Any]:
        """Install, then activate immediately without a waiting phase."""
        await self.install()
        return await self.activate()

    async def supersede(self) -> None:
        """Retire this worker after a newer version activated."""
        self.state = WorkerState.SUPERSEDED
        await self.router.cancel_background()
        logger.info(f"🔚 Service worker {self.version} superseded")

    async def shutdown(self) -> None:
        await self.router.cancel_background()
        if self._owns_fetcher and isinstance(self.fetcher, NetworkFetcher):
            await self.fetcher.close()

    # =========================================================================
    # Functional events
    # =========================================================================

    async def fetch(self, request: FetchRequest) -> Optional[CachedResponse]:
        """
        Fetch event. None means "not intercepted": the caller goes to the
        network directly. Only an activated worker intercepts.
        """
        if not self.is_active:
            return None
        return await self.router.handle(request)

    async def push(self, payload: PushPayload) -> Optional[Notification]:
        return await self.notifications.handle_push(payload)

    async def notification_click(self, notification_id: str) -> Optional[WindowClient]:
        return await self.notifications.handle_notification_click(notification_id)

    async def sync(self, tag: str) -> bool:
        return await self.notifications.handle_sync(tag)

    def get_status(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'state': self.state.value,
            'origin': self.origin,
            'static_assets': self.static_assets,
            'installed_at': self.installed_at,
            'activated_at': self.activated_at,
            'clients': len(self.clients),
            'open_notifications': len(self.notifications.get_notifications()),
        }


# =============================================================================
# Singleton registration
# =============================================================================

_instance: Optional[ServiceWorker] = None


def get_service_worker() -> Optional[ServiceWorker]:
    """The currently active worker, or None before initialization."""
    return _instance


async def initialize_service_worker(
    version: Optional[str] = None,
    origin: Optional[str] = None,
    static_assets: Optional[Iterable[str]] = None,
    storage: Optional[CacheStorage] = None,
    fetcher: Optional[Fetcher] = None,
    clients: Optional[ClientRegistry] = None,
    app_origin: Optional[str] = None,
    backend_host_marker: Optional[str] = None
) -> ServiceWorker:
    """
    Bring up a worker for `version` and make it the active one.

    A previous worker hands over its cache storage, windows, fetcher and any
    setting not given here, and is superseded once the new one has activated.
    If installation fails the previous worker stays in charge and the error
    propagates.
    """
    global _instance

    previous = _instance
    if previous is not None:
        storage = storage if storage is not None else previous.storage
        clients = clients if clients is not None else previous.clients
        if fetcher is None:
            fetcher = previous.fetcher
        origin = origin or previous.origin
        static_assets = static_assets if static_assets is not None else previous.static_assets
        app_origin = app_origin or previous.notifications.app_origin
        if backend_host_marker is None:
            backend_host_marker = previous.router.backend_host_marker

    worker = ServiceWorker(
        version=version or settings.cache_version,
        origin=origin or settings.upstream_origin,
        static_assets=static_assets if static_assets is not None else settings.static_assets,
        storage=storage if storage is not None else CacheStorage(settings.cache_storage_path),
        fetcher=fetcher,
        clients=clients,
        app_origin=app_origin or settings.public_origin,
        backend_host_marker=backend_host_marker if backend_host_marker is not None else settings.backend_host_marker
    )
    if previous is not None and previous._owns_fetcher:
        worker._owns_fetcher = True

    await worker.start()

    if previous is not None:
        await previous.supersede()
        previous._owns_fetcher = False

    _instance = worker
    return worker


async def shutdown_service_worker() -> None:
    if _instance is not None:
        await _instance.shutdown()


def reset_service_worker() -> None:
    """Forget the active worker (for testing)."""
    global _instance
    _instance = None
