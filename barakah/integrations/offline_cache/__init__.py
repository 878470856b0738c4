# barakah/integrations/offline_cache/__init__.py
"""
Offline Cache Integration Module for the Barakah gateway
Service-worker style caching, push notifications and background sync

Usage:
    from barakah.integrations.offline_cache import initialize_service_worker

    worker = await initialize_service_worker()          # install + activate
    response = await worker.fetch(FetchRequest(url=..., mode=RequestMode.NAVIGATE))
"""

from .cache_router import CacheRouter, ASSET_EXTENSIONS
from .cache_store import CacheStorage, NamedCache
from .clients import ClientRegistry
from .fetcher import NetworkFetcher
from .models import (
    CachedResponse,
    FetchRequest,
    Notification,
    RequestMode,
    Strategy,
    WindowClient,
    WorkerState,
)
from .notification_bridge import NotificationBridge, DEFAULT_TAG, SYNC_TRANSACTIONS_TAG
from .worker import (
    ServiceWorker,
    get_service_worker,
    initialize_service_worker,
    shutdown_service_worker,
    reset_service_worker,
)
from .router import router, gateway_router
from .integration_info import get_integration_info, check_module_health

# Public API - what other modules can import
__all__ = [
    'CacheRouter',
    'ASSET_EXTENSIONS',
    'CacheStorage',
    'NamedCache',
    'ClientRegistry',
    'NetworkFetcher',
    'CachedResponse',
    'FetchRequest',
    'Notification',
    'RequestMode',
    'Strategy',
    'WindowClient',
    'WorkerState',
    'NotificationBridge',
    'DEFAULT_TAG',
    'SYNC_TRANSACTIONS_TAG',
    'ServiceWorker',
    'get_service_worker',
    'initialize_service_worker',
    'shutdown_service_worker',
    'reset_service_worker',
    'router',
    'gateway_router',
    'get_integration_info',
    'check_module_health',
]

# Module metadata
__version__ = '1.0.0'
__description__ = 'Offline-first caching gateway with push notifications'
