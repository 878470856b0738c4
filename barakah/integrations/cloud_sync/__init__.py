# barakah/integrations/cloud_sync/__init__.py
"""
Cloud Sync Integration Module for the Barakah gateway
Keeps the local store and the hosted backend in step
"""

from .cloud_sync import CloudSyncService, DOMAINS
from .local_store import LocalStateStore, COLLECTIONS, AUTO_SYNC_KEY, LAST_SYNC_KEY
from .toasts import Toast, ToastNotifier
from .sync_coordinator import (
    SyncCoordinator,
    get_sync_coordinator,
    initialize_sync_coordinator,
    reset_sync_coordinator,
)
from .router import router
from .integration_info import get_integration_info, check_module_health

# Public API - what other modules can import
__all__ = [
    'CloudSyncService',
    'DOMAINS',
    'LocalStateStore',
    'COLLECTIONS',
    'AUTO_SYNC_KEY',
    'LAST_SYNC_KEY',
    'Toast',
    'ToastNotifier',
    'SyncCoordinator',
    'get_sync_coordinator',
    'initialize_sync_coordinator',
    'reset_sync_coordinator',
    'router',
    'get_integration_info',
    'check_module_health',
]

# Module metadata
__version__ = '1.0.0'
__description__ = 'Local-first sync with the hosted backend'
