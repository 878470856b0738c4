# barakah/integrations/offline_cache/integration_info.py
"""
Offline Cache Module Information
Health checks and module metadata for the service worker integration.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Any

from config.settings import settings
from .cache_router import ASSET_EXTENSIONS
from .models import WorkerState
from .worker import get_service_worker

logger = logging.getLogger(__name__)

# =============================================================================
# MODULE METADATA
# =============================================================================

MODULE_NAME = "offline_cache"
MODULE_VERSION = "1.0.0"
MODULE_DESCRIPTION = "Offline-first gateway: versioned response cache, push notifications, background sync"

ENDPOINTS = {
    "health": "/offline/health",
    "status": "/offline/status",
    "caches": "/offline/caches",
    "install": "/offline/lifecycle/install",
    "activate": "/offline/lifecycle/activate",
    "push": "/offline/push",
    "notifications": "/offline/notifications",
    "notification_click": "/offline/notifications/{id}/click",
    "background_sync": "/offline/sync/{tag}",
    "clients": "/offline/clients",
    "gateway": "/{path}",
}


# =============================================================================
# HEALTH CHECK
# =============================================================================

def check_module_health() -> Dict[str, Any]:
    """
    Check whether a service worker is active and governing requests.

    Returns health status dict with:
    - healthy: bool
    - state: worker lifecycle state (or "not_initialized")
    - cache_version: the cache name requests are written to
    """
    worker = get_service_worker()

    if worker is None:
        return {
            'healthy': False,
            'state': 'not_initialized',
            'cache_version': settings.cache_version,
            'missing_components': ['service_worker'],
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

    healthy = worker.state == WorkerState.ACTIVATED
    status = {
        'healthy': healthy,
        'state': worker.state.value,
        'cache_version': worker.cache_name,
        'missing_components': [],
        'timestamp': datetime.now(timezone.utc).isoformat()
    }
    if not healthy:
        status['missing_components'].append('activated_worker')
    return status


# =============================================================================
# MODULE INFO
# =============================================================================

def get_integration_info() -> Dict[str, Any]:
    """Module metadata for documentation and debugging."""
    return {
        'module': MODULE_NAME,
        'version': MODULE_VERSION,
        'description': MODULE_DESCRIPTION,
        'endpoints': ENDPOINTS,
        'upstream_origin': settings.upstream_origin,
        'cache_version': settings.cache_version,
        'static_assets': settings.static_assets,
        'asset_extensions': list(ASSET_EXTENSIONS),
        'features': [
            'Network-first navigation with cached root fallback',
            'Cache-first static assets with background refresh',
            'Network-with-cache-fallback for everything else',
            'Backend and non-GET passthrough',
            'Versioned cache cleanup on activation',
            'RTL push notifications with tag replacement',
            'Focus-or-open window on notification click',
        ]
    }
