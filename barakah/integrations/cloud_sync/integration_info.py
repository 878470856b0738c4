# barakah/integrations/cloud_sync/integration_info.py
"""
Cloud Sync Module Information
Health checks and module metadata for local <-> backend reconciliation.
"""

import os
from typing import Dict, Any

from config.settings import settings
from .local_store import COLLECTIONS
from .sync_coordinator import get_sync_coordinator

MODULE_NAME = "cloud_sync"
MODULE_VERSION = "1.0.0"
MODULE_DESCRIPTION = "Last-write-wins sync of tasks, finances, appointments and locations"

ENDPOINTS = {
    "health": "/sync/health",
    "status": "/sync/status",
    "sync_now": "/sync/now",
    "pull": "/sync/pull",
    "auto": "/sync/auto",
    "toasts": "/sync/toasts",
}


def check_module_health() -> Dict[str, Any]:
    """Check cloud sync configuration and coordinator state"""
    database_available = bool(settings.database_url or os.getenv("DATABASE_URL"))
    user_configured = bool(settings.sync_user_id)
    coordinator_ready = get_sync_coordinator() is not None

    status = {
        'healthy': database_available and user_configured and coordinator_ready,
        'database_available': database_available,
        'user_configured': user_configured,
        'coordinator_ready': coordinator_ready,
        'missing_components': []
    }

    if not database_available:
        status['missing_components'].append('DATABASE_URL')
    if not user_configured:
        status['missing_components'].append('SYNC_USER_ID')
    if not coordinator_ready:
        status['missing_components'].append('sync_coordinator')

    return status


def get_integration_info() -> Dict[str, Any]:
    """Get cloud sync integration information"""
    return {
        'module': MODULE_NAME,
        'version': MODULE_VERSION,
        'description': MODULE_DESCRIPTION,
        'domains': list(COLLECTIONS) + ['finances'],
        'auto_sync_interval_seconds': settings.auto_sync_interval_seconds,
        'endpoints': ENDPOINTS,
        'features': [
            'Manual two-way sync with toast feedback',
            'Silent periodic auto-sync',
            'Pull-only restore from backend',
            'Coalesced concurrent sync requests',
            'Last-write-wins record merge',
        ]
    }
