# barakah/core/health.py
"""
Health check module for the Barakah gateway.
Backend connectivity, service worker state and sync state in one report.
"""

import time
from typing import Dict, Any

from barakah.core.database import db_manager
from barakah.integrations.offline_cache.worker import get_service_worker
from barakah.integrations.cloud_sync.sync_coordinator import get_sync_coordinator

__all__ = [
    'check_database',
    'check_service_worker',
    'check_sync',
    'get_health_status',
]


# =============================================================================
# Section 1: Component Checks
# =============================================================================

async def check_database() -> Dict[str, Any]:
    """Check backend connectivity and response time."""
    start_time = time.time()
    result = await db_manager.health_check()
    result["response_time_ms"] = round((time.time() - start_time) * 1000, 2)
    return result


def check_service_worker() -> Dict[str, Any]:
    worker = get_service_worker()
    if worker is None:
        return {"status": "unhealthy", "state": "not_initialized"}
    return {
        "status": "healthy" if worker.is_active else "unhealthy",
        "state": worker.state.value,
        "cache": worker.cache_name,
    }


def check_sync() -> Dict[str, Any]:
    coordinator = get_sync_coordinator()
    if coordinator is None:
        return {"status": "unhealthy", "state": "not_initialized"}
    return {"status": "healthy", **coordinator.get_status()}


# =============================================================================
# Section 2: System Health Aggregation
# =============================================================================

async def get_health_status() -> Dict[str, Any]:
    """Get complete system health status.

    The backend being unconfigured or down degrades the gateway rather than
    failing it: offline serving keeps working without it.
    """
    start_time = time.time()

    db_status = await check_database()
    worker_status = check_service_worker()
    sync_status = check_sync()

    if worker_status["status"] != "healthy":
        overall_status = "unhealthy"
    elif db_status["status"] != "healthy" or sync_status["status"] != "healthy":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return {
        "status": overall_status,
        "timestamp": time.time(),
        "total_check_time_ms": round((time.time() - start_time) * 1000, 2),
        "services": {
            "database": db_status,
            "service_worker": worker_status,
            "sync": sync_status,
        }
    }
