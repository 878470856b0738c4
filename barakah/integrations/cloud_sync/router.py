# barakah/integrations/cloud_sync/router.py
"""
Cloud Sync FastAPI Router
Manual sync, pull, auto-sync toggle, status and toast feed
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from .integration_info import check_module_health, get_integration_info
from .sync_coordinator import SyncCoordinator, get_sync_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["Cloud Sync"])


# Request/response models
class SyncResultResponse(BaseModel):
    success: bool
    message: str


class AutoSyncRequest(BaseModel):
    enabled: bool


class AutoSyncResponse(BaseModel):
    autoSyncEnabled: bool
    result: Optional[SyncResultResponse] = None


class HealthResponse(BaseModel):
    healthy: bool
    module: str
    version: str
    timestamp: str
    details: Dict[str, Any]


def _require_coordinator() -> SyncCoordinator:
    coordinator = get_sync_coordinator()
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Sync coordinator not initialized")
    return coordinator


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Cloud sync health check endpoint"""
    health_status = check_module_health()
    integration_info = get_integration_info()

    return HealthResponse(
        healthy=health_status['healthy'],
        module=integration_info['module'],
        version=integration_info['version'],
        timestamp=datetime.now().isoformat(),
        details=health_status
    )


@router.get("/status")
async def sync_status():
    """Last sync time, auto-sync flag and whether a run is in flight"""
    coordinator = _require_coordinator()
    return coordinator.get_status()


@router.post("/now", response_model=SyncResultResponse)
async def sync_now(silent: bool = False):
    """Run (or join) a two-way sync"""
    coordinator = _require_coordinator()
    try:
        result = await coordinator.sync_now(silent=silent)
    except Exception as e:
        logger.error(f"Sync endpoint failed: {e}")
        raise HTTPException(status_code=500, detail=f"Sync failed: {str(e)}")
    return SyncResultResponse(**result)


@router.post("/pull", response_model=SyncResultResponse)
async def pull_data():
    """Overwrite local data with the backend copy"""
    coordinator = _require_coordinator()
    try:
        result = await coordinator.pull_data()
    except Exception as e:
        logger.error(f"Pull endpoint failed: {e}")
        raise HTTPException(status_code=500, detail=f"Pull failed: {str(e)}")
    return SyncResultResponse(**result)


@router.post("/auto", response_model=AutoSyncResponse)
async def toggle_auto_sync(body: AutoSyncRequest):
    """Enable or disable periodic background sync"""
    coordinator = _require_coordinator()
    result = await coordinator.toggle_auto_sync(body.enabled)
    return AutoSyncResponse(
        autoSyncEnabled=coordinator.auto_sync_enabled,
        result=SyncResultResponse(**result) if result else None
    )


@router.get("/toasts")
async def recent_toasts(limit: Optional[int] = None):
    coordinator = _require_coordinator()
    return {'toasts': [t.to_dict() for t in coordinator.notifier.recent(limit)]}
