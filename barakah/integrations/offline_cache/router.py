# barakah/integrations/offline_cache/router.py
"""
Offline Cache FastAPI Routers

router          /offline/* - worker lifecycle, caches, push, clicks, clients
gateway_router  catch-all that forwards requests to the upstream PWA origin
                through the service worker (include it last)
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from ...core.exceptions import CacheInstallError, NetworkError, OfflineFetchError
from .integration_info import check_module_health, get_integration_info
from .models import FetchRequest, RequestMode
from .worker import ServiceWorker, get_service_worker, initialize_service_worker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/offline", tags=["Offline Cache"])
gateway_router = APIRouter(tags=["Offline Gateway"])


# Request/response models
class HealthResponse(BaseModel):
    healthy: bool
    module: str
    version: str
    timestamp: str
    details: Dict[str, Any]


class InstallRequest(BaseModel):
    version: Optional[str] = None


class ClientRegisterRequest(BaseModel):
    url: str


def _require_worker() -> ServiceWorker:
    worker = get_service_worker()
    if worker is None:
        raise HTTPException(status_code=503, detail="Service worker not initialized")
    return worker


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Offline cache health check endpoint"""
    health_status = check_module_health()
    integration_info = get_integration_info()

    return HealthResponse(
        healthy=health_status['healthy'],
        module=integration_info['module'],
        version=integration_info['version'],
        timestamp=datetime.now().isoformat(),
        details={
            'state': health_status['state'],
            'cache_version': health_status['cache_version'],
            'missing_components': health_status['missing_components'],
        }
    )


@router.get("/status")
async def worker_status():
    """Lifecycle state and counters of the active worker"""
    worker = _require_worker()
    return {
        'module_info': get_integration_info(),
        'worker': worker.get_status(),
    }


@router.get("/caches")
async def list_caches():
    """Every named cache and the URLs it holds"""
    worker = _require_worker()
    return {
        'active_cache': worker.cache_name,
        'caches': worker.storage.describe(),
    }


@router.post("/lifecycle/install")
async def install_version(body: InstallRequest):
    """Install and activate a (new) cache version, superseding the current worker"""
    try:
        worker = await initialize_service_worker(version=body.version)
    except CacheInstallError as e:
        raise HTTPException(status_code=502, detail=f"Install failed: {str(e)}")
    return worker.get_status()


@router.post("/lifecycle/activate")
async def reactivate():
    """Re-run install + activate for the current version"""
    worker = _require_worker()
    try:
        fresh = await initialize_service_worker(version=worker.version)
    except CacheInstallError as e:
        raise HTTPException(status_code=502, detail=f"Activation failed: {str(e)}")
    return fresh.get_status()


@router.post("/push")
async def push_event(request: Request):
    """Deliver a push payload (raw JSON body) to the notification bridge"""
    worker = _require_worker()
    payload = await request.body()
    notification = await worker.push(payload or None)
    return {
        'shown': notification is not None,
        'notification': notification.to_dict() if notification else None,
    }


@router.get("/notifications")
async def list_notifications(tag: Optional[str] = None):
    worker = _require_worker()
    return {
        'notifications': [n.to_dict() for n in worker.notifications.get_notifications(tag)]
    }


@router.post("/notifications/{notification_id}/click")
async def notification_click(notification_id: str):
    worker = _require_worker()
    client = await worker.notification_click(notification_id)
    if client is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return {'client': client.to_dict()}


@router.post("/sync/{tag}")
async def background_sync(tag: str):
    worker = _require_worker()
    handled = await worker.sync(tag)
    return {'tag': tag, 'handled': handled}


@router.get("/clients")
async def list_clients():
    worker = _require_worker()
    return {'clients': [c.to_dict() for c in await worker.clients.match_all()]}


@router.post("/clients")
async def register_client(body: ClientRegisterRequest):
    """Register an open app window so notification clicks can focus it"""
    worker = _require_worker()
    client = worker.clients.register(body.url, controller=worker.version if worker.is_active else None)
    return {'client': client.to_dict()}


# =============================================================================
# Gateway
# =============================================================================

def _request_mode(request: Request) -> RequestMode:
    mode = request.headers.get("sec-fetch-mode")
    if mode:
        try:
            return RequestMode(mode.lower())
        except ValueError:
            return RequestMode.CORS
    if request.method == "GET" and "text/html" in request.headers.get("accept", ""):
        return RequestMode.NAVIGATE
    return RequestMode.CORS


@gateway_router.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def offline_gateway(path: str, request: Request):
    """Forward a request to the upstream origin through the service worker"""
    worker = _require_worker()

    url = f"{worker.origin}/{path}"
    if request.url.query:
        url = f"{url}?{request.url.query}"

    body = await request.body() if request.method != "GET" else None
    fetch_request = FetchRequest(
        url=url,
        method=request.method,
        mode=_request_mode(request),
        headers=dict(request.headers),
        body=body or None
    )

    try:
        response = await worker.fetch(fetch_request)
        if response is None:
            response = await worker.fetcher(fetch_request)
    except OfflineFetchError as e:
        logger.warning(f"📴 {e}")
        raise HTTPException(status_code=504, detail="Offline and no cached copy available")
    except NetworkError as e:
        logger.warning(f"🌐 Passthrough failed: {e}")
        raise HTTPException(status_code=502, detail="Upstream unreachable")

    return Response(content=response.body, status_code=response.status, headers=response.headers)
