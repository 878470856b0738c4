#===============================================================================
# BARAKAH OFFLINE GATEWAY - MAIN APPLICATION FILE (app.py)
# Offline-first front door for the Barakah life-management PWA
#
# This FastAPI application wires together:
# - Offline cache: service-worker style caching in front of the PWA origin
# - Push notifications and notification-click window routing
# - Cloud sync: manual / periodic reconciliation with the hosted backend
# - Health endpoints
#===============================================================================

#-- Section 1: Core Imports
import os
import logging

from fastapi import FastAPI

from config.settings import settings
from barakah.core.safe_logger import init_safe_logging
from barakah.core.database import db_manager
from barakah.core.exceptions import CacheInstallError
from barakah.core.health import get_health_status

#-- Section 2: Integration Module Imports
from barakah.integrations.offline_cache import router as offline_cache_router
from barakah.integrations.offline_cache import gateway_router
from barakah.integrations.offline_cache import initialize_service_worker, shutdown_service_worker
from barakah.integrations.offline_cache import get_integration_info as offline_integration_info, check_module_health as offline_module_health

from barakah.integrations.cloud_sync import router as cloud_sync_router
from barakah.integrations.cloud_sync import CloudSyncService, initialize_sync_coordinator, get_sync_coordinator
from barakah.integrations.cloud_sync import get_integration_info as sync_integration_info, check_module_health as sync_module_health

#-- Section 3: Logging Configuration
init_safe_logging(level=settings.log_level, use_structured=settings.structured_logs)
logger = logging.getLogger(__name__)

#-- Section 4: FastAPI App Configuration
app = FastAPI(
    title="Barakah Offline Gateway",
    description="Offline-first caching, push notifications and cloud sync for the Barakah PWA",
    version="1.0.0"
)


#-- Section 5: Health and Module Endpoints
@app.get("/health")
async def health():
    """Aggregate health of backend, service worker and sync."""
    return await get_health_status()


@app.get("/integrations")
async def integrations():
    """Module metadata and per-module health."""
    return {
        "offline_cache": {
            "info": offline_integration_info(),
            "health": offline_module_health(),
        },
        "cloud_sync": {
            "info": sync_integration_info(),
            "health": sync_module_health(),
        },
    }


#-- Section 6: Application Lifecycle Events
@app.on_event("startup")
async def startup_event():
    """Connect the backend, bring up the service worker and the sync coordinator."""
    logger.info("🚀 Starting Barakah offline gateway...")

    coordinator = initialize_sync_coordinator()

    if db_manager.is_configured:
        try:
            await db_manager.connect()
            if isinstance(coordinator.remote, CloudSyncService):
                await coordinator.remote.ensure_schema()
            logger.info("✅ Backend connected")
        except Exception as e:
            # Offline serving works without the backend; sync reports failures
            logger.error(f"⚠️ Backend unavailable at startup: {e}")
    else:
        logger.warning("⚠️ DATABASE_URL not set - cloud sync will report failures")

    try:
        worker = await initialize_service_worker()
        logger.info(f"📦 Service worker {worker.version} active for {worker.origin}")
    except CacheInstallError as e:
        logger.error(f"⚠️ Service worker install failed, retry via /offline/lifecycle/install: {e}")

    await coordinator.start()
    logger.info(f"🔄 Sync coordinator ready (auto-sync={'on' if coordinator.auto_sync_enabled else 'off'})")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop timers, close network sessions and the backend pool."""
    coordinator = get_sync_coordinator()
    if coordinator is not None:
        await coordinator.stop()
    await shutdown_service_worker()
    await db_manager.disconnect()
    logger.info("👋 Barakah offline gateway stopped")


#-- Section 7: Router Registration
app.include_router(offline_cache_router)
app.include_router(cloud_sync_router)

# Catch-all gateway must be registered last so it never shadows the API routes
app.include_router(gateway_router)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", settings.port))

    print("🚀 Starting Barakah Offline Gateway...")
    print(f"   Gateway:  http://localhost:{port}/")
    print(f"   Upstream: {settings.upstream_origin}")
    print(f"   API Docs: http://localhost:{port}/docs")
    print(f"   Health:   http://localhost:{port}/health")
    print()

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info",
        access_log=True,
        reload=False
    )
