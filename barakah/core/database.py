# barakah/core/database.py
"""
Database connection manager for the Barakah hosted backend.
Async PostgreSQL pool with retry on transient failures.

The cloud sync service reaches the remote tables through this module only:
    from barakah.core.database import get_db_manager

    db = await get_db_manager()
    rows = await db.fetch_all("SELECT * FROM tasks WHERE user_id = $1", user_id)
"""

import asyncio
import asyncpg
import logging
from typing import Optional, List, Any

from config.settings import settings
from barakah.core.exceptions import DatabaseNotConfiguredError

logger = logging.getLogger(__name__)

__all__ = [
    'DatabaseManager',
    'DatabaseNotConfiguredError',
    'db_manager',
    'get_db_manager',
]

# Retry configuration
MAX_RETRIES = 3
RETRY_DELAY_BASE = 0.1  # seconds, doubled per attempt

# Transient errors that should trigger retry
TRANSIENT_ERRORS = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    asyncpg.InternalClientError,
    ConnectionResetError,
    ConnectionRefusedError,
    TimeoutError,
)


class DatabaseManager:
    """
    Manages the connection pool to the hosted backend.

    Singleton - use get_db_manager() to access.
    """

    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn if dsn is not None else settings.database_url
        self.pool: Optional[asyncpg.Pool] = None
        self._connect_lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return bool(self.dsn)

    async def connect(self) -> None:
        """Initialize the connection pool."""
        if self.pool is not None:
            return
        if not self.is_configured:
            raise DatabaseNotConfiguredError("DATABASE_URL is not configured")

        # Only one coroutine creates the pool; the rest wait for it
        async with self._connect_lock:
            if self.pool is not None:
                return
            try:
                self.pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=1,
                    max_size=5,
                    command_timeout=60
                )
                logger.info("✅ Backend connection pool established")
            except Exception as e:
                logger.error(f"❌ Failed to create backend pool: {e}")
                raise

    async def disconnect(self) -> None:
        """Close the connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("🔌 Backend connection pool closed")

    async def _acquire(self) -> asyncpg.Connection:
        if not self.pool:
            await self.connect()
        return await self.pool.acquire()

    async def _release(self, conn: asyncpg.Connection) -> None:
        if self.pool:
            await self.pool.release(conn)

    # =========================================================================
    # Query Execution with Retry Logic
    # =========================================================================

    async def _run(self, operation: str, query: str, args: tuple) -> Any:
        """
        Run a query, retrying transient connection failures with backoff.

        Args:
            operation: Connection method name ("fetch", "fetchrow", "execute")
            query: SQL query string
            args: Query parameters
        """
        last_error: Optional[BaseException] = None

        for attempt in range(MAX_RETRIES):
            conn = None
            try:
                conn = await self._acquire()
                return await getattr(conn, operation)(query, *args)

            except TRANSIENT_ERRORS as e:
                last_error = e
                if attempt < MAX_RETRIES - 1:
                    delay = RETRY_DELAY_BASE * (2 ** attempt)
                    logger.warning(
                        f"⚠️ Backend {operation} failed (attempt {attempt + 1}/{MAX_RETRIES}), "
                        f"retrying in {delay:.2f}s: {e}"
                    )
                    await asyncio.sleep(delay)
                    if isinstance(e, (asyncpg.PostgresConnectionError, ConnectionResetError)):
                        await self._reset_pool()
                else:
                    logger.error(f"❌ Backend {operation} failed after {MAX_RETRIES} attempts: {e}")

            finally:
                if conn is not None:
                    await self._release(conn)

        raise last_error

    async def _reset_pool(self) -> None:
        """Drop the pool after connection failures; the next query reconnects."""
        logger.info("🔄 Resetting backend connection pool...")
        if self.pool:
            try:
                await self.pool.close()
            except Exception as e:
                logger.warning(f"⚠️ Error while closing broken pool: {e}")
            self.pool = None

    async def fetch_one(self, query: str, *args) -> Optional[asyncpg.Record]:
        """Fetch single row from query."""
        return await self._run("fetchrow", query, args)

    async def fetch_all(self, query: str, *args) -> List[asyncpg.Record]:
        """Fetch all rows from query."""
        return await self._run("fetch", query, args)

    async def execute(self, query: str, *args) -> str:
        """Execute query without returning results."""
        return await self._run("execute", query, args)

    # =========================================================================
    # Health Check
    # =========================================================================

    async def health_check(self) -> dict:
        """Check backend connectivity and pool status."""
        if not self.is_configured:
            return {
                "status": "not_configured",
                "connected": False,
            }

        try:
            result = await self.fetch_one("SELECT 1 as ok, NOW() as server_time")

            pool_info = {}
            if self.pool:
                pool_info = {
                    "pool_size": self.pool.get_size(),
                    "pool_free": self.pool.get_idle_size(),
                }

            return {
                "status": "healthy",
                "connected": True,
                "server_time": result["server_time"].isoformat() if result else None,
                **pool_info
            }

        except Exception as e:
            logger.error(f"❌ Backend health check failed: {e}")
            return {
                "status": "unhealthy",
                "connected": False,
                "error": str(e)
            }


# =============================================================================
# Global Instance & Getter
# =============================================================================

db_manager = DatabaseManager()


async def get_db_manager() -> DatabaseManager:
    """Get the singleton database manager, connecting it on first use."""
    if not db_manager.pool:
        await db_manager.connect()
    return db_manager
