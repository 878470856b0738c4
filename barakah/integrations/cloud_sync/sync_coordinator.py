# barakah/integrations/cloud_sync/sync_coordinator.py
"""
Sync Coordinator - on-demand and periodic reconciliation with the backend.

    sync_now(silent)          two-way sync; toasts unless silent
    pull_data()               backend -> local overwrite
    toggle_auto_sync(enabled) persist the flag; when on, sync once silently
                              and re-arm the periodic timer

Only one operation runs at a time. A sync requested while a sync is in flight
joins it and gets the same result; a pull requested during a sync (or the
reverse) waits for the running one to finish first. Toasts follow the caller,
not the run: a manual sync that joins a silent timer run still shows the
outcome, and a run is toasted at most once.

Every outcome is {'success': bool, 'message': str}. lastSync moves forward only
after a successful sync or pull.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from config.settings import settings
from .cloud_sync import CloudSyncService
from .local_store import LocalStateStore
from .toasts import ToastNotifier

logger = logging.getLogger(__name__)

DEFAULT_AUTO_SYNC_INTERVAL = 300  # 5 minutes

SYNC_SUCCESS_TITLE = '✅ تمت المزامنة'
SYNC_FAILED_TITLE = '❌ فشلت المزامنة'
PULL_SUCCESS_TITLE = '✅ تم السحب'
PULL_FAILED_TITLE = '❌ فشل السحب'
ERROR_TITLE = '❌ خطأ'

SyncResult = Dict[str, Any]

TITLES = {
    "sync": (SYNC_SUCCESS_TITLE, SYNC_FAILED_TITLE),
    "pull": (PULL_SUCCESS_TITLE, PULL_FAILED_TITLE),
}


@dataclass
class _Run:
    """One in-flight sync or pull, shared by every caller that joins it."""
    kind: str
    task: asyncio.Task
    toasted: bool = False


class SyncCoordinator:
    """Serializes sync/pull runs and drives the auto-sync timer."""

    def __init__(
        self,
        remote,
        store: LocalStateStore,
        notifier: Optional[ToastNotifier] = None,
        interval_seconds: float = DEFAULT_AUTO_SYNC_INTERVAL,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.remote = remote
        self.store = store
        self.notifier = notifier or ToastNotifier()
        self.interval_seconds = interval_seconds
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._run: Optional[_Run] = None
        self._timer: Optional[asyncio.Task] = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def is_syncing(self) -> bool:
        return self._run is not None and not self._run.task.done()

    @property
    def last_sync(self) -> Optional[str]:
        return self.store.last_sync

    @property
    def auto_sync_enabled(self) -> bool:
        return self.store.auto_sync_enabled

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def get_status(self) -> Dict[str, Any]:
        return {
            'isSyncing': self.is_syncing,
            'lastSync': self.last_sync,
            'autoSyncEnabled': self.auto_sync_enabled,
            'intervalSeconds': self.interval_seconds,
            'timerArmed': self.timer_armed,
        }

    # =========================================================================
    # Operations
    # =========================================================================

    async def sync_now(self, silent: bool = False) -> SyncResult:
        """Push and pull every domain through the remote store."""
        return await self._run_exclusive("sync", self.remote.sync_all, silent)

    async def pull_data(self) -> SyncResult:
        """Overwrite local data with the remote copy. Leaves the timer alone."""
        return await self._run_exclusive("pull", self.remote.pull_all, False)

    async def toggle_auto_sync(self, enabled: bool) -> Optional[SyncResult]:
        """
        Persist the auto-sync flag and rebuild the timer.

        Returns:
            The immediate silent sync result when enabling, None when disabling
        """
        self.store.set_auto_sync_enabled(enabled)
        await self._disarm_timer()

        if not enabled:
            logger.info("⏸️ Auto-sync disabled")
            return None

        result = await self.sync_now(silent=True)
        self._arm_timer()
        return result

    async def start(self) -> None:
        """Arm the timer if auto-sync was left enabled."""
        if self.auto_sync_enabled and not self.timer_armed:
            self._arm_timer()

    async def stop(self) -> None:
        """Cancel the timer and any run still in flight."""
        await self._disarm_timer()
        run = self._run
        if run is not None and not run.task.done():
            run.task.cancel()
            await asyncio.wait({run.task})

    # =========================================================================
    # Internals
    # =========================================================================

    async def _run_exclusive(
        self,
        kind: str,
        call: Callable[[], Awaitable[SyncResult]],
        silent: bool
    ) -> SyncResult:
        while self.is_syncing:
            run = self._run
            if run.kind == kind:
                logger.info(f"⏳ {kind} already in progress, joining it")
                return await self._finish(run, silent)
            logger.info(f"⏳ Waiting for running {run.kind} before {kind}")
            await asyncio.wait({run.task})

        run = _Run(kind=kind, task=asyncio.create_task(self._perform(kind, call, silent)))
        self._run = run
        return await self._finish(run, silent)

    async def _finish(self, run: _Run, silent: bool) -> SyncResult:
        """Wait for a run and toast its outcome once, for the first non-silent caller."""
        outcome, raised = await asyncio.shield(run.task)
        if not silent and not run.toasted:
            run.toasted = True
            self._toast(run.kind, outcome, raised)
        return dict(outcome)

    async def _perform(
        self,
        kind: str,
        call: Callable[[], Awaitable[SyncResult]],
        silent: bool
    ) -> Tuple[SyncResult, bool]:
        """Run the remote call; returns the outcome and whether the call raised."""
        try:
            result = await call()
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"❌ {kind} raised: {message}")
            return {'success': False, 'message': message}, True

        success = bool(result.get('success')) if isinstance(result, dict) else False
        message = str(result.get('message', '')) if isinstance(result, dict) else ''

        if success:
            self.store.set_last_sync(self._clock().isoformat())
            logger.info(f"✅ {kind} succeeded{' (silent)' if silent else ''}: {message}")
        else:
            logger.warning(f"⚠️ {kind} failed{' (silent)' if silent else ''}: {message}")

        return {'success': success, 'message': message}, False

    def _toast(self, kind: str, outcome: SyncResult, raised: bool) -> None:
        success_title, failure_title = TITLES[kind]
        if raised:
            self.notifier.toast(ERROR_TITLE, outcome['message'], variant="destructive")
        elif outcome['success']:
            self.notifier.toast(success_title, outcome['message'])
        else:
            self.notifier.toast(failure_title, outcome['message'], variant="destructive")

    def _arm_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.create_task(self._auto_sync_loop())

    async def _disarm_timer(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None and not timer.done():
            timer.cancel()
            await asyncio.wait({timer})

    async def _auto_sync_loop(self) -> None:
        logger.info(f"🔄 Auto-sync armed (every {self.interval_seconds:.0f}s)")
        while True:
            await self._sleep(self.interval_seconds)
            try:
                await self.sync_now(silent=True)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Continue running even if one round blows up
                logger.error(f"Error in auto-sync loop: {e}")


# =============================================================================
# Singleton
# =============================================================================

_instance: Optional[SyncCoordinator] = None


def get_sync_coordinator() -> Optional[SyncCoordinator]:
    return _instance


def initialize_sync_coordinator(
    remote=None,
    store: Optional[LocalStateStore] = None,
    notifier: Optional[ToastNotifier] = None,
    interval_seconds: Optional[float] = None
) -> SyncCoordinator:
    """
    Build the global coordinator. Idempotent: an existing instance is returned
    unchanged.
    """
    global _instance

    if _instance is not None:
        return _instance

    store = store if store is not None else LocalStateStore(settings.local_state_path)
    _instance = SyncCoordinator(
        remote=remote if remote is not None else CloudSyncService(store),
        store=store,
        notifier=notifier,
        interval_seconds=interval_seconds or settings.auto_sync_interval_seconds
    )
    return _instance


def reset_sync_coordinator() -> None:
    """Forget the global coordinator (for testing)."""
    global _instance
    _instance = None
