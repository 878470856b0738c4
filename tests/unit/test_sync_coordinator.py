# =============================================================================
# tests/unit/test_sync_coordinator.py
# Unit tests for manual sync, pull, coalescing and the auto-sync timer
# =============================================================================

import asyncio
from datetime import datetime, timezone

import pytest

from conftest import FakeRemote, drain


def make_coordinator(remote, clock=None, interval=300):
    from barakah.integrations.cloud_sync.local_store import LocalStateStore
    from barakah.integrations.cloud_sync.sync_coordinator import SyncCoordinator

    return SyncCoordinator(
        remote=remote,
        store=LocalStateStore(),
        interval_seconds=interval,
        sleep=clock.sleep if clock is not None else None,
    )


class TestSyncNow:
    """Tests for manual sync outcomes"""

    async def test_success_records_last_sync_and_toasts(self, fake_remote):
        from barakah.integrations.cloud_sync.sync_coordinator import SYNC_SUCCESS_TITLE

        coordinator = make_coordinator(fake_remote)
        started = datetime.now(timezone.utc)

        result = await coordinator.sync_now(silent=False)

        assert result == {'success': True, 'message': 'تمت المزامنة بنجاح'}
        assert datetime.fromisoformat(coordinator.last_sync) >= started
        toast = coordinator.notifier.recent()[-1]
        assert toast.title == SYNC_SUCCESS_TITLE
        assert toast.description == 'تمت المزامنة بنجاح'
        assert coordinator.is_syncing is False

    async def test_reported_failure_keeps_last_sync(self):
        from barakah.integrations.cloud_sync.sync_coordinator import SYNC_FAILED_TITLE

        remote = FakeRemote(result={'success': False, 'message': 'المستخدم غير مسجل الدخول'})
        coordinator = make_coordinator(remote)

        result = await coordinator.sync_now()

        assert result['success'] is False
        assert coordinator.last_sync is None
        toast = coordinator.notifier.recent()[-1]
        assert toast.title == SYNC_FAILED_TITLE
        assert toast.variant == "destructive"

    async def test_exception_becomes_error_toast(self):
        from barakah.integrations.cloud_sync.sync_coordinator import ERROR_TITLE

        coordinator = make_coordinator(FakeRemote(error=RuntimeError("connection lost")))
        coordinator.store.set_last_sync("2024-01-01T00:00:00+00:00")

        result = await coordinator.sync_now(silent=False)

        assert result == {'success': False, 'message': 'connection lost'}
        assert coordinator.last_sync == "2024-01-01T00:00:00+00:00"
        toast = coordinator.notifier.recent()[-1]
        assert toast.title == ERROR_TITLE
        assert "connection lost" in toast.description
        assert coordinator.is_syncing is False

    async def test_silent_sync_shows_no_toast(self, fake_remote):
        coordinator = make_coordinator(fake_remote)

        result = await coordinator.sync_now(silent=True)

        assert result['success'] is True
        assert coordinator.last_sync is not None
        assert coordinator.notifier.recent() == []

    async def test_silent_failure_shows_no_toast(self):
        coordinator = make_coordinator(FakeRemote(error=RuntimeError("boom")))

        await coordinator.sync_now(silent=True)

        assert coordinator.notifier.recent() == []


class TestPull:
    """Tests for pull-only restore"""

    async def test_pull_success(self, fake_remote):
        from barakah.integrations.cloud_sync.sync_coordinator import PULL_SUCCESS_TITLE

        coordinator = make_coordinator(fake_remote)

        result = await coordinator.pull_data()

        assert result == {'success': True, 'message': 'تم سحب البيانات'}
        assert fake_remote.pull_calls == 1
        assert fake_remote.sync_calls == 0
        assert coordinator.last_sync is not None
        assert coordinator.notifier.recent()[-1].title == PULL_SUCCESS_TITLE

    async def test_pull_failure_toasts(self):
        from barakah.integrations.cloud_sync.sync_coordinator import PULL_FAILED_TITLE

        remote = FakeRemote()
        remote.pull_result = {'success': False, 'message': 'فشل السحب'}
        coordinator = make_coordinator(remote)

        result = await coordinator.pull_data()

        assert result['success'] is False
        assert coordinator.last_sync is None
        assert coordinator.notifier.recent()[-1].title == PULL_FAILED_TITLE


class TestExclusiveRuns:
    """Tests for single-flight behaviour"""

    async def test_concurrent_syncs_share_one_run(self, fake_remote):
        coordinator = make_coordinator(fake_remote)
        gate = fake_remote.hold()

        first = asyncio.create_task(coordinator.sync_now())
        await drain()
        assert coordinator.is_syncing is True
        second = asyncio.create_task(coordinator.sync_now())
        await drain()

        gate.set()
        results = await asyncio.gather(first, second)

        assert fake_remote.sync_calls == 1
        assert results[0] == results[1]
        assert coordinator.is_syncing is False
        assert len(coordinator.notifier.recent()) == 1

    async def test_manual_sync_joining_silent_run_shows_toast(self, fake_remote):
        from barakah.integrations.cloud_sync.sync_coordinator import SYNC_SUCCESS_TITLE

        coordinator = make_coordinator(fake_remote)
        gate = fake_remote.hold()

        background = asyncio.create_task(coordinator.sync_now(silent=True))
        await drain()
        manual = asyncio.create_task(coordinator.sync_now(silent=False))
        await drain()

        gate.set()
        _, result = await asyncio.gather(background, manual)

        assert fake_remote.sync_calls == 1
        assert result['success'] is True
        toasts = coordinator.notifier.recent()
        assert [t.title for t in toasts] == [SYNC_SUCCESS_TITLE]
        assert toasts[0].description == result['message']

    async def test_manual_sync_joining_failing_silent_run_shows_error(self):
        from barakah.integrations.cloud_sync.sync_coordinator import ERROR_TITLE

        remote = FakeRemote(error=RuntimeError("timeout talking to backend"))
        coordinator = make_coordinator(remote)
        gate = remote.hold()

        background = asyncio.create_task(coordinator.sync_now(silent=True))
        await drain()
        manual = asyncio.create_task(coordinator.sync_now(silent=False))
        await drain()

        gate.set()
        await asyncio.gather(background, manual)

        toast = coordinator.notifier.recent()[-1]
        assert toast.title == ERROR_TITLE
        assert toast.description == "timeout talking to backend"
        assert len(coordinator.notifier.recent()) == 1

    async def test_silent_run_joined_silently_stays_quiet(self, fake_remote):
        coordinator = make_coordinator(fake_remote)
        gate = fake_remote.hold()

        first = asyncio.create_task(coordinator.sync_now(silent=True))
        await drain()
        second = asyncio.create_task(coordinator.sync_now(silent=True))
        await drain()

        gate.set()
        await asyncio.gather(first, second)

        assert coordinator.notifier.recent() == []

    async def test_pull_waits_for_running_sync(self, fake_remote):
        coordinator = make_coordinator(fake_remote)
        gate = fake_remote.hold()

        sync_task = asyncio.create_task(coordinator.sync_now(silent=True))
        await drain()
        pull_task = asyncio.create_task(coordinator.pull_data())
        await drain()

        assert fake_remote.pull_calls == 0

        gate.set()
        await asyncio.gather(sync_task, pull_task)

        assert fake_remote.sync_calls == 1
        assert fake_remote.pull_calls == 1

    async def test_sync_after_previous_finished_runs_again(self, fake_remote):
        coordinator = make_coordinator(fake_remote)

        await coordinator.sync_now(silent=True)
        await coordinator.sync_now(silent=True)

        assert fake_remote.sync_calls == 2


class TestAutoSync:
    """Tests for the periodic timer"""

    async def test_enabling_syncs_once_until_interval_elapses(self, fake_remote, fake_clock):
        coordinator = make_coordinator(fake_remote, clock=fake_clock, interval=300)

        result = await coordinator.toggle_auto_sync(True)
        await drain()

        assert result['success'] is True
        assert fake_remote.sync_calls == 1
        assert coordinator.auto_sync_enabled is True
        assert coordinator.timer_armed is True
        assert fake_clock.requested == [300]
        assert coordinator.notifier.recent() == []

        fake_clock.advance()
        await drain()

        assert fake_remote.sync_calls == 2
        await coordinator.stop()

    async def test_disabling_stops_timer(self, fake_remote, fake_clock):
        coordinator = make_coordinator(fake_remote, clock=fake_clock)
        await coordinator.toggle_auto_sync(True)
        await drain()

        result = await coordinator.toggle_auto_sync(False)
        fake_clock.advance()
        await drain()

        assert result is None
        assert coordinator.auto_sync_enabled is False
        assert coordinator.timer_armed is False
        assert fake_remote.sync_calls == 1

    async def test_re_enabling_keeps_a_single_timer(self, fake_remote, fake_clock):
        coordinator = make_coordinator(fake_remote, clock=fake_clock)

        await coordinator.toggle_auto_sync(True)
        await coordinator.toggle_auto_sync(True)
        await drain()

        assert len(fake_clock.sleepers) == 1
        await coordinator.stop()

    async def test_start_arms_timer_from_persisted_flag(self, fake_remote, fake_clock):
        coordinator = make_coordinator(fake_remote, clock=fake_clock)
        coordinator.store.set_auto_sync_enabled(True)

        await coordinator.start()
        await drain()

        assert coordinator.timer_armed is True
        assert fake_remote.sync_calls == 0
        await coordinator.stop()
        assert coordinator.timer_armed is False

    async def test_start_without_flag_leaves_timer_off(self, fake_remote):
        coordinator = make_coordinator(fake_remote)

        await coordinator.start()

        assert coordinator.timer_armed is False

    async def test_status_shape(self, fake_remote):
        coordinator = make_coordinator(fake_remote)

        status = coordinator.get_status()

        assert status == {
            'isSyncing': False,
            'lastSync': None,
            'autoSyncEnabled': False,
            'intervalSeconds': 300,
            'timerArmed': False,
        }


class TestSingleton:
    """Tests for the global coordinator"""

    def test_initialize_is_idempotent(self, fake_remote):
        from barakah.integrations.cloud_sync.local_store import LocalStateStore
        from barakah.integrations.cloud_sync.sync_coordinator import (
            get_sync_coordinator, initialize_sync_coordinator
        )

        first = initialize_sync_coordinator(remote=fake_remote, store=LocalStateStore(), interval_seconds=60)
        second = initialize_sync_coordinator()

        assert first is second
        assert get_sync_coordinator() is first
        assert first.interval_seconds == 60
