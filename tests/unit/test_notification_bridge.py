# =============================================================================
# tests/unit/test_notification_bridge.py
# Unit tests for push notifications, click routing and background sync
# =============================================================================

import json

import pytest

from conftest import ORIGIN


@pytest.fixture
def clients():
    from barakah.integrations.offline_cache.clients import ClientRegistry
    return ClientRegistry()


@pytest.fixture
def bridge(clients):
    from barakah.integrations.offline_cache.notification_bridge import NotificationBridge
    return NotificationBridge(app_origin=ORIGIN, clients=clients, controller_id="baraka-cache-v1")


class TestPush:
    """Tests for turning push payloads into notifications"""

    async def test_payload_fields_are_shown_rtl(self, bridge):
        from barakah.integrations.offline_cache.notification_bridge import DEFAULT_TAG

        notification = await bridge.handle_push(json.dumps({"title": "T", "body": "B"}).encode())

        assert notification.title == "T"
        assert notification.body == "B"
        assert notification.dir == "rtl"
        assert notification.lang == "ar"
        assert notification.tag == DEFAULT_TAG
        assert notification.renotify is True
        assert notification.vibrate == [100, 50, 100]
        assert notification.icon == "/icons/icon-192x192.png"
        assert notification.badge == "/icons/badge-72x72.png"

    async def test_missing_fields_use_defaults(self, bridge):
        from barakah.integrations.offline_cache.notification_bridge import DEFAULT_BODY, DEFAULT_TITLE

        notification = await bridge.handle_push("{}")

        assert notification.title == DEFAULT_TITLE
        assert notification.body == DEFAULT_BODY
        assert notification.data == {}
        assert notification.actions == []

    async def test_data_and_actions_carried(self, bridge):
        payload = {
            "title": "موعد",
            "data": {"url": "/appointments"},
            "actions": [{"action": "open", "title": "فتح"}],
        }
        notification = await bridge.handle_push(payload)

        assert notification.data == {"url": "/appointments"}
        assert notification.actions == [{"action": "open", "title": "فتح"}]

    @pytest.mark.parametrize("payload", [None, b"", "", b"not json", b"[1, 2]", b"\xff\xfe"])
    async def test_unusable_payload_shows_nothing(self, bridge, payload):
        assert await bridge.handle_push(payload) is None
        assert bridge.get_notifications() == []

    async def test_same_tag_replaces_previous(self, bridge):
        first = await bridge.handle_push({"title": "1"})
        second = await bridge.handle_push({"title": "2"})

        assert bridge.get_notifications() == [second]
        assert first.closed is True

    async def test_different_tags_stack(self, bridge):
        await bridge.handle_push({"title": "1"})
        await bridge.handle_push({"title": "2", "tag": "reminder"})

        assert len(bridge.get_notifications()) == 2
        assert len(bridge.get_notifications(tag="reminder")) == 1


class TestNotificationClick:
    """Tests for focusing or opening a window on click"""

    async def test_click_focuses_existing_app_window(self, bridge, clients):
        window = clients.register(f"{ORIGIN}/tasks")
        notification = await bridge.handle_push({"title": "T", "data": {"url": "/appointments"}})

        client = await bridge.handle_notification_click(notification.id)

        assert client.id == window.id
        assert client.url == f"{ORIGIN}/appointments"
        assert client.focused is True
        assert len(clients) == 1
        assert bridge.get_notifications() == []
        assert notification.closed is True

    async def test_click_without_app_window_opens_one(self, bridge, clients):
        clients.register("http://elsewhere.test/")
        notification = await bridge.handle_push({"title": "T"})

        client = await bridge.handle_notification_click(notification.id)

        assert client.url == f"{ORIGIN}/"
        assert client.focused is True
        assert client.controller == "baraka-cache-v1"
        assert len(clients) == 2

    async def test_origin_must_match_exactly(self, bridge, clients):
        clients.register(f"{ORIGIN}.evil.example/")
        notification = await bridge.handle_push({"title": "T"})

        client = await bridge.handle_notification_click(notification.id)

        assert client.origin == ORIGIN
        assert len(clients) == 2

    async def test_click_on_unknown_notification(self, bridge):
        assert await bridge.handle_notification_click("does-not-exist") is None


class TestBackgroundSync:
    """Tests for background sync tags"""

    async def test_transactions_tag_is_handled(self, bridge):
        from barakah.integrations.offline_cache.notification_bridge import SYNC_TRANSACTIONS_TAG

        assert await bridge.handle_sync(SYNC_TRANSACTIONS_TAG) is True

    async def test_other_tags_are_ignored(self, bridge):
        assert await bridge.handle_sync("sync-everything") is False
