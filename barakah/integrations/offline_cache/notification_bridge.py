# barakah/integrations/offline_cache/notification_bridge.py
"""
Notification Bridge - push events to on-screen notifications.

Push payload (JSON, every field optional):
    {"title": ..., "body": ..., "data": {"url": ...}, "actions": [...], "tag": ...}

Notifications are right-to-left Arabic and share one default tag, so a new
push replaces the previous notification instead of stacking; renotify makes
the replacement alert again. Clicking focuses the first open app window
(navigated to the target URL) or opens a new one.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urljoin

from .clients import ClientRegistry
from .models import Notification, WindowClient, origin_of

logger = logging.getLogger(__name__)

DEFAULT_TITLE = 'نظام بركة'
DEFAULT_BODY = 'إشعار جديد من نظام بركة'
DEFAULT_TAG = 'baraka-notification'
DEFAULT_ICON = '/icons/icon-192x192.png'
DEFAULT_BADGE = '/icons/badge-72x72.png'
DEFAULT_VIBRATE = [100, 50, 100]

SYNC_TRANSACTIONS_TAG = 'sync-transactions'

PushPayload = Union[bytes, str, Dict[str, Any], None]


class NotificationBridge:
    """Shows push notifications and routes clicks to app windows."""

    def __init__(self, app_origin: str, clients: ClientRegistry, controller_id: Optional[str] = None):
        self.app_origin = origin_of(app_origin) or app_origin.rstrip("/")
        self.clients = clients
        self.controller_id = controller_id
        # Open notifications keyed by tag; same tag replaces
        self._notifications: Dict[str, Notification] = {}

    # =========================================================================
    # Push
    # =========================================================================

    async def handle_push(self, payload: PushPayload) -> Optional[Notification]:
        """Show a notification for a push event; None when the payload is absent or unusable."""
        if payload is None or payload == b"" or payload == "":
            logger.debug("Push event without payload ignored")
            return None

        data = self._parse_payload(payload)
        if data is None:
            return None

        return await self.show_notification(
            title=data.get('title') or DEFAULT_TITLE,
            body=data.get('body') or DEFAULT_BODY,
            data=data.get('data') or {},
            actions=data.get('actions') or [],
            tag=data.get('tag') or DEFAULT_TAG,
        )

    def _parse_payload(self, payload: PushPayload) -> Optional[Dict[str, Any]]:
        if isinstance(payload, dict):
            return payload

        try:
            if isinstance(payload, bytes):
                payload = payload.decode('utf-8')
            data = json.loads(payload)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"⚠️ Malformed push payload dropped: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"⚠️ Push payload is not an object ({type(data).__name__}), dropped")
            return None
        return data

    async def show_notification(
        self,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        actions: Optional[List[Dict[str, Any]]] = None,
        tag: str = DEFAULT_TAG
    ) -> Notification:
        notification = Notification(
            title=title,
            body=body,
            icon=DEFAULT_ICON,
            badge=DEFAULT_BADGE,
            tag=tag,
            data=data if isinstance(data, dict) else {},
            actions=list(actions or []),
            vibrate=list(DEFAULT_VIBRATE),
            dir='rtl',
            lang='ar',
            renotify=True,
        )

        replaced = self._notifications.pop(tag, None)
        if replaced is not None:
            replaced.closed = True
            logger.debug(f"🔁 Notification {replaced.id} replaced (tag={tag})")

        self._notifications[tag] = notification
        logger.info(f"🔔 Notification shown: {title} (tag={tag})")
        return notification

    def get_notifications(self, tag: Optional[str] = None) -> List[Notification]:
        """Currently open notifications, optionally filtered by tag."""
        return [n for n in self._notifications.values() if tag is None or n.tag == tag]

    def find_notification(self, notification_id: str) -> Optional[Notification]:
        for notification in self._notifications.values():
            if notification.id == notification_id:
                return notification
        return None

    def close(self, notification: Notification) -> None:
        notification.closed = True
        current = self._notifications.get(notification.tag)
        if current is not None and current.id == notification.id:
            del self._notifications[notification.tag]

    # =========================================================================
    # Click
    # =========================================================================

    async def handle_notification_click(self, notification_id: str) -> Optional[WindowClient]:
        """
        Close the notification and bring the app to the target URL.

        Returns:
            The focused or newly opened window, or None for an unknown notification
        """
        notification = self.find_notification(notification_id)
        if notification is None:
            logger.warning(f"⚠️ Click for unknown notification {notification_id}")
            return None

        self.close(notification)

        target = (notification.data or {}).get('url') or '/'
        url_to_open = urljoin(f"{self.app_origin}/", target)

        for client in await self.clients.match_all(include_uncontrolled=True):
            if client.origin == self.app_origin:
                await self.clients.navigate(client, url_to_open)
                logger.info(f"🪟 Focusing window {client.id} at {url_to_open}")
                return await self.clients.focus(client)

        return await self.clients.open_window(url_to_open, controller=self.controller_id)

    # =========================================================================
    # Background sync
    # =========================================================================

    async def handle_sync(self, tag: str) -> bool:
        """Dispatch a background-sync event; True when the tag is handled."""
        if tag == SYNC_TRANSACTIONS_TAG:
            await self._sync_transactions()
            return True

        logger.debug(f"Background sync tag ignored: {tag}")
        return False

    async def _sync_transactions(self) -> None:
        # No offline write queue exists yet; transactions are written online only
        logger.info("🔄 Syncing offline transactions... (queue empty)")
