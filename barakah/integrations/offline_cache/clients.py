# barakah/integrations/offline_cache/clients.py
"""Window clients the service worker can claim, focus, navigate or open."""

import logging
from typing import Dict, List, Optional

from .models import WindowClient

logger = logging.getLogger(__name__)


class ClientRegistry:
    """Open app windows, in the order they were opened."""

    def __init__(self):
        self._clients: Dict[str, WindowClient] = {}

    def register(self, url: str, controller: Optional[str] = None) -> WindowClient:
        client = WindowClient(url=url, controller=controller)
        self._clients[client.id] = client
        return client

    def remove(self, client_id: str) -> bool:
        return self._clients.pop(client_id, None) is not None

    def get(self, client_id: str) -> Optional[WindowClient]:
        return self._clients.get(client_id)

    async def match_all(self, include_uncontrolled: bool = True,
                        controller: Optional[str] = None) -> List[WindowClient]:
        """All windows, or only those controlled by `controller`."""
        clients = list(self._clients.values())
        if include_uncontrolled or controller is None:
            return clients
        return [c for c in clients if c.controller == controller]

    async def claim(self, controller: str) -> int:
        """Take control of every open window; returns how many changed hands."""
        claimed = 0
        for client in self._clients.values():
            if client.controller != controller:
                client.controller = controller
                claimed += 1
        return claimed

    async def navigate(self, client: WindowClient, url: str) -> WindowClient:
        client.url = url
        return client

    async def focus(self, client: WindowClient) -> WindowClient:
        for other in self._clients.values():
            other.focused = other.id == client.id
        return client

    async def open_window(self, url: str, controller: Optional[str] = None) -> WindowClient:
        client = self.register(url, controller=controller)
        await self.focus(client)
        logger.info(f"🪟 Opened new window at {url}")
        return client

    def __len__(self) -> int:
        return len(self._clients)
