# barakah/integrations/offline_cache/models.py
"""Data models shared by the cache router, cache store and notification bridge."""

import base64
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit


class RequestMode(str, Enum):
    NAVIGATE = "navigate"
    CORS = "cors"
    NO_CORS = "no-cors"
    SAME_ORIGIN = "same-origin"


class Strategy(str, Enum):
    PASSTHROUGH = "passthrough"
    NETWORK_FIRST = "network_first"
    CACHE_FIRST = "cache_first"
    NETWORK_WITH_CACHE_FALLBACK = "network_with_cache_fallback"


class WorkerState(str, Enum):
    PARSED = "parsed"
    INSTALLING = "installing"
    ACTIVATED = "activated"
    SUPERSEDED = "superseded"
    REDUNDANT = "redundant"


@dataclass
class FetchRequest:
    """An intercepted outgoing request."""
    url: str
    method: str = "GET"
    mode: RequestMode = RequestMode.CORS
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    @property
    def hostname(self) -> str:
        return urlsplit(self.url).hostname or ""

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def origin(self) -> str:
        return origin_of(self.url)


@dataclass
class CachedResponse:
    """A captured response: what a named cache stores per URL."""
    url: str
    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def clone(self) -> 'CachedResponse':
        return replace(self, headers=dict(self.headers))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'status': self.status,
            'headers': self.headers,
            'body': base64.b64encode(self.body).decode('ascii'),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CachedResponse':
        return cls(
            url=data['url'],
            status=int(data.get('status', 200)),
            headers=dict(data.get('headers') or {}),
            body=base64.b64decode(data.get('body') or b""),
        )


@dataclass
class Notification:
    """A system notification shown by the notification bridge."""
    title: str
    body: str
    icon: str
    badge: str
    tag: str
    data: Dict[str, Any] = field(default_factory=dict)
    actions: List[Dict[str, Any]] = field(default_factory=list)
    vibrate: List[int] = field(default_factory=list)
    dir: str = "rtl"
    lang: str = "ar"
    renotify: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    shown_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    closed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'body': self.body,
            'icon': self.icon,
            'badge': self.badge,
            'tag': self.tag,
            'data': self.data,
            'actions': self.actions,
            'vibrate': self.vibrate,
            'dir': self.dir,
            'lang': self.lang,
            'renotify': self.renotify,
            'shown_at': self.shown_at,
            'closed': self.closed,
        }


@dataclass
class WindowClient:
    """An open app window the worker can focus or navigate."""
    url: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    focused: bool = False
    controller: Optional[str] = None

    @property
    def origin(self) -> str:
        return origin_of(self.url)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'url': self.url,
            'focused': self.focused,
            'controller': self.controller,
        }


def origin_of(url: str) -> str:
    """scheme://host[:port] of an absolute URL, lower-cased."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"
