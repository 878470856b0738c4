# barakah/integrations/cloud_sync/toasts.py
"""Transient user-facing notifications raised by sync operations."""

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_TOASTS = 50


@dataclass
class Toast:
    title: str
    description: str
    variant: str = "default"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'variant': self.variant,
            'created_at': self.created_at,
        }


class ToastNotifier:
    """Keeps the most recent toasts for the UI to poll (newest last)."""

    def __init__(self, max_toasts: int = MAX_TOASTS):
        self._toasts: Deque[Toast] = deque(maxlen=max_toasts)

    def toast(self, title: str, description: str, variant: str = "default") -> Toast:
        toast = Toast(title=title, description=description, variant=variant)
        self._toasts.append(toast)
        if variant == "destructive":
            logger.warning(f"🍞 {title}: {description}")
        else:
            logger.info(f"🍞 {title}: {description}")
        return toast

    def recent(self, limit: Optional[int] = None) -> List[Toast]:
        toasts = list(self._toasts)
        return toasts[-limit:] if limit else toasts

    def clear(self) -> None:
        self._toasts.clear()
