# barakah/integrations/cloud_sync/local_store.py
"""
Local State Store - the device-side copy of the user's data.

Two kinds of content live in one JSON file:
    items   string key/value pairs (autoSyncEnabled = "true"/"false", lastSync = ISO-8601)
    data    domain collections (locations, tasks, appointments) and the finances document

Records use camelCase keys and carry id / createdAt / updatedAt.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

AUTO_SYNC_KEY = "autoSyncEnabled"
LAST_SYNC_KEY = "lastSync"

COLLECTIONS = ('locations', 'tasks', 'appointments')
FINANCES_KEY = 'finances'


class LocalStateStore:
    """JSON-file backed local store; in memory only when path is None."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._items: Dict[str, str] = {}
        self._data: Dict[str, Any] = {name: [] for name in COLLECTIONS}
        self._data[FINANCES_KEY] = None
        if path:
            self._load()

    # =========================================================================
    # Key/value items
    # =========================================================================

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)
        self._save()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._save()

    # =========================================================================
    # Sync state
    # =========================================================================

    @property
    def last_sync(self) -> Optional[str]:
        return self.get_item(LAST_SYNC_KEY)

    def set_last_sync(self, timestamp: str) -> None:
        self.set_item(LAST_SYNC_KEY, timestamp)

    @property
    def auto_sync_enabled(self) -> bool:
        return self.get_item(AUTO_SYNC_KEY) == "true"

    def set_auto_sync_enabled(self, enabled: bool) -> None:
        self.set_item(AUTO_SYNC_KEY, "true" if enabled else "false")

    def get_sync_state(self) -> Dict[str, Any]:
        return {
            'lastSync': self.last_sync,
            'autoSyncEnabled': self.auto_sync_enabled,
        }

    # =========================================================================
    # Domain data
    # =========================================================================

    def get_collection(self, name: str) -> List[Dict[str, Any]]:
        if name not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {name}")
        return [dict(record) for record in self._data.get(name) or []]

    def set_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        if name not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {name}")
        self._data[name] = [dict(record) for record in records]
        self._save()

    def upsert_record(self, name: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert or replace one record by id, stamping updatedAt when missing."""
        now = datetime.now(timezone.utc).isoformat()
        stored = dict(record)
        stored.setdefault('createdAt', now)
        stored.setdefault('updatedAt', now)

        records = self.get_collection(name)
        for index, existing in enumerate(records):
            if existing.get('id') == stored.get('id'):
                records[index] = stored
                break
        else:
            records.append(stored)

        self.set_collection(name, records)
        return stored

    def get_finances(self) -> Optional[Dict[str, Any]]:
        finances = self._data.get(FINANCES_KEY)
        return dict(finances['data']) if finances else None

    def get_finances_updated_at(self) -> Optional[str]:
        finances = self._data.get(FINANCES_KEY)
        return finances.get('updatedAt') if finances else None

    def set_finances(self, data: Dict[str, Any], updated_at: Optional[str] = None) -> None:
        self._data[FINANCES_KEY] = {
            'data': dict(data),
            'updatedAt': updated_at or datetime.now(timezone.utc).isoformat(),
        }
        self._save()

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load(self) -> None:
        if not os.path.exists(self.path):
            return

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                snapshot = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"⚠️ Failed to load local state from {self.path}: {e}")
            return

        if not isinstance(snapshot, dict):
            return

        items = snapshot.get('items')
        if isinstance(items, dict):
            self._items.update({k: str(v) for k, v in items.items()})

        data = snapshot.get('data')
        if isinstance(data, dict):
            for name in COLLECTIONS:
                if isinstance(data.get(name), list):
                    self._data[name] = data[name]
            if isinstance(data.get(FINANCES_KEY), dict):
                self._data[FINANCES_KEY] = data[FINANCES_KEY]

    def _save(self) -> None:
        if not self.path:
            return

        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump({'items': self._items, 'data': self._data}, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.warning(f"⚠️ Failed to save local state to {self.path}: {e}")
