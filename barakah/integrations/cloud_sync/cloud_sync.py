# barakah/integrations/cloud_sync/cloud_sync.py
"""
Cloud Sync Service - reconciles the local store with the hosted backend tables.

Merge policy is last-write-wins per record on updatedAt / updated_at:
    - local record newer (or missing remotely)  -> upserted to the backend
    - remote record newer (or missing locally)  -> replaces / extends the local copy
The finances document is one row per user and follows the same rule as a whole.

Both entry points return {'success': bool, 'message': str} and never raise.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from config.settings import settings
from ...core.database import db_manager
from ...core.safe_logger import log_summary
from .local_store import COLLECTIONS, LocalStateStore

logger = logging.getLogger(__name__)

# User-facing messages (Arabic UI)
NOT_LOGGED_IN_MESSAGE = 'المستخدم غير مسجل الدخول'
SYNC_SUCCESS_MESSAGE = 'تمت المزامنة بنجاح'
SYNC_FAILED_MESSAGE = 'فشلت المزامنة'
PULL_SUCCESS_MESSAGE = 'تم سحب البيانات'
PULL_FAILED_MESSAGE = 'فشل السحب'

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


#--Section 1: Domain table mapping
@dataclass(frozen=True)
class DomainSpec:
    """How one local collection maps onto its backend table."""
    table: str
    fields: Tuple[Tuple[str, str], ...]  # (local camelCase key, remote column)
    json_columns: Tuple[str, ...] = ()

    @property
    def columns(self) -> List[str]:
        return ['id', 'user_id'] + [column for _, column in self.fields] + ['created_at', 'updated_at']

    def upsert_sql(self) -> str:
        placeholders = []
        for index, column in enumerate(self.columns, start=1):
            cast = "::jsonb" if column in self.json_columns else ""
            placeholders.append(f"${index}{cast}")
        updates = ", ".join(f"{column} = EXCLUDED.{column}" for column in self.columns[1:])
        return (
            f"INSERT INTO {self.table} ({', '.join(self.columns)}) "
            f"VALUES ({', '.join(placeholders)}) "
            f"ON CONFLICT (id) DO UPDATE SET {updates}"
        )


DOMAINS: Dict[str, DomainSpec] = {
    'locations': DomainSpec(
        table='locations',
        fields=(('title', 'title'), ('url', 'url'), ('category', 'category')),
    ),
    'tasks': DomainSpec(
        table='tasks',
        fields=(
            ('title', 'title'), ('description', 'description'), ('deadline', 'deadline'),
            ('completed', 'completed'), ('priority', 'priority'), ('type', 'type'),
            ('subtasks', 'subtasks'), ('progress', 'progress'),
        ),
        json_columns=('subtasks',),
    ),
    'appointments': DomainSpec(
        table='appointments',
        fields=(
            ('title', 'title'), ('date', 'date'), ('time', 'time'),
            ('reminderMinutes', 'reminder_minutes'), ('isCompleted', 'is_completed'),
            ('location', 'location'), ('notes', 'notes'),
        ),
    ),
}

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS locations (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT,
        url TEXT,
        category TEXT,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT,
        description TEXT,
        deadline TEXT,
        completed BOOLEAN DEFAULT FALSE,
        priority TEXT,
        type TEXT,
        subtasks JSONB DEFAULT '[]'::jsonb,
        progress INTEGER DEFAULT 0,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS appointments (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT,
        date TEXT,
        time TEXT,
        reminder_minutes INTEGER,
        is_completed BOOLEAN DEFAULT FALSE,
        location TEXT,
        notes TEXT,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS finances (
        user_id TEXT PRIMARY KEY,
        data JSONB NOT NULL DEFAULT '{}'::jsonb,
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_locations_user ON locations (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_appointments_user ON appointments (user_id)",
]


#--Section 2: Timestamp helpers
def parse_timestamp(value: Any) -> datetime:
    """Aware UTC datetime from a datetime or ISO-8601 string; epoch when missing."""
    if value is None or value == "":
        return _EPOCH
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        logger.warning(f"⚠️ Unparseable timestamp {value!r}, treating as oldest")
        return _EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def to_iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return parse_timestamp(value).isoformat()
    return str(value)


def _decode_json(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return default
    return value


#--Section 3: Service
class CloudSyncService:
    """Bulk multi-domain reconciliation against the hosted backend."""

    def __init__(self, store: LocalStateStore, db=None, user_id: Optional[str] = None):
        self.store = store
        self.db = db if db is not None else db_manager
        self.user_id: Optional[str] = user_id

    async def init(self) -> bool:
        """Resolve the signed-in user; False when there is none."""
        if not self.user_id:
            self.user_id = settings.sync_user_id
        return bool(self.user_id)

    async def ensure_schema(self) -> None:
        for statement in SCHEMA_STATEMENTS:
            await self.db.execute(statement)
        logger.info("✅ Cloud sync tables ready")

    #--Section 4: Main entry points
    async def sync_all(self) -> Dict[str, Any]:
        """Two-way sync of every domain."""
        try:
            if not self.user_id and not await self.init():
                return {'success': False, 'message': NOT_LOGGED_IN_MESSAGE}

            results = await asyncio.gather(
                *(self._sync_collection(name) for name in COLLECTIONS),
                self._sync_finances()
            )

            stats = {}
            for name, result in zip(list(COLLECTIONS) + ['finances'], results):
                stats[name] = f"↑{result['pushed']} ↓{result['pulled']}"
            log_summary("Cloud sync complete", stats, logger_name=__name__)

            return {'success': True, 'message': SYNC_SUCCESS_MESSAGE}

        except Exception as e:
            logger.error(f"❌ Sync error: {e}")
            return {'success': False, 'message': str(e) or SYNC_FAILED_MESSAGE}

    async def pull_all(self) -> Dict[str, Any]:
        """Overwrite local data with the backend copy (initial sync or reset)."""
        try:
            if not self.user_id and not await self.init():
                return {'success': False, 'message': NOT_LOGGED_IN_MESSAGE}

            counts = {}
            for name in COLLECTIONS:
                spec = DOMAINS[name]
                rows = await self.db.fetch_all(
                    f"SELECT * FROM {spec.table} WHERE user_id = $1", self.user_id
                )
                records = [self._to_local(spec, dict(row)) for row in rows or []]
                self.store.set_collection(name, records)
                counts[name] = len(records)

            finances = await self.db.fetch_one(
                "SELECT data, updated_at FROM finances WHERE user_id = $1", self.user_id
            )
            if finances:
                self.store.set_finances(
                    _decode_json(finances['data'], {}),
                    updated_at=to_iso(finances['updated_at'])
                )
            counts['finances'] = 1 if finances else 0

            log_summary("Cloud pull complete", counts, logger_name=__name__)
            return {'success': True, 'message': PULL_SUCCESS_MESSAGE}

        except Exception as e:
            logger.error(f"❌ Pull error: {e}")
            return {'success': False, 'message': str(e) or PULL_FAILED_MESSAGE}

    #--Section 5: Per-domain reconciliation
    async def _sync_collection(self, name: str) -> Dict[str, int]:
        spec = DOMAINS[name]
        local_records = self.store.get_collection(name)

        rows = await self.db.fetch_all(
            f"SELECT * FROM {spec.table} WHERE user_id = $1", self.user_id
        )
        remote_map = {row['id']: dict(row) for row in rows or []}
        local_map = {record['id']: record for record in local_records if record.get('id')}

        to_upsert = []
        for record_id, local in local_map.items():
            remote = remote_map.get(record_id)
            if remote is None or parse_timestamp(local.get('updatedAt')) > parse_timestamp(remote.get('updated_at')):
                to_upsert.append(local)

        to_pull = []
        for record_id, remote in remote_map.items():
            local = local_map.get(record_id)
            if local is None or parse_timestamp(remote.get('updated_at')) > parse_timestamp(local.get('updatedAt')):
                to_pull.append(self._to_local(spec, remote))

        if to_upsert:
            query = spec.upsert_sql()
            for record in to_upsert:
                await self.db.execute(query, *self._to_remote_params(spec, record))

        if to_pull:
            merged = self.store.get_collection(name)
            index_by_id = {record.get('id'): i for i, record in enumerate(merged)}
            for record in to_pull:
                position = index_by_id.get(record['id'])
                if position is not None:
                    merged[position] = record
                else:
                    index_by_id[record['id']] = len(merged)
                    merged.append(record)
            self.store.set_collection(name, merged)

        return {'pushed': len(to_upsert), 'pulled': len(to_pull)}

    async def _sync_finances(self) -> Dict[str, int]:
        local = self.store.get_finances()
        local_updated = self.store.get_finances_updated_at()

        remote = await self.db.fetch_one(
            "SELECT data, updated_at FROM finances WHERE user_id = $1", self.user_id
        )

        if remote is None:
            if local is None:
                return {'pushed': 0, 'pulled': 0}
            await self._upload_finances(local, local_updated)
            return {'pushed': 1, 'pulled': 0}

        remote_updated = parse_timestamp(remote['updated_at'])
        if local is not None and parse_timestamp(local_updated) > remote_updated:
            await self._upload_finances(local, local_updated)
            return {'pushed': 1, 'pulled': 0}

        if local is None or remote_updated > parse_timestamp(local_updated):
            self.store.set_finances(_decode_json(remote['data'], {}), updated_at=to_iso(remote['updated_at']))
            return {'pushed': 0, 'pulled': 1}

        return {'pushed': 0, 'pulled': 0}

    async def _upload_finances(self, data: Dict[str, Any], updated_at: Optional[str]) -> None:
        stamp = parse_timestamp(updated_at) if updated_at else datetime.now(timezone.utc)
        await self.db.execute(
            "INSERT INTO finances (user_id, data, updated_at) VALUES ($1, $2::jsonb, $3) "
            "ON CONFLICT (user_id) DO UPDATE SET data = EXCLUDED.data, updated_at = EXCLUDED.updated_at",
            self.user_id, json.dumps(data, ensure_ascii=False), stamp
        )

    #--Section 6: Record conversion
    def _to_local(self, spec: DomainSpec, row: Dict[str, Any]) -> Dict[str, Any]:
        record = {'id': row['id']}
        for local_key, column in spec.fields:
            value = row.get(column)
            if column in spec.json_columns:
                value = _decode_json(value, [])
            record[local_key] = value
        record['createdAt'] = to_iso(row.get('created_at'))
        record['updatedAt'] = to_iso(row.get('updated_at'))
        return record

    def _to_remote_params(self, spec: DomainSpec, record: Dict[str, Any]) -> List[Any]:
        params: List[Any] = [record['id'], self.user_id]
        for local_key, column in spec.fields:
            value = record.get(local_key)
            if column in spec.json_columns:
                value = json.dumps(value if value is not None else [], ensure_ascii=False)
            params.append(value)
        now = datetime.now(timezone.utc)
        created = record.get('createdAt')
        updated = record.get('updatedAt')
        params.append(parse_timestamp(created) if created else now)
        params.append(parse_timestamp(updated) if updated else now)
        return params
