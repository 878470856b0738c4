# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import asyncio
import logging
from typing import Any, Dict, List, Optional

import pytest

from barakah.core.exceptions import NetworkError
from barakah.integrations.offline_cache.models import CachedResponse, FetchRequest
from barakah.integrations.offline_cache.worker import reset_service_worker
from barakah.integrations.cloud_sync.sync_coordinator import reset_sync_coordinator


ORIGIN = "http://app.test"


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeFetcher:
    """Scripted network: URL -> response, with an offline switch and a call log."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        self.responses: Dict[str, Any] = {}
        self.failing: set = set()
        self.offline = False
        self.calls: List[FetchRequest] = []
        for url, value in (responses or {}).items():
            self.serve(url, value)

    def serve(self, url: str, body: Any = b"", status: int = 200, headers: Optional[Dict[str, str]] = None):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.responses[url] = CachedResponse(url=url, status=status, headers=headers or {}, body=body)

    def fail(self, url: str):
        self.failing.add(url)

    async def __call__(self, request: FetchRequest) -> CachedResponse:
        self.calls.append(request)
        await asyncio.sleep(0)
        if self.offline or request.url in self.failing:
            raise NetworkError(request.url, "connection refused")
        response = self.responses.get(request.url)
        if response is None:
            return CachedResponse(url=request.url, status=404, body=b"not found")
        return response.clone()

    def urls_called(self) -> List[str]:
        return [r.url for r in self.calls]


class FakeRemote:
    """Stands in for CloudSyncService; counts calls and can be held open."""

    def __init__(self, result: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.result = result or {'success': True, 'message': 'تمت المزامنة بنجاح'}
        self.pull_result = {'success': True, 'message': 'تم سحب البيانات'}
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.sync_calls = 0
        self.pull_calls = 0

    def hold(self) -> asyncio.Event:
        self.gate = asyncio.Event()
        return self.gate

    async def sync_all(self) -> Dict[str, Any]:
        self.sync_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return dict(self.result)

    async def pull_all(self) -> Dict[str, Any]:
        self.pull_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return dict(self.pull_result)


class FakeDB:
    """Records queries; answers SELECTs from per-table row lists."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            'locations': [], 'tasks': [], 'appointments': [],
        }
        self.finances: Optional[Dict[str, Any]] = None
        self.executed: List[tuple] = []
        self.error: Optional[Exception] = None

    def _table_of(self, query: str) -> str:
        return query.split(" FROM ", 1)[1].split()[0]

    async def fetch_all(self, query: str, *args):
        if self.error is not None:
            raise self.error
        return [dict(row) for row in self.tables[self._table_of(query)]]

    async def fetch_one(self, query: str, *args):
        if self.error is not None:
            raise self.error
        return dict(self.finances) if self.finances is not None else None

    async def execute(self, query: str, *args):
        if self.error is not None:
            raise self.error
        self.executed.append((query, args))
        return "INSERT 0 1"

    def upserts_into(self, table: str) -> List[tuple]:
        return [args for query, args in self.executed if query.startswith(f"INSERT INTO {table} ")]


class FakeClock:
    """Controllable sleep for timer tests: sleepers wake only on advance()."""

    def __init__(self):
        self.sleepers: List[asyncio.Future] = []
        self.requested: List[float] = []

    async def sleep(self, seconds: float) -> None:
        self.requested.append(seconds)
        future = asyncio.get_running_loop().create_future()
        self.sleepers.append(future)
        await future

    def advance(self) -> None:
        sleepers, self.sleepers = self.sleepers, []
        for future in sleepers:
            if not future.done():
                future.set_result(None)


async def drain(rounds: int = 20) -> None:
    """Let every ready task run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def fresh_logging():
    """Let init_safe_logging run again, then put the root logger back"""
    from barakah.core.safe_logger import reset_safe_logging

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    reset_safe_logging()
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    reset_safe_logging()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Each test starts without a global worker or coordinator"""
    reset_service_worker()
    reset_sync_coordinator()
    yield
    reset_service_worker()
    reset_sync_coordinator()


@pytest.fixture
def origin():
    return ORIGIN


@pytest.fixture
def fetcher():
    """Network that serves the default static asset list"""
    return FakeFetcher({
        f"{ORIGIN}/": "<html>root</html>",
        f"{ORIGIN}/index.html": "<html>index</html>",
        f"{ORIGIN}/manifest.json": '{"name": "Barakah"}',
    })


@pytest.fixture
def static_assets():
    return ["/", "/index.html", "/manifest.json"]


@pytest.fixture
def fake_remote():
    return FakeRemote()


@pytest.fixture
def fake_db():
    return FakeDB()


@pytest.fixture
def fake_clock():
    return FakeClock()
