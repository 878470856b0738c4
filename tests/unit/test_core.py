# =============================================================================
# tests/unit/test_core.py
# Unit tests for logging helpers, settings and the health report
# =============================================================================

import json
import logging

import pytest

from conftest import ORIGIN


class TestLogging:
    """Tests for single-line log formatting"""

    def make_record(self, message, **extra):
        record = logging.LogRecord("barakah.test", logging.INFO, __file__, 1, message, None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_single_line_formatter_folds_newlines(self):
        from barakah.core.safe_logger import SingleLineFormatter

        formatted = SingleLineFormatter("%(message)s").format(self.make_record("first\nsecond"))

        assert formatted == "first ⏎ second"

    def test_structured_formatter_emits_json(self):
        from barakah.core.safe_logger import StructuredFormatter

        record = self.make_record("📊 Cloud sync complete", extra_data={"tasks": "↑1 ↓0"})
        entry = json.loads(StructuredFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "barakah.test"
        assert entry["data"] == {"tasks": "↑1 ↓0"}

    def test_log_summary_is_one_line(self, caplog):
        from barakah.core.safe_logger import get_safe_logger, log_summary

        with caplog.at_level(logging.INFO, logger="barakah.summary"):
            log_summary("Service worker activated", {"cache": "v2", "deleted_caches": ["v1"]},
                        logger_name="barakah.summary")

        assert caplog.messages == ["📊 Service worker activated | cache: v2 | deleted_caches: ['v1']"]
        assert caplog.records[0].extra_data == {"cache": "v2", "deleted_caches": ["v1"]}
        assert get_safe_logger("barakah.summary") is logging.getLogger("barakah.summary")

    def test_init_installs_one_stdout_handler(self, fresh_logging):
        from barakah.core.safe_logger import StructuredFormatter, init_safe_logging

        root = init_safe_logging(level="debug", use_structured=True)

        assert root is fresh_logging
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_second_init_keeps_first_configuration(self, fresh_logging):
        from barakah.core.safe_logger import SingleLineFormatter, init_safe_logging

        init_safe_logging(level="WARNING")
        init_safe_logging(level="DEBUG", use_structured=True)

        assert fresh_logging.level == logging.WARNING
        assert len(fresh_logging.handlers) == 1
        assert isinstance(fresh_logging.handlers[0].formatter, SingleLineFormatter)


class TestSettings:
    """Tests for environment configuration"""

    def test_defaults(self, monkeypatch):
        from config.settings import Settings

        for key in ("CACHE_VERSION", "STATIC_ASSETS", "AUTO_SYNC_INTERVAL_SECONDS", "DATABASE_URL"):
            monkeypatch.delenv(key, raising=False)

        settings = Settings()

        assert settings.cache_version == "baraka-cache-v1"
        assert settings.static_assets == ["/", "/index.html", "/manifest.json"]
        assert settings.auto_sync_interval_seconds == 300
        assert settings.backend_host_marker == "supabase"
        assert settings.database_url is None

    def test_static_assets_list_parsing(self, monkeypatch):
        from config.settings import Settings

        monkeypatch.setenv("STATIC_ASSETS", " /, /index.html ,,/icons/icon-192x192.png ")

        assert Settings().static_assets == ["/", "/index.html", "/icons/icon-192x192.png"]

    def test_invalid_interval_rejected(self, monkeypatch):
        from config.settings import Settings

        monkeypatch.setenv("AUTO_SYNC_INTERVAL_SECONDS", "0")

        with pytest.raises(ValueError):
            Settings()


class TestDatabaseManager:
    """Tests for the unconfigured backend"""

    async def test_unconfigured_manager(self):
        from barakah.core.database import DatabaseManager
        from barakah.core.exceptions import BarakahError, DatabaseNotConfiguredError

        manager = DatabaseManager(dsn="")

        assert manager.is_configured is False
        assert (await manager.health_check())["status"] == "not_configured"
        with pytest.raises(DatabaseNotConfiguredError) as exc_info:
            await manager.fetch_all("SELECT 1")
        assert isinstance(exc_info.value, BarakahError)


class TestHealth:
    """Tests for the aggregate health report"""

    async def test_unhealthy_without_worker(self, monkeypatch):
        from barakah.core import health
        from barakah.core.database import db_manager

        monkeypatch.setattr(db_manager, "dsn", None)

        report = await health.get_health_status()

        assert report["status"] == "unhealthy"
        assert report["services"]["service_worker"]["state"] == "not_initialized"

    async def test_degraded_without_backend(self, monkeypatch, fetcher, static_assets, fake_remote):
        from barakah.core import health
        from barakah.core.database import db_manager
        from barakah.integrations.cloud_sync.local_store import LocalStateStore
        from barakah.integrations.cloud_sync.sync_coordinator import initialize_sync_coordinator
        from barakah.integrations.offline_cache.worker import initialize_service_worker

        monkeypatch.setattr(db_manager, "dsn", None)
        await initialize_service_worker(
            version="baraka-cache-v1", origin=ORIGIN, static_assets=static_assets,
            fetcher=fetcher, app_origin=ORIGIN, backend_host_marker="supabase",
        )
        initialize_sync_coordinator(remote=fake_remote, store=LocalStateStore())

        report = await health.get_health_status()

        assert report["status"] == "degraded"
        assert report["services"]["service_worker"]["status"] == "healthy"
        assert report["services"]["sync"]["autoSyncEnabled"] is False
