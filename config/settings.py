"""
Environment configuration management for the Barakah offline gateway.
Single source of truth for all environment variables.
"""

import os
from typing import List, Optional


DEFAULT_STATIC_ASSETS = "/,/index.html,/manifest.json"


class Settings:
    """Application settings from environment variables."""

    def __init__(self):
        # Hosted Postgres backend (optional - cloud sync reports failure without it)
        self.database_url: Optional[str] = self._get_optional("DATABASE_URL", "") or None
        self.environment: str = self._get_optional("ENVIRONMENT", "development")
        self.debug: bool = self._get_optional("DEBUG", "false").lower() == "true"
        self.log_level: str = self._get_optional("LOG_LEVEL", "INFO")
        self.structured_logs: bool = self._get_optional("STRUCTURED_LOGS", "false").lower() == "true"

        # Offline gateway
        self.upstream_origin: str = self._get_optional("UPSTREAM_ORIGIN", "http://localhost:5173").rstrip("/")
        self.public_origin: str = self._get_optional("PUBLIC_ORIGIN", "http://localhost:8000").rstrip("/")
        self.backend_host_marker: str = self._get_optional("BACKEND_HOST_MARKER", "supabase")
        self.cache_version: str = self._get_optional("CACHE_VERSION", "baraka-cache-v1")
        self.static_assets: List[str] = self._get_list("STATIC_ASSETS", DEFAULT_STATIC_ASSETS)
        self.cache_storage_path: Optional[str] = self._get_optional("CACHE_STORAGE_PATH", "") or None
        self.fetch_timeout_seconds: float = float(self._get_optional("FETCH_TIMEOUT_SECONDS", "30"))

        # Cloud sync
        self.local_state_path: str = self._get_optional(
            "LOCAL_STATE_PATH", os.path.expanduser("~/.barakah_state.json")
        )
        self.auto_sync_interval_seconds: float = float(self._get_optional("AUTO_SYNC_INTERVAL_SECONDS", "300"))
        self.sync_user_id: Optional[str] = self._get_optional("SYNC_USER_ID", "") or None

        self.port: int = int(self._get_optional("PORT", "8000"))

        self._validate()

    def _get_optional(self, key: str, default: str) -> str:
        """Get optional environment variable with default."""
        return os.getenv(key, default)

    def _get_list(self, key: str, default: str) -> List[str]:
        """Get comma-separated environment variable as a list."""
        raw = self._get_optional(key, default)
        return [item.strip() for item in raw.split(",") if item.strip()]

    def _validate(self):
        """Validate configuration values."""
        if self.auto_sync_interval_seconds <= 0:
            raise ValueError(
                f"AUTO_SYNC_INTERVAL_SECONDS must be positive, got {self.auto_sync_interval_seconds}"
            )
        if self.fetch_timeout_seconds <= 0:
            raise ValueError(
                f"FETCH_TIMEOUT_SECONDS must be positive, got {self.fetch_timeout_seconds}"
            )
        if not self.cache_version:
            raise ValueError("CACHE_VERSION must not be empty")


# Global settings instance
settings = Settings()
