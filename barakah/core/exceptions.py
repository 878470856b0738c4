# barakah/core/exceptions.py
"""Exception hierarchy shared by the offline cache and cloud sync integrations."""


class BarakahError(Exception):
    """Base exception for Barakah gateway errors."""
    pass


class NetworkError(BarakahError):
    """Network fetch rejected (connection refused, DNS failure, timeout)."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"Network request to {url} failed: {reason}" if reason else f"Network request to {url} failed")


class OfflineFetchError(BarakahError):
    """Network failed and no cached response could stand in for it."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"No network and no cached response for {url}")


class CacheInstallError(BarakahError):
    """Pre-caching the static asset list failed during install."""
    pass


class DatabaseNotConfiguredError(BarakahError):
    """DATABASE_URL is not set, so the hosted backend is unreachable."""
    pass


__all__ = [
    'BarakahError',
    'NetworkError',
    'OfflineFetchError',
    'CacheInstallError',
    'DatabaseNotConfiguredError',
]
