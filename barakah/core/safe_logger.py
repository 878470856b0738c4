# barakah/core/safe_logger.py
"""
BARAKAH GATEWAY - LOGGING SETUP
Purpose: one place to configure stdout logging for the gateway process

The service worker, the cache router and the sync coordinator all log from
concurrent asyncio tasks. Every message is kept to a single line so log
collectors never interleave half-written entries; multi-field results go
through log_summary() which folds them into one line.

USAGE:
    from barakah.core.safe_logger import init_safe_logging, get_safe_logger, log_summary

    init_safe_logging(level="INFO")            # once, in app.py
    logger = get_safe_logger(__name__)
    log_summary("Cache activated", {"kept": "baraka-cache-v1", "deleted": 2})
"""

import logging
import sys
import json
from typing import Any, Dict, Optional, Union
from datetime import datetime, timezone

# =============================================================================
# CONFIGURATION
# =============================================================================

# Track if logging has been initialized
_initialized = False

DEFAULT_LOG_LEVEL = logging.INFO

DEFAULT_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'

# Separator used when a message must be folded onto one line
MULTILINE_SEPARATOR = " ⏎ "


# =============================================================================
# LOGGER INITIALIZATION
# =============================================================================

def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else DEFAULT_LOG_LEVEL


def init_safe_logging(
    level: Union[int, str] = DEFAULT_LOG_LEVEL,
    format_string: Optional[str] = None,
    use_structured: bool = False
) -> logging.Logger:
    """
    Initialize the logging system.

    Call this once at application startup (in app.py). Later calls are no-ops.

    Args:
        level: Logging level as int or name ("DEBUG", "INFO", ...)
        format_string: Custom format string (optional)
        use_structured: If True, emit one JSON object per line

    Returns:
        Root logger instance
    """
    global _initialized

    if _initialized:
        return logging.getLogger()

    level = _resolve_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)

    if use_structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(SingleLineFormatter(format_string or DEFAULT_FORMAT))

    root_logger.addHandler(handler)

    _initialized = True
    root_logger.info(f"🔒 Logging initialized (level={logging.getLevelName(level)}, structured={use_structured})")

    return root_logger


def reset_safe_logging() -> None:
    """Allow init_safe_logging() to run again (for testing)."""
    global _initialized
    _initialized = False


def get_safe_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Drop-in replacement for logging.getLogger().
    """
    return logging.getLogger(name)


# =============================================================================
# FORMATTERS
# =============================================================================

class SingleLineFormatter(logging.Formatter):
    """Plain-text formatter that folds embedded newlines onto one line."""

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        return formatted.replace("\n", MULTILINE_SEPARATOR)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter that keeps multi-line content together.

    Each record becomes one JSON object so log collectors treat it as a
    single entry.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage()
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_data'):
            log_entry["data"] = record.extra_data

        return json.dumps(log_entry, ensure_ascii=False, default=str)


# =============================================================================
# SUMMARY LOGGING
# =============================================================================

def log_summary(
    title: str,
    stats: Dict[str, Any],
    logger_name: Optional[str] = None,
    level: str = "info"
) -> None:
    """
    Log a one-line summary of a result dictionary.

    Used for cache activation reports and sync outcomes instead of dumping
    every entry.

    Args:
        title: Summary title
        stats: Dictionary of statistics to log
        logger_name: Optional logger name
        level: Log level
    """
    logger = logging.getLogger(logger_name) if logger_name else logging.getLogger()
    log_func = getattr(logger, level.lower(), logger.info)

    stats_str = " | ".join(f"{k}: {v}" for k, v in stats.items())
    log_func(f"📊 {title} | {stats_str}", extra={"extra_data": stats})


__all__ = [
    'init_safe_logging',
    'reset_safe_logging',
    'get_safe_logger',
    'log_summary',
    'SingleLineFormatter',
    'StructuredFormatter',
]
