"""
Rate-limited logging for stream errors.

A stream that keeps failing with no ``error`` listener attached would otherwise
log the same line over and over.
"""
import logging
import threading
from typing import Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

# Keys expire after `ttl`; the cache is rebuilt if a caller asks for another interval
_log_cache = TTLCache(maxsize=100, ttl=60)
_log_cache_lock = threading.RLock()


def rate_limited_log(
    message: str,
    level: str = "warning",
    interval: int = 60,
    logger_instance: Optional[logging.Logger] = None
) -> bool:
    """
    Log a message at most once per ``interval`` seconds.

    Args:
        message: Message to log
        level: Log level (debug, info, warning, error, critical)
        interval: Minimum interval between identical messages in seconds
        logger_instance: Logger to use (defaults to module logger)

    Returns:
        True if the message was logged, False if it was suppressed
    """
    global _log_cache

    log_instance = logger_instance or logger
    log_method = getattr(log_instance, level.lower(), log_instance.warning)
    key = f"{level}:{message}"

    with _log_cache_lock:
        if _log_cache.ttl != interval:
            _log_cache = TTLCache(maxsize=_log_cache.maxsize, ttl=interval)
        if key in _log_cache:
            return False
        log_method(message)
        _log_cache[key] = True
    return True


def reset_rate_limited_log() -> None:
    """Forget every suppressed message."""
    with _log_cache_lock:
        _log_cache.clear()
