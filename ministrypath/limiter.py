"""
Shared slowapi limiter for login, submission and scoring routes.
"""
import logging
from typing import Optional

import redis
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

logger = logging.getLogger(__name__)


def _redis_storage_uri() -> Optional[str]:
    """Return the Redis URL when it is enabled and answering, else None."""
    if not settings.REDIS_ENABLED:
        logger.info("Rate limiter using memory storage (Redis disabled)")
        return None

    try:
        redis.from_url(settings.REDIS_URL, socket_connect_timeout=1).ping()
    except (redis.RedisError, ValueError) as e:
        logger.warning(f"Redis unreachable for rate limiting ({e}). Falling back to memory storage.")
        return None

    logger.info("Rate limiter using Redis storage")
    return settings.REDIS_URL


def get_limiter() -> Limiter:
    storage_uri = _redis_storage_uri()
    if storage_uri:
        return Limiter(key_func=get_remote_address, storage_uri=storage_uri)
    return Limiter(key_func=get_remote_address)


limiter = get_limiter()
