"""JSON cache in Redis for data fetched from the rules service.

A failed Redis call opens a short circuit breaker so that an unreachable
Redis costs one timeout, not one per request. Callers always get ``None`` or
a silent skip, never an exception.
"""

import json
import logging
import time

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "routekit:"

_pool: redis.Redis | None = None

_COOLDOWN_SECONDS = 30
_circuit_open_until: float = 0.0


def _circuit_is_open() -> bool:
    return time.monotonic() < _circuit_open_until


def _trip_circuit() -> None:
    global _circuit_open_until
    _circuit_open_until = time.monotonic() + _COOLDOWN_SECONDS


def _get_redis() -> redis.Redis:
    global _pool
    if _pool is None:
        _pool = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=0.5,
            socket_connect_timeout=0.5,
        )
    return _pool


async def cache_get(key: str) -> dict | list | None:
    """Cached JSON value for ``key``, or None when missing or Redis is down."""
    if _circuit_is_open():
        return None
    try:
        raw = await _get_redis().get(KEY_PREFIX + key)
    except Exception:
        logger.debug("Cache get failed for key=%s", key, exc_info=True)
        _trip_circuit()
        return None
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Discarding undecodable cache entry key=%s", key)
        return None


async def cache_set(key: str, value: dict | list, ttl: int | None = None) -> None:
    """Store ``value`` as JSON; skipped while the circuit is open."""
    if _circuit_is_open():
        return
    try:
        await _get_redis().set(KEY_PREFIX + key, json.dumps(value), ex=ttl or None)
    except Exception:
        logger.debug("Cache set failed for key=%s", key, exc_info=True)
        _trip_circuit()
