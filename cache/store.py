"""
cache/store.py -- Redis-backed key-value cache with per-key expiry.

The auth layer uses it to hold the currently valid access token per user
(see auth/sessions.py). The contract is deliberately small:

    cache = RedisCache.from_url("redis://localhost:6379/0")
    cache.set_cache("user_token:1-admin", token, 3600)
    cache.get_cache("user_token:1-admin")   # str or None
    cache.get_ttl("user_token:1-admin")     # seconds, -1 (no expiry) or None (missing)
    cache.clear_cache("user_token:1-admin") # number of keys deleted

Errors from redis-py (ConnectionError, TimeoutError, ...) propagate. The
caller decides whether a failure is fatal (token refresh) or best-effort
(logout). The only resource bound is the socket timeout configured here.
"""

from __future__ import annotations

from typing import Optional

from redis import Redis
from redis.exceptions import RedisError

# Redis TTL replies: -2 key does not exist, -1 key exists without expiry.
_TTL_MISSING = -2


class RedisCache:
    def __init__(self, client: Redis) -> None:
        self.client = client

    @classmethod
    def from_url(cls, redis_url: str, *, socket_timeout: float = 5.0) -> "RedisCache":
        client = Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def set_cache(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value under key for ttl_seconds, replacing any existing entry."""
        self.client.set(key, value, ex=ttl_seconds)

    def get_cache(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def get_ttl(self, key: str) -> Optional[int]:
        """Return remaining lifetime in seconds, -1 for no expiry, None if missing."""
        ttl = self.client.ttl(key)
        if ttl is None or ttl == _TTL_MISSING:
            return None
        return int(ttl)

    def clear_cache(self, key: str) -> int:
        """Delete key. Returns the number of keys removed (0 or 1)."""
        return int(self.client.delete(key))

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError:
            return False

    def close(self) -> None:
        self.client.close()
