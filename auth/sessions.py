"""
auth/sessions.py -- Cache-backed registry of the current access token per user.

Each (user id, user name) pair owns exactly one cache key,
`user_token:{id}-{userName}`. The layout is persisted state shared with other
deployments of this service: do not change it.

Revocation deletes the registry entry only. An access token that was already
issued stays cryptographically valid until its own exp -- there is no
blacklist. Clients use token_ttl() to learn when their session is about to
lapse.

Layer rule: no imports from api/ or tags/. Import from cache/ and core/ is
allowed.
"""

from __future__ import annotations

from typing import Optional

from cache.store import RedisCache
from core.config import Settings

_KEY_PREFIX = "user_token"


def cache_key(user_id: int, user_name: str) -> str:
    return f"{_KEY_PREFIX}:{user_id}-{user_name}"


class SessionRegistry:
    def __init__(self, cache: RedisCache, settings: Settings) -> None:
        self.cache = cache
        self.ttl_seconds = settings.jwt_access_token_expires_in

    def cache_key(self, user_id: int, user_name: str) -> str:
        return cache_key(user_id, user_name)

    def store_access_token(self, user_id: int, user_name: str, token: str) -> None:
        """Record token as current for the user. Last write wins."""
        self.cache.set_cache(cache_key(user_id, user_name), token, self.ttl_seconds)

    def fetch_access_token(self, user_id: int, user_name: str) -> Optional[str]:
        return self.cache.get_cache(cache_key(user_id, user_name))

    def token_ttl(self, key: str) -> Optional[int]:
        return self.cache.get_ttl(key)

    def revoke(self, user_id: int, user_name: str) -> int:
        """Drop the registry entry. Returns the number of entries removed."""
        return self.cache.clear_cache(cache_key(user_id, user_name))
