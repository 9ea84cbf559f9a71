"""
tests/conftest.py -- Shared test fixtures for Tag Admin.

This module provides:
  - FakeClock / FakeRedis / BrokenRedis: in-process stand-ins for time and
    the redis.Redis commands RedisCache uses (set/get/ttl/delete/ping)
  - settings: a Settings object with fixed secrets and no .env lookup
  - user_store / tag_store: in-memory SQLite stores for unit tests
  - client: TestClient over create_app() with a patched lifespan
  - login: helper that solves the captcha and logs in through the API

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
TestClient stores because route handlers run in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Each client gets a unique DB name so tests stay isolated.
"""

from __future__ import annotations

import math
import time
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from api.limiter import limiter
from api.main import attach_services, create_app
from auth.store import UserStore
from cache.store import RedisCache
from core.config import Settings
from tags.store import TagStore

ADMIN_USER = "admin"
ADMIN_PASSWORD = "admin-pass-123"
CAPTCHA_TEXT = "aB3d"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock. Call it like time.time()."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """Dict-backed subset of redis.Redis with decode_responses=True semantics."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}

    def _live(self, key: str) -> tuple[str, float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return entry

    def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._data[key] = (value, self._clock() + ex if ex is not None else None)
        return True

    def get(self, key: str) -> str | None:
        entry = self._live(key)
        return entry[0] if entry else None

    def ttl(self, key: str) -> int:
        entry = self._live(key)
        if entry is None:
            return -2
        if entry[1] is None:
            return -1
        return math.ceil(entry[1] - self._clock())

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                del self._data[key]
                removed += 1
        return removed

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass


class BrokenRedis:
    """Every command fails the way redis-py does when the server is down."""

    def _fail(self, *args, **kwargs):
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    set = get = ttl = delete = ping = _fail

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


def make_settings(**overrides) -> Settings:
    values = {
        "jwt_access_token_secret": "access-secret-" + "a" * 32,
        "jwt_refresh_token_secret": "refresh-secret-" + "r" * 32,
        "session_secret_key": "session-secret-" + "s" * 32,
        "jwt_access_token_expires_in": 3600,
        "jwt_refresh_token_expires_in": 7 * 24 * 3600,
        "debug": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeRedis:
    return FakeRedis(clock)


@pytest.fixture
def cache(fake_redis: FakeRedis) -> RedisCache:
    return RedisCache(fake_redis)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def tag_store() -> Generator[TagStore, None, None]:
    store = TagStore("sqlite:///:memory:")
    yield store
    store.close()


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(settings: Settings, user_store: UserStore, tag_store: TagStore, cache: RedisCache):
    """Return a lifespan that wires test stores instead of opening real ones."""

    @asynccontextmanager
    async def test_lifespan(app):
        attach_services(app, settings, user_store, tag_store, cache)
        yield

    return test_lifespan


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> None:
    limiter.reset()


@pytest.fixture
def fixed_captcha(monkeypatch: pytest.MonkeyPatch) -> str:
    """Make every generated captcha read CAPTCHA_TEXT."""
    monkeypatch.setattr("auth.captcha._random_text", lambda size=4: CAPTCHA_TEXT)
    return CAPTCHA_TEXT


@pytest.fixture
def api_settings() -> Settings:
    return make_settings()


@pytest.fixture
def api_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def client(api_settings: Settings, api_redis) -> Generator[TestClient, None, None]:
    """TestClient over the real app with isolated stores and an admin user.

    Override api_redis (e.g. with BrokenRedis) or api_settings in a test
    module to change the environment the app sees.
    """
    suffix = uuid.uuid4().hex
    db_url = f"sqlite:///file:test_tagadmin_{suffix}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url)
    tag_store = TagStore(db_url)
    user_store.create_user(ADMIN_USER, ADMIN_PASSWORD)

    app = create_app(api_settings)
    app.router.lifespan_context = _patch_lifespan(api_settings, user_store, tag_store, RedisCache(api_redis))

    with TestClient(app, raise_server_exceptions=True) as test_client:
        yield test_client

    tag_store.close()
    user_store.close()


@pytest.fixture
def login(client: TestClient, fixed_captcha: str) -> Callable[..., dict]:
    """Return a function that solves the captcha and logs in; yields the JSON body."""

    def _login(user_name: str = ADMIN_USER, password: str = ADMIN_PASSWORD) -> dict:
        assert client.get("/api/v1/auth/captcha").status_code == 200
        resp = client.post(
            "/api/v1/auth/login",
            json={"userName": user_name, "password": password, "captcha": fixed_captcha.upper()},
        )
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _login


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
