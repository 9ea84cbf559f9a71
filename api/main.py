"""
api/main.py -- FastAPI application factory for Tag Admin.

Run with:      python main.py serve
               uvicorn --factory api.main:create_app --reload

create_app(settings) builds the app around an explicit, frozen Settings
object. Nothing below reads the environment directly.

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter
  4. SessionMiddleware     -- signed cookie holding the pending CAPTCHA challenge

Lifespan opens the user store, tag store and Redis cache on startup and
closes them on shutdown. attach_services() does the wiring so tests can reuse
it with in-memory stores and a fake Redis client.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.tags import router as tags_router
from auth.errors import ApiResponseCode, AuthError
from auth.service import AuthService
from auth.sessions import SessionRegistry
from auth.store import UserStore
from auth.tokens import TokenService
from cache.store import RedisCache
from core.config import Settings, get_settings
from tags.store import TagStore

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("tagadmin.api")


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def attach_services(
    app: FastAPI,
    settings: Settings,
    user_store: UserStore,
    tag_store: TagStore,
    cache: RedisCache,
) -> None:
    """Build the auth services around the given stores and publish them on app.state."""
    tokens = TokenService(settings)
    sessions = SessionRegistry(cache, settings)
    app.state.user_store = user_store
    app.state.tag_store = tag_store
    app.state.cache = cache
    app.state.auth = AuthService(user_store, tokens, sessions)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open stores on startup and close them on shutdown, symmetrically."""
    settings: Settings = app.state.settings
    logger.info("Tag Admin API starting up")
    user_store = UserStore(settings.database_url)
    tag_store = TagStore(settings.database_url)
    cache = RedisCache.from_url(settings.redis_url, socket_timeout=settings.redis_timeout_seconds)
    if not cache.ping():
        logger.warning("Redis unreachable at startup -- login and token refresh will fail until it is back")
    attach_services(app, settings, user_store, tag_store, cache)
    logger.info("Stores initialized (setup_required=%s)", not user_store.has_users())

    yield

    cache.close()
    tag_store.close()
    user_store.close()
    logger.info("Tag Admin API shutdown complete")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same {code, msg} envelope so clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, msg: str, detail: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=code, msg=msg, detail=detail).model_dump(exclude_none=True),
    )


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render AuthError subclasses. The chained cause is shown only in DEBUG mode."""
    if exc.status_code >= 500:
        logger.error("%s %s -> %s", request.method, request.url.path, exc.code.value)
    else:
        logger.info("%s %s -> %s", request.method, request.url.path, exc.code.value)
    detail = None
    if exc.cause is not None and request.app.state.settings.debug:
        detail = f"{type(exc.cause).__name__}: {exc.cause}"
    return _error(exc.status_code, exc.code.value, exc.msg, detail)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a slowapi limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, ApiResponseCode.RATE_LIMITED.value, "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(422, ApiResponseCode.VALIDATION_ERROR.value, "Request validation failed.", str(exc.errors()))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routes raise HTTPException(detail={"code", "msg"}); use that dict as-is."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content=exc.detail, headers=exc.headers)
    return _error(exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected errors. The traceback goes to the log, never to the client."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, ApiResponseCode.INTERNAL_ERROR.value, "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


def health(request: Request) -> HealthResponse:
    """Return liveness plus database and cache reachability. Never rate limited."""
    components = {
        "app": "ok",
        "database": "ok" if request.app.state.user_store.ping() else "error",
        "cache": "ok" if request.app.state.cache.ping() else "error",
    }
    status = "healthy" if all(v == "ok" for v in components.values()) else "degraded"
    return HealthResponse(status=status, version=__version__, components=components)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Tag Admin API",
        description="Tag management and administrator authentication.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    # SlowAPI looks for app.state.limiter by convention.
    app.state.limiter = limiter

    # add_middleware() wraps outermost-last; register innermost first.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key,
        session_cookie="tagadmin_session",
        same_site="lax",
        https_only=settings.secure_cookies,
    )
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)
    app.middleware("http")(log_requests)

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
    app.include_router(tags_router, prefix="/api/v1", tags=["Tags"])
    app.add_api_route("/api/v1/health", health, methods=["GET"], response_model=HealthResponse, tags=["Health"])

    return app
