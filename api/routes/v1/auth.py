"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  GET  /api/v1/auth/captcha      -- PNG challenge; answer stored in the session cookie
  POST /api/v1/auth/login        -- captcha + password login; returns access/refresh tokens
  POST /api/v1/auth/refresh      -- exchange a refresh token for a new access token
  POST /api/v1/auth/logout       -- drop the user's session registry entry (best-effort)
  GET  /api/v1/auth/me           -- current user (requires access token)
  GET  /api/v1/auth/token-ttl    -- seconds left on the current registry entry

Security:
  POST /login and GET /captcha are rate-limited per IP.
  The captcha is checked before credentials and consumed as soon as it has
  been accepted, so one solved image buys exactly one password attempt.
  Same error for unknown user and wrong password (UNAUTHORIZED_CREDENTIALS).
  Cache-Control: no-store on captcha and token responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import (
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    RefreshRequest,
    RefreshResponse,
    TokenTTLResponse,
    UserInfo,
)
from auth.captcha import challenge_session, consume_captcha, generate_captcha, verify_captcha
from auth.dependencies import get_auth_service, get_current_user
from auth.errors import UnauthorizedCredentials, UnauthorizedRefreshToken
from auth.models import User
from auth.service import AuthService

# Auth policy:
# - GET  /auth/captcha:    public
# - POST /auth/login:      public, captcha-gated
# - POST /auth/refresh:    refresh token in body
# - POST /auth/logout:     public -- revoking a registry entry needs no prior auth
# - GET  /auth/me:         requires access token (get_current_user)
# - GET  /auth/token-ttl:  requires access token (get_current_user)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/captcha", response_class=Response)
@limiter.limit("30/minute")
def captcha(request: Request, phone: bool = False) -> Response:
    """Issue a new CAPTCHA image and replace the session's pending challenge."""
    challenge = generate_captcha(phone=phone)
    challenge_session(request.session, challenge, request.app.state.settings.captcha_expires_in)
    return Response(
        content=challenge.image,
        media_type=challenge.media_type,
        headers={"Cache-Control": "no-store"},
    )


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit("10/minute")  # route limits are only checked inside this wrapper
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Verify the captcha, check credentials and open a session."""
    verify_captcha(body.captcha, request.session)
    consume_captcha(request.session)

    user = auth.login(body.user_name, body.password)
    if user is None:
        raise UnauthorizedCredentials()

    access_token, refresh_token = auth.issue_session(user)
    response.headers["Cache-Control"] = "no-store"
    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=auth.tokens.access_expires_in,
        user=UserInfo.from_user(user),
    )


@router.post("/auth/refresh", response_model=RefreshResponse)
def refresh(
    response: Response,
    body: RefreshRequest,
    auth: AuthService = Depends(get_auth_service),
) -> RefreshResponse:
    """Exchange a valid refresh token for a new access token.

    The new token replaces the user's registry entry (last write wins).
    """
    payload = auth.tokens.verify_refresh_token(body.refresh_token)
    user = auth.lookup_user(payload["sub"])
    if user is None or not user.is_active:
        raise UnauthorizedRefreshToken()

    access_token = auth.refresh_access_token(user.id, user.user_name)
    response.headers["Cache-Control"] = "no-store"
    return RefreshResponse(access_token=access_token, expires_in=auth.tokens.access_expires_in)


@router.post("/auth/logout")
def logout(body: LogoutRequest, auth: AuthService = Depends(get_auth_service)) -> dict:
    """Remove the user's registry entry. Always succeeds from the caller's view."""
    auth.logout(body.id, body.user_name)
    return {"msg": "Logged out."}


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserInfo)
def me(current_user: User = Depends(get_current_user)) -> UserInfo:
    return UserInfo.from_user(current_user)


@router.get("/auth/token-ttl", response_model=TokenTTLResponse)
def token_ttl(
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> TokenTTLResponse:
    """Report how long the current session has left, for "about to expire" prompts."""
    return TokenTTLResponse(ttl=auth.token_ttl(current_user.id, current_user.user_name))
