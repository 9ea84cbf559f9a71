"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Access tokens arrive as `Authorization: Bearer <token>`. get_current_user()
verifies the token, then confirms the (sub, userName) pair still names a user
in the credential store. Every failure is UnauthorizedAccessToken, rendered
by api/main.py as {code: UNAUTHORIZED_ACCESS_TOKEN, msg}.

The session registry is NOT consulted: a token stays usable until its exp
even after logout (no blacklist).

Layer rule: may import from fastapi (Depends/Request) because this module is
part of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from fastapi import Depends, Request

from auth.errors import UnauthorizedAccessToken
from auth.models import User
from auth.service import AuthService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


def bearer_token(request: Request) -> str | None:
    """Return the raw Bearer token from the Authorization header, if any."""
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[7:].strip() or None
    return None


def get_current_user(request: Request, auth: AuthService = Depends(get_auth_service)) -> User:
    """Require a valid access token. Raises UnauthorizedAccessToken otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    token = bearer_token(request)
    if token is None:
        raise UnauthorizedAccessToken()
    payload = auth.tokens.verify_access_token(token)
    user = auth.lookup_user_by_id_and_name(payload["sub"], payload.get("userName", ""))
    if user is None or not user.is_active:
        raise UnauthorizedAccessToken()
    return user
