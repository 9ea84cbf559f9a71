"""
auth/tokens.py -- JWT issuance and verification for access and refresh tokens.

Security design decisions:
  JWT: python-jose with HS256. Access and refresh tokens are signed with
       independent secrets (JWT_ACCESS_TOKEN_SECRET / JWT_REFRESH_TOKEN_SECRET)
       and carry a `typ` claim. Verification checks the secret AND the claim,
       so a refresh token is rejected as an access token (and vice versa) even
       when an operator configures the same secret twice.

  Expiry: exp/iat are written as float epoch seconds and checked here with
       `now > exp`. python-jose compares whole seconds, which would let a token
       live up to one second past its TTL, so its own exp check is disabled
       and ours is the single source of truth. No leeway.

  Clock: injectable (defaults to time.time) so expiry is testable without
       sleeping.

  Failures: verify_* raise UnauthorizedAccessToken / UnauthorizedRefreshToken
       chained to the jose error. parse_token() lets the jose error through.

Layer rule: no imports from api/, cache/, or tags/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

from auth.errors import UnauthorizedAccessToken, UnauthorizedRefreshToken
from core.config import Settings

logger = logging.getLogger("tagadmin.auth")

_ALGORITHM = "HS256"

ACCESS = "access"
REFRESH = "refresh"


class TokenService:
    """Issues and verifies signed, time-limited access and refresh tokens.

    Usage:
        tokens = TokenService(settings)
        access = tokens.issue_access_token(1, "admin")
        payload = tokens.verify_access_token(access)   # {"sub": 1, "userName": "admin", ...}
    """

    def __init__(self, settings: Settings, clock: Callable[[], float] = time.time) -> None:
        self._access_secret = settings.jwt_access_token_secret
        self._refresh_secret = settings.jwt_refresh_token_secret
        self.access_expires_in = settings.jwt_access_token_expires_in
        self.refresh_expires_in = settings.jwt_refresh_token_expires_in
        self._clock = clock

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_access_token(self, user_id: int, user_name: str) -> str:
        """Sign {sub, userName} with the access secret and access TTL."""
        return self._encode({"sub": str(user_id), "userName": user_name}, self._access_secret, self.access_expires_in, ACCESS)

    def issue_refresh_token(self, user_id: int) -> str:
        """Sign {sub} with the refresh secret and refresh TTL."""
        return self._encode({"sub": str(user_id)}, self._refresh_secret, self.refresh_expires_in, REFRESH)

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify_access_token(self, token: str) -> dict:
        """Return the payload of a valid access token.

        Raises UnauthorizedAccessToken on a bad signature, malformed token,
        expired token, or a token issued for another purpose.
        """
        try:
            return self._decode(token, self._access_secret, ACCESS)
        except (JWTError, ValueError) as exc:
            logger.info("Access token rejected: %s", type(exc).__name__)
            raise UnauthorizedAccessToken(cause=exc) from exc

    def verify_refresh_token(self, token: str) -> dict:
        """Return the payload of a valid refresh token. Raises UnauthorizedRefreshToken."""
        try:
            return self._decode(token, self._refresh_secret, REFRESH)
        except (JWTError, ValueError) as exc:
            logger.info("Refresh token rejected: %s", type(exc).__name__)
            raise UnauthorizedRefreshToken(cause=exc) from exc

    def parse_token(self, token: str) -> dict:
        """Decode an access token, letting jose.JWTError propagate unchanged."""
        return self._decode(token, self._access_secret, ACCESS)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _encode(self, claims: dict, secret: str, expires_in: int, kind: str) -> str:
        now = self._clock()
        payload = {**claims, "typ": kind, "iat": now, "exp": now + expires_in}
        return jwt.encode(payload, secret, algorithm=_ALGORITHM)

    def _decode(self, token: str, secret: str, kind: str) -> dict:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False},
        )
        exp = payload.get("exp")
        if exp is None or self._clock() > float(exp):
            raise ExpiredSignatureError("Signature has expired.")
        if payload.get("typ") != kind:
            raise JWTClaimsError(f"Expected a {kind} token.")
        payload["sub"] = int(payload.get("sub", ""))
        return payload
