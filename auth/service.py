"""
auth/service.py -- Login, refresh and logout flows.

AuthService composes the credential store (UserStore), the token service and
the session registry. It holds no state of its own; one instance lives on
app.state and is shared by all requests.

Failure policy:
  login            -- returns None for bad credentials; the route decides.
  refresh          -- any failure while issuing or recording the token is an
                      InternalError(INTERNALSERVERERROR_REDIS). No retry.
  logout           -- best-effort. A failed revoke is logged, never raised.
"""

from __future__ import annotations

import logging
from typing import Optional

from auth.errors import InternalError
from auth.models import User
from auth.sessions import SessionRegistry
from auth.store import UserStore
from auth.tokens import TokenService

logger = logging.getLogger("tagadmin.auth")


class AuthService:
    def __init__(self, users: UserStore, tokens: TokenService, sessions: SessionRegistry) -> None:
        self.users = users
        self.tokens = tokens
        self.sessions = sessions

    # ------------------------------------------------------------------
    # Credential lookups (pass-through)
    # ------------------------------------------------------------------

    def login(self, user_name: str, password: str) -> Optional[User]:
        """Return the matching user, or None. Hash comparison is the store's job."""
        user = self.users.find_one_by_user_name_and_password(user_name, password)
        if user is None:
            logger.info("Login failed for user_name=%r", user_name)
        return user

    def lookup_user(self, user_id: int) -> Optional[User]:
        return self.users.find_one_by_id(user_id)

    def lookup_user_by_id_and_name(self, user_id: int, user_name: str) -> Optional[User]:
        return self.users.find_one_by_user_id_and_user_name(user_id, user_name)

    # ------------------------------------------------------------------
    # Token lifecycle
    # ------------------------------------------------------------------

    def refresh_access_token(self, user_id: int, user_name: str) -> str:
        """Issue a new access token, record it as current and return it."""
        try:
            token = self.tokens.issue_access_token(user_id, user_name)
            self.sessions.store_access_token(user_id, user_name, token)
        except Exception as exc:
            logger.error("Could not record access token for user_id=%s: %s", user_id, type(exc).__name__)
            raise InternalError(cause=exc) from exc
        return token

    def issue_session(self, user: User) -> tuple[str, str]:
        """Return (access_token, refresh_token) for a freshly authenticated user."""
        access_token = self.refresh_access_token(user.id, user.user_name)
        refresh_token = self.tokens.issue_refresh_token(user.id)
        return access_token, refresh_token

    def token_ttl(self, user_id: int, user_name: str) -> Optional[int]:
        return self.sessions.token_ttl(self.sessions.cache_key(user_id, user_name))

    def logout(self, user_id: int, user_name: str) -> None:
        try:
            removed = self.sessions.revoke(user_id, user_name)
        except Exception as exc:
            logger.warning("Logout revoke failed for user_id=%s: %s", user_id, type(exc).__name__)
            return
        logger.info("Logout user_id=%s removed=%d", user_id, removed)
