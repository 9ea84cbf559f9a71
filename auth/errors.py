"""
auth/errors.py -- Closed set of authentication and infrastructure errors.

Every error carries a stable ApiResponseCode, a human-readable msg and the HTTP
status the API layer should use. api/main.py renders them as {code, msg}.

The exception that triggered an error (a jose.JWTError, a redis error, ...) is
chained with `raise ... from exc` and also kept on `.cause` so handlers and
logs can report it without re-parsing the traceback. Never put tokens or
passwords in msg.

Layer rule: stdlib only.
"""

from __future__ import annotations

from enum import Enum


class ApiResponseCode(str, Enum):
    UNAUTHORIZED_ACCESS_TOKEN = "UNAUTHORIZED_ACCESS_TOKEN"
    UNAUTHORIZED_REFRESH_TOKEN = "UNAUTHORIZED_REFRESH_TOKEN"
    UNAUTHORIZED_NOTFOUND_SESSION = "UNAUTHORIZED_NOTFOUND_SESSION"
    UNAUTHORIZED_CAPTCHA_EXPIRE = "UNAUTHORIZED_CAPTCHA_EXPIRE"
    UNAUTHORIZED_CAPTCHA_ERROR = "UNAUTHORIZED_CAPTCHA_ERROR"
    UNAUTHORIZED_CREDENTIALS = "UNAUTHORIZED_CREDENTIALS"
    INTERNALSERVERERROR_REDIS = "INTERNALSERVERERROR_REDIS"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AuthError(Exception):
    """Base class for errors surfaced to clients as {code, msg}."""

    status_code: int = 401
    code: ApiResponseCode = ApiResponseCode.UNAUTHORIZED_ACCESS_TOKEN
    msg: str = "Unauthorized."

    def __init__(self, msg: str | None = None, *, cause: BaseException | None = None) -> None:
        if msg is not None:
            self.msg = msg
        super().__init__(self.msg)
        self.cause = cause

    def to_dict(self) -> dict:
        return {"code": self.code.value, "msg": self.msg}


class UnauthorizedAccessToken(AuthError):
    code = ApiResponseCode.UNAUTHORIZED_ACCESS_TOKEN
    msg = "Authentication has expired, please re-authenticate."


class UnauthorizedRefreshToken(AuthError):
    code = ApiResponseCode.UNAUTHORIZED_REFRESH_TOKEN
    msg = "Login has expired, please log in again."


class UnauthorizedNoSession(AuthError):
    code = ApiResponseCode.UNAUTHORIZED_NOTFOUND_SESSION
    msg = "No session found. Make sure the request carries the session cookie."


class UnauthorizedCaptchaExpired(AuthError):
    code = ApiResponseCode.UNAUTHORIZED_CAPTCHA_EXPIRE
    msg = "Captcha has expired."


class UnauthorizedCaptchaMismatch(AuthError):
    code = ApiResponseCode.UNAUTHORIZED_CAPTCHA_ERROR
    msg = "Captcha is incorrect."


class UnauthorizedCredentials(AuthError):
    # Same message for unknown user and wrong password.
    code = ApiResponseCode.UNAUTHORIZED_CREDENTIALS
    msg = "Invalid username or password."


class InternalError(AuthError):
    """Infrastructure failure (cache store unreachable, ...). Not retried."""

    status_code = 500
    code = ApiResponseCode.INTERNALSERVERERROR_REDIS
    msg = "Session store is unavailable."
