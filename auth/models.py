"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors tags/models.py
-- dataclasses own domain shape; stores and services do the work.

Layer rule: no imports from api/, cache/, or tags/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An administrator account.

    password_hash is a bcrypt hash. It never leaves the auth layer: API
    response models copy id and user_name only.
    """

    user_name: str
    password_hash: str
    id: int | None = None
    created_at: str | None = None
    is_active: bool = True


@dataclass
class CaptchaChallenge:
    """A freshly generated CAPTCHA.

    text is the expected answer; image is the rendered PNG. The answer is
    written to the per-connection session, never to the response.
    """

    text: str
    image: bytes
    media_type: str = "image/png"
