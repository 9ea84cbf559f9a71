"""
auth/captcha.py -- CAPTCHA challenge generation and verification.

A connection session moves through three states:

    NoChallenge --challenge_session()--> Challenged --verify_captcha() ok--> Consumed

The session is any mutable mapping (Starlette's request.session in
production, a plain dict in tests). Two keys hold the challenge:

    captcha              -- expected answer
    expirationTimestamp  -- epoch milliseconds after which the answer is stale

verify_captcha() is pure: it reads the mapping and raises one of
UnauthorizedNoSession, UnauthorizedCaptchaExpired or
UnauthorizedCaptchaMismatch. The answer comparison lower-cases both sides and
applies no other normalization.

Images are PNGs rendered with Pillow: four glyphs on a light random
background with two noise lines. Look-alike glyphs (0 O l I) are never used.
"""

from __future__ import annotations

import io
import random
import secrets
import string
import time
from collections.abc import Mapping, MutableMapping
from typing import Any, Optional

from PIL import Image, ImageDraw, ImageFont

from auth.errors import UnauthorizedCaptchaExpired, UnauthorizedCaptchaMismatch, UnauthorizedNoSession
from auth.models import CaptchaChallenge

SESSION_ANSWER_KEY = "captcha"
SESSION_EXPIRY_KEY = "expirationTimestamp"

_SIZE = 4
_IGNORE_CHARS = "0OlI"
_ALPHABET = "".join(c for c in string.ascii_letters + string.digits if c not in _IGNORE_CHARS)
_NOISE_LINES = 2
_HEIGHT = 40
_WIDTH = 135
_PHONE_WIDTH = 80

_rng = random.SystemRandom()


def _now_ms() -> int:
    return int(time.time() * 1000)


def _random_text(size: int = _SIZE) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(size))


def _random_color(low: int, high: int) -> tuple[int, int, int]:
    return (_rng.randrange(low, high), _rng.randrange(low, high), _rng.randrange(low, high))


def _render(text: str, width: int, height: int) -> bytes:
    image = Image.new("RGB", (width, height), _random_color(180, 230))
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()

    slot = width / (len(text) + 1)
    for i, char in enumerate(text):
        x = slot * (i + 0.5) + _rng.uniform(-2, 2)
        y = height / 2 - 6 + _rng.uniform(-6, 6)
        draw.text((x, y), char, fill=_random_color(20, 120), font=font)

    for _ in range(_NOISE_LINES):
        start = (_rng.randrange(0, width), _rng.randrange(0, height))
        end = (_rng.randrange(0, width), _rng.randrange(0, height))
        draw.line([start, end], fill=_random_color(60, 160), width=2)

    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def generate_captcha(phone: bool = False) -> CaptchaChallenge:
    """Create a new challenge. Phone clients get a narrower image."""
    text = _random_text()
    width = _PHONE_WIDTH if phone else _WIDTH
    return CaptchaChallenge(text=text, image=_render(text, width, _HEIGHT))


def challenge_session(
    session: MutableMapping[str, Any],
    challenge: CaptchaChallenge,
    ttl_seconds: int,
    now_ms: Optional[int] = None,
) -> None:
    """Store the challenge answer and its expiry in the session, replacing any previous one."""
    now = _now_ms() if now_ms is None else now_ms
    session[SESSION_ANSWER_KEY] = challenge.text
    session[SESSION_EXPIRY_KEY] = now + ttl_seconds * 1000


def verify_captcha(answer: str, session: Optional[Mapping[str, Any]], now_ms: Optional[int] = None) -> None:
    """Validate answer against the challenge held in session. Returns None on success."""
    expected = session.get(SESSION_ANSWER_KEY) if session else None
    if not expected:
        raise UnauthorizedNoSession()

    now = _now_ms() if now_ms is None else now_ms
    expires_at = session.get(SESSION_EXPIRY_KEY)
    if not expires_at or now > expires_at:
        raise UnauthorizedCaptchaExpired()

    if answer.lower() != str(expected).lower():
        raise UnauthorizedCaptchaMismatch()


def consume_captcha(session: MutableMapping[str, Any]) -> None:
    """Remove the challenge so the same answer cannot be replayed."""
    session.pop(SESSION_ANSWER_KEY, None)
    session.pop(SESSION_EXPIRY_KEY, None)
