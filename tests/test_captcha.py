"""Unit tests for auth/captcha.py.

Covers:
- the verification table: match (case-insensitive), mismatch, expired, no session
- expiry boundary (now == expirationTimestamp is still valid)
- challenge_session / consume_captcha session bookkeeping
- generated images: PNG, expected size, no look-alike glyphs
"""

import io

import pytest
from PIL import Image

from auth import captcha
from auth.captcha import (
    SESSION_ANSWER_KEY,
    SESSION_EXPIRY_KEY,
    challenge_session,
    consume_captcha,
    generate_captcha,
    verify_captcha,
)
from auth.errors import (
    ApiResponseCode,
    UnauthorizedCaptchaExpired,
    UnauthorizedCaptchaMismatch,
    UnauthorizedNoSession,
)
from auth.models import CaptchaChallenge

NOW = 1_700_000_000_000


def _session(answer="aB3d", expires=NOW + 60_000) -> dict:
    return {"captcha": answer, "expirationTimestamp": expires}


class TestVerify:
    def test_case_insensitive_match(self):
        assert verify_captcha("AB3D", _session(), now_ms=NOW) is None

    def test_exact_match(self):
        verify_captcha("aB3d", _session(), now_ms=NOW)

    def test_mismatch(self):
        with pytest.raises(UnauthorizedCaptchaMismatch) as exc_info:
            verify_captcha("AB3E", _session(), now_ms=NOW)
        assert exc_info.value.code is ApiResponseCode.UNAUTHORIZED_CAPTCHA_ERROR

    def test_expired(self):
        with pytest.raises(UnauthorizedCaptchaExpired) as exc_info:
            verify_captcha("AB3D", _session(expires=NOW - 1), now_ms=NOW)
        assert exc_info.value.code is ApiResponseCode.UNAUTHORIZED_CAPTCHA_EXPIRE

    def test_expired_wins_over_mismatch(self):
        with pytest.raises(UnauthorizedCaptchaExpired):
            verify_captcha("nope", _session(expires=NOW - 1), now_ms=NOW)

    def test_boundary_is_inclusive(self):
        verify_captcha("ab3d", _session(expires=NOW), now_ms=NOW)

    def test_missing_expiration_counts_as_expired(self):
        with pytest.raises(UnauthorizedCaptchaExpired):
            verify_captcha("AB3D", {"captcha": "aB3d"}, now_ms=NOW)

    def test_no_captcha_field(self):
        with pytest.raises(UnauthorizedNoSession) as exc_info:
            verify_captcha("AB3D", {"expirationTimestamp": NOW + 60_000}, now_ms=NOW)
        assert exc_info.value.code is ApiResponseCode.UNAUTHORIZED_NOTFOUND_SESSION

    @pytest.mark.parametrize("session", [None, {}, {"captcha": ""}])
    def test_empty_sessions(self, session):
        with pytest.raises(UnauthorizedNoSession):
            verify_captcha("AB3D", session, now_ms=NOW)

    def test_no_normalization_beyond_case(self):
        with pytest.raises(UnauthorizedCaptchaMismatch):
            verify_captcha(" ab3d", _session(), now_ms=NOW)

    def test_uses_wall_clock_by_default(self):
        verify_captcha("ab3d", _session(expires=10**15))


class TestSessionBookkeeping:
    def test_challenge_session_writes_answer_and_expiry(self):
        session: dict = {}
        challenge_session(session, CaptchaChallenge(text="Xy7k", image=b""), ttl_seconds=60, now_ms=NOW)
        assert session == {SESSION_ANSWER_KEY: "Xy7k", SESSION_EXPIRY_KEY: NOW + 60_000}

    def test_new_challenge_replaces_old(self):
        session = _session()
        challenge_session(session, CaptchaChallenge(text="Qq22", image=b""), ttl_seconds=60, now_ms=NOW)
        with pytest.raises(UnauthorizedCaptchaMismatch):
            verify_captcha("aB3d", session, now_ms=NOW)
        verify_captcha("qq22", session, now_ms=NOW)

    def test_consume_removes_challenge(self):
        session = _session()
        session["other"] = 1
        consume_captcha(session)
        assert session == {"other": 1}
        with pytest.raises(UnauthorizedNoSession):
            verify_captcha("aB3d", session, now_ms=NOW)

    def test_consume_on_empty_session(self):
        session: dict = {}
        consume_captcha(session)
        assert session == {}


class TestGenerate:
    def test_desktop_image(self):
        challenge = generate_captcha()
        assert challenge.media_type == "image/png"
        with Image.open(io.BytesIO(challenge.image)) as im:
            assert im.format == "PNG"
            assert im.size == (135, 40)

    def test_phone_image_is_narrower(self):
        with Image.open(io.BytesIO(generate_captcha(phone=True).image)) as im:
            assert im.size == (80, 40)

    def test_text_shape(self):
        for _ in range(50):
            text = generate_captcha().text
            assert len(text) == 4
            assert not set(text) & set("0OlI")
            assert text.isalnum()

    def test_alphabet_excludes_lookalikes(self):
        assert not set(captcha._ALPHABET) & set("0OlI")
