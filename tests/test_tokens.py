"""
tests/test_tokens.py -- Unit tests for auth.tokens.TokenCodec.

Covers:
  - issue/verify round trip within the TTL
  - expiry boundary: valid at t0 + ttl - 1, expired at t0 + ttl
  - signature failures: other key, tampered payload
  - algorithm confusion: "none" and HS512 rejected as malformed
  - garbage input and wrong-shaped claims rejected as malformed
"""

from __future__ import annotations

import base64
import json

import pytest
from jose import jwt

from auth.errors import BadSignature, Expired, MalformedToken
from auth.models import Role
from auth.tokens import TokenCodec

TEST_SECRET_KEY = "unit-test-secret-key-0123456789abcdef0123"
OTHER_SECRET_KEY = "another-secret-key-0123456789abcdef012345"
TEST_TTL_SECONDS = 600


def _b64(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET_KEY, TEST_TTL_SECONDS)


class TestRoundTrip:
    def test_verify_returns_issued_identity(self, codec, fixed_clock):
        token = codec.issue("user-1", Role.MODERATOR, fixed_clock())
        assert codec.verify(token, fixed_clock()) == ("user-1", Role.MODERATOR)

    def test_role_comes_back_as_enum(self, codec, fixed_clock):
        token = codec.issue("user-1", Role.ADMIN, fixed_clock())
        _, role = codec.verify(token, fixed_clock())
        assert role is Role.ADMIN

    def test_claims_are_id_role_expired_at(self, codec, fixed_clock):
        token = codec.issue("user-1", Role.USER, fixed_clock())
        claims = jwt.get_unverified_claims(token)
        assert claims == {
            "id": "user-1",
            "role": 0,
            "expired_at": int(fixed_clock().timestamp()) + TEST_TTL_SECONDS,
        }

    def test_header_uses_hs256(self, codec, fixed_clock):
        token = codec.issue("user-1", Role.USER, fixed_clock())
        assert jwt.get_unverified_header(token)["alg"] == "HS256"


class TestExpiry:
    def test_valid_one_second_before_ttl(self, codec, fixed_clock):
        token = codec.issue("user-1", Role.USER, fixed_clock())
        fixed_clock.advance(TEST_TTL_SECONDS - 1)
        assert codec.verify(token, fixed_clock()) == ("user-1", Role.USER)

    def test_expired_exactly_at_ttl(self, codec, fixed_clock):
        token = codec.issue("user-1", Role.USER, fixed_clock())
        fixed_clock.advance(TEST_TTL_SECONDS)
        with pytest.raises(Expired):
            codec.verify(token, fixed_clock())

    def test_expired_error_code(self, codec, fixed_clock):
        token = codec.issue("user-1", Role.USER, fixed_clock())
        fixed_clock.advance(TEST_TTL_SECONDS * 2)
        with pytest.raises(Expired) as exc_info:
            codec.verify(token, fixed_clock())
        assert exc_info.value.code == "token_expired"

    def test_forged_expired_token_is_bad_signature_not_expired(self, fixed_clock):
        """Signature is checked before expiry."""
        other = TokenCodec(OTHER_SECRET_KEY, TEST_TTL_SECONDS)
        token = other.issue("user-1", Role.USER, fixed_clock())
        fixed_clock.advance(TEST_TTL_SECONDS * 2)
        with pytest.raises(BadSignature):
            TokenCodec(TEST_SECRET_KEY, TEST_TTL_SECONDS).verify(token, fixed_clock())


class TestSignature:
    def test_token_from_other_key_rejected(self, codec, fixed_clock):
        other = TokenCodec(OTHER_SECRET_KEY, TEST_TTL_SECONDS)
        token = other.issue("user-1", Role.USER, fixed_clock())
        with pytest.raises(BadSignature):
            codec.verify(token, fixed_clock())

    def test_tampered_payload_rejected(self, codec, fixed_clock):
        token = codec.issue("user-1", Role.USER, fixed_clock())
        header, _payload, signature = token.split(".")
        claims = jwt.get_unverified_claims(token)
        claims["role"] = int(Role.ADMIN)
        forged = f"{header}.{_b64(claims)}.{signature}"
        with pytest.raises(BadSignature):
            codec.verify(forged, fixed_clock())


class TestMalformed:
    def test_alg_none_rejected(self, codec, fixed_clock):
        claims = {"id": "user-1", "role": 2, "expired_at": int(fixed_clock().timestamp()) + 60}
        token = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(claims)}."
        with pytest.raises(MalformedToken):
            codec.verify(token, fixed_clock())

    def test_other_hmac_algorithm_rejected(self, codec, fixed_clock):
        claims = {"id": "user-1", "role": 0, "expired_at": int(fixed_clock().timestamp()) + 60}
        token = jwt.encode(claims, TEST_SECRET_KEY, algorithm="HS512")
        with pytest.raises(MalformedToken):
            codec.verify(token, fixed_clock())

    @pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", "...."])
    def test_garbage_rejected(self, codec, fixed_clock, garbage):
        with pytest.raises(MalformedToken):
            codec.verify(garbage, fixed_clock())

    @pytest.mark.parametrize(
        "claims",
        [
            {"role": 0, "expired_at": 4102444800},
            {"id": "user-1", "expired_at": 4102444800},
            {"id": "user-1", "role": 0},
            {"id": "user-1", "role": "admin", "expired_at": 4102444800},
            {"id": "user-1", "role": 9, "expired_at": 4102444800},
            {"id": "user-1", "role": True, "expired_at": 4102444800},
            {"id": "user-1", "role": 0, "expired_at": "tomorrow"},
            {"id": 42, "role": 0, "expired_at": 4102444800},
        ],
    )
    def test_wrong_claims_shape_rejected(self, codec, fixed_clock, claims):
        token = jwt.encode(claims, TEST_SECRET_KEY, algorithm="HS256")
        with pytest.raises(MalformedToken):
            codec.verify(token, fixed_clock())


class TestConstruction:
    def test_empty_key_refused(self):
        with pytest.raises(ValueError):
            TokenCodec("", TEST_TTL_SECONDS)

    def test_non_positive_ttl_refused(self):
        with pytest.raises(ValueError):
            TokenCodec(TEST_SECRET_KEY, 0)
