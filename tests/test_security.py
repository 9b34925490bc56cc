"""Tests for the security primitives and the stateless token issuer."""

from datetime import timedelta

import jwt
import pytest

from services import tokens
from utils.errors import InvalidAccessToken, InvalidSignature, TokenExpired
from utils.security import (
    create_access_token,
    generate_numeric_code,
    generate_refresh_token,
    hash_password,
    hash_token,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_is_salted(self):
        first = hash_password("TestPassword123!")
        second = hash_password("TestPassword123!")

        assert first != second
        assert first.startswith("$argon2")

    def test_verify_accepts_right_password(self):
        assert verify_password("TestPassword123!", hash_password("TestPassword123!"))

    def test_verify_rejects_wrong_password(self):
        assert not verify_password("nope", hash_password("TestPassword123!"))

    def test_verify_without_hash_is_false(self):
        assert verify_password("anything", None) is False

    def test_verify_with_garbage_hash_is_false(self):
        assert verify_password("anything", "not-an-argon2-hash") is False


class TestAccessTokens:
    def test_issued_token_verifies_to_subject(self, ctx):
        identity = tokens.verify(create_access_token("user-123"))

        assert identity.user_id == "user-123"
        assert identity.expires_at > identity.issued_at

    def test_expiry_window_comes_from_config(self, ctx):
        identity = tokens.verify(create_access_token("user-123"))

        window = ctx.config["ACCESS_TOKEN_EXPIRES"].total_seconds()
        assert identity.expires_at - identity.issued_at == int(window)

    def test_expired_token_is_rejected(self, ctx, clock):
        clock.advance(days=-4)
        token = create_access_token("user-123")

        with pytest.raises(TokenExpired):
            tokens.verify(token)

    def test_token_signed_with_other_key_is_rejected(self, ctx):
        claims = jwt.decode(
            create_access_token("user-123"), options={"verify_signature": False}
        )
        forged = jwt.encode(claims, "some-other-secret-that-is-long-enough", algorithm="HS256")

        with pytest.raises(InvalidSignature):
            tokens.verify(forged)

    def test_garbage_is_rejected(self, ctx):
        with pytest.raises(InvalidAccessToken):
            tokens.verify("invalid.token.here")

    def test_wrong_token_type_is_rejected(self, ctx):
        claims = jwt.decode(
            create_access_token("user-123"), options={"verify_signature": False}
        )
        claims["type"] = "refresh"
        token = jwt.encode(claims, ctx.config["JWT_SECRET"], algorithm="HS256")

        with pytest.raises(InvalidSignature):
            tokens.verify(token)


class TestOpaqueValues:
    def test_refresh_tokens_carry_at_least_128_bits(self, ctx):
        token = generate_refresh_token()

        # urlsafe base64: 6 bits per character
        assert len(token) * 6 >= 128
        assert token != generate_refresh_token()

    def test_refresh_token_hash_is_stable_and_one_way(self):
        assert hash_token("abc") == hash_token("abc")
        assert hash_token("abc") != "abc"
        assert len(hash_token("abc")) == 64

    def test_numeric_code_shape(self):
        code = generate_numeric_code(6)

        assert len(code) == 6
        assert code.isdigit()

    def test_mint_does_not_need_the_ledger(self, ctx):
        pair = tokens.mint("user-123")

        assert pair.token_type == "bearer"
        assert pair.expires_in == int(timedelta(days=3).total_seconds())
        assert tokens.verify(pair.access_token).user_id == "user-123"
