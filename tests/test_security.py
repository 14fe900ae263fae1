# =============================================================================
# tests/test_security.py - Credential Utility Tests
# =============================================================================
# Password hashing and policy, email shape check, random tokens and codes,
# and signed session/approval tokens.
#
# Run with: pytest tests/test_security.py -v
# =============================================================================

from datetime import timedelta

import pytest
from jose import jwt

from app.config import settings
from lib.security import (
    ALGORITHM,
    create_approval_token,
    create_session_token,
    decode_token,
    generate_opaque_token,
    generate_short_code,
    hash_password,
    validate_email,
    validate_password,
    verify_approval_token,
    verify_password,
)
from lib.utils import utc_now


class TestPasswordHashing:
    """Tests for hash_password / verify_password."""

    def test_hash_round_trip(self):
        hashed = hash_password("Sunset#2024")

        assert hashed != "Sunset#2024"
        assert verify_password("Sunset#2024", hashed)
        assert not verify_password("sunset#2024", hashed)

    def test_hashes_are_salted(self):
        assert hash_password("Sunset#2024") != hash_password("Sunset#2024")

    def test_missing_or_garbage_hash_never_matches(self):
        assert not verify_password("anything", None)
        assert not verify_password("anything", "")
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestPasswordPolicy:
    """The first failing rule decides the message."""

    def test_short_password_mentions_length(self):
        check = validate_password("short")

        assert not check.valid
        assert "8 characters" in check.message

    def test_missing_uppercase(self):
        check = validate_password("alllowercase1!")

        assert not check.valid
        assert "uppercase" in check.message

    @pytest.mark.parametrize(
        "password, fragment",
        [
            ("ALLUPPER1!", "lowercase"),
            ("NoDigits!!", "number"),
            ("NoSymbol12", "special"),
        ],
    )
    def test_each_rule(self, password, fragment):
        check = validate_password(password)

        assert not check.valid
        assert fragment in check.message

    def test_minimal_valid_password(self):
        assert validate_password("Aa1!aaaa").valid

    def test_none_is_invalid(self):
        assert not validate_password(None).valid


class TestEmailShape:
    @pytest.mark.parametrize("email", ["a@b.co", "first.last@example.org"])
    def test_accepts(self, email):
        assert validate_email(email)

    @pytest.mark.parametrize("email", ["", None, "plain", "a@b", "a b@c.com", "@example.com"])
    def test_rejects(self, email):
        assert not validate_email(email)


class TestRandomValues:
    def test_opaque_token_shape(self):
        token = generate_opaque_token()

        assert len(token) == 32
        assert token.isalnum()

    def test_short_code_is_six_digits(self):
        for _ in range(200):
            code = generate_short_code()
            assert len(code) == 6
            assert code.isdigit()
            assert 100000 <= int(code) <= 999999


class TestSignedTokens:
    """Session and approval tokens."""

    def test_session_token_claims(self):
        claims = decode_token(create_session_token("user@example.com", False))

        assert claims["email"] == "user@example.com"
        assert claims["isAdmin"] is False
        assert claims["exp"] - claims["iat"] == settings.SESSION_TOKEN_EXPIRE_HOURS * 3600

    def test_invalid_tokens_collapse_to_none(self):
        forged = jwt.encode({"email": "x@example.com"}, "another-secret-value", algorithm=ALGORITHM)
        expired = jwt.encode(
            {"email": "x@example.com", "exp": int((utc_now() - timedelta(minutes=1)).timestamp())},
            settings.JWT_SECRET,
            algorithm=ALGORITHM,
        )

        for token in [None, "", "garbage", forged, expired]:
            assert decode_token(token) is None

    def test_approval_token_is_bound_to_order(self):
        token = create_approval_token("order-1")

        assert verify_approval_token(token, "order-1")
        assert not verify_approval_token(token, "order-2")
        assert not verify_approval_token(token, None)

    def test_session_token_is_not_an_approval_token(self):
        token = create_session_token("admin@example.com", True)

        assert not verify_approval_token(token, "order-1")

    def test_approval_token_lifetime(self):
        claims = decode_token(create_approval_token("order-1"))

        assert claims["exp"] - claims["iat"] == settings.APPROVAL_TOKEN_EXPIRE_HOURS * 3600
