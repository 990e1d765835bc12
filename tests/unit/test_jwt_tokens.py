"""Tests for JWT access tokens."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest

from coursecoin.auth.jwt import create_access_token, verify_token
from coursecoin.auth.roles import Role


class TestAccessToken:
    def test_create_and_verify(self):
        token = create_access_token(user_id=7, role=Role.L1_ADMIN)
        payload = verify_token(token, expected_type="access")
        assert payload["sub"] == "7"
        assert payload["role"] == "L1_ADMIN"
        assert payload["type"] == "access"
        assert payload["iss"] == "coursecoin"

    def test_default_role_is_user(self):
        payload = verify_token(create_access_token(user_id=1))
        assert payload["role"] == "USER"

    def test_wrong_type_rejected(self, test_settings):
        private_key = Path(test_settings.jwt_private_key_path).read_text()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "1", "role": "USER", "iat": now, "exp": now + timedelta(minutes=5), "iss": "coursecoin", "type": "refresh"},
            private_key,
            algorithm="RS256",
        )
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(token, expected_type="access")

    def test_expired_token_rejected(self, test_settings):
        private_key = Path(test_settings.jwt_private_key_path).read_text()
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": "1", "role": "USER", "iat": past, "exp": past + timedelta(minutes=5), "iss": "coursecoin", "type": "access"},
            private_key,
            algorithm="RS256",
        )
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(token)

    def test_wrong_issuer_rejected(self, test_settings):
        private_key = Path(test_settings.jwt_private_key_path).read_text()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "1", "role": "USER", "iat": now, "exp": now + timedelta(minutes=5), "iss": "someone-else", "type": "access"},
            private_key,
            algorithm="RS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_tampered_token_rejected(self):
        header, payload, signature = create_access_token(user_id=1).split(".")
        flipped = ("B" if signature[0] == "A" else "A") + signature[1:]
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(f"{header}.{payload}.{flipped}")
