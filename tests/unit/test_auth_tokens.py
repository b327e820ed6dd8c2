"""
Unit tests for JWT helpers.
"""
from datetime import timedelta

from jose import jwt

from solarlens.auth.utils import create_access_token, decode_token, verify_access_token
from solarlens.config import get_settings


class TestAccessTokens:
    """Tests for minting and verifying access tokens."""

    def test_round_trip(self):
        token = create_access_token("user-1", "owner@example.com", "user")
        data = verify_access_token(token)

        assert data.user_id == "user-1"
        assert data.email == "owner@example.com"
        assert data.role == "user"
        assert data.token_type == "access"

    def test_expired_token(self):
        token = create_access_token("user-1", expires_delta=timedelta(seconds=-5))

        assert decode_token(token) is None
        assert verify_access_token(token) is None

    def test_wrong_signature(self):
        settings = get_settings()
        token = jwt.encode({"sub": "user-1", "type": "access"}, "not-the-secret", algorithm=settings.jwt_algorithm)

        assert verify_access_token(token) is None

    def test_refresh_tokens_are_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "user-1", "type": "refresh"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        assert decode_token(token)["type"] == "refresh"
        assert verify_access_token(token) is None

    def test_garbage(self):
        assert verify_access_token("not.a.jwt") is None
