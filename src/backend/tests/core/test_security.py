"""
Tests for access token verification.
"""

from datetime import timedelta

import pytest
from jose import jwt

from core.config import settings
from core.security import (
    TOKEN_AUDIENCE,
    TOKEN_ISSUER,
    account_id_from_token,
    create_access_token,
    decode_token,
)


@pytest.mark.unit
class TestAccessTokens:
    """Test token issue/verify round trip and rejection cases."""

    def test_valid_token(self) -> None:
        token = create_access_token("account-1")

        payload = decode_token(token)

        assert payload is not None
        assert payload["sub"] == "account-1"
        assert payload["iss"] == TOKEN_ISSUER
        assert payload["aud"] == TOKEN_AUDIENCE

    def test_expired_token_rejected(self) -> None:
        token = create_access_token("account-1", expires_delta=timedelta(seconds=-5))

        assert decode_token(token) is None

    def test_wrong_secret_rejected(self) -> None:
        token = jwt.encode(
            {"sub": "account-1", "type": "access", "iss": TOKEN_ISSUER, "aud": TOKEN_AUDIENCE},
            "another-secret",
            algorithm=settings.JWT_ALGORITHM,
        )

        assert decode_token(token) is None

    def test_wrong_audience_rejected(self) -> None:
        token = jwt.encode(
            {"sub": "account-1", "type": "access", "iss": TOKEN_ISSUER, "aud": "someone-else"},
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )

        assert decode_token(token) is None

    def test_wrong_type_rejected(self) -> None:
        refresh = jwt.encode(
            {"sub": "account-1", "type": "refresh", "iss": TOKEN_ISSUER, "aud": TOKEN_AUDIENCE},
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        assert decode_token(refresh) is None

    def test_account_id_from_token(self) -> None:
        assert account_id_from_token(create_access_token("account-7")) == "account-7"
        assert account_id_from_token("garbage") is None

    def test_blank_subject_is_no_account(self) -> None:
        assert account_id_from_token(create_access_token("  ")) is None
