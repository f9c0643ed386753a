"""
Tests for claims decoding and principal construction.
"""
from datetime import timedelta

import pytest

from core.auth import principal_from_claims
from core.exceptions import UnauthorizedError
from core.security import create_access_token, decode_access_token


class TestPrincipalFromClaims:
    def test_custom_role_wins(self):
        principal = principal_from_claims({"sub": "u1", "custom:role": "coach", "cognito:groups": ["athletes"]})
        assert principal.role == "coach"
        assert principal.has_role("coach")
        assert not principal.has_role("athlete")

    @pytest.mark.parametrize("group,role", [("athletes", "athlete"), ("coaches", "coach"), ("scouts", "scout")])
    def test_group_fallback(self, group, role):
        principal = principal_from_claims({"sub": "u1", "cognito:groups": [group]})
        assert principal.role == role

    def test_unknown_role_has_no_role(self):
        principal = principal_from_claims({"sub": "u1", "custom:role": "admin"})
        assert principal.role is None
        assert principal.custom_role == "admin"

    def test_name_from_given_name(self):
        principal = principal_from_claims({"sub": "u1", "given_name": "Ana"})
        assert principal.name == "Ana"

    def test_missing_subject(self):
        with pytest.raises(UnauthorizedError):
            principal_from_claims({"custom:role": "coach"})


class TestTokens:
    def test_round_trip(self):
        token = create_access_token({"sub": "u1", "custom:role": "athlete"})
        claims = decode_access_token(token)
        assert claims["sub"] == "u1"
        assert claims["custom:role"] == "athlete"

    def test_expired_token(self):
        token = create_access_token({"sub": "u1"}, expires_delta=timedelta(minutes=-5))
        assert decode_access_token(token) is None

    def test_garbage_token(self):
        assert decode_access_token("not-a-jwt") is None
