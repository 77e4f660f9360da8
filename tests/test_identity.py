# SPDX-License-Identifier: Apache-2.0
"""Bearer token validation."""
import pytest
from jose import jwt

from researchhub.config import settings
from researchhub.core.exceptions import AuthenticationError
from researchhub.core.identity import create_access_token, decode_access_token


def test_roundtrip_claims():
    caller = decode_access_token(create_access_token("user-1", email="u@example.com", role="admin"))
    assert caller.user_id == "user-1"
    assert caller.email == "u@example.com"
    assert caller.token_role == "admin"


def test_token_without_role_claim():
    assert decode_access_token(create_access_token("user-2")).token_role is None


def test_expired_token_rejected():
    with pytest.raises(AuthenticationError):
        decode_access_token(create_access_token("user-3", expires_minutes=-5))


def test_wrong_secret_rejected():
    token = jwt.encode({"sub": "user-4", "aud": settings.jwt_audience}, "some-other-secret-value", algorithm="HS256")
    with pytest.raises(AuthenticationError):
        decode_access_token(token)


def test_missing_subject_rejected():
    token = jwt.encode({"aud": settings.jwt_audience}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    with pytest.raises(AuthenticationError, match="subject"):
        decode_access_token(token)


def test_wrong_audience_rejected():
    token = jwt.encode({"sub": "user-5", "aud": "someone-else"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    with pytest.raises(AuthenticationError):
        decode_access_token(token)
