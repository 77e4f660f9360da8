# SPDX-License-Identifier: Apache-2.0
"""Bearer token validation.

Tokens are issued by the hosted identity service; this module only verifies
the signature and extracts the caller triple. Role claims are passed through
untouched: deciding which role counts is the access guard's job.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from researchhub.config import settings
from researchhub.core.exceptions import AuthenticationError

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Caller:
    user_id: str
    email: str = ""
    token_role: str | None = None


def create_access_token(
    user_id: str,
    email: str = "",
    role: str | None = None,
    expires_minutes: int = 60,
) -> str:
    """Mint a token shaped like the identity service's. Used by tests and local tooling."""
    now = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    if settings.jwt_audience:
        claims["aud"] = settings.jwt_audience
    if role is not None:
        claims["app_metadata"] = {"role": role}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Caller:
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as e:
        raise AuthenticationError("Invalid or expired token") from e
    user_id = claims.get("sub")
    if not user_id:
        raise AuthenticationError("Token has no subject")
    metadata = claims.get("app_metadata") or {}
    return Caller(
        user_id=str(user_id),
        email=claims.get("email") or "",
        token_role=metadata.get("role") if isinstance(metadata, dict) else None,
    )


def get_caller(credentials: HTTPAuthorizationCredentials | None = Depends(_bearer)) -> Caller:
    """FastAPI dependency: resolve the authenticated caller or fail with 401."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    return decode_access_token(credentials.credentials)
