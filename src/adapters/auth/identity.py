"""
JWT identity provider.

Bearer tokens are HS256 JWTs issued by the hosted auth service (or by
create_access_token in development). The token carries the user id in `sub`;
the role is never trusted from the token and is read from the profile row.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import jwt

from src.core.ports.db import ProfileRepoPort
from src.domain.entities import Identity

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours


def create_access_token(
    data: dict[str, Any],
    secret_key: str,
    expires_delta: timedelta | None = None,
    now_utc: datetime | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode in the token
        secret_key: HMAC signing key
        expires_delta: Optional custom expiration delta
        now_utc: Current UTC time (for testing/determinism). Defaults to datetime.now(UTC).
    """
    to_encode = data.copy()
    current_time = now_utc if now_utc is not None else datetime.now(UTC)
    expire = current_time + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.update({"exp": expire})
    encoded_jwt: str = jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str, secret_key: str) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
        return cast(dict[str, Any], payload)
    except jwt.JWTError:
        return None


class JWTIdentityProvider:
    def __init__(self, secret_key: str, profiles: ProfileRepoPort):
        self._secret_key = secret_key
        self._profiles = profiles

    async def verify_token(self, bearer_token: str) -> Identity | None:
        payload = decode_access_token(bearer_token, self._secret_key)
        if payload is None:
            logger.debug("Rejected bearer token")
            return None

        user_id = payload.get("sub")
        if not user_id:
            return None

        profile = await self._profiles.get(str(user_id))
        return Identity(
            user_id=str(user_id),
            email=payload.get("email"),
            role=profile.role if profile else None,
        )
