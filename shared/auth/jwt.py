"""
JWT Token Management
====================

Validates bearer tokens issued by the identity provider. Token creation
is kept for service-to-service calls, scripts and tests.

Version: 0.1.0
"""

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel, Field

from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)


class Role(str, Enum):
    """Application roles."""

    ADMIN = "admin"
    REVIEWER = "reviewer"
    USER = "user"


class TokenData(BaseModel):
    """Decoded JWT token payload."""

    sub: str = Field(..., description="Subject (user ID)")
    roles: list[str] = Field(default_factory=list, description="User roles")
    exp: datetime = Field(..., description="Expiration time")
    iat: datetime = Field(default_factory=lambda: datetime.now(UTC), description="Issued at")
    email: str | None = None


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data (must include 'sub' for user ID)
        expires_delta: Custom expiration time (default from settings)

    Returns:
        str: Encoded JWT token
    """
    to_encode = data.copy()
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt.access_token_expire_minutes))

    to_encode.update({"exp": expire, "iat": now})

    encoded_jwt = jwt.encode(
        to_encode,
        settings.jwt.secret_key.get_secret_value(),
        algorithm=settings.jwt.algorithm,
    )

    logger.debug(
        "access_token_created",
        sub=data.get("sub"),
        expires_at=expire.isoformat(),
    )

    return encoded_jwt


def _extract_roles(payload: dict[str, Any]) -> list[str]:
    """Read roles from a top-level claim or Supabase-style ``app_metadata``."""
    roles = payload.get("roles")
    if roles is None:
        roles = (payload.get("app_metadata") or {}).get("roles", [])
    if isinstance(roles, str):
        roles = [roles]
    return [str(r) for r in roles]


def decode_token(token: str) -> TokenData | None:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string

    Returns:
        TokenData: Decoded token data, or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt.secret_key.get_secret_value(),
            algorithms=[settings.jwt.algorithm],
            audience=settings.jwt.audience,
            options={"verify_aud": settings.jwt.audience is not None},
        )

        return TokenData(
            sub=payload["sub"],
            roles=_extract_roles(payload),
            exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
            iat=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
            email=payload.get("email"),
        )

    except (JWTError, KeyError) as e:
        logger.warning("token_decode_failed", error=str(e))
        return None
