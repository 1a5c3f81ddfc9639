"""
FastAPI Authentication Dependencies
===================================

Dependency injection for route protection.

Version: 0.1.0
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from shared.auth.jwt import Role, decode_token
from shared.logging import bind_context, get_logger


logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class User(BaseModel):
    """Authenticated user model for dependency injection."""

    id: str = Field(..., description="User ID")
    email: str | None = Field(default=None, description="User email")
    roles: list[str] = Field(default_factory=list, description="User roles")

    def has_role(self, role: Role | str) -> bool:
        """Check role membership."""
        value = role.value if isinstance(role, Role) else role
        return value in self.roles


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> User:
    """
    Extract and validate user from JWT token.

    Args:
        credentials: Bearer credentials from the Authorization header

    Returns:
        User: Authenticated user

    Raises:
        HTTPException: 401 if token is missing or invalid
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        logger.warning("auth_token_missing")
        raise credentials_exception

    token_data = decode_token(credentials.credentials)

    if token_data is None:
        logger.warning("auth_token_invalid")
        raise credentials_exception

    bind_context(user_id=token_data.sub)
    logger.debug("user_authenticated", user_id=token_data.sub)

    return User(
        id=token_data.sub,
        email=token_data.email,
        roles=token_data.roles or [Role.USER.value],
    )


def require_roles(required_roles: list[Role]) -> Callable[..., User]:
    """
    Create a dependency that requires any of the given roles.

    Args:
        required_roles: Roles that grant access

    Returns:
        Dependency function

    Usage:
        @router.post("/regulations/{regulation_id}/process")
        async def process(user: User = Depends(require_roles([Role.ADMIN]))):
            ...
    """

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if not any(current_user.has_role(r) for r in required_roles):
            logger.warning(
                "insufficient_roles",
                user_id=current_user.id,
                user_roles=current_user.roles,
                required_roles=[r.value for r in required_roles],
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

        return current_user

    return role_checker


# Common role dependencies
require_admin = require_roles([Role.ADMIN])
require_reviewer = require_roles([Role.REVIEWER, Role.ADMIN])
