"""
Authentication Module
=====================

Bearer-token authentication and role checks for MedReview routes.

Features:
- JWT validation (python-jose)
- Roles: admin, reviewer, user
- FastAPI dependencies for route protection

Usage:
    from shared.auth import get_current_user, require_admin, User

    @router.post("/submissions/{submission_id}/analyze")
    async def analyze(user: User = Depends(get_current_user)):
        ...

    @router.post("/regulations/{regulation_id}/process")
    async def process(user: User = Depends(require_admin)):
        ...
"""

from shared.auth.dependencies import (
    User,
    bearer_scheme,
    get_current_user,
    require_admin,
    require_reviewer,
    require_roles,
)
from shared.auth.jwt import Role, TokenData, create_access_token, decode_token

__all__ = [
    # JWT
    "create_access_token",
    "decode_token",
    "TokenData",
    "Role",
    # Dependencies
    "User",
    "bearer_scheme",
    "get_current_user",
    "require_roles",
    "require_admin",
    "require_reviewer",
]
