"""
FastAPI dependencies resolving the bearer token into an explicit request context.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import UserRole
from ..services.user_service import UserService
from ..utils.auth import verify_token
from ..utils.exceptions import AuthenticationError, AuthorizationError


# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller, passed explicitly to services."""
    user_id: UUID
    role: UserRole
    email: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> RequestContext:
    """
    Resolve the caller from the bearer token.

    Raises:
        AuthenticationError: Missing or invalid token, or unknown user
    """
    if credentials is None:
        raise AuthenticationError("Authentication required")

    token_data = verify_token(credentials.credentials)
    if token_data is None:
        raise AuthenticationError("Could not validate credentials")

    try:
        user_id = UUID(token_data.user_id)
    except ValueError:
        raise AuthenticationError("Could not validate credentials")

    user = await UserService(db).get_user_by_id(user_id)
    if user is None:
        raise AuthenticationError("Could not validate credentials")

    return RequestContext(user_id=user.id, role=user.role, email=user.email)


async def get_current_admin_user(
    context: RequestContext = Depends(get_current_user)
) -> RequestContext:
    """
    Require the admin role.

    Raises:
        AuthorizationError: If the caller is not an admin
    """
    if not context.is_admin:
        raise AuthorizationError("Not enough permissions", required_permission="admin")
    return context
