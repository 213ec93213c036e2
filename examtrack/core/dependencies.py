"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.orm import Session

from examtrack.core.database import get_db
from examtrack.core.exceptions import AuthenticationError, ForbiddenError
from examtrack.core.permissions import Principal
from examtrack.core.security import verify_access_token
from examtrack.models.user import User, UserRole


def get_current_user(
    db: Annotated[Session, Depends(get_db)],
    authorization: str = Header(..., description="Bearer token"),
) -> User:
    """Extract and validate the current user from JWT token."""
    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")

    token = authorization[7:]  # Remove "Bearer " prefix
    payload = verify_access_token(token)

    if not payload:
        raise AuthenticationError("Invalid or expired token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise AuthenticationError("Invalid token payload")

    try:
        user_id = int(user_id_str)
    except ValueError:
        raise AuthenticationError("Invalid user ID in token")

    result = db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user


def get_principal(
    user: Annotated[User, Depends(get_current_user)],
) -> Principal:
    return Principal(user)


def require_roles(*roles: UserRole):
    """Dependency factory that requires one of the given roles."""

    def check_role(
        principal: Annotated[Principal, Depends(get_principal)],
    ) -> Principal:
        if principal.role not in roles:
            allowed = ", ".join(role.value for role in roles)
            raise ForbiddenError(f"Requires role: {allowed}")
        return principal

    return check_role


# Type aliases for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentPrincipal = Annotated[Principal, Depends(get_principal)]
AdminPrincipal = Annotated[Principal, Depends(require_roles(UserRole.ADMIN))]
StaffPrincipal = Annotated[Principal, Depends(require_roles(UserRole.ADMIN, UserRole.TEACHER))]
