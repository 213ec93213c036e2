"""Authentication endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from examtrack.core.database import get_db
from examtrack.core.dependencies import CurrentUser
from examtrack.models.audit import AuditAction
from examtrack.schemas.auth import (
    LoginRequest,
    PasswordChange,
    RefreshTokenRequest,
    TokenResponse,
    UserResponse,
)
from examtrack.schemas.common import MessageResponse
from examtrack.services.audit import AuditService
from examtrack.services.auth import AuthService

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login(
    request: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Authenticate user and return access/refresh tokens.
    """
    service = AuthService(db)
    user, tokens = service.login(request)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.USER_LOGIN,
        resource_type="user",
        resource_id=str(user.id),
        user_id=user.id,
        ip_address=http_request.client.host if http_request.client else None,
        user_agent=http_request.headers.get("user-agent"),
    )

    return tokens


@router.post("/refresh", response_model=TokenResponse)
def refresh_token(
    request: RefreshTokenRequest,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Exchange a refresh token for a new token pair.
    """
    service = AuthService(db)
    return service.refresh_tokens(request.refresh_token)


@router.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: CurrentUser):
    """
    Get current authenticated user information.
    """
    return current_user


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    request: PasswordChange,
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Change current user's password.
    """
    service = AuthService(db)
    service.change_password(
        current_user.id,
        request.current_password,
        request.new_password,
    )
    return MessageResponse(message="Password changed successfully")
