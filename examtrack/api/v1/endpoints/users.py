"""User management endpoints (administrators only)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from examtrack.core.database import get_db
from examtrack.core.dependencies import AdminPrincipal
from examtrack.models.audit import AuditAction
from examtrack.models.user import UserRole
from examtrack.schemas.auth import UserCreate, UserFilter, UserResponse, UserUpdate
from examtrack.schemas.common import PaginatedResponse
from examtrack.services.audit import AuditService
from examtrack.services.auth import AuthService

router = APIRouter()


@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    request: UserCreate,
    principal: AdminPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Create an administrator, teacher or student account.
    """
    service = AuthService(db)
    user = service.create_user(request)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.USER_CREATED,
        resource_type="user",
        resource_id=str(user.id),
        user_id=principal.id,
        description=f"{user.role.value.title()} {user.username} was created",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return user


@router.get("", response_model=PaginatedResponse[UserResponse])
def list_users(
    principal: AdminPrincipal,
    db: Annotated[Session, Depends(get_db)],
    role: UserRole | None = None,
    grade: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """
    List users with optional filtering.
    """
    filters = UserFilter(role=role, grade=grade, is_active=is_active, search=search)

    service = AuthService(db)
    users, total = service.list_users(filters, page, page_size)

    return PaginatedResponse(
        items=users,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    principal: AdminPrincipal,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Get a user by ID.
    """
    service = AuthService(db)
    return service.get_user_by_id(user_id)


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    request: UserUpdate,
    principal: AdminPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Update a user's profile or active flag.
    """
    service = AuthService(db)
    user = service.update_user(user_id, request)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.USER_UPDATED,
        resource_type="user",
        resource_id=str(user.id),
        user_id=principal.id,
        extra_data={"changes": request.model_dump(mode="json", exclude_unset=True)},
        ip_address=http_request.client.host if http_request.client else None,
    )

    return user
