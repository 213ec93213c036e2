"""Audit log endpoints."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from examtrack.core.database import get_db
from examtrack.core.dependencies import AdminPrincipal
from examtrack.models.audit import AuditAction
from examtrack.schemas.audit import AuditLogFilter, AuditLogWithUser
from examtrack.schemas.common import PaginatedResponse
from examtrack.services.audit import AuditService

router = APIRouter()


@router.get("", response_model=PaginatedResponse[AuditLogWithUser])
def list_audit_logs(
    principal: AdminPrincipal,
    db: Annotated[Session, Depends(get_db)],
    action: AuditAction | None = None,
    user_id: int | None = None,
    resource_type: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """
    List audit logs with filtering.
    Audit logs are append-only and cannot be modified.
    """
    service = AuditService(db)
    filters = AuditLogFilter(
        action=action,
        user_id=user_id,
        resource_type=resource_type,
        date_from=date_from,
        date_to=date_to,
    )
    logs, total = service.list_logs(filters=filters, page=page, page_size=page_size)

    return PaginatedResponse(
        items=logs,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.get("/actions", response_model=list[str])
def list_audit_actions(principal: AdminPrincipal):
    """
    List all available audit action types.
    """
    return [action.value for action in AuditAction]
