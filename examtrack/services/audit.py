"""Audit logging service."""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from examtrack.models.audit import AuditAction, AuditLog
from examtrack.schemas.audit import AuditLogFilter, AuditLogWithUser


class AuditService:
    """Audit logging service - append-only."""

    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        action: AuditAction,
        resource_type: str,
        resource_id: str | None = None,
        user_id: int | None = None,
        description: str | None = None,
        extra_data: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog:
        """Create an audit log entry."""
        log = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            description=description,
            extra_data=extra_data,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.db.add(log)
        self.db.flush()
        return log

    def list_logs(
        self,
        filters: AuditLogFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[AuditLogWithUser], int]:
        """List audit logs with filtering."""
        query = select(AuditLog)

        if filters:
            if filters.action:
                query = query.where(AuditLog.action == filters.action)
            if filters.user_id:
                query = query.where(AuditLog.user_id == filters.user_id)
            if filters.resource_type:
                query = query.where(AuditLog.resource_type == filters.resource_type)
            if filters.date_from:
                query = query.where(AuditLog.created_at >= filters.date_from)
            if filters.date_to:
                query = query.where(AuditLog.created_at <= filters.date_to)

        # Count total
        total = self.db.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar() or 0

        # Apply pagination and ordering
        query = (
            query
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )

        logs = self.db.execute(query).scalars().all()

        return [
            AuditLogWithUser(
                id=log.id,
                user_id=log.user_id,
                action=log.action,
                resource_type=log.resource_type,
                resource_id=log.resource_id,
                description=log.description,
                extra_data=log.extra_data,
                ip_address=log.ip_address,
                user_agent=log.user_agent,
                created_at=log.created_at,
                user_name=log.user.name if log.user else None,
                user_username=log.user.username if log.user else None,
            )
            for log in logs
        ], total
