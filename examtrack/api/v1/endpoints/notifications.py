"""Notification endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from examtrack.core.database import get_db
from examtrack.core.dependencies import CurrentUser, StaffPrincipal
from examtrack.models.audit import AuditAction
from examtrack.schemas.common import MessageResponse, PaginatedResponse
from examtrack.schemas.notification import (
    ExamReminderRequest,
    NotificationDispatchResult,
    NotificationFilter,
    NotificationMarkRead,
    NotificationResponse,
    NotificationStats,
    ResultNotificationRequest,
)
from examtrack.services.audit import AuditService
from examtrack.services.notification import NotificationService

router = APIRouter()


@router.get("", response_model=PaginatedResponse[NotificationResponse])
def list_notifications(
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    is_read: bool | None = None,
    notification_type: str | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """
    List notifications for current user.
    """
    filters = NotificationFilter(is_read=is_read, notification_type=notification_type)

    service = NotificationService(db)
    notifications, total = service.list_notifications(
        current_user.id,
        filters,
        page,
        page_size,
    )

    return PaginatedResponse(
        items=notifications,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.get("/stats", response_model=NotificationStats)
def get_notification_stats(
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Get notification statistics for current user.
    """
    service = NotificationService(db)
    return service.get_stats(current_user.id)


@router.post("/mark-read", response_model=MessageResponse)
def mark_notifications_read(
    request: NotificationMarkRead,
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Mark specific notifications as read.
    """
    service = NotificationService(db)
    count = service.mark_as_read(request.notification_ids, current_user.id)
    return MessageResponse(message=f"Marked {count} notifications as read")


@router.post("/mark-all-read", response_model=MessageResponse)
def mark_all_notifications_read(
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Mark all notifications as read for current user.
    """
    service = NotificationService(db)
    count = service.mark_all_as_read(current_user.id)
    return MessageResponse(message=f"Marked {count} notifications as read")


@router.delete("/{notification_id}", response_model=MessageResponse)
def delete_notification(
    notification_id: int,
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Delete a notification.
    """
    service = NotificationService(db)
    service.delete_notification(notification_id, current_user.id)
    return MessageResponse(message="Notification deleted successfully")


@router.post("/exam-reminder", response_model=NotificationDispatchResult)
def send_exam_reminder(
    request: ExamReminderRequest,
    principal: StaffPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Remind every student targeted by an exam.
    """
    service = NotificationService(db)
    response = service.send_exam_reminder(request.exam_id, principal)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.NOTIFICATIONS_SENT,
        resource_type="exam",
        resource_id=str(request.exam_id),
        user_id=principal.id,
        description=f"Exam reminder sent to {response.recipients} students",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return response


@router.post("/result-notification", response_model=NotificationDispatchResult)
def send_result_notification(
    request: ResultNotificationRequest,
    principal: StaffPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Tell students that their published result is available.
    """
    service = NotificationService(db)
    response = service.send_result_notifications(request.exam_id, principal, request.student_ids)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.NOTIFICATIONS_SENT,
        resource_type="exam",
        resource_id=str(request.exam_id),
        user_id=principal.id,
        description=f"Result notification sent to {response.recipients} students",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return response
