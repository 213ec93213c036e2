"""Notification schemas."""

from datetime import datetime
from typing import Any

from pydantic import Field

from examtrack.schemas.common import BaseSchema


class NotificationCreate(BaseSchema):
    """Notification creation schema (internal use)."""

    user_id: int
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    notification_type: str = Field(..., min_length=1, max_length=50)
    action_url: str | None = None
    action_data: dict[str, Any] | None = None


class NotificationResponse(BaseSchema):
    """Notification response schema."""

    id: int
    user_id: int
    title: str
    message: str
    notification_type: str
    is_read: bool
    read_at: datetime | None
    action_url: str | None
    action_data: dict[str, Any] | None
    created_at: datetime


class NotificationFilter(BaseSchema):
    """Notification filtering options."""

    is_read: bool | None = None
    notification_type: str | None = None


class NotificationMarkRead(BaseSchema):
    """Mark notifications as read."""

    notification_ids: list[int]


class NotificationStats(BaseSchema):
    """Notification statistics."""

    total: int
    unread: int
    read: int


class ExamReminderRequest(BaseSchema):
    """Send a reminder for one exam to its targeted students."""

    exam_id: int


class ResultNotificationRequest(BaseSchema):
    """Announce published results for one exam."""

    exam_id: int
    student_ids: list[int] | None = Field(
        None,
        description="Limit to these students; defaults to everyone with a result",
    )


class NotificationDispatchResult(BaseSchema):
    """Outcome of a bulk notification send."""

    exam_id: int
    recipients: int
    message: str
