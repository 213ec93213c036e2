"""Notification service."""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import Integer, cast, func, select, update
from sqlalchemy.orm import Session

from examtrack.core.exceptions import NotFoundError, ValidationError
from examtrack.core.permissions import Action, Principal, authorize
from examtrack.models.exam import Exam, ExamStatus
from examtrack.models.notification import Notification
from examtrack.models.result import Result, ResultStatus
from examtrack.models.user import User
from examtrack.schemas.notification import (
    NotificationCreate,
    NotificationDispatchResult,
    NotificationFilter,
    NotificationResponse,
    NotificationStats,
)
from examtrack.services.exam import ExamService
from examtrack.services.lifecycle import as_utc

logger = logging.getLogger(__name__)

EXAM_REMINDER = "exam_reminder"
RESULT_PUBLISHED = "result_published"


def exam_reminder_message(exam: Exam) -> str:
    start = as_utc(exam.date)
    teacher = exam.teacher.name if exam.teacher else "Your teacher"
    return (
        "This is a reminder for your upcoming exam:\n\n"
        f"Exam: {exam.title}\n"
        f"Subject: {exam.subject}\n"
        f"Date: {start:%Y-%m-%d}\n"
        f"Time: {start:%H:%M} UTC\n"
        f"Duration: {exam.duration} minutes\n"
        f"Venue: {exam.venue or 'To be announced'}\n\n"
        "Please ensure you arrive on time and bring all necessary materials.\n\n"
        f"Good luck!\n{teacher}"
    )


def result_message(result: Result) -> str:
    lines = [
        "Your exam result is now available:",
        "",
        f"Exam: {result.exam.title}",
        f"Subject: {result.exam.subject}",
        f"Marks Obtained: {result.marks_obtained}/{result.total_marks}",
        f"Percentage: {result.percentage}%",
        f"Grade: {result.grade}",
        f"Status: {'PASS' if result.status == ResultStatus.PASS else 'FAIL'}",
    ]
    if result.teacher_comments:
        lines += ["", f"Teacher Comments: {result.teacher_comments}"]
    return "\n".join(lines)


class NotificationService:
    """In-app notification service."""

    def __init__(self, db: Session):
        self.db = db

    def create_notification(self, request: NotificationCreate) -> Notification:
        """Create a new notification."""
        notification = Notification(
            user_id=request.user_id,
            title=request.title,
            message=request.message,
            notification_type=request.notification_type,
            action_url=request.action_url,
            action_data=request.action_data,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def get_notification(self, notification_id: int, user_id: int) -> Notification:
        """Get notification by ID (must belong to user)."""
        result = self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification", str(notification_id))
        return notification

    def list_notifications(
        self,
        user_id: int,
        filters: NotificationFilter | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[NotificationResponse], int]:
        """List notifications for a user."""
        query = select(Notification).where(Notification.user_id == user_id)

        if filters:
            if filters.is_read is not None:
                query = query.where(Notification.is_read == filters.is_read)
            if filters.notification_type:
                query = query.where(Notification.notification_type == filters.notification_type)

        # Count total
        total = self.db.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar() or 0

        # Apply pagination and ordering
        query = (
            query
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        notifications = self.db.execute(query).scalars().all()

        return [NotificationResponse.model_validate(n) for n in notifications], total

    def mark_as_read(self, notification_ids: list[int], user_id: int) -> int:
        """Mark notifications as read. Returns count of updated."""
        result = self.db.execute(
            update(Notification)
            .where(
                Notification.id.in_(notification_ids),
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(
                is_read=True,
                read_at=datetime.now(timezone.utc),
            )
        )
        self.db.flush()
        return result.rowcount

    def mark_all_as_read(self, user_id: int) -> int:
        """Mark all notifications as read for a user."""
        result = self.db.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(
                is_read=True,
                read_at=datetime.now(timezone.utc),
            )
        )
        self.db.flush()
        return result.rowcount

    def get_stats(self, user_id: int) -> NotificationStats:
        """Get notification statistics for a user."""
        row = self.db.execute(
            select(
                func.count().label("total"),
                func.sum(cast(Notification.is_read.is_(False), Integer)).label("unread"),
            )
            .where(Notification.user_id == user_id)
        ).one()

        total = row.total or 0
        unread = row.unread or 0

        return NotificationStats(total=total, unread=unread, read=total - unread)

    def delete_notification(self, notification_id: int, user_id: int) -> None:
        """Delete a notification."""
        notification = self.get_notification(notification_id, user_id)
        self.db.delete(notification)
        self.db.flush()

    # ==========================================
    # Exam announcements
    # ==========================================

    def _remind(self, exam: Exam, students: list[User]) -> int:
        message = exam_reminder_message(exam)
        for student in students:
            self.create_notification(NotificationCreate(
                user_id=student.id,
                title=f"Exam Reminder: {exam.title}",
                message=message,
                notification_type=EXAM_REMINDER,
                action_url=f"/exams/{exam.id}",
                action_data={"exam_id": exam.id},
            ))
        exam.reminder_sent_at = datetime.now(timezone.utc)
        self.db.flush()
        return len(students)

    def send_exam_reminder(self, exam_id: int, principal: Principal) -> NotificationDispatchResult:
        """Notify every student the exam is aimed at."""
        exam_service = ExamService(self.db)
        exam = exam_service.get_exam(exam_id)
        authorize(Action.NOTIFICATION_SEND, principal, exam)

        if exam.status == ExamStatus.CANCELLED:
            raise ValidationError("Cannot send reminders for a cancelled exam")

        students = exam_service.targeted_students(exam)
        if not students:
            raise ValidationError("No students found for this exam", details={"exam_id": exam.id})

        sent = self._remind(exam, students)
        return NotificationDispatchResult(
            exam_id=exam.id,
            recipients=sent,
            message=f"Exam reminders sent to {sent} students",
        )

    def send_result_notifications(
        self,
        exam_id: int,
        principal: Principal,
        student_ids: list[int] | None = None,
    ) -> NotificationDispatchResult:
        """Tell students their result for a published exam is available."""
        exam = ExamService(self.db).get_exam(exam_id)
        authorize(Action.NOTIFICATION_SEND, principal, exam)

        if not exam.results_published:
            raise ValidationError("Results of this exam have not been published yet")

        query = select(Result).where(Result.exam_id == exam.id).order_by(Result.id)
        if student_ids is not None:
            query = query.where(Result.student_id.in_(student_ids))
        results = self.db.execute(query).scalars().all()

        for result in results:
            self.create_notification(NotificationCreate(
                user_id=result.student_id,
                title=f"Exam Result: {exam.title}",
                message=result_message(result),
                notification_type=RESULT_PUBLISHED,
                action_url=f"/results/{result.id}",
                action_data={"exam_id": exam.id, "result_id": result.id},
            ))

        return NotificationDispatchResult(
            exam_id=exam.id,
            recipients=len(results),
            message=f"Result notifications sent to {len(results)} students",
        )

    def send_due_reminders(self, within_hours: int, now: datetime | None = None) -> int:
        """Remind students of exams starting soon that were not reminded yet.

        Returns the number of exams processed.
        """
        now = now or datetime.now(timezone.utc)
        exams = self.db.execute(
            select(Exam).where(
                Exam.status != ExamStatus.CANCELLED,
                Exam.reminder_sent_at.is_(None),
                Exam.date >= now,
                Exam.date <= now + timedelta(hours=within_hours),
            )
        ).scalars().all()

        exam_service = ExamService(self.db)
        for exam in exams:
            sent = self._remind(exam, exam_service.targeted_students(exam))
            logger.info("Sent %s reminders for exam %s", sent, exam.id)

        return len(exams)
