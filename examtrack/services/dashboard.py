"""Dashboard service for role-based counters."""

from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from examtrack.core.permissions import Principal
from examtrack.models.exam import Exam, ExamStatus
from examtrack.models.result import Result
from examtrack.models.user import User, UserRole
from examtrack.schemas.dashboard import (
    AdminDashboardStats,
    DashboardResponse,
    StudentDashboardStats,
    TeacherDashboardStats,
)
from examtrack.services.aggregation import mean_percentage
from examtrack.services.lifecycle import as_utc


def month_start(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return as_utc(now).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class DashboardService:
    """Dashboard data aggregation service."""

    def __init__(self, db: Session):
        self.db = db
        self._handlers: dict[UserRole, Callable[[Principal, datetime], object]] = {
            UserRole.ADMIN: self._admin_stats,
            UserRole.TEACHER: self._teacher_stats,
            UserRole.STUDENT: self._student_stats,
        }

    def get_dashboard(self, principal: Principal, now: datetime | None = None) -> DashboardResponse:
        """Counters for the principal's role."""
        now = as_utc(now or datetime.now(timezone.utc))
        stats = self._handlers[principal.role](principal, now)
        return DashboardResponse(role=principal.role, stats=stats)

    def _count(self, query) -> int:
        return self.db.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar() or 0

    def _admin_stats(self, principal: Principal, now: datetime) -> AdminDashboardStats:
        """System-wide counts."""
        since = month_start(now)
        active_users = select(User.id).where(User.is_active.is_(True))

        return AdminDashboardStats(
            total_students=self._count(active_users.where(User.role == UserRole.STUDENT)),
            total_teachers=self._count(active_users.where(User.role == UserRole.TEACHER)),
            total_exams=self._count(select(Exam.id)),
            total_results=self._count(select(Result.id)),
            monthly_exams=self._count(select(Exam.id).where(Exam.created_at >= since)),
            monthly_results=self._count(select(Result.id).where(Result.created_at >= since)),
        )

    def _teacher_stats(self, principal: Principal, now: datetime) -> TeacherDashboardStats:
        """Counts over the teacher's own exams."""
        since = month_start(now)
        owned_exams = select(Exam.id).where(Exam.teacher_id == principal.id)
        owned_results = (
            select(Result.id, Result.percentage)
            .join(Exam, Result.exam_id == Exam.id)
            .where(Exam.teacher_id == principal.id)
        )

        percentages = [row.percentage for row in self.db.execute(owned_results).all()]

        return TeacherDashboardStats(
            total_exams=self._count(owned_exams),
            total_results=len(percentages),
            monthly_exams=self._count(owned_exams.where(Exam.created_at >= since)),
            monthly_results=self._count(owned_results.where(Result.created_at >= since)),
            average_performance=mean_percentage(percentages),
        )

    def _student_stats(self, principal: Principal, now: datetime) -> StudentDashboardStats:
        """Counts over exams aimed at the student and their own results."""
        exams = self.db.execute(select(Exam)).scalars().all()
        targeted = [e for e in exams if e.targets(principal.user)]
        upcoming = [
            e for e in targeted
            if e.status != ExamStatus.CANCELLED and as_utc(e.date) >= now
        ]

        percentages = list(self.db.execute(
            select(Result.percentage).where(Result.student_id == principal.id)
        ).scalars().all())

        return StudentDashboardStats(
            total_exams=len(targeted),
            total_results=len(percentages),
            average_performance=mean_percentage(percentages),
            upcoming_exams=len(upcoming),
        )
