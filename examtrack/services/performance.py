"""Performance analytics service.

Loads results from the database and hands them to the pure aggregation
functions in ``services.aggregation``.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from examtrack.core.exceptions import NotFoundError
from examtrack.core.permissions import Action, Principal, authorize
from examtrack.models.exam import Exam
from examtrack.models.result import Result
from examtrack.models.user import User, UserRole
from examtrack.schemas.performance import (
    ExamPerformanceOverview,
    PerformancePeriod,
    StudentPerformanceOverview,
    TeacherPerformanceOverview,
)
from examtrack.services.aggregation import aggregate_exam, aggregate_student, aggregate_teacher
from examtrack.services.result import ResultService


class PerformanceService:
    """Performance analytics service."""

    def __init__(self, db: Session):
        self.db = db

    def _get_user(self, user_id: int, role: UserRole, label: str) -> User:
        user = self.db.get(User, user_id)
        if not user or user.role != role:
            raise NotFoundError(label, str(user_id))
        return user

    def student_performance(
        self,
        student_id: int,
        principal: Principal,
        period: PerformancePeriod = PerformancePeriod.ALL,
    ) -> StudentPerformanceOverview:
        student = self._get_user(student_id, UserRole.STUDENT, "Student")
        authorize(Action.STUDENT_PERFORMANCE_VIEW, principal, student)

        results = self.db.execute(
            select(Result).where(Result.student_id == student.id).order_by(Result.id)
        ).scalars().all()
        return aggregate_student(results, period)

    def exam_performance(self, exam_id: int, principal: Principal) -> ExamPerformanceOverview:
        exam = self.db.get(Exam, exam_id)
        if not exam:
            raise NotFoundError("Exam", str(exam_id))
        authorize(Action.EXAM_PERFORMANCE_VIEW, principal, exam)

        results = ResultService(self.db).load_exam_results(exam.id)
        return aggregate_exam(results, exam)

    def teacher_performance(
        self,
        teacher_id: int,
        principal: Principal,
        period: PerformancePeriod = PerformancePeriod.ALL,
    ) -> TeacherPerformanceOverview:
        authorize(Action.TEACHER_PERFORMANCE_VIEW, principal)
        teacher = self._get_user(teacher_id, UserRole.TEACHER, "Teacher")

        exams = self.db.execute(
            select(Exam).where(Exam.teacher_id == teacher.id).order_by(Exam.date, Exam.id)
        ).scalars().all()
        results = self.db.execute(
            select(Result)
            .join(Exam, Result.exam_id == Exam.id)
            .where(Exam.teacher_id == teacher.id)
            .order_by(Exam.date, Result.id)
        ).scalars().all()

        return aggregate_teacher(exams, results, period)
