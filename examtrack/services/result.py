"""Result service: graded result records and their lifecycle."""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from examtrack.core.exceptions import ConflictError, NotFoundError, ValidationError
from examtrack.core.permissions import Action, Principal, authorize
from examtrack.models.exam import Exam
from examtrack.models.result import Result
from examtrack.models.user import User, UserRole
from examtrack.schemas.result import (
    BulkResultCreate,
    BulkResultEntry,
    BulkResultError,
    BulkResultResponse,
    ResultCreate,
    ResultFilter,
    ResultResponse,
    ResultUpdate,
)
from examtrack.services.grading import grade_point, grade_result, performance_color, performance_level
from examtrack.services.lifecycle import ensure_accepts_results

logger = logging.getLogger(__name__)


def apply_grading(result: Result) -> None:
    """Recompute the derived columns from marks. Called before every write."""
    graded = grade_result(result.marks_obtained, result.total_marks)
    result.percentage = graded["percentage"]
    result.grade = graded["grade"]
    result.status = graded["status"]


def check_marks(marks_obtained: Decimal, total_marks: Decimal) -> None:
    if marks_obtained < 0:
        raise ValidationError(
            "Marks obtained cannot be negative",
            details={"marks_obtained": str(marks_obtained)},
        )
    if marks_obtained > total_marks:
        raise ValidationError(
            f"Marks obtained ({marks_obtained}) exceeds total marks ({total_marks})",
            details={"marks_obtained": str(marks_obtained), "total_marks": str(total_marks)},
        )


class ResultService:
    """Result management service."""

    def __init__(self, db: Session):
        self.db = db

    def _result_to_response(self, result: Result) -> ResultResponse:
        """Convert Result to response with names and derived labels."""
        return ResultResponse.model_validate({
            "id": result.id,
            "student_id": result.student_id,
            "student_name": result.student.name,
            "student_code": result.student.student_code,
            "exam_id": result.exam_id,
            "exam_title": result.exam.title,
            "subject": result.exam.subject,
            "exam_date": result.exam.date,
            "marks_obtained": result.marks_obtained,
            "total_marks": result.total_marks,
            "percentage": result.percentage,
            "grade": result.grade,
            "status": result.status,
            "grade_point": grade_point(result.grade),
            "performance_level": performance_level(result.percentage),
            "performance_color": performance_color(result.percentage),
            "breakdown": result.breakdown,
            "teacher_comments": result.teacher_comments,
            "student_remarks": result.student_remarks,
            "attendance": result.attendance,
            "participation": result.participation,
            "graded_by_id": result.graded_by_id,
            "graded_by_name": result.graded_by.name if result.graded_by else None,
            "submitted_at": result.submitted_at,
            "created_at": result.created_at,
            "updated_at": result.updated_at,
        })

    def _get_exam(self, exam_id: int) -> Exam:
        exam = self.db.get(Exam, exam_id)
        if not exam:
            raise NotFoundError("Exam", str(exam_id))
        return exam

    def _get_student(self, student_id: int) -> User:
        """Get user by ID, requiring the student role."""
        student = self.db.get(User, student_id)
        if not student or student.role != UserRole.STUDENT:
            raise NotFoundError("Student", str(student_id))
        return student

    def _result_exists(self, student_id: int, exam_id: int) -> bool:
        return self.db.execute(
            select(Result.id).where(
                Result.student_id == student_id,
                Result.exam_id == exam_id,
            )
        ).first() is not None

    def _build_result(
        self,
        exam: Exam,
        student: User,
        entry: ResultCreate | BulkResultEntry,
        principal: Principal,
    ) -> Result:
        total_marks = Decimal(exam.total_marks)
        check_marks(entry.marks_obtained, total_marks)

        result = Result(
            student_id=student.id,
            exam_id=exam.id,
            marks_obtained=entry.marks_obtained,
            total_marks=total_marks,
            breakdown=entry.breakdown.model_dump(mode="json") if entry.breakdown else None,
            teacher_comments=entry.teacher_comments,
            attendance=entry.attendance,
            participation=entry.participation,
            graded_by_id=principal.id,
            submitted_at=datetime.now(timezone.utc),
        )
        apply_grading(result)
        return result

    def get_result(self, result_id: int) -> Result:
        """Get result by ID."""
        result = self.db.get(Result, result_id)
        if not result:
            raise NotFoundError("Result", str(result_id))
        return result

    def get_result_for(self, result_id: int, principal: Principal) -> ResultResponse:
        result = self.get_result(result_id)
        authorize(Action.RESULT_VIEW, principal, result)
        return self._result_to_response(result)

    # ==========================================
    # Create
    # ==========================================

    def create_result(self, request: ResultCreate, principal: Principal) -> ResultResponse:
        """Record one student's marks for an exam."""
        exam = self._get_exam(request.exam_id)
        student = self._get_student(request.student_id)
        authorize(Action.RESULT_MANAGE, principal, exam)
        ensure_accepts_results(exam)

        if self._result_exists(student.id, exam.id):
            raise ConflictError(
                "Result already exists for this student and exam",
                details={"student_id": student.id, "exam_id": exam.id},
            )

        result = self._build_result(exam, student, request, principal)
        self.db.add(result)
        try:
            self.db.flush()
        except IntegrityError:
            # Lost a race against a concurrent insert of the same pair
            self.db.rollback()
            raise ConflictError(
                "Result already exists for this student and exam",
                details={"student_id": student.id, "exam_id": exam.id},
            )
        self.db.refresh(result)

        return self._result_to_response(result)

    def bulk_create(self, request: BulkResultCreate, principal: Principal) -> BulkResultResponse:
        """Record marks for many students of one exam.

        Exam-level problems abort the call. Per-student problems are
        collected and the remaining entries are still processed.
        """
        exam = self._get_exam(request.exam_id)
        authorize(Action.RESULT_MANAGE, principal, exam)
        ensure_accepts_results(exam)

        errors: list[BulkResultError] = []
        created = 0
        seen: set[int] = set()

        for entry in request.results:
            try:
                if entry.student_id in seen:
                    raise ConflictError("Duplicate entry for this student in the batch")

                student = self._get_student(entry.student_id)
                if self._result_exists(student.id, exam.id):
                    raise ConflictError("Result already exists for this student and exam")

                result = self._build_result(exam, student, entry, principal)
                try:
                    # Savepoint per entry: a unique clash rolls back only this row
                    with self.db.begin_nested():
                        self.db.add(result)
                        self.db.flush()
                except IntegrityError:
                    raise ConflictError("Result already exists for this student and exam")

                seen.add(student.id)
                created += 1

            except (ValidationError, ConflictError, NotFoundError) as e:
                errors.append(BulkResultError(student_id=entry.student_id, message=e.message))

        if errors:
            logger.info(
                "Bulk results for exam %s: %s created, %s failed",
                exam.id, created, len(errors),
            )

        return BulkResultResponse(
            total_records=len(request.results),
            created=created,
            failed=len(errors),
            errors=errors,
            message=f"Created {created} of {len(request.results)} results",
        )

    # ==========================================
    # Read
    # ==========================================

    def list_results(
        self,
        principal: Principal,
        filters: ResultFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[ResultResponse], int]:
        """List results visible to the principal."""
        query = select(Result).join(Exam, Result.exam_id == Exam.id)

        if principal.is_teacher:
            query = query.where(Exam.teacher_id == principal.id)
        elif principal.is_student:
            query = query.where(Result.student_id == principal.id)

        if filters:
            if filters.exam_id:
                query = query.where(Result.exam_id == filters.exam_id)
            if filters.student_id:
                query = query.where(Result.student_id == filters.student_id)
            if filters.status:
                query = query.where(Result.status == filters.status)
            if filters.grade:
                query = query.where(Result.grade == filters.grade)

        # Count total
        total = self.db.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar() or 0

        query = (
            query
            .order_by(Result.submitted_at.desc(), Result.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        results = self.db.execute(query).scalars().all()

        return [self._result_to_response(r) for r in results], total

    def list_exam_results(self, exam_id: int, principal: Principal) -> list[ResultResponse]:
        """All results of one exam, best marks first."""
        exam = self._get_exam(exam_id)
        if principal.is_student:
            # Students only ever see their own row
            filters = ResultFilter(exam_id=exam.id, student_id=principal.id)
            return self.list_results(principal, filters, page_size=1)[0]

        authorize(Action.EXAM_PERFORMANCE_VIEW, principal, exam)
        return [self._result_to_response(r) for r in self.load_exam_results(exam.id)]

    def list_student_results(self, student_id: int, principal: Principal) -> list[ResultResponse]:
        """All results of one student, latest exam first."""
        student = self._get_student(student_id)
        authorize(Action.STUDENT_PERFORMANCE_VIEW, principal, student)

        query = (
            select(Result)
            .join(Exam, Result.exam_id == Exam.id)
            .where(Result.student_id == student.id)
            .order_by(Exam.date.desc(), Result.id.desc())
        )
        if principal.is_teacher:
            query = query.where(Exam.teacher_id == principal.id)

        return [self._result_to_response(r) for r in self.db.execute(query).scalars().all()]

    def load_exam_results(self, exam_id: int) -> list[Result]:
        """Results of one exam ordered by marks, then insertion."""
        return list(self.db.execute(
            select(Result)
            .where(Result.exam_id == exam_id)
            .order_by(Result.marks_obtained.desc(), Result.id)
        ).scalars().all())

    # ==========================================
    # Update / Delete
    # ==========================================

    def update_result(
        self,
        result_id: int,
        request: ResultUpdate,
        principal: Principal,
    ) -> ResultResponse:
        """Update a result and regrade it."""
        result = self.get_result(result_id)
        authorize(Action.RESULT_MANAGE, principal, result)

        update_data = request.model_dump(exclude_unset=True)

        marks_obtained = update_data.get("marks_obtained")
        total_marks = update_data.get("total_marks")
        marks_obtained = result.marks_obtained if marks_obtained is None else marks_obtained
        total_marks = result.total_marks if total_marks is None else total_marks
        check_marks(Decimal(marks_obtained), Decimal(total_marks))

        if "breakdown" in update_data and request.breakdown is not None:
            update_data["breakdown"] = request.breakdown.model_dump(mode="json")

        for field, value in update_data.items():
            if value is None and field in {"marks_obtained", "total_marks", "attendance", "participation"}:
                continue
            setattr(result, field, value)

        apply_grading(result)
        self.db.flush()
        self.db.refresh(result)

        return self._result_to_response(result)

    def delete_result(self, result_id: int, principal: Principal) -> None:
        """Delete a result."""
        result = self.get_result(result_id)
        authorize(Action.RESULT_MANAGE, principal, result)
        self.db.delete(result)
        self.db.flush()
