"""Exam service: CRUD, lifecycle actions and result export."""

import logging
from datetime import datetime, timezone
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from examtrack.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from examtrack.core.permissions import Action, Principal, authorize
from examtrack.models.exam import Exam, ExamStatus
from examtrack.models.result import Result
from examtrack.models.user import User, UserRole
from examtrack.schemas.exam import ExamCreate, ExamFilter, ExamResponse, ExamUpdate
from examtrack.services.lifecycle import (
    as_utc,
    can_delete_exam,
    ensure_cancellable,
    ensure_passing_marks,
    ensure_results_publishable,
    validate_transition,
)

logger = logging.getLogger(__name__)

# Explicit nulls for these are ignored on update
NON_NULLABLE_FIELDS = {
    "title", "subject", "exam_type", "date", "duration",
    "total_marks", "passing_marks", "target_grades",
    "target_sections", "target_students",
}


class ExamService:
    """Exam management service."""

    def __init__(self, db: Session):
        self.db = db

    def _exam_to_response(self, exam: Exam) -> ExamResponse:
        response = ExamResponse.model_validate(exam)
        response.teacher_name = exam.teacher.name if exam.teacher else None
        return response

    def get_exam(self, exam_id: int) -> Exam:
        """Get exam by ID."""
        exam = self.db.get(Exam, exam_id)
        if not exam:
            raise NotFoundError("Exam", str(exam_id))
        return exam

    def get_exam_for(self, exam_id: int, principal: Principal) -> ExamResponse:
        exam = self.get_exam(exam_id)
        authorize(Action.EXAM_VIEW, principal, exam)
        return self._exam_to_response(exam)

    def _get_teacher(self, teacher_id: int) -> User:
        teacher = self.db.get(User, teacher_id)
        if not teacher or teacher.role != UserRole.TEACHER:
            raise NotFoundError("Teacher", str(teacher_id))
        return teacher

    def result_exists(self, exam_id: int) -> bool:
        return self.db.execute(
            select(Result.id).where(Result.exam_id == exam_id).limit(1)
        ).first() is not None

    # ==========================================
    # CRUD
    # ==========================================

    def create_exam(self, request: ExamCreate, principal: Principal) -> ExamResponse:
        """Schedule a new exam.

        Teachers always own what they create; admins must name the teacher.
        """
        authorize(Action.EXAM_CREATE, principal)

        if principal.is_teacher:
            teacher_id = principal.id
        elif request.teacher_id is None:
            raise ValidationError("teacher_id is required", details={"field": "teacher_id"})
        else:
            teacher_id = self._get_teacher(request.teacher_id).id

        exam_date = as_utc(request.date)
        if exam_date <= datetime.now(timezone.utc):
            raise ValidationError("Exam date must be in the future", details={"field": "date"})

        exam = Exam(
            **request.model_dump(exclude={"teacher_id", "date"}),
            date=exam_date,
            teacher_id=teacher_id,
            created_by_id=principal.id,
            status=ExamStatus.SCHEDULED,
            results_published=False,
        )
        self.db.add(exam)
        self.db.flush()
        self.db.refresh(exam)

        logger.info("Exam %s scheduled by user %s", exam.id, principal.id)
        return self._exam_to_response(exam)

    def _scoped_query(self, principal: Principal):
        query = select(Exam)
        if principal.is_teacher:
            query = query.where(Exam.teacher_id == principal.id)
        return query

    def _paginate(
        self,
        query,
        principal: Principal,
        page: int,
        page_size: int,
        grade: str | None = None,
    ) -> tuple[list[ExamResponse], int]:
        if principal.is_student or grade:
            # Target lists live in JSON columns, so these filters run here
            exams = [
                e for e in self.db.execute(query).scalars().all()
                if (not principal.is_student or e.targets(principal.user))
                and (not grade or grade in (e.target_grades or []))
            ]
            total = len(exams)
            exams = exams[(page - 1) * page_size:page * page_size]
        else:
            total = self.db.execute(
                select(func.count()).select_from(query.subquery())
            ).scalar() or 0
            exams = self.db.execute(
                query.offset((page - 1) * page_size).limit(page_size)
            ).scalars().all()

        return [self._exam_to_response(e) for e in exams], total

    def list_exams(
        self,
        principal: Principal,
        filters: ExamFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[ExamResponse], int]:
        """List exams visible to the principal."""
        query = self._scoped_query(principal)

        if filters:
            if filters.subject:
                query = query.where(Exam.subject == filters.subject)
            if filters.exam_type:
                query = query.where(Exam.exam_type == filters.exam_type)
            if filters.status:
                query = query.where(Exam.status == filters.status)
            if filters.teacher_id:
                query = query.where(Exam.teacher_id == filters.teacher_id)
            if filters.search:
                pattern = f"%{filters.search}%"
                query = query.where(or_(Exam.title.ilike(pattern), Exam.subject.ilike(pattern)))

        query = query.order_by(Exam.date.desc(), Exam.id.desc())
        return self._paginate(
            query, principal, page, page_size,
            grade=filters.grade if filters else None,
        )

    def list_upcoming(
        self,
        principal: Principal,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[ExamResponse], int]:
        """Exams starting now or later, soonest first."""
        query = (
            self._scoped_query(principal)
            .where(
                Exam.date >= datetime.now(timezone.utc),
                Exam.status != ExamStatus.CANCELLED,
            )
            .order_by(Exam.date.asc(), Exam.id)
        )
        return self._paginate(query, principal, page, page_size)

    def list_completed(
        self,
        principal: Principal,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[ExamResponse], int]:
        """Exams that already started, most recent first."""
        query = (
            self._scoped_query(principal)
            .where(
                Exam.date < datetime.now(timezone.utc),
                Exam.status != ExamStatus.CANCELLED,
            )
            .order_by(Exam.date.desc(), Exam.id.desc())
        )
        return self._paginate(query, principal, page, page_size)

    def update_exam(
        self,
        exam_id: int,
        request: ExamUpdate,
        principal: Principal,
    ) -> ExamResponse:
        """Update an exam."""
        exam = self.get_exam(exam_id)
        authorize(Action.EXAM_MANAGE, principal, exam)

        update_data = request.model_dump(exclude_unset=True)

        if "teacher_id" in update_data:
            teacher_id = update_data.pop("teacher_id")
            if teacher_id is not None and teacher_id != exam.teacher_id:
                if not principal.is_admin:
                    raise ForbiddenError("Only administrators can reassign exams", action="exam:reassign")
                exam.teacher = self._get_teacher(teacher_id)

        if "status" in update_data:
            target = update_data.pop("status")
            if target is not None:
                if target == ExamStatus.CANCELLED:
                    ensure_cancellable(exam)
                validate_transition(exam.status, target)
                exam.status = target

        if update_data.get("date") is not None:
            update_data["date"] = as_utc(update_data["date"])

        # Validate the merged values, not just the patch
        ensure_passing_marks(
            update_data.get("total_marks") or exam.total_marks,
            update_data.get("passing_marks") or exam.passing_marks,
        )

        for field, value in update_data.items():
            if value is None and field in NON_NULLABLE_FIELDS:
                continue
            setattr(exam, field, value)

        self.db.flush()
        self.db.refresh(exam)
        return self._exam_to_response(exam)

    def delete_exam(self, exam_id: int, principal: Principal) -> None:
        """Delete an exam that has no results yet."""
        exam = self.get_exam(exam_id)
        authorize(Action.EXAM_MANAGE, principal, exam)

        if not can_delete_exam(exam.id, self.result_exists):
            raise ConflictError(
                "Cannot delete an exam that already has results",
                details={"exam_id": exam.id},
            )

        self.db.delete(exam)
        self.db.flush()

    # ==========================================
    # Lifecycle actions
    # ==========================================

    def cancel_exam(self, exam_id: int, principal: Principal) -> ExamResponse:
        exam = self.get_exam(exam_id)
        authorize(Action.EXAM_MANAGE, principal, exam)
        ensure_cancellable(exam)

        exam.status = ExamStatus.CANCELLED
        self.db.flush()
        self.db.refresh(exam)

        logger.info("Exam %s cancelled by user %s", exam.id, principal.id)
        return self._exam_to_response(exam)

    def publish_results(self, exam_id: int, principal: Principal) -> ExamResponse:
        """Make an exam's results visible. Publishing twice is a no-op."""
        exam = self.get_exam(exam_id)
        authorize(Action.EXAM_MANAGE, principal, exam)
        ensure_results_publishable(exam)

        if not exam.results_published:
            exam.results_published = True
            self.db.flush()
            self.db.refresh(exam)
            logger.info("Results of exam %s published by user %s", exam.id, principal.id)

        return self._exam_to_response(exam)

    def targeted_students(self, exam: Exam) -> list[User]:
        """Active students the exam is aimed at."""
        students = self.db.execute(
            select(User)
            .where(User.role == UserRole.STUDENT, User.is_active.is_(True))
            .order_by(User.id)
        ).scalars().all()
        return [s for s in students if exam.targets(s)]

    # ==========================================
    # Excel Export
    # ==========================================

    def export_results(self, exam_id: int, principal: Principal) -> tuple[Exam, bytes]:
        """Build an Excel workbook with every result of the exam."""
        exam = self.get_exam(exam_id)
        authorize(Action.EXAM_MANAGE, principal, exam)

        results = self.db.execute(
            select(Result)
            .where(Result.exam_id == exam.id)
            .order_by(Result.marks_obtained.desc(), Result.id)
        ).scalars().all()

        wb = Workbook()
        ws = wb.active
        ws.title = "Results"

        # Styles
        title_font = Font(bold=True, size=14)
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )
        center_align = Alignment(horizontal='center', vertical='center')

        headers = [
            "Student Name",
            "Student Code",
            "Marks Obtained",
            "Total Marks",
            "Percentage",
            "Grade",
            "Status",
            "Attendance",
            "Teacher Comments",
        ]

        # Title row
        ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(headers))
        title_cell = ws.cell(
            row=1,
            column=1,
            value=f"{exam.title} - {exam.subject} ({as_utc(exam.date):%Y-%m-%d})",
        )
        title_cell.font = title_font
        title_cell.alignment = center_align
        title_cell.fill = PatternFill(start_color="B4C6E7", end_color="B4C6E7", fill_type="solid")

        for col_idx, header in enumerate(headers, start=1):
            cell = ws.cell(row=2, column=col_idx, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.border = thin_border
            cell.alignment = center_align

        for row_idx, result in enumerate(results, start=3):
            row = [
                result.student.name,
                result.student.student_code or "",
                float(result.marks_obtained),
                float(result.total_marks),
                result.percentage,
                result.grade,
                result.status.value,
                "Present" if result.attendance else "Absent",
                result.teacher_comments or "",
            ]
            for col_idx, value in enumerate(row, start=1):
                ws.cell(row=row_idx, column=col_idx, value=value).border = thin_border

        column_widths = [25, 15, 15, 12, 12, 8, 10, 12, 40]
        for col_idx, width in enumerate(column_widths, start=1):
            ws.column_dimensions[get_column_letter(col_idx)].width = width

        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return exam, output.getvalue()
