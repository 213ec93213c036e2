"""Result schemas.

Derived fields (percentage, grade, status) are never accepted as input;
unknown request fields are ignored by the base schema.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from examtrack.models.result import ResultStatus
from examtrack.schemas.common import BaseSchema


class BreakdownPart(BaseSchema):
    """Marks for one component of an exam."""

    marks: Decimal = Field(Decimal("0"), ge=0)
    total: Decimal = Field(Decimal("0"), ge=0)


class MarkBreakdown(BaseSchema):
    """Informational sub-scores; not checked against marks_obtained."""

    theory: BreakdownPart = BreakdownPart()
    practical: BreakdownPart = BreakdownPart()
    assignment: BreakdownPart = BreakdownPart()


class ResultCreate(BaseSchema):
    """Single result creation schema."""

    student_id: int
    exam_id: int
    marks_obtained: Decimal = Field(..., ge=0)
    breakdown: MarkBreakdown | None = None
    teacher_comments: str | None = Field(None, max_length=500)
    attendance: bool = True
    participation: int = Field(0, ge=0, le=10)


class ResultUpdate(BaseSchema):
    """Result update schema."""

    marks_obtained: Decimal | None = Field(None, ge=0)
    total_marks: Decimal | None = Field(None, ge=1)
    breakdown: MarkBreakdown | None = None
    teacher_comments: str | None = Field(None, max_length=500)
    student_remarks: str | None = Field(None, max_length=500)
    attendance: bool | None = None
    participation: int | None = Field(None, ge=0, le=10)


class ResultResponse(BaseSchema):
    """Result response schema."""

    id: int
    student_id: int
    student_name: str
    student_code: str | None
    exam_id: int
    exam_title: str
    subject: str
    exam_date: datetime
    marks_obtained: Decimal
    total_marks: Decimal
    percentage: int
    grade: str
    status: ResultStatus
    grade_point: float
    performance_level: str
    performance_color: str
    breakdown: MarkBreakdown | None
    teacher_comments: str | None
    student_remarks: str | None
    attendance: bool
    participation: int
    graded_by_id: int
    graded_by_name: str | None
    submitted_at: datetime
    created_at: datetime
    updated_at: datetime


class ResultFilter(BaseSchema):
    """Result filtering options."""

    exam_id: int | None = None
    student_id: int | None = None
    status: ResultStatus | None = None
    grade: str | None = None


# ==========================================
# Bulk Result Operations
# ==========================================

class BulkResultEntry(BaseSchema):
    """One student's marks inside a bulk submission."""

    student_id: int
    marks_obtained: Decimal = Field(..., ge=0)
    breakdown: MarkBreakdown | None = None
    teacher_comments: str | None = Field(None, max_length=500)
    attendance: bool = True
    participation: int = Field(0, ge=0, le=10)


class BulkResultCreate(BaseSchema):
    """Bulk result submission for one exam."""

    exam_id: int
    results: list[BulkResultEntry] = Field(..., min_length=1)


class BulkResultError(BaseSchema):
    """Failure detail for one bulk entry."""

    student_id: int
    message: str


class BulkResultResponse(BaseSchema):
    """Response for bulk result submission."""

    total_records: int
    created: int
    failed: int
    errors: list[BulkResultError] = []
    message: str
