"""Exam schemas."""

from datetime import datetime

from pydantic import Field, field_validator, model_validator

from examtrack.models.exam import DerivedExamStatus, ExamStatus, ExamType
from examtrack.schemas.common import BaseSchema


def _clean_labels(values: list[str]) -> list[str]:
    cleaned = [v.strip() for v in values]
    if any(not v for v in cleaned):
        raise ValueError("Target labels cannot be empty")
    return cleaned


class ExamCreate(BaseSchema):
    """Exam creation schema."""

    title: str = Field(..., min_length=3, max_length=100)
    description: str | None = Field(None, max_length=500)
    subject: str = Field(..., min_length=1, max_length=100)
    exam_type: ExamType = ExamType.MIDTERM
    date: datetime
    duration: int = Field(..., ge=15, le=480, description="Duration in minutes")
    total_marks: int = Field(..., ge=1)
    passing_marks: int = Field(..., ge=1)
    venue: str | None = Field(None, max_length=200)
    instructions: str | None = Field(None, max_length=1000)
    target_grades: list[str] = Field(..., min_length=1)
    target_sections: list[str] = []
    target_students: list[int] = []
    teacher_id: int | None = Field(
        None,
        description="Owning teacher. Required for admins, ignored for teachers.",
    )

    @field_validator("target_grades", "target_sections")
    @classmethod
    def validate_labels(cls, v: list[str]) -> list[str]:
        return _clean_labels(v)

    @model_validator(mode="after")
    def validate_passing_marks(self) -> "ExamCreate":
        if self.passing_marks > self.total_marks:
            raise ValueError("Passing marks cannot exceed total marks")
        return self


class ExamUpdate(BaseSchema):
    """Exam update schema."""

    title: str | None = Field(None, min_length=3, max_length=100)
    description: str | None = Field(None, max_length=500)
    subject: str | None = Field(None, min_length=1, max_length=100)
    exam_type: ExamType | None = None
    date: datetime | None = None
    duration: int | None = Field(None, ge=15, le=480)
    total_marks: int | None = Field(None, ge=1)
    passing_marks: int | None = Field(None, ge=1)
    venue: str | None = Field(None, max_length=200)
    instructions: str | None = Field(None, max_length=1000)
    target_grades: list[str] | None = Field(None, min_length=1)
    target_sections: list[str] | None = None
    target_students: list[int] | None = None
    teacher_id: int | None = None
    status: ExamStatus | None = None

    @field_validator("target_grades", "target_sections")
    @classmethod
    def validate_labels(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return _clean_labels(v)


class ExamResponse(BaseSchema):
    """Exam response schema."""

    id: int
    title: str
    description: str | None
    subject: str
    exam_type: ExamType
    date: datetime
    end_time: datetime
    duration: int
    total_marks: int
    passing_marks: int
    venue: str | None
    instructions: str | None
    target_grades: list[str]
    target_sections: list[str]
    target_students: list[int]
    teacher_id: int
    teacher_name: str | None = None
    created_by_id: int
    status: ExamStatus
    exam_status: DerivedExamStatus
    results_published: bool
    created_at: datetime
    updated_at: datetime


class ExamFilter(BaseSchema):
    """Exam filtering options."""

    subject: str | None = None
    exam_type: ExamType | None = None
    status: ExamStatus | None = None
    teacher_id: int | None = None
    grade: str | None = None
    search: str | None = None
