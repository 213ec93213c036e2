"""Exam model."""

import enum
from datetime import datetime, timedelta

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from examtrack.core.database import Base
from examtrack.models.base import IDMixin, JSONType, TimestampMixin, enum_column


class ExamType(str, enum.Enum):
    """Kinds of assessment."""

    MIDTERM = "midterm"
    FINAL = "final"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    PROJECT = "project"


class ExamStatus(str, enum.Enum):
    """Administrative status stored on the exam."""

    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DerivedExamStatus(str, enum.Enum):
    """Time-based status shown to users."""

    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Exam(Base, IDMixin, TimestampMixin):
    """Scheduled exam owned by a teacher."""

    __tablename__ = "exams"

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    subject: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    exam_type: Mapped[ExamType] = mapped_column(
        enum_column(ExamType, "exam_type"),
        default=ExamType.MIDTERM,
        nullable=False,
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    total_marks: Mapped[int] = mapped_column(Integer, nullable=False)
    passing_marks: Mapped[int] = mapped_column(Integer, nullable=False)
    venue: Mapped[str | None] = mapped_column(String(200), nullable=True)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Targeting
    target_grades: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    target_sections: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    target_students: Mapped[list[int]] = mapped_column(JSONType, default=list, nullable=False)

    teacher_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    created_by_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    status: Mapped[ExamStatus] = mapped_column(
        enum_column(ExamStatus, "exam_status"),
        default=ExamStatus.SCHEDULED,
        nullable=False,
        index=True,
    )
    results_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    teacher: Mapped["User"] = relationship("User", foreign_keys=[teacher_id], lazy="selectin")
    created_by: Mapped["User"] = relationship("User", foreign_keys=[created_by_id], lazy="selectin")

    __table_args__ = (
        CheckConstraint("passing_marks <= total_marks", name="ck_exams_passing_le_total"),
    )

    @property
    def end_time(self) -> datetime:
        return self.date + timedelta(minutes=self.duration)

    @property
    def exam_status(self) -> DerivedExamStatus:
        from examtrack.services.lifecycle import derive_exam_status

        return derive_exam_status(self.status, self.date, self.duration)

    def targets(self, student: "User") -> bool:
        """Whether the exam is aimed at the given student."""
        if student.id in (self.target_students or []):
            return True
        return student.grade is not None and student.grade in (self.target_grades or [])

    def __repr__(self) -> str:
        return f"<Exam(id={self.id}, title={self.title}, subject={self.subject})>"


# Import to avoid circular imports
from examtrack.models.user import User
