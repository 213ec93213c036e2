"""Result model."""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from examtrack.core.database import Base
from examtrack.models.base import IDMixin, JSONType, TimestampMixin, enum_column, utcnow


class ResultStatus(str, enum.Enum):
    """Pass/fail outcome."""

    PASS = "pass"
    FAIL = "fail"


class Result(Base, IDMixin, TimestampMixin):
    """A single student's graded outcome for one exam."""

    __tablename__ = "results"

    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("exams.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    marks_obtained: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    total_marks: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)

    # Derived on every write, see services.grading
    percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    grade: Mapped[str] = mapped_column(String(2), nullable=False, index=True)
    status: Mapped[ResultStatus] = mapped_column(
        enum_column(ResultStatus, "result_status"),
        nullable=False,
        index=True,
    )

    breakdown: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    teacher_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    student_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    attendance: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    participation: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    graded_by_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    # Relationships
    student: Mapped["User"] = relationship("User", foreign_keys=[student_id], lazy="selectin")
    exam: Mapped["Exam"] = relationship("Exam", lazy="selectin")
    graded_by: Mapped["User"] = relationship("User", foreign_keys=[graded_by_id], lazy="selectin")

    __table_args__ = (
        UniqueConstraint("student_id", "exam_id", name="uq_result_student_exam"),
    )

    def __repr__(self) -> str:
        return f"<Result(student_id={self.student_id}, exam_id={self.exam_id}, grade={self.grade})>"


# Import to avoid circular imports
from examtrack.models.exam import Exam
from examtrack.models.user import User
