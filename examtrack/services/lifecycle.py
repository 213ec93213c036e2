"""Exam lifecycle rules.

The stored ``Exam.status`` only changes through explicit actions. The
time-based ``exam_status`` shown to users is derived from date and duration
on every read and never written back.
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from examtrack.core.exceptions import ValidationError
from examtrack.models.exam import DerivedExamStatus, Exam, ExamStatus

# Stored status transitions reachable through explicit actions
ALLOWED_TRANSITIONS: dict[ExamStatus, set[ExamStatus]] = {
    ExamStatus.SCHEDULED: {ExamStatus.ONGOING, ExamStatus.COMPLETED, ExamStatus.CANCELLED},
    ExamStatus.ONGOING: {ExamStatus.COMPLETED, ExamStatus.CANCELLED},
    ExamStatus.COMPLETED: set(),
    ExamStatus.CANCELLED: set(),
}


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def derive_exam_status(
    status: ExamStatus,
    date: datetime,
    duration: int,
    now: datetime | None = None,
) -> DerivedExamStatus:
    if status == ExamStatus.CANCELLED:
        return DerivedExamStatus.CANCELLED

    now = as_utc(now or datetime.now(timezone.utc))
    start = as_utc(date)
    end = start + timedelta(minutes=duration)

    if now < start:
        return DerivedExamStatus.UPCOMING
    if now <= end:
        return DerivedExamStatus.ONGOING
    return DerivedExamStatus.COMPLETED


def is_completed(exam: Exam, now: datetime | None = None) -> bool:
    if exam.status == ExamStatus.COMPLETED:
        return True
    return derive_exam_status(exam.status, exam.date, exam.duration, now) == DerivedExamStatus.COMPLETED


def validate_transition(current: ExamStatus, target: ExamStatus) -> None:
    """Raise ValidationError unless ``current -> target`` is allowed."""
    if current == target:
        return
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ValidationError(
            f"Cannot change exam status from '{current.value}' to '{target.value}'",
            details={"current": current.value, "target": target.value},
        )


def ensure_cancellable(exam: Exam, now: datetime | None = None) -> None:
    if exam.status == ExamStatus.CANCELLED:
        return
    if is_completed(exam, now):
        raise ValidationError("Completed exams cannot be cancelled")


def ensure_results_publishable(exam: Exam, now: datetime | None = None) -> None:
    """Results go public only once the exam has effectively completed."""
    if exam.status == ExamStatus.CANCELLED:
        raise ValidationError("Cannot publish results of a cancelled exam")
    derived = derive_exam_status(exam.status, exam.date, exam.duration, now)
    if derived != DerivedExamStatus.COMPLETED:
        raise ValidationError(
            "Results can only be published once the exam has completed",
            details={"exam_status": derived.value},
        )


def ensure_accepts_results(exam: Exam) -> None:
    if exam.status == ExamStatus.CANCELLED:
        raise ValidationError("Cannot record results for a cancelled exam")


def ensure_passing_marks(total_marks: int, passing_marks: int) -> None:
    if passing_marks > total_marks:
        raise ValidationError(
            "Passing marks cannot exceed total marks",
            details={"total_marks": total_marks, "passing_marks": passing_marks},
        )


def can_delete_exam(exam_id: int, result_exists: Callable[[int], bool]) -> bool:
    """An exam may be deleted only while no result references it."""
    return not result_exists(exam_id)
