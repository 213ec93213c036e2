"""Grading rules: marks to percentage, letter grade and pass/fail.

Everything here is pure. Results are regraded with these functions right
before every write, so the table below is the single source of truth for
stored grades, grade distributions and performance colouring.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import TypedDict

from examtrack.models.result import ResultStatus

# Percentage at which a result counts as a pass. This is deliberately
# independent of Exam.passing_marks.
PASS_PERCENTAGE = 60

# (inclusive lower bound, grade), checked top down
GRADE_THRESHOLDS: list[tuple[int, str]] = [
    (97, "A+"),
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (67, "D+"),
    (60, "D"),
]
FAILING_GRADE = "F"

# Grade labels from best to worst
GRADES: list[str] = [grade for _, grade in GRADE_THRESHOLDS] + [FAILING_GRADE]

GRADE_POINTS: dict[str, float] = {
    "A+": 4.0, "A": 4.0, "A-": 3.7,
    "B+": 3.3, "B": 3.0, "B-": 2.7,
    "C+": 2.3, "C": 2.0, "C-": 1.7,
    "D+": 1.3, "D": 1.0, "F": 0.0,
}

PERFORMANCE_LEVELS: list[tuple[int, str]] = [
    (90, "Excellent"),
    (80, "Very Good"),
    (70, "Good"),
    (60, "Satisfactory"),
    (50, "Average"),
]

PERFORMANCE_COLORS: list[tuple[int, str]] = [
    (90, "green"),
    (80, "blue"),
    (70, "yellow"),
    (60, "orange"),
]


class GradedMarks(TypedDict):
    percentage: int
    grade: str
    status: ResultStatus


def _to_decimal(value: int | float | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: int | float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(_to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def ratio_percentage(part: int | float | Decimal, whole: int | float | Decimal) -> int:
    """round(part / whole * 100), or 0 when whole is empty."""
    whole = _to_decimal(whole)
    if whole == 0:
        return 0
    return round_half_up(_to_decimal(part) / whole * 100)


def grade_for_percentage(percentage: int) -> str:
    for lower_bound, grade in GRADE_THRESHOLDS:
        if percentage >= lower_bound:
            return grade
    return FAILING_GRADE


def compute_grade(
    marks_obtained: int | float | Decimal,
    total_marks: int | float | Decimal,
) -> tuple[int, str]:
    """Return (percentage, grade).

    Bounds are the caller's responsibility: total_marks >= 1 and
    0 <= marks_obtained <= total_marks.
    """
    percentage = ratio_percentage(marks_obtained, total_marks)
    return percentage, grade_for_percentage(percentage)


def compute_status(percentage: int) -> ResultStatus:
    if percentage >= PASS_PERCENTAGE:
        return ResultStatus.PASS
    return ResultStatus.FAIL


def grade_result(
    marks_obtained: int | float | Decimal,
    total_marks: int | float | Decimal,
) -> GradedMarks:
    """Grade a raw mark. Invoked on every result create and update."""
    percentage, grade = compute_grade(marks_obtained, total_marks)
    return {
        "percentage": percentage,
        "grade": grade,
        "status": compute_status(percentage),
    }


def performance_level(percentage: int) -> str:
    for lower_bound, label in PERFORMANCE_LEVELS:
        if percentage >= lower_bound:
            return label
    return "Needs Improvement"


def performance_color(percentage: int) -> str:
    for lower_bound, color in PERFORMANCE_COLORS:
        if percentage >= lower_bound:
            return color
    return "red"


def grade_point(grade: str | None) -> float:
    """Grade point for a letter grade; unknown labels score 0.0."""
    return GRADE_POINTS.get(grade or "", 0.0)
