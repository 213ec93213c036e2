"""Aggregation over in-memory results; no database involved."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from itertools import count

from examtrack.models.exam import Exam, ExamStatus
from examtrack.models.result import Result, ResultStatus
from examtrack.models.user import User, UserRole
from examtrack.schemas.performance import PerformancePeriod
from examtrack.services.aggregation import (
    aggregate_exam,
    aggregate_student,
    aggregate_teacher,
    period_start,
)
from examtrack.services.grading import grade_result

NOW = datetime(2026, 6, 15, 9, 0, tzinfo=timezone.utc)
_ids = count(1)


def exam(subject="Mathematics", date=NOW - timedelta(days=1), total=100, title=None) -> Exam:
    exam_id = next(_ids)
    return Exam(
        id=exam_id,
        title=title or f"Exam {exam_id}",
        subject=subject,
        date=date,
        duration=60,
        total_marks=total,
        passing_marks=1,
        status=ExamStatus.SCHEDULED,
    )


def student(name="Student") -> User:
    return User(id=next(_ids), name=name, username=name.lower(), role=UserRole.STUDENT, student_code=None)


def result(exam_: Exam, marks, student_: User | None = None) -> Result:
    student_ = student_ or student()
    marks = Decimal(str(marks))
    total = Decimal(exam_.total_marks)
    return Result(
        id=next(_ids),
        exam_id=exam_.id,
        exam=exam_,
        student_id=student_.id,
        student=student_,
        marks_obtained=marks,
        total_marks=total,
        **grade_result(marks, total),
    )


# ==========================================
# Student
# ==========================================

def test_student_overview_of_nothing_is_zero():
    overview = aggregate_student([], PerformancePeriod.ALL, NOW)
    assert overview.overview.total_exams == 0
    assert overview.overview.average_percentage == 0
    assert overview.overview.pass_rate == 0
    assert overview.subject_performance == []
    assert overview.recent_results == []
    assert overview.performance_trend == []


def test_student_average_is_weighted_by_total_marks():
    pupil = student()
    results = [
        result(exam(total=100), 90, pupil),
        result(exam(total=50), 10, pupil),
    ]

    overview = aggregate_student(results, PerformancePeriod.ALL, NOW).overview

    # 100/150, whereas the mean of 90% and 20% would be 55
    assert overview.average_percentage == 67
    assert overview.highest_percentage == 90
    assert overview.lowest_percentage == 20
    assert overview.pass_rate == 50
    assert overview.total_exams == 2
    assert overview.total_marks == Decimal("150")
    assert overview.obtained_marks == Decimal("100")


def test_student_subject_breakdown_is_weighted_per_subject():
    pupil = student()
    results = [
        result(exam("Mathematics", total=100), 90, pupil),
        result(exam("Mathematics", total=50), 10, pupil),
        result(exam("Physics", total=20), 15, pupil),
    ]

    subjects = {
        s.subject: s for s in aggregate_student(results, PerformancePeriod.ALL, NOW).subject_performance
    }

    assert subjects["Mathematics"].average_percentage == 67
    assert subjects["Mathematics"].total_exams == 2
    assert subjects["Physics"].average_percentage == 75
    assert subjects["Physics"].total_exams == 1


def test_recent_results_are_latest_five_newest_first():
    pupil = student()
    exams = [exam(date=NOW - timedelta(days=days), title=f"Day {days}") for days in range(7, 0, -1)]
    # Supply out of order; aggregation sorts by exam date
    results = [result(e, 50 + i, pupil) for i, e in enumerate(exams)][::-1]

    recent = aggregate_student(results, PerformancePeriod.ALL, NOW).recent_results

    assert [r.exam_title for r in recent] == ["Day 1", "Day 2", "Day 3", "Day 4", "Day 5"]


def test_monthly_trend_uses_simple_mean_sorted_by_month():
    pupil = student()
    results = [
        result(exam(date=datetime(2026, 5, 3, tzinfo=timezone.utc), total=100), 90, pupil),
        result(exam(date=datetime(2026, 5, 20, tzinfo=timezone.utc), total=50), 10, pupil),
        result(exam(date=datetime(2026, 3, 1, tzinfo=timezone.utc), total=100), 71, pupil),
    ]

    trend = aggregate_student(results, PerformancePeriod.ALL, NOW).performance_trend

    assert [t.month for t in trend] == ["2026-03", "2026-05"]
    assert trend[0].average_percentage == 71
    # mean(90, 20), not the weighted 67
    assert trend[1].average_percentage == 55
    assert trend[1].total_exams == 2


def test_student_period_filter_drops_older_exams():
    pupil = student()
    recent = result(exam(date=NOW - timedelta(days=10)), 80, pupil)
    old = result(exam(date=NOW - timedelta(days=60)), 40, pupil)

    month = aggregate_student([recent, old], PerformancePeriod.MONTH, NOW).overview
    everything = aggregate_student([recent, old], PerformancePeriod.ALL, NOW).overview

    assert month.total_exams == 1
    assert month.average_percentage == 80
    assert everything.total_exams == 2


def test_period_start_uses_calendar_months():
    assert period_start(PerformancePeriod.ALL, NOW) is None
    assert period_start(PerformancePeriod.MONTH, NOW) == datetime(2026, 5, 15, 9, 0, tzinfo=timezone.utc)
    assert period_start(PerformancePeriod.QUARTER, NOW) == datetime(2026, 3, 15, 9, 0, tzinfo=timezone.utc)
    assert period_start(PerformancePeriod.YEAR, NOW) == datetime(2025, 6, 15, 9, 0, tzinfo=timezone.utc)

    end_of_march = datetime(2026, 3, 31, tzinfo=timezone.utc)
    assert period_start(PerformancePeriod.MONTH, end_of_march) == datetime(2026, 2, 28, tzinfo=timezone.utc)
    assert period_start(PerformancePeriod.QUARTER, datetime(2026, 1, 31, tzinfo=timezone.utc)) == \
        datetime(2025, 10, 31, tzinfo=timezone.utc)


# ==========================================
# Exam
# ==========================================

def test_exam_overview_of_nothing_is_zero():
    e = exam()
    overview = aggregate_exam([], e)
    assert overview.exam_info.id == e.id
    assert overview.overview.total_students == 0
    assert overview.grade_distribution == []
    assert overview.top_performers == []
    assert overview.bottom_performers == []


def test_exam_overview_statistics():
    e = exam(total=100)
    results = [result(e, marks) for marks in (98, 85, 85, 62, 40)]

    overview = aggregate_exam(results, e)

    assert overview.overview.total_students == 5
    # (98 + 85 + 85 + 62 + 40) / 5 = 74
    assert overview.overview.average_percentage == 74
    assert overview.overview.highest_percentage == 98
    assert overview.overview.lowest_percentage == 40
    assert overview.overview.pass_rate == 80


def test_grade_distribution_follows_the_grade_table():
    e = exam(total=100)
    results = [result(e, marks) for marks in (40, 98, 85, 85, 62, 61)]

    distribution = aggregate_exam(results, e).grade_distribution

    assert [(b.grade, b.count) for b in distribution] == [("A+", 1), ("B", 2), ("D", 2), ("F", 1)]
    assert 99 <= sum(b.percentage for b in distribution) <= 101


def test_performer_ties_keep_input_order():
    e = exam(total=100)
    first, second, third = student("First"), student("Second"), student("Third")
    results = [result(e, 70, first), result(e, 90, second), result(e, 70, third)]

    overview = aggregate_exam(results, e)

    assert [p.student_name for p in overview.top_performers] == ["Second", "First", "Third"]
    assert [p.student_name for p in overview.bottom_performers] == ["First", "Third", "Second"]


def test_performers_are_capped_at_ten():
    e = exam(total=100)
    results = [result(e, marks) for marks in range(40, 100, 4)]

    overview = aggregate_exam(results, e)

    assert len(results) == 15
    assert len(overview.top_performers) == 10
    assert overview.top_performers[0].percentage == 96
    assert overview.bottom_performers[0].percentage == 40


# ==========================================
# Teacher
# ==========================================

def test_teacher_overview():
    alice, bob = student("Alice"), student("Bob")
    algebra = exam("Mathematics", total=100, title="Algebra")
    geometry = exam("Mathematics", total=50, title="Geometry")
    optics = exam("Physics", total=100, title="Optics")
    unmarked = exam("Physics", title="Unmarked")
    results = [
        result(algebra, 90, alice),
        result(algebra, 50, bob),
        result(geometry, 10, alice),
        result(optics, 70, bob),
    ]

    overview = aggregate_teacher([algebra, geometry, optics, unmarked], results, PerformancePeriod.ALL, NOW)

    assert overview.overview.total_exams == 4
    assert overview.overview.total_students == 2
    assert overview.overview.total_results == 4
    # mean(90, 50, 20, 70)
    assert overview.overview.average_class_performance == 58

    by_exam = {p.exam_title: p for p in overview.exam_performance}
    assert set(by_exam) == {"Algebra", "Geometry", "Optics"}
    assert by_exam["Algebra"].total_students == 2
    assert by_exam["Algebra"].average_percentage == 70
    assert by_exam["Algebra"].pass_rate == 50

    by_subject = {s.subject: s for s in overview.subject_performance}
    assert by_subject["Mathematics"].average_percentage == 53
    assert by_subject["Mathematics"].total_results == 3
    assert by_subject["Mathematics"].total_exams == 2
    # Exams are counted even when they have no results yet
    assert by_subject["Physics"].total_exams == 2
    assert by_subject["Physics"].total_results == 1


def test_teacher_period_filter_applies_to_exams():
    recent = exam(date=NOW - timedelta(days=5))
    old = exam(date=NOW - timedelta(days=200))
    results = [result(recent, 80), result(old, 30)]

    overview = aggregate_teacher([recent, old], results, PerformancePeriod.QUARTER, NOW)

    assert overview.overview.total_exams == 1
    assert overview.overview.total_results == 1
    assert overview.overview.average_class_performance == 80


def test_teacher_overview_of_nothing_is_zero():
    overview = aggregate_teacher([], [], PerformancePeriod.ALL, NOW)
    assert overview.overview.total_exams == 0
    assert overview.overview.average_class_performance == 0
    assert overview.exam_performance == []
    assert overview.subject_performance == []


def test_pass_status_ignores_exam_passing_marks():
    e = exam(total=100)
    e.passing_marks = 70
    r = result(e, 65)
    assert r.status == ResultStatus.PASS
