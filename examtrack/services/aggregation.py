"""Performance aggregation over loaded results.

These functions never touch the database. Callers load results together
with their exam and student and pass them in; every function returns a
zero-valued overview for empty input.

Note the formulas differ per level: a student's overall and per-subject
averages are weighted (sum of marks over sum of totals), while monthly
trends, exam and teacher averages are simple means of result percentages.
"""

import calendar
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from decimal import Decimal

from examtrack.models.exam import Exam
from examtrack.models.result import Result, ResultStatus
from examtrack.schemas.performance import (
    ExamInfo,
    ExamOverviewStats,
    ExamPerformanceOverview,
    ExamPerformanceSummary,
    GradeBucket,
    MonthlyTrend,
    PerformancePeriod,
    Performer,
    RecentResult,
    StudentOverviewStats,
    StudentPerformanceOverview,
    StudentSubjectPerformance,
    TeacherOverviewStats,
    TeacherPerformanceOverview,
    TeacherSubjectPerformance,
)
from examtrack.services.grading import GRADES, ratio_percentage, round_half_up
from examtrack.services.lifecycle import as_utc

PERIOD_MONTHS: dict[PerformancePeriod, int] = {
    PerformancePeriod.ALL: 0,
    PerformancePeriod.MONTH: 1,
    PerformancePeriod.QUARTER: 3,
    PerformancePeriod.YEAR: 12,
}

RECENT_RESULTS_LIMIT = 5
PERFORMERS_LIMIT = 10


def period_start(period: PerformancePeriod, now: datetime | None = None) -> datetime | None:
    """First instant covered by ``period``; None means no lower bound.

    Months are calendar months, so 31 March minus one month is 28/29 Feb.
    """
    months = PERIOD_MONTHS[period]
    if months == 0:
        return None

    now = as_utc(now or datetime.now(timezone.utc))
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def _within(date: datetime, start: datetime | None) -> bool:
    return start is None or as_utc(date) >= start


def mean_percentage(percentages: Sequence[int]) -> int:
    if not percentages:
        return 0
    return round_half_up(Decimal(sum(percentages)) / len(percentages))


def _pass_rate(results: Sequence[Result]) -> int:
    passed = sum(1 for r in results if r.status == ResultStatus.PASS)
    return ratio_percentage(passed, len(results))


# ==========================================
# Student
# ==========================================

def aggregate_student(
    results: Iterable[Result],
    period: PerformancePeriod = PerformancePeriod.ALL,
    now: datetime | None = None,
) -> StudentPerformanceOverview:
    start = period_start(period, now)
    selected = sorted(
        (r for r in results if _within(r.exam.date, start)),
        key=lambda r: as_utc(r.exam.date),
    )
    if not selected:
        return StudentPerformanceOverview()

    total_marks = sum((r.total_marks for r in selected), Decimal("0"))
    obtained_marks = sum((r.marks_obtained for r in selected), Decimal("0"))
    percentages = [r.percentage for r in selected]

    overview = StudentOverviewStats(
        total_exams=len(selected),
        average_percentage=ratio_percentage(obtained_marks, total_marks),
        highest_percentage=max(percentages),
        lowest_percentage=min(percentages),
        pass_rate=_pass_rate(selected),
        total_marks=total_marks,
        obtained_marks=obtained_marks,
    )

    by_subject: dict[str, list[Result]] = {}
    for r in selected:
        by_subject.setdefault(r.exam.subject, []).append(r)

    subject_performance = []
    for subject, subject_results in by_subject.items():
        subject_total = sum((r.total_marks for r in subject_results), Decimal("0"))
        subject_obtained = sum((r.marks_obtained for r in subject_results), Decimal("0"))
        subject_performance.append(StudentSubjectPerformance(
            subject=subject,
            total_exams=len(subject_results),
            total_marks=subject_total,
            obtained_marks=subject_obtained,
            average_percentage=ratio_percentage(subject_obtained, subject_total),
        ))

    recent_results = [
        RecentResult(
            exam_id=r.exam_id,
            exam_title=r.exam.title,
            subject=r.exam.subject,
            date=r.exam.date,
            percentage=r.percentage,
            grade=r.grade,
            status=r.status,
        )
        for r in reversed(selected[-RECENT_RESULTS_LIMIT:])
    ]

    by_month: dict[str, list[int]] = {}
    for r in selected:
        by_month.setdefault(as_utc(r.exam.date).strftime("%Y-%m"), []).append(r.percentage)

    performance_trend = [
        MonthlyTrend(
            month=month,
            total_exams=len(month_percentages),
            average_percentage=mean_percentage(month_percentages),
        )
        for month, month_percentages in sorted(by_month.items())
    ]

    return StudentPerformanceOverview(
        overview=overview,
        subject_performance=subject_performance,
        recent_results=recent_results,
        performance_trend=performance_trend,
    )


# ==========================================
# Exam
# ==========================================

def _performer(result: Result) -> Performer:
    return Performer(
        student_id=result.student_id,
        student_name=result.student.name,
        student_code=result.student.student_code,
        percentage=result.percentage,
        grade=result.grade,
        marks_obtained=result.marks_obtained,
    )


def aggregate_exam(results: Sequence[Result], exam: Exam | None = None) -> ExamPerformanceOverview:
    """Class performance for one exam.

    Performer ties keep the order of ``results``.
    """
    exam_info = None
    if exam is not None:
        exam_info = ExamInfo(
            id=exam.id,
            title=exam.title,
            subject=exam.subject,
            total_marks=exam.total_marks,
            passing_marks=exam.passing_marks,
        )

    results = list(results)
    if not results:
        return ExamPerformanceOverview(exam_info=exam_info)

    percentages = [r.percentage for r in results]
    overview = ExamOverviewStats(
        total_students=len(results),
        average_percentage=mean_percentage(percentages),
        highest_percentage=max(percentages),
        lowest_percentage=min(percentages),
        pass_rate=_pass_rate(results),
    )

    grade_counts = Counter(r.grade for r in results)
    known = [g for g in GRADES if g in grade_counts]
    unknown = sorted(g for g in grade_counts if g not in GRADES)
    grade_distribution = [
        GradeBucket(
            grade=grade,
            count=grade_counts[grade],
            percentage=ratio_percentage(grade_counts[grade], len(results)),
        )
        for grade in known + unknown
    ]

    # sorted() is stable, so equal percentages keep input order
    best_first = sorted(results, key=lambda r: r.percentage, reverse=True)
    worst_first = sorted(results, key=lambda r: r.percentage)

    return ExamPerformanceOverview(
        exam_info=exam_info,
        overview=overview,
        grade_distribution=grade_distribution,
        top_performers=[_performer(r) for r in best_first[:PERFORMERS_LIMIT]],
        bottom_performers=[_performer(r) for r in worst_first[:PERFORMERS_LIMIT]],
    )


# ==========================================
# Teacher
# ==========================================

def aggregate_teacher(
    exams: Iterable[Exam],
    results: Iterable[Result],
    period: PerformancePeriod = PerformancePeriod.ALL,
    now: datetime | None = None,
) -> TeacherPerformanceOverview:
    start = period_start(period, now)
    in_period = {exam.id: exam for exam in exams if _within(exam.date, start)}
    selected = [r for r in results if r.exam_id in in_period]

    overview = TeacherOverviewStats(
        total_exams=len(in_period),
        total_students=len({r.student_id for r in selected}),
        average_class_performance=mean_percentage([r.percentage for r in selected]),
        total_results=len(selected),
    )

    by_exam: dict[int, list[Result]] = {}
    for r in selected:
        by_exam.setdefault(r.exam_id, []).append(r)

    exam_performance = []
    for exam_id, exam_results in by_exam.items():
        exam = in_period[exam_id]
        exam_performance.append(ExamPerformanceSummary(
            exam_id=exam_id,
            exam_title=exam.title,
            subject=exam.subject,
            date=exam.date,
            total_students=len(exam_results),
            average_percentage=mean_percentage([r.percentage for r in exam_results]),
            pass_rate=_pass_rate(exam_results),
        ))

    exams_per_subject = Counter(exam.subject for exam in in_period.values())
    by_subject: dict[str, list[int]] = {}
    for r in selected:
        by_subject.setdefault(in_period[r.exam_id].subject, []).append(r.percentage)

    subject_performance = [
        TeacherSubjectPerformance(
            subject=subject,
            total_exams=exams_per_subject[subject],
            total_results=len(subject_percentages),
            average_percentage=mean_percentage(subject_percentages),
        )
        for subject, subject_percentages in by_subject.items()
    ]

    return TeacherPerformanceOverview(
        overview=overview,
        exam_performance=exam_performance,
        subject_performance=subject_performance,
    )
