"""Performance analytics schemas."""

import enum
from datetime import datetime
from decimal import Decimal

from examtrack.models.result import ResultStatus
from examtrack.schemas.common import BaseSchema


class PerformancePeriod(str, enum.Enum):
    """Look-back window for performance views."""

    ALL = "all"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


# ==========================================
# Student Performance
# ==========================================

class StudentOverviewStats(BaseSchema):
    """Headline numbers for a student."""

    total_exams: int = 0
    average_percentage: int = 0
    highest_percentage: int = 0
    lowest_percentage: int = 0
    pass_rate: int = 0
    total_marks: Decimal = Decimal("0")
    obtained_marks: Decimal = Decimal("0")


class StudentSubjectPerformance(BaseSchema):
    """Weighted performance in one subject."""

    subject: str
    total_exams: int
    total_marks: Decimal
    obtained_marks: Decimal
    average_percentage: int


class RecentResult(BaseSchema):
    """Compact result entry for recent activity."""

    exam_id: int
    exam_title: str
    subject: str
    date: datetime
    percentage: int
    grade: str
    status: ResultStatus


class MonthlyTrend(BaseSchema):
    """Mean percentage for one calendar month (YYYY-MM)."""

    month: str
    total_exams: int
    average_percentage: int


class StudentPerformanceOverview(BaseSchema):
    """Student performance overview."""

    overview: StudentOverviewStats = StudentOverviewStats()
    subject_performance: list[StudentSubjectPerformance] = []
    recent_results: list[RecentResult] = []
    performance_trend: list[MonthlyTrend] = []


# ==========================================
# Exam (Class) Performance
# ==========================================

class ExamInfo(BaseSchema):
    """Exam metadata echoed with its analytics."""

    id: int
    title: str
    subject: str
    total_marks: int
    passing_marks: int


class ExamOverviewStats(BaseSchema):
    """Headline numbers for one exam."""

    total_students: int = 0
    average_percentage: int = 0
    highest_percentage: int = 0
    lowest_percentage: int = 0
    pass_rate: int = 0


class GradeBucket(BaseSchema):
    """Grade distribution entry."""

    grade: str
    count: int
    percentage: int


class Performer(BaseSchema):
    """Student entry in top/bottom performer lists."""

    student_id: int
    student_name: str
    student_code: str | None
    percentage: int
    grade: str
    marks_obtained: Decimal


class ExamPerformanceOverview(BaseSchema):
    """Class performance for one exam."""

    exam_info: ExamInfo | None = None
    overview: ExamOverviewStats = ExamOverviewStats()
    grade_distribution: list[GradeBucket] = []
    top_performers: list[Performer] = []
    bottom_performers: list[Performer] = []


# ==========================================
# Teacher Performance
# ==========================================

class TeacherOverviewStats(BaseSchema):
    """Headline numbers across a teacher's exams."""

    total_exams: int = 0
    total_students: int = 0
    average_class_performance: int = 0
    total_results: int = 0


class ExamPerformanceSummary(BaseSchema):
    """Per-exam rollup for a teacher."""

    exam_id: int
    exam_title: str
    subject: str
    date: datetime
    total_students: int
    average_percentage: int
    pass_rate: int


class TeacherSubjectPerformance(BaseSchema):
    """Per-subject rollup for a teacher."""

    subject: str
    total_exams: int
    total_results: int
    average_percentage: int


class TeacherPerformanceOverview(BaseSchema):
    """Teacher performance overview."""

    overview: TeacherOverviewStats = TeacherOverviewStats()
    exam_performance: list[ExamPerformanceSummary] = []
    subject_performance: list[TeacherSubjectPerformance] = []
