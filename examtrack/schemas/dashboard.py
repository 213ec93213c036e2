"""Dashboard schemas for role-based counters."""

from typing import Annotated, Literal

from pydantic import Field

from examtrack.models.user import UserRole
from examtrack.schemas.common import BaseSchema


class AdminDashboardStats(BaseSchema):
    """System-wide counters."""

    role: Literal["admin"] = "admin"
    total_students: int = 0
    total_teachers: int = 0
    total_exams: int = 0
    total_results: int = 0
    monthly_exams: int = 0
    monthly_results: int = 0


class TeacherDashboardStats(BaseSchema):
    """Counters scoped to the teacher's own exams."""

    role: Literal["teacher"] = "teacher"
    total_exams: int = 0
    total_results: int = 0
    monthly_exams: int = 0
    monthly_results: int = 0
    average_performance: int = 0


class StudentDashboardStats(BaseSchema):
    """Counters scoped to the student's exams and results."""

    role: Literal["student"] = "student"
    total_exams: int = 0
    total_results: int = 0
    average_performance: int = 0
    upcoming_exams: int = 0


DashboardStats = Annotated[
    AdminDashboardStats | TeacherDashboardStats | StudentDashboardStats,
    Field(discriminator="role"),
]


class DashboardResponse(BaseSchema):
    """Dashboard payload for the current user."""

    role: UserRole
    stats: DashboardStats
