"""Performance analytics endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from examtrack.core.database import get_db
from examtrack.core.dependencies import AdminPrincipal, CurrentPrincipal
from examtrack.schemas.dashboard import DashboardResponse
from examtrack.schemas.performance import (
    ExamPerformanceOverview,
    PerformancePeriod,
    StudentPerformanceOverview,
    TeacherPerformanceOverview,
)
from examtrack.services.dashboard import DashboardService
from examtrack.services.performance import PerformanceService

router = APIRouter()


@router.get("/student/{student_id}", response_model=StudentPerformanceOverview)
def get_student_performance(
    student_id: int,
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
    period: PerformancePeriod = PerformancePeriod.ALL,
):
    """
    Weighted averages, subject breakdown, recent results and monthly trend.
    Students may only view their own performance.
    """
    service = PerformanceService(db)
    return service.student_performance(student_id, principal, period)


@router.get("/exam/{exam_id}", response_model=ExamPerformanceOverview)
def get_exam_performance(
    exam_id: int,
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Class statistics, grade distribution and top/bottom performers.
    """
    service = PerformanceService(db)
    return service.exam_performance(exam_id, principal)


@router.get("/teacher/{teacher_id}", response_model=TeacherPerformanceOverview)
def get_teacher_performance(
    teacher_id: int,
    principal: AdminPrincipal,
    db: Annotated[Session, Depends(get_db)],
    period: PerformancePeriod = PerformancePeriod.ALL,
):
    """
    Per-exam and per-subject rollups across a teacher's exams.
    """
    service = PerformanceService(db)
    return service.teacher_performance(teacher_id, principal, period)


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Role-specific dashboard counters for the current user.
    """
    service = DashboardService(db)
    return service.get_dashboard(principal)
