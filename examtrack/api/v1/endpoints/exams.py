"""Exam management endpoints."""

from io import BytesIO
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from examtrack.core.database import get_db
from examtrack.core.dependencies import CurrentPrincipal, StaffPrincipal
from examtrack.models.audit import AuditAction
from examtrack.models.exam import ExamStatus, ExamType
from examtrack.schemas.common import MessageResponse, PaginatedResponse
from examtrack.schemas.exam import ExamCreate, ExamFilter, ExamResponse, ExamUpdate
from examtrack.services.audit import AuditService
from examtrack.services.exam import ExamService

router = APIRouter()


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def _page(items: list, total: int, page: int, page_size: int) -> PaginatedResponse:
    return PaginatedResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.post("", response_model=ExamResponse, status_code=201)
def create_exam(
    request: ExamCreate,
    principal: StaffPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Schedule an exam.
    Teachers own the exams they create; administrators must pass teacher_id.
    """
    service = ExamService(db)
    exam = service.create_exam(request, principal)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_CREATED,
        resource_type="exam",
        resource_id=str(exam.id),
        user_id=principal.id,
        description=f"Exam '{exam.title}' scheduled for {exam.subject}",
        ip_address=_client_ip(http_request),
    )

    return exam


@router.get("", response_model=PaginatedResponse[ExamResponse])
def list_exams(
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
    subject: str | None = None,
    exam_type: ExamType | None = None,
    status: ExamStatus | None = None,
    teacher_id: int | None = None,
    grade: str | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """
    List exams visible to the caller.
    Teachers see exams they own, students see exams aimed at them.
    """
    filters = ExamFilter(
        subject=subject,
        exam_type=exam_type,
        status=status,
        teacher_id=teacher_id,
        grade=grade,
        search=search,
    )

    service = ExamService(db)
    exams, total = service.list_exams(principal, filters, page, page_size)
    return _page(exams, total, page, page_size)


@router.get("/upcoming", response_model=PaginatedResponse[ExamResponse])
def list_upcoming_exams(
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """
    Exams that have not started yet, soonest first.
    """
    service = ExamService(db)
    exams, total = service.list_upcoming(principal, page, page_size)
    return _page(exams, total, page, page_size)


@router.get("/completed", response_model=PaginatedResponse[ExamResponse])
def list_completed_exams(
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """
    Exams that already started, most recent first.
    """
    service = ExamService(db)
    exams, total = service.list_completed(principal, page, page_size)
    return _page(exams, total, page, page_size)


@router.get("/{exam_id}", response_model=ExamResponse)
def get_exam(
    exam_id: int,
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Get an exam by ID.
    """
    service = ExamService(db)
    return service.get_exam_for(exam_id, principal)


@router.patch("/{exam_id}", response_model=ExamResponse)
def update_exam(
    exam_id: int,
    request: ExamUpdate,
    principal: StaffPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Update an exam.
    Passing marks are checked against the resulting total marks.
    """
    service = ExamService(db)
    exam = service.update_exam(exam_id, request, principal)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_UPDATED,
        resource_type="exam",
        resource_id=str(exam_id),
        user_id=principal.id,
        extra_data={"changes": request.model_dump(mode="json", exclude_unset=True)},
        ip_address=_client_ip(http_request),
    )

    return exam


@router.delete("/{exam_id}", response_model=MessageResponse)
def delete_exam(
    exam_id: int,
    principal: StaffPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Delete an exam. Fails with 409 once any result references it.
    """
    service = ExamService(db)
    service.delete_exam(exam_id, principal)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_DELETED,
        resource_type="exam",
        resource_id=str(exam_id),
        user_id=principal.id,
        ip_address=_client_ip(http_request),
    )

    return MessageResponse(message="Exam deleted successfully")


@router.post("/{exam_id}/cancel", response_model=ExamResponse)
def cancel_exam(
    exam_id: int,
    principal: StaffPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Cancel an exam that has not completed.
    """
    service = ExamService(db)
    exam = service.cancel_exam(exam_id, principal)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.EXAM_CANCELLED,
        resource_type="exam",
        resource_id=str(exam_id),
        user_id=principal.id,
        ip_address=_client_ip(http_request),
    )

    return exam


@router.put("/{exam_id}/publish-results", response_model=ExamResponse)
def publish_results(
    exam_id: int,
    principal: StaffPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Publish an exam's results. Requires the exam to have completed.
    """
    service = ExamService(db)
    exam = service.publish_results(exam_id, principal)

    audit = AuditService(db)
    audit.log(
        action=AuditAction.RESULTS_PUBLISHED,
        resource_type="exam",
        resource_id=str(exam_id),
        user_id=principal.id,
        ip_address=_client_ip(http_request),
    )

    return exam


@router.get("/{exam_id}/results/export")
def export_exam_results(
    exam_id: int,
    principal: StaffPrincipal,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Download an exam's results as an Excel workbook.
    """
    service = ExamService(db)
    exam, content = service.export_results(exam_id, principal)

    filename = f"exam_{exam.id}_results.xlsx"
    return StreamingResponse(
        BytesIO(content),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
