"""Result endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from examtrack.core.database import get_db
from examtrack.core.dependencies import CurrentPrincipal, StaffPrincipal
from examtrack.models.audit import AuditAction
from examtrack.models.result import ResultStatus
from examtrack.schemas.common import MessageResponse, PaginatedResponse
from examtrack.schemas.result import (
    BulkResultCreate,
    BulkResultResponse,
    ResultCreate,
    ResultFilter,
    ResultResponse,
    ResultUpdate,
)
from examtrack.services.audit import AuditService
from examtrack.services.result import ResultService

router = APIRouter()


@router.post("", response_model=ResultResponse, status_code=201)
def create_result(
    request: ResultCreate,
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Record a student's marks for an exam.
    Percentage, grade and pass/fail are always computed server side.
    """
    service = ResultService(db)
    result = service.create_result(request, principal)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_CREATED,
        resource_type="result",
        resource_id=str(result.id),
        user_id=principal.id,
        description=f"Result recorded for student {result.student_id} on exam {result.exam_id}",
        ip_address=http_request.client.host if http_request.client else None,
    )

    return result


@router.post("/bulk", response_model=BulkResultResponse, status_code=201)
def bulk_create_results(
    request: BulkResultCreate,
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Record marks for many students of one exam.
    Invalid entries are reported individually and do not stop the batch.
    """
    service = ResultService(db)
    response = service.bulk_create(request, principal)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_CREATED,
        resource_type="result",
        user_id=principal.id,
        description=f"Bulk results for exam {request.exam_id}: {response.created} created, {response.failed} failed",
        extra_data={"exam_id": request.exam_id, "created": response.created, "failed": response.failed},
        ip_address=http_request.client.host if http_request.client else None,
    )

    return response


@router.get("", response_model=PaginatedResponse[ResultResponse])
def list_results(
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int | None = None,
    student_id: int | None = None,
    status: ResultStatus | None = None,
    grade: str | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
):
    """
    List results visible to the caller.
    """
    filters = ResultFilter(exam_id=exam_id, student_id=student_id, status=status, grade=grade)

    service = ResultService(db)
    results, total = service.list_results(principal, filters, page, page_size)

    return PaginatedResponse(
        items=results,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.get("/exam/{exam_id}", response_model=list[ResultResponse])
def get_exam_results(
    exam_id: int,
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
):
    """
    All results for one exam, highest marks first.
    """
    service = ResultService(db)
    return service.list_exam_results(exam_id, principal)


@router.get("/student/{student_id}", response_model=list[ResultResponse])
def get_student_results(
    student_id: int,
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
):
    """
    All results for one student, latest exam first.
    """
    service = ResultService(db)
    return service.list_student_results(student_id, principal)


@router.get("/{result_id}", response_model=ResultResponse)
def get_result(
    result_id: int,
    principal: CurrentPrincipal,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Get a result by ID.
    """
    service = ResultService(db)
    return service.get_result_for(result_id, principal)


@router.patch("/{result_id}", response_model=ResultResponse)
def update_result(
    result_id: int,
    request: ResultUpdate,
    principal: StaffPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Update a result. Marks are re-validated and the result regraded.
    """
    service = ResultService(db)
    result = service.update_result(result_id, request, principal)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_UPDATED,
        resource_type="result",
        resource_id=str(result_id),
        user_id=principal.id,
        extra_data={"changes": request.model_dump(mode="json", exclude_unset=True)},
        ip_address=http_request.client.host if http_request.client else None,
    )

    return result


@router.delete("/{result_id}", response_model=MessageResponse)
def delete_result(
    result_id: int,
    principal: StaffPrincipal,
    db: Annotated[Session, Depends(get_db)],
    http_request: Request,
):
    """
    Delete a result.
    """
    service = ResultService(db)
    service.delete_result(result_id, principal)

    # Audit log
    audit = AuditService(db)
    audit.log(
        action=AuditAction.DATA_DELETED,
        resource_type="result",
        resource_id=str(result_id),
        user_id=principal.id,
        ip_address=http_request.client.host if http_request.client else None,
    )

    return MessageResponse(message="Result deleted successfully")
