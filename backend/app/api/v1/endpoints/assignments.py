from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from app.api.v1.errors import not_found, to_http_exception
from app.core.dependencies import get_current_user, require_role
from app.core.errors import TrainingServiceError
from app.models.auth import UserInfo
from app.models.training import (
    AssignmentBatchResult,
    AssignmentCreateRequest,
    BulkAssignmentRequest,
    CancellationRequest,
    CertificateUpdateRequest,
    CompletionRequest,
    ProgressUpdateRequest,
    TrainingAssignment,
)
from app.services.assignment_service import assignment_service
from app.services.sync_service import sync_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assignments", tags=["assignments"])


def _found(assignment: TrainingAssignment | None, assignment_id: str) -> TrainingAssignment:
    if assignment is None:
        raise not_found("Training assignment", assignment_id)
    return assignment


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assignment(
    request: AssignmentCreateRequest,
    user: UserInfo = Depends(require_role("admin")),  # noqa: B008
):
    try:
        assignment_id = await assignment_service.create_assignment(
            request.training_program_id,
            request.employee_id,
            reason=request.reason,
            due_date=request.due_date,
            assigned_by=user.email or user.id or "admin",
        )
    except TrainingServiceError as err:
        logger.error("Failed to assign %s to %s: %s", request.training_program_id, request.employee_id, err)
        raise to_http_exception(err) from err
    return {"id": assignment_id}


@router.post("/bulk", response_model=AssignmentBatchResult)
async def bulk_assign(
    request: BulkAssignmentRequest,
    user: UserInfo = Depends(require_role("admin")),  # noqa: B008
):
    try:
        return await assignment_service.assign_to_many(
            request.training_program_id,
            request.employee_ids,
            reason=request.reason,
        )
    except TrainingServiceError as err:
        raise to_http_exception(err) from err


@router.get("", response_model=list[TrainingAssignment])
async def list_assignments(user: UserInfo = Depends(require_role("admin"))):  # noqa: B008
    try:
        return await assignment_service.list_assignments()
    except TrainingServiceError as err:
        logger.exception("Failed to list training assignments")
        raise to_http_exception(err) from err


@router.get("/{assignment_id}", response_model=TrainingAssignment)
async def get_assignment(
    assignment_id: str,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        assignment = await assignment_service.get_assignment(assignment_id)
    except TrainingServiceError as err:
        logger.exception("Failed to get training assignment %s", assignment_id)
        raise to_http_exception(err) from err
    return _found(assignment, assignment_id)


@router.post("/{assignment_id}/accept", response_model=TrainingAssignment)
async def accept_assignment(
    assignment_id: str,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        assignment = await assignment_service.accept(assignment_id)
    except TrainingServiceError as err:
        raise to_http_exception(err) from err
    return _found(assignment, assignment_id)


@router.post("/{assignment_id}/start", response_model=TrainingAssignment)
async def start_assignment(
    assignment_id: str,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        assignment = await assignment_service.start(assignment_id)
    except TrainingServiceError as err:
        raise to_http_exception(err) from err
    return _found(assignment, assignment_id)


@router.put("/{assignment_id}/progress", response_model=TrainingAssignment)
async def update_progress(
    assignment_id: str,
    request: ProgressUpdateRequest,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        assignment = await assignment_service.update_progress(assignment_id, request.progress, request.status)
    except TrainingServiceError as err:
        logger.error("Progress update failed for %s: %s", assignment_id, err)
        raise to_http_exception(err) from err
    return _found(assignment, assignment_id)


@router.post("/{assignment_id}/complete", response_model=TrainingAssignment)
async def complete_assignment(
    assignment_id: str,
    request: CompletionRequest | None = None,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    request = request or CompletionRequest()
    try:
        assignment = await assignment_service.complete(
            assignment_id,
            certificate_file_name=request.certificate_file_name,
            certificate_url=request.certificate_url,
        )
    except TrainingServiceError as err:
        logger.error("Completion failed for %s: %s", assignment_id, err)
        raise to_http_exception(err) from err
    return _found(assignment, assignment_id)


@router.post("/{assignment_id}/cancel", response_model=TrainingAssignment)
async def cancel_assignment(
    assignment_id: str,
    request: CancellationRequest | None = None,
    user: UserInfo = Depends(require_role("admin")),  # noqa: B008
):
    reason = request.reason if request else None
    try:
        assignment = await assignment_service.cancel(
            assignment_id,
            cancelled_by=user.email or user.id,
            reason=reason,
        )
    except TrainingServiceError as err:
        raise to_http_exception(err) from err
    return _found(assignment, assignment_id)


@router.put("/{assignment_id}/certificate", response_model=TrainingAssignment)
async def update_certificate(
    assignment_id: str,
    request: CertificateUpdateRequest,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        assignment = await assignment_service.update_certificate(
            assignment_id,
            request.certificate_file_name,
            request.certificate_url,
            request.certificate_pdf_url,
        )
    except TrainingServiceError as err:
        raise to_http_exception(err) from err
    return _found(assignment, assignment_id)


@router.post("/{assignment_id}/sync")
async def sync_assignment(
    assignment_id: str,
    user: UserInfo = Depends(require_role("admin")),  # noqa: B008
):
    try:
        synced = await sync_service.sync_one_training_to_mirror(assignment_id)
    except TrainingServiceError as err:
        raise to_http_exception(err) from err
    if not synced:
        raise not_found("Training assignment", assignment_id)
    return {"synced": True}


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    assignment_id: str,
    user: UserInfo = Depends(require_role("admin")),  # noqa: B008
):
    try:
        deleted = await assignment_service.delete(assignment_id)
    except TrainingServiceError as err:
        logger.error("Failed to delete training assignment %s: %s", assignment_id, err)
        raise to_http_exception(err) from err
    if not deleted:
        raise not_found("Training assignment", assignment_id)
