from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from app.api.v1.errors import not_found, to_http_exception
from app.core.dependencies import get_current_user, require_role
from app.core.errors import TrainingServiceError
from app.models.auth import UserInfo
from app.models.training import TrainingAssignment, TrainingProgram, TrainingProgramCreate
from app.services.assignment_service import assignment_service
from app.services.training_program_service import training_program_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/training-programs", tags=["training-programs"])


@router.get("", response_model=list[TrainingProgram])
async def list_programs(
    with_stats: bool = False,
    skill: str | None = None,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        if skill:
            return await training_program_service.programs_covering(skill, with_stats=with_stats)
        return await training_program_service.list_programs(with_stats=with_stats)
    except TrainingServiceError as err:
        logger.exception("Failed to list training programs")
        raise to_http_exception(err) from err


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_program(
    request: TrainingProgramCreate,
    user: UserInfo = Depends(require_role("admin")),  # noqa: B008
):
    try:
        program_id = await training_program_service.create_program(request)
    except TrainingServiceError as err:
        logger.error("Failed to create training program %s: %s", request.title, err)
        raise to_http_exception(err) from err
    return {"id": program_id}


@router.get("/{program_id}", response_model=TrainingProgram)
async def get_program(
    program_id: str,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        program = await training_program_service.get_program(program_id)
    except TrainingServiceError as err:
        logger.exception("Failed to get training program %s", program_id)
        raise to_http_exception(err) from err

    if not program:
        raise not_found("Training program", program_id)
    return program


@router.get("/{program_id}/assignments", response_model=list[TrainingAssignment])
async def get_program_assignments(
    program_id: str,
    user: UserInfo = Depends(require_role("admin")),  # noqa: B008
):
    try:
        return await assignment_service.list_program_assignments(program_id)
    except TrainingServiceError as err:
        logger.exception("Failed to list assignments for program %s", program_id)
        raise to_http_exception(err) from err


@router.put("/{program_id}", response_model=TrainingProgram)
async def update_program(
    program_id: str,
    request: TrainingProgramCreate,
    user: UserInfo = Depends(require_role("admin")),  # noqa: B008
):
    try:
        program = await training_program_service.update_program(program_id, request)
    except TrainingServiceError as err:
        logger.error("Failed to update training program %s: %s", program_id, err)
        raise to_http_exception(err) from err

    if not program:
        raise not_found("Training program", program_id)
    return program


@router.delete("/{program_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_program(
    program_id: str,
    user: UserInfo = Depends(require_role("admin")),  # noqa: B008
):
    try:
        deleted = await training_program_service.delete_program(program_id)
    except TrainingServiceError as err:
        logger.error("Failed to delete training program %s: %s", program_id, err)
        raise to_http_exception(err) from err

    if not deleted:
        raise not_found("Training program", program_id)
