from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.api.v1.errors import not_found, to_http_exception
from app.core.dependencies import get_current_user, require_role
from app.core.errors import TrainingServiceError
from app.models.auth import UserInfo
from app.models.employee import EmployeeDetail, EmployeeSummary
from app.models.skill import DepartmentStats, EmployeeTrainingAnalysis, SkillGap, SkillsMatrixRow
from app.models.training import SyncReport, TrainingAssignment, TrainingRecommendation
from app.services.assignment_service import assignment_service
from app.services.employee_service import employee_service
from app.services.recommendation_service import recommendation_service
from app.services.skill_gap_service import skill_gap_service
from app.services.sync_service import sync_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("", response_model=list[EmployeeSummary])
async def list_employees(user: UserInfo = Depends(get_current_user)):  # noqa: B008
    try:
        return await employee_service.get_employees()
    except TrainingServiceError as err:
        logger.exception("Failed to list employees")
        raise to_http_exception(err) from err


@router.get("/training-analysis", response_model=list[EmployeeTrainingAnalysis])
async def training_analysis(user: UserInfo = Depends(require_role("admin"))):  # noqa: B008
    try:
        return await skill_gap_service.training_analysis()
    except TrainingServiceError as err:
        logger.exception("Failed to build training analysis")
        raise to_http_exception(err) from err


@router.get("/needing-training", response_model=list[str])
async def employees_needing_training(user: UserInfo = Depends(require_role("admin"))):  # noqa: B008
    try:
        return await skill_gap_service.employees_needing_training()
    except TrainingServiceError as err:
        logger.exception("Failed to list employees needing training")
        raise to_http_exception(err) from err


@router.get("/skills-matrix", response_model=list[SkillsMatrixRow])
async def skills_matrix(user: UserInfo = Depends(require_role("admin"))):  # noqa: B008
    try:
        return await skill_gap_service.skills_matrix()
    except TrainingServiceError as err:
        logger.exception("Failed to build skills matrix")
        raise to_http_exception(err) from err


@router.get("/department-stats", response_model=list[DepartmentStats])
async def department_stats(user: UserInfo = Depends(require_role("admin"))):  # noqa: B008
    try:
        return await skill_gap_service.department_stats()
    except TrainingServiceError as err:
        logger.exception("Failed to build department stats")
        raise to_http_exception(err) from err


@router.get("/{employee_id}", response_model=EmployeeDetail)
async def get_employee(
    employee_id: str,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        employee = await employee_service.get_employee_with_all_data(employee_id)
    except TrainingServiceError as err:
        logger.exception("Failed to get employee %s", employee_id)
        raise to_http_exception(err) from err

    if not employee:
        raise not_found("Employee", employee_id)
    return employee


@router.get("/{employee_id}/skill-gaps", response_model=list[SkillGap])
async def get_skill_gaps(
    employee_id: str,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        return await skill_gap_service.compute_gaps(employee_id)
    except TrainingServiceError as err:
        logger.exception("Failed to compute skill gaps for %s", employee_id)
        raise to_http_exception(err) from err


@router.get("/{employee_id}/recommendations", response_model=list[TrainingRecommendation])
async def get_recommendations(
    employee_id: str,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        return await recommendation_service.recommend(employee_id)
    except TrainingServiceError as err:
        logger.exception("Failed to build recommendations for %s", employee_id)
        raise to_http_exception(err) from err


@router.post("/{employee_id}/auto-assign", response_model=list[str])
async def auto_assign(
    employee_id: str,
    user: UserInfo = Depends(require_role("admin")),  # noqa: B008
):
    try:
        return await assignment_service.assign_for_skill_gaps(employee_id)
    except TrainingServiceError as err:
        logger.error("Auto-assignment failed for %s: %s", employee_id, err)
        raise to_http_exception(err) from err


@router.get("/{employee_id}/trainings", response_model=list[TrainingAssignment])
async def get_employee_trainings(
    employee_id: str,
    user: UserInfo = Depends(get_current_user),  # noqa: B008
):
    try:
        return await assignment_service.list_employee_assignments(employee_id)
    except TrainingServiceError as err:
        logger.exception("Failed to list trainings for %s", employee_id)
        raise to_http_exception(err) from err


@router.post("/{employee_id}/trainings/sync", response_model=SyncReport)
async def sync_employee_trainings(
    employee_id: str,
    user: UserInfo = Depends(require_role("admin")),  # noqa: B008
):
    try:
        return await sync_service.sync_employee_mirror_to_canonical(employee_id)
    except TrainingServiceError as err:
        logger.error("Mirror sync failed for %s: %s", employee_id, err)
        raise to_http_exception(err) from err
