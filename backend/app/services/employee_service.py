"""Firestore employee service: employee documents and their subcollections."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from app.core.document_store import (
    EMPLOYEES,
    DocumentStore,
    StoredDocument,
    document_store,
    employee_qualifications_path,
    employee_skills_path,
    employee_trainings_path,
)
from app.models.employee import EmployeeDetail, EmployeeSummary
from app.models.skill import Qualification, Skill
from app.models.training import TrainingAssignment
from app.services.skill_catalog import parse_skill_level
from app.services.training_mapper import assignment_from_mirror, coerce_datetime

logger = logging.getLogger(__name__)

# Firestore field names → Python snake_case attribute names
_FIELD_MAP: list[tuple[str, str]] = [
    ("user_id", "userId"),
    ("first_name", "firstName"),
    ("last_name", "lastName"),
    ("email", "email"),
    ("phone", "phone"),
    ("position", "position"),
    ("department", "department"),
    ("employee_number", "employeeId"),
]

_SKILL_FIELD_MAP: list[tuple[str, str]] = [
    ("name", "name"),
    ("level", "level"),
    ("category", "category"),
]

_QUALIFICATION_FIELD_MAP: list[tuple[str, str]] = [
    ("institution", "institution"),
    ("degree", "degree"),
    ("field_of_study", "fieldofstudy"),
    ("grade", "grade"),
    ("certificate_pdf_url", "certificatePdfUrl"),
    ("certificate_file_name", "certificateFileName"),
]

PROFICIENT_LEVEL = 3
CRITICAL_LEVEL = 2


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def skill_from_document(doc: StoredDocument, employee_id: str) -> Skill:
    data: dict[str, Any] = {"id": doc.id, "employee_id": employee_id}
    for python_key, store_key in _SKILL_FIELD_MAP:
        value = doc.data.get(store_key, doc.data.get(store_key.capitalize()))
        data[python_key] = _text(value)
    data["years_of_experience"] = _float(doc.data.get("yearsofexperience", doc.data.get("YearsOfExperience")))
    data["created_at"] = coerce_datetime(doc.data.get("createdat", doc.data.get("CreatedAt")))
    return Skill(**data)


def skill_to_document(skill: Skill) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "employeeid": skill.employee_id or "",
        "name": skill.name,
        "level": skill.level,
        "category": skill.category,
        "yearsofexperience": skill.years_of_experience,
    }
    if skill.created_at is not None:
        doc["createdat"] = skill.created_at
    return doc


def calculate_metrics(employee: EmployeeDetail) -> EmployeeDetail:
    """Recompute the derived skill metrics in place."""
    levels = [parse_skill_level(s.level) for s in employee.skills if s.level]
    if not levels:
        employee.average_skill_level = 0.0
        employee.total_skills_gap = 0
        employee.critical_gaps_count = 0
        return employee

    employee.average_skill_level = round(sum(levels) / len(levels), 1)
    employee.total_skills_gap = sum(1 for level in levels if level < PROFICIENT_LEVEL)
    employee.critical_gaps_count = sum(1 for level in levels if level < CRITICAL_LEVEL)
    return employee


class EmployeeService:
    def __init__(self, store: DocumentStore = document_store) -> None:
        self.store = store

    async def get_employee(self, employee_id: str) -> EmployeeDetail | None:
        if not employee_id:
            return None

        raw = await self.store.get(EMPLOYEES, employee_id)
        if raw is None:
            logger.info("Employee %s not found", employee_id)
            return None

        return self._transform_employee(employee_id, raw)

    async def get_employees(self) -> list[EmployeeSummary]:
        results: list[EmployeeSummary] = []
        for doc in await self.store.list_documents(EMPLOYEES):
            detail = self._transform_employee(doc.id, doc.data)
            results.append(
                EmployeeSummary(
                    id=detail.id,
                    user_id=detail.user_id,
                    first_name=detail.first_name,
                    last_name=detail.last_name,
                    department=detail.department,
                    position=detail.position,
                    email=detail.email,
                )
            )
        return results

    async def get_employee_skills(self, employee_id: str) -> list[Skill]:
        docs = await self.store.list_documents(employee_skills_path(employee_id))
        return [skill_from_document(doc, employee_id) for doc in docs]

    async def get_employee_qualifications(self, employee_id: str) -> list[Qualification]:
        docs = await self.store.list_documents(employee_qualifications_path(employee_id))
        return [self._transform_qualification(doc, employee_id) for doc in docs]

    async def get_employee_trainings(self, employee_id: str) -> list[TrainingAssignment]:
        docs = await self.store.list_documents(employee_trainings_path(employee_id))
        return [assignment_from_mirror(doc.id, doc.data) for doc in docs]

    async def get_employee_with_all_data(self, employee_id: str) -> EmployeeDetail | None:
        employee = await self.get_employee(employee_id)
        if employee is None:
            return None

        skills, qualifications, trainings = await asyncio.gather(
            self.get_employee_skills(employee_id),
            self.get_employee_qualifications(employee_id),
            self.get_employee_trainings(employee_id),
        )
        employee.skills = skills
        employee.qualifications = qualifications
        employee.trainings = trainings
        calculate_metrics(employee)

        logger.info(
            "Loaded employee %s: %d skills, %d qualifications, %d trainings",
            employee_id,
            len(skills),
            len(qualifications),
            len(trainings),
        )
        return employee

    def _transform_employee(self, employee_id: str, raw: dict[str, Any]) -> EmployeeDetail:
        data: dict[str, Any] = {"id": employee_id}

        for python_key, store_key in _FIELD_MAP:
            value = raw.get(store_key)
            data[python_key] = None if value is None else str(value)

        if not data.get("user_id"):
            data["user_id"] = employee_id

        data["is_active"] = bool(raw.get("isActive", True))
        data["hire_date"] = coerce_datetime(raw.get("hireDate"))
        data["created_at"] = coerce_datetime(raw.get("createdAt"))

        return EmployeeDetail(**data)

    def _transform_qualification(self, doc: StoredDocument, employee_id: str) -> Qualification:
        data: dict[str, Any] = {"id": doc.id, "employee_id": employee_id}
        for python_key, store_key in _QUALIFICATION_FIELD_MAP:
            data[python_key] = _text(doc.data.get(store_key))

        year = doc.data.get("yearcompleted")
        data["year_completed"] = int(year) if isinstance(year, int | float) and year > 0 else None
        data["created_at"] = coerce_datetime(doc.data.get("createdat"))
        return Qualification(**data)


employee_service = EmployeeService()
