"""Employee models for Firestore employee data."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from app.models.skill import Qualification, Skill
from app.models.training import TrainingAssignment


class EmployeeSummary(BaseModel):
    """Minimal employee info for lists."""

    id: str
    user_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    department: str | None = None
    position: str | None = None
    email: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class EmployeeDetail(EmployeeSummary):
    """Employee aggregate with subcollections and derived skill metrics.

    The three lists are always present, empty when the subcollection is.
    Metrics are recalculated on every full load and never written back.
    """

    phone: str | None = None
    employee_number: str | None = None
    is_active: bool = True
    hire_date: datetime | None = None
    created_at: datetime | None = None

    skills: list[Skill] = []
    qualifications: list[Qualification] = []
    trainings: list[TrainingAssignment] = []

    average_skill_level: float = 0.0
    total_skills_gap: int = 0
    critical_gaps_count: int = 0
