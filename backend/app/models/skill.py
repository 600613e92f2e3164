"""Skill, qualification and skill-gap models."""

from __future__ import annotations

from datetime import datetime
from typing import NamedTuple

from pydantic import BaseModel


class RequiredSkill(NamedTuple):
    name: str
    required_level: int


class Skill(BaseModel):
    """A skill record from ``employees/{id}/skills``. ``level`` is free text."""

    id: str | None = None
    employee_id: str | None = None
    name: str = ""
    level: str = ""
    category: str = ""
    years_of_experience: float = 0.0
    created_at: datetime | None = None


class Qualification(BaseModel):
    id: str | None = None
    employee_id: str | None = None
    institution: str = ""
    degree: str = ""
    field_of_study: str = ""
    year_completed: int | None = None
    grade: str = ""
    certificate_pdf_url: str = ""
    certificate_file_name: str = ""
    created_at: datetime | None = None


class SkillGap(BaseModel):
    skill_name: str
    current_level: int
    required_level: int
    gap: int
    has_skill: bool


class EmployeeTrainingAnalysis(BaseModel):
    employee_id: str
    employee_name: str = ""
    skill_gaps: list[SkillGap] = []
    needs_training: bool = False
    completed_trainings: int = 0


class SkillsMatrixRow(BaseModel):
    """One employee's level name for every catalog skill, keyed by skill name."""

    employee_id: str
    employee_name: str = ""
    department: str = ""
    email: str = ""
    levels: dict[str, str] = {}


class DepartmentStats(BaseModel):
    name: str
    employee_count: int = 0
    average_skill_level: float = 0.0
    total_skills: int = 0
