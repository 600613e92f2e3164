"""Skill-gap calculation against the required-skill catalog."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from app.models.employee import EmployeeSummary
from app.models.skill import (
    DepartmentStats,
    EmployeeTrainingAnalysis,
    RequiredSkill,
    Skill,
    SkillGap,
    SkillsMatrixRow,
)
from app.models.training import AssignmentStatus
from app.services.employee_service import EmployeeService, employee_service
from app.services.skill_catalog import (
    NOT_RATED,
    SKILL_CATALOG,
    find_catalog_entry,
    find_skill,
    level_name,
    parse_skill_level,
)

logger = logging.getLogger(__name__)

UNKNOWN_DEPARTMENT = "Unknown"


def calculate_gaps(
    skills: Iterable[Skill],
    catalog: Sequence[RequiredSkill] = SKILL_CATALOG,
) -> list[SkillGap]:
    """Join employee skills against the catalog. Output follows catalog order."""
    skills = list(skills)
    gaps: list[SkillGap] = []
    for entry in catalog:
        skill = find_skill(entry.name, skills)
        current = parse_skill_level(skill.level) if skill else 0
        gaps.append(
            SkillGap(
                skill_name=entry.name,
                current_level=current,
                required_level=entry.required_level,
                gap=max(0, entry.required_level - current),
                has_skill=skill is not None,
            )
        )
    return gaps


def calculate_program_gap(skills: Iterable[Skill], covered_skills: Iterable[str]) -> float:
    """Mean gap over the covered skills that appear in the catalog, 0 if none do."""
    skills = list(skills)
    total = 0
    counted = 0
    for skill_name in covered_skills:
        entry = find_catalog_entry(skill_name)
        if entry is None:
            continue
        skill = find_skill(skill_name, skills)
        current = parse_skill_level(skill.level) if skill else 0
        total += max(0, entry.required_level - current)
        counted += 1
    return total / counted if counted else 0.0


def skill_level_names(
    skills: Iterable[Skill],
    catalog: Sequence[RequiredSkill] = SKILL_CATALOG,
) -> dict[str, str]:
    skills = list(skills)
    names: dict[str, str] = {}
    for entry in catalog:
        skill = find_skill(entry.name, skills)
        names[entry.name] = level_name(skill.level) if skill else NOT_RATED
    return names


def calculate_department_stats(
    employees: Iterable[EmployeeSummary],
    skills_by_employee: Mapping[str, Sequence[Skill]],
) -> list[DepartmentStats]:
    """Group employees by trimmed department ("Unknown" when blank).

    Departments keep first-seen order. The average is over every skill held
    in the department, unparseable levels counting as 0, rounded to one place.
    """
    grouped: dict[str, list[EmployeeSummary]] = {}
    for employee in employees:
        name = (employee.department or "").strip() or UNKNOWN_DEPARTMENT
        grouped.setdefault(name, []).append(employee)

    stats: list[DepartmentStats] = []
    for name, members in grouped.items():
        levels = [parse_skill_level(s.level) for e in members for s in skills_by_employee.get(e.id, [])]
        stats.append(
            DepartmentStats(
                name=name,
                employee_count=len(members),
                average_skill_level=round(sum(levels) / len(levels), 1) if levels else 0.0,
                total_skills=len(levels),
            )
        )
    return stats


class SkillGapService:
    def __init__(self, employees: EmployeeService = employee_service) -> None:
        self.employees = employees

    async def compute_gaps(self, employee_id: str) -> list[SkillGap]:
        if not employee_id:
            return []
        if await self.employees.get_employee(employee_id) is None:
            return []
        skills = await self.employees.get_employee_skills(employee_id)
        return calculate_gaps(skills)

    async def program_gap(self, employee_id: str, covered_skills: Iterable[str]) -> float:
        covered = list(covered_skills)
        if not employee_id or not covered:
            return 0.0
        skills = await self.employees.get_employee_skills(employee_id)
        return calculate_program_gap(skills, covered)

    async def training_analysis(self) -> list[EmployeeTrainingAnalysis]:
        analysis: list[EmployeeTrainingAnalysis] = []
        for employee in await self.employees.get_employees():
            skills = await self.employees.get_employee_skills(employee.id)
            trainings = await self.employees.get_employee_trainings(employee.id)
            gaps = calculate_gaps(skills)
            analysis.append(
                EmployeeTrainingAnalysis(
                    employee_id=employee.id,
                    employee_name=employee.full_name,
                    skill_gaps=gaps,
                    needs_training=any(g.gap > 0 for g in gaps),
                    completed_trainings=sum(1 for t in trainings if t.status is AssignmentStatus.COMPLETED),
                )
            )
        logger.info("Generated training analysis for %d employees", len(analysis))
        return analysis

    async def employees_needing_training(self) -> list[str]:
        return [a.employee_id for a in await self.training_analysis() if a.needs_training]

    async def skills_matrix(self) -> list[SkillsMatrixRow]:
        rows: list[SkillsMatrixRow] = []
        for employee in await self.employees.get_employees():
            skills = await self.employees.get_employee_skills(employee.id)
            rows.append(
                SkillsMatrixRow(
                    employee_id=employee.id,
                    employee_name=employee.full_name,
                    department=employee.department or "",
                    email=employee.email or "",
                    levels=skill_level_names(skills),
                )
            )
        logger.info("Built skills matrix with %d rows", len(rows))
        return rows

    async def department_stats(self) -> list[DepartmentStats]:
        employees = await self.employees.get_employees()
        skills_by_employee = {e.id: await self.employees.get_employee_skills(e.id) for e in employees}
        return calculate_department_stats(employees, skills_by_employee)


skill_gap_service = SkillGapService()
