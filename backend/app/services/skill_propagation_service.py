"""Raises employee skills when a training is completed.

Not idempotent: every call bumps each covered skill by one rung. The
assignment service only calls it on a transition into Completed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from app.core.document_store import DocumentStore, document_store, employee_skills_path
from app.models.skill import Skill
from app.services.employee_service import EmployeeService, employee_service, skill_to_document
from app.services.skill_catalog import (
    EXPERIENCE_INCREMENT_YEARS,
    NEW_SKILL_LEVEL,
    find_skill,
    infer_skill_category,
    next_skill_level,
)
from app.services.training_program_service import TrainingProgramService, training_program_service

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SkillPropagationService:
    def __init__(
        self,
        store: DocumentStore = document_store,
        employees: EmployeeService = employee_service,
        programs: TrainingProgramService = training_program_service,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.employees = employees
        self.programs = programs
        self.clock = clock

    async def apply_completion(self, employee_id: str, training_program_id: str) -> list[Skill]:
        """Bump or create a skill for every skill the program covers.

        Returns the skills as written. An unknown program or one without
        covered skills changes nothing.
        """
        program = await self.programs.get_program(training_program_id)
        if program is None or not program.covered_skills:
            logger.info("No covered skills to propagate for program %s", training_program_id)
            return []

        path = employee_skills_path(employee_id)
        existing = await self.employees.get_employee_skills(employee_id)
        written: list[Skill] = []

        for skill_name in program.covered_skills:
            skill = find_skill(skill_name, existing)
            if skill is not None:
                skill.level = next_skill_level(skill.level)
                skill.years_of_experience += EXPERIENCE_INCREMENT_YEARS
                await self.store.set(path, skill.id, skill_to_document(skill), merge=True)
                logger.info("Updated skill %s to %s for employee %s", skill.name, skill.level, employee_id)
            else:
                skill = Skill(
                    employee_id=employee_id,
                    name=skill_name,
                    level=NEW_SKILL_LEVEL,
                    category=infer_skill_category(skill_name),
                    years_of_experience=EXPERIENCE_INCREMENT_YEARS,
                    created_at=self.clock(),
                )
                skill.id = await self.store.add(path, skill_to_document(skill))
                existing.append(skill)
                logger.info("Added skill %s for employee %s", skill_name, employee_id)
            written.append(skill)

        return written


skill_propagation_service = SkillPropagationService()
