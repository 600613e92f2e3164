"""Training recommendations for significant skill gaps."""

from __future__ import annotations

import logging

from app.models.skill import SkillGap
from app.models.training import Priority, TrainingProgram, TrainingRecommendation
from app.services.skill_gap_service import SkillGapService, skill_gap_service
from app.services.training_program_service import TrainingProgramService, training_program_service

logger = logging.getLogger(__name__)

SIGNIFICANT_GAP = 2
HIGH_PRIORITY_GAP = 3
MAX_PROGRAMS_PER_SKILL = 2


def gap_priority(gap: int) -> Priority:
    if gap >= HIGH_PRIORITY_GAP:
        return Priority.HIGH
    if gap >= SIGNIFICANT_GAP:
        return Priority.MEDIUM
    return Priority.LOW


def build_recommendations(
    gaps: list[SkillGap],
    programs: list[TrainingProgram],
) -> list[TrainingRecommendation]:
    """Up to two programs per significant gap, in the order ``programs`` is given."""
    recommendations: list[TrainingRecommendation] = []
    for gap in gaps:
        if gap.gap < SIGNIFICANT_GAP:
            continue

        matching = [p for p in programs if p.covers(gap.skill_name)]
        for program in matching[:MAX_PROGRAMS_PER_SKILL]:
            recommendations.append(
                TrainingRecommendation(
                    skill_name=gap.skill_name,
                    current_level=gap.current_level,
                    required_level=gap.required_level,
                    gap=gap.gap,
                    recommended_training_title=program.title,
                    training_program_id=program.id,
                    priority=gap_priority(gap.gap),
                )
            )
    return recommendations


class RecommendationService:
    def __init__(
        self,
        gaps: SkillGapService = skill_gap_service,
        programs: TrainingProgramService = training_program_service,
    ) -> None:
        self.gaps = gaps
        self.programs = programs

    async def recommend(self, employee_id: str) -> list[TrainingRecommendation]:
        gaps = await self.gaps.compute_gaps(employee_id)
        if not any(g.gap >= SIGNIFICANT_GAP for g in gaps):
            return []

        programs = await self.programs.list_programs()
        recommendations = build_recommendations(gaps, programs)
        logger.info("Generated %d training recommendations for employee %s", len(recommendations), employee_id)
        return recommendations


recommendation_service = RecommendationService()
