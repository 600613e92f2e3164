from __future__ import annotations

import pytest

from app.core.document_store import employee_skills_path
from tests.conftest import FIXED_NOW, seed_employee, seed_program


@pytest.mark.anyio
async def test_existing_skill_moves_one_rung(services, store):
    seed_employee(store, "E1", skills=[("Financial Modeling", "Intermediate")])
    seed_program(store, "P1", covered_skills=["financial modeling"])

    written = await services.propagation.apply_completion("E1", "P1")

    stored = store.raw(employee_skills_path("E1"), "E1-skill1")
    assert stored["level"] == "Advanced"
    assert stored["yearsofexperience"] == 1.5
    assert stored["category"] == "Technical"
    assert [s.name for s in written] == ["Financial Modeling"]


@pytest.mark.anyio
async def test_missing_skill_is_created_at_intermediate(services, store):
    seed_employee(store, "E1")
    seed_program(store, "P1", covered_skills=["Risk Assessment"])

    await services.propagation.apply_completion("E1", "P1")

    skills = store.collections[employee_skills_path("E1")]
    assert len(skills) == 1
    (skill,) = skills.values()
    assert skill == {
        "employeeid": "E1",
        "name": "Risk Assessment",
        "level": "Intermediate",
        "category": "Risk Management",
        "yearsofexperience": 0.5,
        "createdat": FIXED_NOW,
    }


@pytest.mark.anyio
async def test_unparseable_level_becomes_intermediate(services, store):
    seed_employee(store, "E1", skills=[("Report Writing", "guru")])
    seed_program(store, "P1", covered_skills=["Report Writing"])

    await services.propagation.apply_completion("E1", "P1")

    assert store.raw(employee_skills_path("E1"), "E1-skill1")["level"] == "Intermediate"


@pytest.mark.anyio
async def test_expert_stays_expert_but_gains_experience(services, store):
    seed_employee(store, "E1", skills=[("Data Analysis", "Expert")])
    seed_program(store, "P1", covered_skills=["Data Analysis"])

    await services.propagation.apply_completion("E1", "P1")

    stored = store.raw(employee_skills_path("E1"), "E1-skill1")
    assert stored["level"] == "Expert"
    assert stored["yearsofexperience"] == 1.5


@pytest.mark.anyio
async def test_duplicate_covered_skill_bumps_twice(services, store):
    seed_employee(store, "E1")
    seed_program(store, "P1", covered_skills=["Project Management", "project management"])

    await services.propagation.apply_completion("E1", "P1")

    skills = list(store.collections[employee_skills_path("E1")].values())
    assert len(skills) == 1
    assert skills[0]["level"] == "Advanced"
    assert skills[0]["yearsofexperience"] == 1.0


@pytest.mark.anyio
async def test_program_without_skills_changes_nothing(services, store):
    seed_employee(store, "E1", skills=[("Data Analysis", "2")])
    seed_program(store, "P1", covered_skills=[])

    assert await services.propagation.apply_completion("E1", "P1") == []
    assert await services.propagation.apply_completion("E1", "missing") == []
    assert store.writes == []
