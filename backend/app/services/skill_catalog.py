"""Required-skill catalog and skill-level helpers.

Levels are stored as free text. Everything here is pure computation: no store
access and no exceptions for malformed data. An unparseable level is level 0.
"""

from __future__ import annotations

from collections.abc import Iterable

from app.models.skill import RequiredSkill, Skill

DEFAULT_REQUIRED_LEVEL = 3
MIN_LEVEL = 1
MAX_LEVEL = 5

# Two naming variants per concept, matching two external vocabularies.
SKILL_CATALOG: tuple[RequiredSkill, ...] = (
    RequiredSkill("Financial Modeling", DEFAULT_REQUIRED_LEVEL),
    RequiredSkill("Budgeting & Forecasting", DEFAULT_REQUIRED_LEVEL),
    RequiredSkill("Data Analysis", DEFAULT_REQUIRED_LEVEL),
    RequiredSkill("Analytics & Insights", DEFAULT_REQUIRED_LEVEL),
    RequiredSkill("Risk Assessment", DEFAULT_REQUIRED_LEVEL),
    RequiredSkill("Risk Analysis & Mitigation", DEFAULT_REQUIRED_LEVEL),
    RequiredSkill("Project Management", DEFAULT_REQUIRED_LEVEL),
    RequiredSkill("Planning & Execution", DEFAULT_REQUIRED_LEVEL),
    RequiredSkill("Report Writing", DEFAULT_REQUIRED_LEVEL),
    RequiredSkill("Documentation & Reporting", DEFAULT_REQUIRED_LEVEL),
)

_LEVEL_WORDS: dict[str, int] = {
    "beginner": 1,
    "basic": 2,
    "intermediate": 3,
    "advanced": 4,
    "expert": 5,
}

_LEVEL_NAMES: dict[int, str] = {value: word.capitalize() for word, value in _LEVEL_WORDS.items()}
NOT_RATED = "Not Rated"

NEW_SKILL_LEVEL = "Intermediate"
EXPERIENCE_INCREMENT_YEARS = 0.5

# First match wins, so "Data Analysis" lands in Financial & Budgeting.
_CATEGORY_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("financial", "budget", "analysis"), "Financial & Budgeting"),
    (("data", "analytics", "statistical"), "Data & Analytics"),
    (("risk", "compliance", "audit"), "Risk Management"),
    (("project", "planning", "management"), "Project Management"),
    (("report", "documentation", "writing"), "Reporting & Documentation"),
)
DEFAULT_CATEGORY = "General"


def normalize_skill_name(name: str | None) -> str:
    return (name or "").strip().lower()


def parse_skill_level(level: object) -> int:
    """Canonicalize a stored level to 0..5.

    Numbers 1..5 map to themselves and the five level words map to 1..5.
    Integral doubles ("3.0", 3.0) count as numbers since Firestore clients
    often write levels as doubles. Anything else, out-of-range numbers
    included, is 0.
    """
    if level is None or isinstance(level, bool):
        return 0
    if isinstance(level, str):
        text = level.strip().lower()
        if text in _LEVEL_WORDS:
            return _LEVEL_WORDS[text]
        try:
            level = float(text)
        except ValueError:
            return 0
    if isinstance(level, float):
        if not level.is_integer():
            return 0
        level = int(level)
    if isinstance(level, int):
        return level if MIN_LEVEL <= level <= MAX_LEVEL else 0
    return 0


def level_name(level: object) -> str:
    """Display name for a stored level, "Not Rated" when it does not parse."""
    return _LEVEL_NAMES.get(parse_skill_level(level), NOT_RATED)


def next_skill_level(current_level: object) -> str:
    """One rung up the Beginner → Intermediate → Advanced → Expert ladder."""
    value = parse_skill_level(current_level)
    if value >= 4:
        return "Expert"
    if value == 3:
        return "Advanced"
    return "Intermediate"


def infer_skill_category(skill_name: str) -> str:
    name = normalize_skill_name(skill_name)
    for keywords, category in _CATEGORY_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def find_catalog_entry(skill_name: str) -> RequiredSkill | None:
    target = normalize_skill_name(skill_name)
    for entry in SKILL_CATALOG:
        if normalize_skill_name(entry.name) == target:
            return entry
    return None


def find_skill(skill_name: str, skills: Iterable[Skill]) -> Skill | None:
    """First skill whose name matches case-insensitively, or None."""
    target = normalize_skill_name(skill_name)
    for skill in skills:
        if normalize_skill_name(skill.name) == target:
            return skill
    return None
