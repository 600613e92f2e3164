"""Training program catalog stored in ``training_programs``."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from app.core.document_store import TRAINING_PROGRAMS, TRAININGS, DocumentStore, StoredDocument, document_store
from app.core.errors import ProgramInUseError, ValidationError
from app.models.training import AssignmentStatus, TrainingProgram, TrainingProgramCreate
from app.services.training_mapper import coerce_datetime

logger = logging.getLogger(__name__)

# Firestore field names → Python snake_case attribute names
_FIELD_MAP: list[tuple[str, str]] = [
    ("title", "Title"),
    ("description", "Description"),
    ("provider", "Provider"),
    ("category", "Category"),
    ("difficulty_level", "DifficultyLevel"),
    ("format", "Format"),
    ("prerequisites", "Prerequisites"),
]

DEFAULT_DURATION_HOURS = 40


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def program_to_document(program: TrainingProgramCreate) -> dict[str, Any]:
    doc: dict[str, Any] = {store_key: getattr(program, python_key) for python_key, store_key in _FIELD_MAP}
    doc["Duration"] = program.duration
    doc["CoveredSkills"] = [s.strip() for s in program.covered_skills if s and s.strip()]
    doc["IsActive"] = program.is_active
    return doc


def program_from_document(doc: StoredDocument) -> TrainingProgram:
    data: dict[str, Any] = {"id": doc.id}
    for python_key, store_key in _FIELD_MAP:
        value = doc.data.get(store_key)
        if value:
            data[python_key] = str(value)

    duration = doc.data.get("Duration")
    data["duration"] = int(duration) if isinstance(duration, int | float) and duration > 0 else DEFAULT_DURATION_HOURS

    covered = doc.data.get("CoveredSkills") or []
    data["covered_skills"] = [str(s) for s in covered if s] if isinstance(covered, list) else []
    data["is_active"] = bool(doc.data.get("IsActive", True))
    data["created_at"] = coerce_datetime(doc.data.get("CreatedAt"))
    return TrainingProgram(**data)


class TrainingProgramService:
    def __init__(
        self,
        store: DocumentStore = document_store,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.clock = clock

    async def get_program(self, program_id: str) -> TrainingProgram | None:
        if not program_id:
            return None
        raw = await self.store.get(TRAINING_PROGRAMS, program_id)
        if raw is None:
            logger.info("Training program %s not found", program_id)
            return None
        return program_from_document(StoredDocument(program_id, raw))

    async def list_programs(self, *, with_stats: bool = False) -> list[TrainingProgram]:
        """All programs sorted by id, so callers see a stable order."""
        docs = await self.store.list_documents(TRAINING_PROGRAMS)
        programs = sorted((program_from_document(doc) for doc in docs), key=lambda p: p.id)

        if with_stats:
            for program in programs:
                assignments = await self.store.query(TRAININGS, "TrainingProgramId", program.id)
                program.assignment_count = len(assignments)
                program.completed_count = sum(
                    1
                    for doc in assignments
                    if AssignmentStatus.parse(doc.data.get("Status", "")) is AssignmentStatus.COMPLETED
                )
        return programs

    async def programs_covering(self, skill_name: str, *, with_stats: bool = False) -> list[TrainingProgram]:
        return [p for p in await self.list_programs(with_stats=with_stats) if p.covers(skill_name)]

    async def create_program(self, program: TrainingProgramCreate) -> str:
        doc = program_to_document(program)
        doc["CreatedAt"] = self.clock()
        program_id = await self.store.add(TRAINING_PROGRAMS, doc)
        logger.info("Training program created: %s (%s)", program.title, program_id)
        return program_id

    async def update_program(self, program_id: str, program: TrainingProgramCreate) -> TrainingProgram | None:
        if not program_id:
            raise ValidationError("Program ID is required")
        if await self.get_program(program_id) is None:
            return None
        await self.store.set(TRAINING_PROGRAMS, program_id, program_to_document(program), merge=True)
        logger.info("Training program updated: %s", program_id)
        return await self.get_program(program_id)

    async def delete_program(self, program_id: str) -> bool:
        """Delete a program. Refused while any assignment references it."""
        if not program_id:
            raise ValidationError("Program ID is required")
        if await self.get_program(program_id) is None:
            return False

        assignments = await self.store.query(TRAININGS, "TrainingProgramId", program_id)
        if assignments:
            raise ProgramInUseError(
                f"Cannot delete program {program_id}: referenced by {len(assignments)} assignment(s)"
            )

        await self.store.delete(TRAINING_PROGRAMS, program_id)
        logger.info("Training program deleted: %s", program_id)
        return True


training_program_service = TrainingProgramService()
