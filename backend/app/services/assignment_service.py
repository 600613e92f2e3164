"""Training assignment lifecycle.

Pending -> Accepted -> InProgress -> Completed, with Cancelled reachable from
every state except Completed. Both Completed and Cancelled are terminal:
nothing moves an assignment out of them, so skills are raised at most once
per assignment.

Every mutation ends in ``_persist``, which writes the canonical document and
the per-employee mirror as one logical operation.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from app.core.config import settings
from app.core.document_store import TRAININGS, DocumentStore, document_store, employee_trainings_path
from app.core.errors import (
    InvalidTransitionError,
    PersistenceError,
    SkillPropagationError,
    TrainingServiceError,
    ValidationError,
)
from app.models.training import (
    AssignmentBatchResult,
    AssignmentStatus,
    Priority,
    TrainingAssignment,
)
from app.services.recommendation_service import RecommendationService, recommendation_service
from app.services.skill_gap_service import SkillGapService, skill_gap_service
from app.services.skill_propagation_service import SkillPropagationService, skill_propagation_service
from app.services.training_mapper import (
    assignment_from_canonical,
    assignment_from_mirror,
    assignment_to_canonical,
    canonical_to_mirror,
)
from app.services.training_program_service import TrainingProgramService, training_program_service

logger = logging.getLogger(__name__)

START_PROGRESS = 10
COMPLETE_PROGRESS = 100
MIRROR_WRITE_ATTEMPTS = 2
MAX_AUTO_ASSIGNMENTS = 2
DEFAULT_REASON = "Training assignment"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class AssignmentService:
    def __init__(
        self,
        store: DocumentStore = document_store,
        programs: TrainingProgramService = training_program_service,
        gaps: SkillGapService = skill_gap_service,
        recommendations: RecommendationService = recommendation_service,
        propagation: SkillPropagationService = skill_propagation_service,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
        due_days: int | None = None,
    ) -> None:
        self.store = store
        self.programs = programs
        self.gaps = gaps
        self.recommendations = recommendations
        self.propagation = propagation
        self.clock = clock
        self.id_factory = id_factory
        self.due_days = settings.ASSIGNMENT_DUE_DAYS if due_days is None else due_days

    # -- reads -------------------------------------------------------------

    async def get_assignment(self, assignment_id: str) -> TrainingAssignment | None:
        if not assignment_id:
            return None
        raw = await self.store.get(TRAININGS, assignment_id)
        if raw is None:
            logger.info("Training assignment %s not found", assignment_id)
            return None
        return assignment_from_canonical(assignment_id, raw)

    async def list_assignments(self) -> list[TrainingAssignment]:
        docs = await self.store.list_documents(TRAININGS)
        return [assignment_from_canonical(doc.id, doc.data) for doc in docs]

    async def list_employee_assignments(self, employee_id: str) -> list[TrainingAssignment]:
        if not employee_id:
            return []
        docs = await self.store.list_documents(employee_trainings_path(employee_id))
        return [assignment_from_mirror(doc.id, doc.data) for doc in docs]

    async def list_program_assignments(self, program_id: str) -> list[TrainingAssignment]:
        if not program_id:
            return []
        docs = await self.store.query(TRAININGS, "TrainingProgramId", program_id)
        return [assignment_from_canonical(doc.id, doc.data) for doc in docs]

    # -- creation ----------------------------------------------------------

    async def create_assignment(
        self,
        training_program_id: str,
        employee_id: str,
        reason: str | None = None,
        due_date: datetime | None = None,
        assigned_by: str = "admin",
    ) -> str:
        if not training_program_id or not training_program_id.strip():
            raise ValidationError("Training program ID is required")
        if not employee_id or not employee_id.strip():
            raise ValidationError("Employee ID is required")

        program = await self.programs.get_program(training_program_id)
        if program is None:
            logger.warning("Assigning unknown training program %s to %s", training_program_id, employee_id)
        covered = program.covered_skills if program else []

        now = self.clock()
        if due_date is not None and due_date.tzinfo is None:
            due_date = due_date.replace(tzinfo=timezone.utc)

        assignment = TrainingAssignment(
            id=self.id_factory(),
            training_program_id=training_program_id,
            employee_id=employee_id,
            status=AssignmentStatus.PENDING,
            progress=0,
            title=program.title if program else "Unknown Training",
            provider=program.provider if program else "Unknown Provider",
            description=program.description if program else "",
            assigned_by=assigned_by,
            assigned_reason=reason or DEFAULT_REASON,
            assigned_date=now,
            due_date=due_date or now + timedelta(days=self.due_days),
            skill_gap_before=await self.gaps.program_gap(employee_id, covered),
            created_at=now,
        )

        await self._persist(assignment, creating=True)
        logger.info(
            "Training %s assigned to employee %s (assignment %s)",
            training_program_id,
            employee_id,
            assignment.id,
        )
        return assignment.id

    async def assign_to_many(
        self,
        training_program_id: str,
        employee_ids: list[str],
        reason: str | None = None,
    ) -> AssignmentBatchResult:
        """Assign one program to several employees concurrently.

        Best effort: a failure for one employee is recorded in ``failed`` and
        does not undo or stop the others.
        """
        if not training_program_id:
            raise ValidationError("Training program ID is required")

        unique_ids = list(dict.fromkeys(employee_ids))
        outcomes = await asyncio.gather(
            *(self.create_assignment(training_program_id, employee_id, reason) for employee_id in unique_ids),
            return_exceptions=True,
        )

        result = AssignmentBatchResult(training_program_id=training_program_id)
        for employee_id, outcome in zip(unique_ids, outcomes):
            if isinstance(outcome, Exception):
                logger.error("Failed to assign %s to employee %s: %s", training_program_id, employee_id, outcome)
                result.failed[employee_id] = str(outcome) or type(outcome).__name__
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.assigned[employee_id] = outcome

        logger.info(
            "Training %s assigned to %d/%d employees",
            training_program_id,
            len(result.assigned),
            len(unique_ids),
        )
        return result

    async def assign_for_skill_gaps(self, employee_id: str) -> list[str]:
        """Assign up to two high-priority recommended programs to an employee."""
        if not employee_id:
            raise ValidationError("Employee ID is required")

        recommendations = await self.recommendations.recommend(employee_id)
        high_priority = [r for r in recommendations if r.priority is Priority.HIGH]

        assigned: list[str] = []
        seen_programs: set[str] = set()
        for recommendation in high_priority:
            if len(assigned) >= MAX_AUTO_ASSIGNMENTS:
                break
            if recommendation.training_program_id in seen_programs:
                continue
            seen_programs.add(recommendation.training_program_id)

            reason = (
                f"Auto-assigned to address skill gap in {recommendation.skill_name} "
                f"(Current: {recommendation.current_level}, Required: {recommendation.required_level})"
            )
            assigned.append(await self.create_assignment(recommendation.training_program_id, employee_id, reason))

        logger.info("Auto-assigned %d trainings to employee %s", len(assigned), employee_id)
        return assigned

    # -- transitions -------------------------------------------------------

    async def accept(self, assignment_id: str) -> TrainingAssignment | None:
        assignment = await self.get_assignment(assignment_id)
        if assignment is None:
            return None
        self._ensure_open(assignment, "accept")

        assignment.status = AssignmentStatus.ACCEPTED
        assignment.accepted_date = self.clock()
        await self._persist(assignment)
        return assignment

    async def start(self, assignment_id: str) -> TrainingAssignment | None:
        assignment = await self.get_assignment(assignment_id)
        if assignment is None:
            return None
        self._ensure_open(assignment, "start")

        assignment.status = AssignmentStatus.IN_PROGRESS
        assignment.progress = START_PROGRESS
        await self._persist(assignment)
        return assignment

    async def update_progress(
        self,
        assignment_id: str,
        progress: int,
        status: str | None = None,
    ) -> TrainingAssignment | None:
        """Record progress. Out-of-range values are clamped to 0..100.

        Reaching 100 without an explicit status completes the assignment,
        except that a Cancelled assignment stays Cancelled. An explicit status
        cannot move a Completed or Cancelled assignment anywhere else.
        """
        explicit: AssignmentStatus | None = None
        if status:
            explicit = AssignmentStatus.parse(status)
            if explicit is AssignmentStatus.UNKNOWN:
                raise ValidationError(f"Unknown training status: {status}")

        assignment = await self.get_assignment(assignment_id)
        if assignment is None:
            return None

        prior = assignment.status
        if prior.is_terminal and explicit not in (None, prior):
            raise InvalidTransitionError(f"Assignment {assignment_id} is {prior.value.lower()}")

        assignment.progress = max(0, min(COMPLETE_PROGRESS, progress))
        if explicit is not None:
            assignment.status = explicit
        elif assignment.progress == COMPLETE_PROGRESS and not prior.is_terminal:
            assignment.status = AssignmentStatus.COMPLETED

        if assignment.status is AssignmentStatus.COMPLETED and prior is not AssignmentStatus.COMPLETED:
            assignment.completed_date = self.clock()
            return await self._finish_completion(assignment, prior)

        await self._persist(assignment)
        logger.info("Training progress updated to %d%% for assignment %s", assignment.progress, assignment_id)
        return assignment

    async def complete(
        self,
        assignment_id: str,
        certificate_file_name: str | None = None,
        certificate_url: str | None = None,
    ) -> TrainingAssignment | None:
        assignment = await self.get_assignment(assignment_id)
        if assignment is None:
            return None
        self._ensure_not_cancelled(assignment, "complete")

        prior = assignment.status
        assignment.status = AssignmentStatus.COMPLETED
        assignment.progress = COMPLETE_PROGRESS
        assignment.completed_date = self.clock()
        if certificate_file_name is not None:
            assignment.certificate_file_name = certificate_file_name
        if certificate_url is not None:
            assignment.certificate_url = certificate_url
            if not assignment.certificate_pdf_url:
                assignment.certificate_pdf_url = certificate_url

        return await self._finish_completion(assignment, prior)

    async def cancel(
        self,
        assignment_id: str,
        cancelled_by: str | None = None,
        reason: str | None = None,
    ) -> TrainingAssignment | None:
        assignment = await self.get_assignment(assignment_id)
        if assignment is None:
            return None
        if assignment.status is AssignmentStatus.COMPLETED:
            raise InvalidTransitionError(f"Assignment {assignment_id} is already completed")

        assignment.status = AssignmentStatus.CANCELLED
        assignment.cancelled_date = self.clock()
        assignment.cancelled_by = cancelled_by or ""
        assignment.cancellation_reason = reason or ""
        await self._persist(assignment)
        logger.info("Training assignment %s cancelled", assignment_id)
        return assignment

    async def update_certificate(
        self,
        assignment_id: str,
        certificate_file_name: str,
        certificate_url: str,
        certificate_pdf_url: str | None = None,
    ) -> TrainingAssignment | None:
        if not certificate_file_name or not certificate_url:
            raise ValidationError("Certificate file name and URL are required")

        assignment = await self.get_assignment(assignment_id)
        if assignment is None:
            return None

        assignment.certificate_file_name = certificate_file_name
        assignment.certificate_url = certificate_url
        assignment.certificate_pdf_url = certificate_pdf_url or certificate_url
        await self._persist(assignment)
        logger.info("Training certificate updated: %s", assignment_id)
        return assignment

    async def delete(self, assignment_id: str) -> bool:
        """Remove both copies. A missing mirror is not an error."""
        assignment = await self.get_assignment(assignment_id)
        if assignment is None:
            return False

        await self.store.delete(TRAININGS, assignment_id)
        if assignment.employee_id:
            try:
                await self.store.delete(employee_trainings_path(assignment.employee_id), assignment_id)
            except PersistenceError as e:
                raise PersistenceError(
                    f"Assignment {assignment_id}: canonical deleted, mirror delete failed: {e}",
                    completed=("canonical",),
                ) from e

        logger.info("Training assignment deleted: %s", assignment_id)
        return True

    # -- internals ---------------------------------------------------------

    def _ensure_not_cancelled(self, assignment: TrainingAssignment, action: str) -> None:
        if assignment.status is AssignmentStatus.CANCELLED:
            raise InvalidTransitionError(f"Cannot {action} assignment {assignment.id}: it is cancelled")

    def _ensure_open(self, assignment: TrainingAssignment, action: str) -> None:
        if assignment.status.is_terminal:
            raise InvalidTransitionError(
                f"Cannot {action} assignment {assignment.id}: it is {assignment.status.value.lower()}"
            )

    async def _finish_completion(
        self,
        assignment: TrainingAssignment,
        prior: AssignmentStatus,
    ) -> TrainingAssignment:
        """Persist a completion, propagate skills once, then record the remaining gap."""
        await self._persist(assignment)

        if prior is not AssignmentStatus.COMPLETED and assignment.employee_id:
            try:
                await self.propagation.apply_completion(assignment.employee_id, assignment.training_program_id)
            except TrainingServiceError as e:
                logger.exception(
                    "Assignment %s marked Completed but skills for employee %s were not updated",
                    assignment.id,
                    assignment.employee_id,
                )
                raise SkillPropagationError(
                    f"Assignment {assignment.id} completed but skill propagation failed: {e}",
                    completed=("canonical", "mirror"),
                ) from e

        program = await self.programs.get_program(assignment.training_program_id)
        covered = program.covered_skills if program else []
        assignment.skill_gap_after = await self.gaps.program_gap(assignment.employee_id, covered)
        await self._persist(assignment)

        logger.info("Training assignment %s completed", assignment.id)
        return assignment

    async def _persist(self, assignment: TrainingAssignment, *, creating: bool = False) -> None:
        """Write the canonical document and its mirror as one logical operation.

        The mirror write is retried once. If it still fails on creation the
        canonical document is removed again; on update the error reports that
        only the canonical half was written.
        """
        canonical = assignment_to_canonical(assignment)
        await self.store.set(TRAININGS, assignment.id, canonical, merge=not creating)

        if not assignment.employee_id:
            return

        try:
            await self._write_mirror(assignment.employee_id, assignment.id, canonical_to_mirror(canonical))
        except PersistenceError as e:
            if not creating:
                raise PersistenceError(
                    f"Assignment {assignment.id}: canonical updated, mirror update failed: {e}",
                    completed=("canonical",),
                ) from e

            try:
                await self.store.delete(TRAININGS, assignment.id)
            except PersistenceError:
                logger.exception("Rollback of canonical assignment %s failed", assignment.id)
                raise PersistenceError(
                    f"Assignment {assignment.id}: mirror write failed and canonical rollback failed: {e}",
                    completed=("canonical",),
                ) from e
            raise PersistenceError(
                f"Assignment {assignment.id}: mirror write failed, canonical write rolled back: {e}",
            ) from e

    async def _write_mirror(self, employee_id: str, assignment_id: str, mirror: dict) -> None:
        path = employee_trainings_path(employee_id)
        for attempt in range(1, MIRROR_WRITE_ATTEMPTS + 1):
            try:
                await self.store.set(path, assignment_id, mirror, merge=True)
                return
            except PersistenceError:
                if attempt == MIRROR_WRITE_ATTEMPTS:
                    raise
                logger.warning("Mirror write for assignment %s failed (attempt %d) — retrying", assignment_id, attempt)


assignment_service = AssignmentService()
