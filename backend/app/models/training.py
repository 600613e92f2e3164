"""Pydantic models for training programs, assignments and recommendations."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class AssignmentStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: object) -> AssignmentStatus:
        """Parse a stored status string. Unrecognized values become UNKNOWN."""
        if isinstance(value, AssignmentStatus):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        key = value.strip().lower().replace(" ", "").replace("_", "")
        if not key:
            return cls.PENDING
        return _STATUS_ALIASES.get(key, cls.UNKNOWN)

    @property
    def is_terminal(self) -> bool:
        return self in (AssignmentStatus.COMPLETED, AssignmentStatus.CANCELLED)


_STATUS_ALIASES: dict[str, AssignmentStatus] = {
    "pending": AssignmentStatus.PENDING,
    "assigned": AssignmentStatus.PENDING,
    "accepted": AssignmentStatus.ACCEPTED,
    "inprogress": AssignmentStatus.IN_PROGRESS,
    "completed": AssignmentStatus.COMPLETED,
    "cancelled": AssignmentStatus.CANCELLED,
    "canceled": AssignmentStatus.CANCELLED,
}


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TrainingProgramCreate(BaseModel):
    """Admin form payload for a new or edited training program."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    provider: str = Field(..., min_length=1, max_length=100)
    category: str = ""
    duration: int = Field(default=40, ge=1, le=500)
    difficulty_level: str = "Intermediate"
    format: str = "Online"
    prerequisites: str = ""
    covered_skills: list[str] = []
    is_active: bool = True


class TrainingProgram(BaseModel):
    """A stored training program. Bounds are enforced on create, not on read."""

    id: str
    title: str = ""
    description: str = ""
    provider: str = ""
    category: str = ""
    duration: int = 40
    difficulty_level: str = "Intermediate"
    format: str = "Online"
    prerequisites: str = ""
    covered_skills: list[str] = []
    is_active: bool = True
    created_at: datetime | None = None

    assignment_count: int = 0
    completed_count: int = 0

    def covers(self, skill_name: str) -> bool:
        target = skill_name.strip().lower()
        return any(s.strip().lower() == target for s in self.covered_skills)


class TrainingAssignment(BaseModel):
    """One training event for one employee.

    Stored twice: the canonical document in ``trainings`` and the mobile
    mirror in ``employees/{employee_id}/trainings``. See ``training_mapper``.
    """

    id: str
    training_program_id: str = ""
    employee_id: str = ""
    status: AssignmentStatus = AssignmentStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)

    title: str = ""
    provider: str = ""
    description: str = ""

    assigned_by: str = "admin"
    assigned_reason: str = ""
    assigned_date: datetime | None = None
    due_date: datetime | None = None
    accepted_date: datetime | None = None
    completed_date: datetime | None = None

    cancelled_date: datetime | None = None
    cancelled_by: str = ""
    cancellation_reason: str = ""

    certificate_file_name: str = ""
    certificate_url: str = ""
    certificate_pdf_url: str = ""

    skill_gap_before: float = 0.0
    skill_gap_after: float = 0.0
    created_at: datetime | None = None


class TrainingRecommendation(BaseModel):
    skill_name: str
    current_level: int
    required_level: int
    gap: int
    recommended_training_title: str
    training_program_id: str
    priority: Priority


class AssignmentBatchResult(BaseModel):
    """Outcome of a fan-out assignment. ``failed`` maps employee id to error."""

    training_program_id: str
    assigned: dict[str, str] = {}
    failed: dict[str, str] = {}

    @property
    def partial_failure(self) -> bool:
        return bool(self.failed) and bool(self.assigned)


class SyncReport(BaseModel):
    employee_id: str
    created: list[str] = []
    updated: list[str] = []
    unchanged: list[str] = []
    failed: dict[str, str] = {}

    @property
    def changed(self) -> int:
        return len(self.created) + len(self.updated)


class AssignmentCreateRequest(BaseModel):
    training_program_id: str = Field(..., min_length=1)
    employee_id: str = Field(..., min_length=1)
    reason: str | None = None
    due_date: datetime | None = None


class BulkAssignmentRequest(BaseModel):
    training_program_id: str = Field(..., min_length=1)
    employee_ids: list[str] = Field(..., min_length=1)
    reason: str | None = None


class ProgressUpdateRequest(BaseModel):
    progress: int
    status: str | None = None


class CompletionRequest(BaseModel):
    certificate_file_name: str | None = None
    certificate_url: str | None = None


class CancellationRequest(BaseModel):
    reason: str | None = None


class CertificateUpdateRequest(BaseModel):
    certificate_file_name: str = Field(..., min_length=1)
    certificate_url: str = Field(..., min_length=1)
    certificate_pdf_url: str | None = None
