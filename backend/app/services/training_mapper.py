"""Translation between ``TrainingAssignment`` and its two storage projections.

The canonical document (``trainings/{id}``) uses PascalCase keys and native
timestamps. The mirror document (``employees/{employee_id}/trainings/{id}``)
is read and written by the mobile client and uses lower-camel keys with dates
as epoch milliseconds. All conversions go through ``_MIRROR_FIELD_MAP`` so the
two shapes cannot drift apart.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from app.models.training import AssignmentStatus, TrainingAssignment

# canonical key -> mirror key
_MIRROR_FIELD_MAP: list[tuple[str, str]] = [
    ("EmployeeId", "employeeId"),
    ("Title", "title"),
    ("Provider", "provider"),
    ("Description", "description"),
    ("StartDate", "startDate"),
    ("EndDate", "endDate"),
    ("Status", "status"),
    ("CertificateUrl", "certificateUrl"),
    ("CreatedAt", "createdAt"),
    ("CertificatePdfUrl", "certificatePdfUrl"),
    ("CertificateFileName", "certificateFileName"),
    ("Progress", "progress"),
    ("TrainingProgramId", "trainingProgramId"),
    ("AssignedBy", "assignedBy"),
    ("AssignedReason", "assignedReason"),
    ("AssignedDate", "assignedDate"),
    ("CompletedDate", "completedDate"),
]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MILLISECOND = timedelta(milliseconds=1)

_MILLISECOND_FIELDS = frozenset({"StartDate", "EndDate", "CreatedAt", "AssignedDate", "CompletedDate"})

# model attribute -> canonical key
_CANONICAL_FIELDS: list[tuple[str, str]] = [
    ("employee_id", "EmployeeId"),
    ("training_program_id", "TrainingProgramId"),
    ("status", "Status"),
    ("progress", "Progress"),
    ("title", "Title"),
    ("provider", "Provider"),
    ("description", "Description"),
    ("assigned_by", "AssignedBy"),
    ("assigned_reason", "AssignedReason"),
    ("assigned_date", "AssignedDate"),
    ("due_date", "DueDate"),
    ("accepted_date", "AcceptedDate"),
    ("completed_date", "CompletedDate"),
    ("cancelled_date", "CancelledDate"),
    ("cancelled_by", "CancelledBy"),
    ("cancellation_reason", "CancellationReason"),
    ("certificate_file_name", "CertificateFileName"),
    ("certificate_url", "CertificateUrl"),
    ("certificate_pdf_url", "CertificatePdfUrl"),
    ("skill_gap_before", "SkillGapBefore"),
    ("skill_gap_after", "SkillGapAfter"),
    ("created_at", "CreatedAt"),
]

_DATE_ATTRIBUTES = frozenset(
    {"assigned_date", "due_date", "accepted_date", "completed_date", "cancelled_date", "created_at"}
)


def to_epoch_ms(value: datetime | None) -> int:
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _ONE_MILLISECOND


def coerce_datetime(value: Any) -> datetime | None:
    """Read a stored date: a timestamp, epoch milliseconds, or 0/None for absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, int | float):
        if value <= 0:
            return None
        return _EPOCH + timedelta(milliseconds=value)
    return None


def coerce_progress(value: Any) -> int:
    try:
        progress = round(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, progress))


def _coerce_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def assignment_to_canonical(assignment: TrainingAssignment) -> dict[str, Any]:
    """Canonical document for ``trainings/{id}``.

    An UNKNOWN status is left out so the stored string survives the write.
    """
    doc: dict[str, Any] = {"Id": assignment.id}
    for attribute, key in _CANONICAL_FIELDS:
        value = getattr(assignment, attribute)
        if attribute == "status":
            if value is AssignmentStatus.UNKNOWN:
                continue
            value = value.value
        doc[key] = value

    doc["StartDate"] = assignment.assigned_date
    doc["EndDate"] = assignment.due_date
    return doc


def canonical_to_mirror(canonical: dict[str, Any]) -> dict[str, Any]:
    """Translate the mirror-visible subset of a canonical document."""
    mirror: dict[str, Any] = {}
    for canonical_key, mirror_key in _MIRROR_FIELD_MAP:
        if canonical_key not in canonical:
            continue
        value = canonical[canonical_key]
        if canonical_key in _MILLISECOND_FIELDS:
            value = to_epoch_ms(coerce_datetime(value))
        elif canonical_key == "Progress":
            value = coerce_progress(value)
        elif value is None:
            value = ""
        mirror[mirror_key] = value
    return mirror


def mirror_to_canonical(mirror: dict[str, Any]) -> dict[str, Any]:
    """Translate a mirror document into canonical keys. Absent keys stay absent."""
    canonical: dict[str, Any] = {}
    for canonical_key, mirror_key in _MIRROR_FIELD_MAP:
        if mirror_key not in mirror:
            continue
        value = mirror[mirror_key]
        if canonical_key in _MILLISECOND_FIELDS:
            value = coerce_datetime(value)
        elif canonical_key == "Progress":
            value = coerce_progress(value)
        canonical[canonical_key] = value
    return canonical


def assignment_to_mirror(assignment: TrainingAssignment) -> dict[str, Any]:
    return canonical_to_mirror(assignment_to_canonical(assignment))


def _pick(data: dict[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    return data.get(key[:1].lower() + key[1:])


def assignment_from_canonical(doc_id: str, data: dict[str, Any]) -> TrainingAssignment:
    values: dict[str, Any] = {"id": doc_id}
    for attribute, key in _CANONICAL_FIELDS:
        raw = _pick(data, key)
        if attribute in _DATE_ATTRIBUTES:
            values[attribute] = coerce_datetime(raw)
        elif attribute == "status":
            values[attribute] = AssignmentStatus.parse(raw if raw is not None else "")
        elif attribute == "progress":
            values[attribute] = coerce_progress(raw)
        elif attribute in ("skill_gap_before", "skill_gap_after"):
            values[attribute] = _coerce_float(raw)
        elif raw is not None:
            values[attribute] = str(raw)

    if values.get("assigned_date") is None:
        values["assigned_date"] = coerce_datetime(_pick(data, "StartDate"))
    if values.get("due_date") is None:
        values["due_date"] = coerce_datetime(_pick(data, "EndDate"))
    if not values.get("assigned_by"):
        values["assigned_by"] = "admin"

    return TrainingAssignment(**values)


def assignment_from_mirror(doc_id: str, data: dict[str, Any]) -> TrainingAssignment:
    return assignment_from_canonical(doc_id, mirror_to_canonical(data))
