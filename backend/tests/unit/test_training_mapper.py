from __future__ import annotations

from datetime import datetime, timezone

from app.models.training import AssignmentStatus, TrainingAssignment
from app.services.training_mapper import (
    assignment_from_canonical,
    assignment_from_mirror,
    assignment_to_canonical,
    assignment_to_mirror,
    canonical_to_mirror,
    coerce_datetime,
    coerce_progress,
    mirror_to_canonical,
    to_epoch_ms,
)

ASSIGNED = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
DUE = datetime(2024, 3, 31, 9, 30, tzinfo=timezone.utc)


def _assignment(**overrides) -> TrainingAssignment:
    values = {
        "id": "tr1",
        "training_program_id": "P1",
        "employee_id": "E1",
        "status": AssignmentStatus.PENDING,
        "title": "Excel Modeling",
        "provider": "Academy",
        "assigned_reason": "Close the modeling gap",
        "assigned_date": ASSIGNED,
        "due_date": DUE,
        "created_at": ASSIGNED,
    }
    values.update(overrides)
    return TrainingAssignment(**values)


def test_canonical_document_uses_pascal_case_and_native_dates():
    doc = assignment_to_canonical(_assignment())

    assert doc["Id"] == "tr1"
    assert doc["EmployeeId"] == "E1"
    assert doc["TrainingProgramId"] == "P1"
    assert doc["Status"] == "Pending"
    assert doc["AssignedDate"] == ASSIGNED
    assert doc["StartDate"] == ASSIGNED
    assert doc["EndDate"] == DUE
    assert doc["DueDate"] == DUE


def test_mirror_document_uses_lower_camel_and_epoch_ms():
    mirror = assignment_to_mirror(_assignment(progress=40))

    assert mirror["employeeId"] == "E1"
    assert mirror["trainingProgramId"] == "P1"
    assert mirror["status"] == "Pending"
    assert mirror["progress"] == 40
    assert mirror["startDate"] == to_epoch_ms(ASSIGNED)
    assert mirror["endDate"] == to_epoch_ms(DUE)
    assert mirror["completedDate"] == 0
    assert mirror["certificateUrl"] == ""
    assert "DueDate" not in mirror
    assert "skillGapBefore" not in mirror


def test_mirror_has_all_seventeen_fields():
    assert len(assignment_to_mirror(_assignment())) == 17


def test_unknown_status_is_not_written():
    stored = {"EmployeeId": "E1", "Status": "Archived"}
    assignment = assignment_from_canonical("tr1", stored)

    assert assignment.status is AssignmentStatus.UNKNOWN
    assert "Status" not in assignment_to_canonical(assignment)


def test_canonical_reader_accepts_lower_camel_and_start_end_fallbacks():
    stored = {
        "employeeId": "E1",
        "trainingProgramId": "P1",
        "status": "in progress",
        "progress": "55",
        "StartDate": to_epoch_ms(ASSIGNED),
        "EndDate": DUE,
    }
    assignment = assignment_from_canonical("tr9", stored)

    assert assignment.employee_id == "E1"
    assert assignment.training_program_id == "P1"
    assert assignment.status is AssignmentStatus.IN_PROGRESS
    assert assignment.progress == 55
    assert assignment.assigned_date == ASSIGNED
    assert assignment.due_date == DUE
    assert assignment.assigned_by == "admin"


def test_mirror_round_trip_preserves_mirror_fields():
    original = _assignment(
        status=AssignmentStatus.COMPLETED,
        progress=100,
        completed_date=DUE,
        certificate_url="https://files.example.com/c.pdf",
    )
    restored = assignment_from_mirror("tr1", assignment_to_mirror(original))

    assert restored.status is AssignmentStatus.COMPLETED
    assert restored.progress == 100
    assert restored.completed_date == DUE
    assert restored.certificate_url == original.certificate_url
    assert restored.title == original.title


def test_mirror_to_canonical_keeps_absent_keys_absent():
    canonical = mirror_to_canonical({"progress": 80, "certificateUrl": "u"})
    assert canonical == {"Progress": 80, "CertificateUrl": "u"}


def test_canonical_to_mirror_blanks_none_strings():
    mirror = canonical_to_mirror({"CertificateUrl": None, "CompletedDate": None})
    assert mirror == {"certificateUrl": "", "completedDate": 0}


def test_coerce_datetime_variants():
    assert coerce_datetime(None) is None
    assert coerce_datetime(0) is None
    assert coerce_datetime("") is None
    assert coerce_datetime(to_epoch_ms(ASSIGNED)) == ASSIGNED
    assert coerce_datetime(str(to_epoch_ms(ASSIGNED))) == ASSIGNED
    naive = datetime(2024, 1, 1, 12, 0)
    assert coerce_datetime(naive).tzinfo is timezone.utc


def test_coerce_progress_clamps_and_defaults():
    assert coerce_progress(None) == 0
    assert coerce_progress("abc") == 0
    assert coerce_progress(150) == 100
    assert coerce_progress(-5) == 0
    assert coerce_progress(42.4) == 42


def test_status_parse_aliases():
    assert AssignmentStatus.parse("Assigned") is AssignmentStatus.PENDING
    assert AssignmentStatus.parse("") is AssignmentStatus.PENDING
    assert AssignmentStatus.parse("IN_PROGRESS") is AssignmentStatus.IN_PROGRESS
    assert AssignmentStatus.parse("canceled") is AssignmentStatus.CANCELLED
    assert AssignmentStatus.parse(None) is AssignmentStatus.UNKNOWN
