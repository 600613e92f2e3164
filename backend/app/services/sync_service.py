"""Reconciliation between canonical assignments and the mobile mirror.

The mobile client edits ``employees/{id}/trainings`` directly (certificate
uploads, progress), so the mirror wins for the fields it owns. Running a sync
twice in a row writes nothing the second time.
"""

from __future__ import annotations

import logging
from typing import Any

from app.core.document_store import EMPLOYEES, TRAININGS, DocumentStore, document_store, employee_trainings_path
from app.core.errors import PersistenceError, ValidationError
from app.models.training import SyncReport
from app.services.training_mapper import (
    assignment_from_canonical,
    assignment_to_mirror,
    coerce_datetime,
    mirror_to_canonical,
    to_epoch_ms,
)

logger = logging.getLogger(__name__)

_DATE_KEYS = frozenset({"StartDate", "EndDate", "CreatedAt", "AssignedDate", "CompletedDate"})


def _same_value(key: str, current: Any, incoming: Any) -> bool:
    # Mirror dates only carry millisecond precision.
    if key in _DATE_KEYS:
        return to_epoch_ms(coerce_datetime(current)) == to_epoch_ms(coerce_datetime(incoming))
    if current is None and incoming == "":
        return True
    return current == incoming


def changed_fields(canonical: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    """Subset of ``incoming`` that differs from what ``canonical`` holds."""
    return {key: value for key, value in incoming.items() if not _same_value(key, canonical.get(key), value)}


class SyncService:
    def __init__(self, store: DocumentStore = document_store) -> None:
        self.store = store

    async def sync_employee_mirror_to_canonical(self, employee_id: str, *, dry_run: bool = False) -> SyncReport:
        """Copy every mirror document of one employee onto its canonical twin.

        Missing canonical documents are created under the mirror's id. A write
        failure on one document is recorded in ``failed`` and the rest still sync.
        """
        if not employee_id:
            raise ValidationError("Employee ID is required")

        report = SyncReport(employee_id=employee_id)
        for doc in await self.store.list_documents(employee_trainings_path(employee_id)):
            try:
                outcome = await self._sync_document(employee_id, doc.id, doc.data, dry_run=dry_run)
            except PersistenceError as e:
                logger.exception("Error syncing training %s for employee %s", doc.id, employee_id)
                report.failed[doc.id] = str(e) or type(e).__name__
                continue
            getattr(report, outcome).append(doc.id)

        logger.info(
            "Mirror sync for employee %s: %d created, %d updated, %d unchanged, %d failed",
            employee_id,
            len(report.created),
            len(report.updated),
            len(report.unchanged),
            len(report.failed),
        )
        return report

    async def _sync_document(
        self,
        employee_id: str,
        training_id: str,
        mirror: dict[str, Any],
        *,
        dry_run: bool,
    ) -> str:
        """Returns which ``SyncReport`` list the training belongs in."""
        incoming = mirror_to_canonical(mirror)
        if not incoming.get("EmployeeId"):
            incoming["EmployeeId"] = employee_id

        existing = await self.store.get(TRAININGS, training_id)
        if existing is None:
            if not dry_run:
                await self.store.set(TRAININGS, training_id, {"Id": training_id, **incoming}, merge=False)
            logger.info("Created canonical training %s from mirror of employee %s", training_id, employee_id)
            return "created"

        diff = changed_fields(existing, incoming)
        if not diff:
            return "unchanged"

        if not dry_run:
            await self.store.set(TRAININGS, training_id, diff, merge=True)
        logger.info("Synced %s for training %s: %s", employee_id, training_id, ", ".join(sorted(diff)))
        return "updated"

    async def sync_one_training_to_mirror(self, training_id: str) -> bool:
        """Re-project one canonical assignment onto its mirror.

        Returns False when the assignment or its employee id is missing.
        """
        if not training_id:
            raise ValidationError("Training ID is required")

        raw = await self.store.get(TRAININGS, training_id)
        if raw is None:
            logger.info("Training %s not found, nothing to mirror", training_id)
            return False

        assignment = assignment_from_canonical(training_id, raw)
        if not assignment.employee_id:
            logger.warning("Training %s has no employee id, cannot mirror", training_id)
            return False

        await self.store.set(
            employee_trainings_path(assignment.employee_id),
            training_id,
            assignment_to_mirror(assignment),
            merge=True,
        )
        logger.info("Mirrored training %s to employee %s", training_id, assignment.employee_id)
        return True

    async def sync_all_employees(self, *, dry_run: bool = False) -> list[SyncReport]:
        reports: list[SyncReport] = []
        for employee in await self.store.list_documents(EMPLOYEES):
            reports.append(await self.sync_employee_mirror_to_canonical(employee.id, dry_run=dry_run))
        return reports


sync_service = SyncService()
