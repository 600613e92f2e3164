#!/usr/bin/env python3
"""Reconcile employee training mirrors back into the canonical collection.

Run from the backend/ directory:

    python3 scripts/reconcile_mirrors.py [--employee ID ...] [--dry-run] [--verbose]

Reads every ``employees/{id}/trainings`` document and copies the fields the
mobile app owns onto ``trainings/{id}``, creating canonical documents that are
missing. A second run reports everything as unchanged.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from app.core.config import Settings  # noqa: E402
from app.core.document_store import EMPLOYEES, DocumentStore, FirestoreDocumentStore  # noqa: E402
from app.core.errors import TrainingServiceError  # noqa: E402
from app.models.training import SyncReport  # noqa: E402
from app.services.sync_service import SyncService  # noqa: E402

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Copy mobile training mirrors back into the canonical trainings collection",
    )
    parser.add_argument(
        "--employee",
        action="append",
        default=[],
        metavar="ID",
        help="Only reconcile this employee (repeatable; default: all employees)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    return parser.parse_args(argv)


async def reconcile_employees(
    store: DocumentStore,
    employee_ids: list[str],
    *,
    dry_run: bool = False,
) -> tuple[list[SyncReport], list[str]]:
    """Sync each employee in turn. A failing employee is logged and skipped.

    ``failed`` also lists employees whose sync left individual trainings behind.
    """
    sync = SyncService(store)
    if not employee_ids:
        employee_ids = [doc.id for doc in await store.list_documents(EMPLOYEES)]

    reports: list[SyncReport] = []
    failed: list[str] = []
    for index, employee_id in enumerate(employee_ids, start=1):
        logger.debug("Reconciling employee %d/%d: %s", index, len(employee_ids), employee_id)
        try:
            report = await sync.sync_employee_mirror_to_canonical(employee_id, dry_run=dry_run)
        except TrainingServiceError:
            logger.exception("Reconciliation failed for employee %s — continuing...", employee_id)
            failed.append(employee_id)
            continue
        reports.append(report)
        if report.failed:
            failed.append(employee_id)
    return reports, failed


async def reconcile(args: argparse.Namespace) -> int:
    settings = Settings()
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")

    logger.info("Connecting to Firestore...")
    store = FirestoreDocumentStore()
    await store.initialize(settings)
    if not store.initialized:
        logger.error("Firestore is not configured. Set FIREBASE_PROJECT_ID and FIREBASE_CREDENTIALS_PATH.")
        return 1

    try:
        reports, failed = await reconcile_employees(store, args.employee, dry_run=args.dry_run)
    finally:
        await store.close()

    logger.info("=" * 50)
    logger.info("Reconciliation complete!")
    logger.info("Employees processed: %d", len(reports))
    logger.info("Trainings created: %d", sum(len(r.created) for r in reports))
    logger.info("Trainings updated: %d", sum(len(r.updated) for r in reports))
    logger.info("Trainings unchanged: %d", sum(len(r.unchanged) for r in reports))
    logger.info("Trainings failed: %d", sum(len(r.failed) for r in reports))
    if failed:
        logger.info("Employees failed: %s", ", ".join(failed))
    if args.dry_run:
        logger.info("[DRY RUN] No documents were actually written.")
    return 1 if failed else 0


def main() -> None:
    args = parse_args()
    sys.exit(asyncio.run(reconcile(args)))


if __name__ == "__main__":
    main()
