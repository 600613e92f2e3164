"""Tests for the mirror reconciliation script."""

from __future__ import annotations

import pytest

from app.core.document_store import TRAININGS, employee_trainings_path
from scripts.reconcile_mirrors import parse_args, reconcile_employees
from tests.conftest import FailingDocumentStore, seed_employee


def test_parse_args_defaults():
    args = parse_args([])
    assert args.employee == []
    assert args.dry_run is False
    assert args.verbose is False


def test_parse_args_repeatable_employee():
    args = parse_args(["--employee", "E1", "--employee", "E2", "--dry-run", "--verbose"])
    assert args.employee == ["E1", "E2"]
    assert args.dry_run is True
    assert args.verbose is True


@pytest.mark.anyio
async def test_reconcile_all_employees(store):
    seed_employee(store, "E1")
    seed_employee(store, "E2")
    store.collections[employee_trainings_path("E1")] = {"t1": {"title": "Course", "progress": 50}}

    reports, failed = await reconcile_employees(store, [])

    assert failed == []
    assert [r.employee_id for r in reports] == ["E1", "E2"]
    assert reports[0].created == ["t1"]
    assert store.raw(TRAININGS, "t1")["Progress"] == 50


@pytest.mark.anyio
async def test_reconcile_selected_employee_dry_run(store):
    seed_employee(store, "E1")
    store.collections[employee_trainings_path("E1")] = {"t1": {"title": "Course"}}

    reports, _ = await reconcile_employees(store, ["E1"], dry_run=True)

    assert reports[0].created == ["t1"]
    assert store.raw(TRAININGS, "t1") is None


@pytest.mark.anyio
async def test_reconcile_continues_after_failure():
    store = FailingDocumentStore("trainings")
    seed_employee(store, "E1")
    seed_employee(store, "E2")
    store.collections[employee_trainings_path("E1")] = {"t1": {"title": "Course"}}

    reports, failed = await reconcile_employees(store, [])

    assert failed == ["E1"]
    assert [r.employee_id for r in reports] == ["E1", "E2"]
    assert list(reports[0].failed) == ["t1"]
