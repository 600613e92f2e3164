from __future__ import annotations

import base64
import copy
import itertools
import time
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from jose import jwt
from starlette.testclient import TestClient

from app.core.dependencies import get_current_user
from app.core.document_store import EMPLOYEES, TRAINING_PROGRAMS, StoredDocument, employee_skills_path
from app.core.errors import PersistenceError
from app.main import app
from app.models.auth import UserInfo
from app.services.assignment_service import AssignmentService
from app.services.employee_service import EmployeeService
from app.services.recommendation_service import RecommendationService
from app.services.skill_gap_service import SkillGapService
from app.services.skill_propagation_service import SkillPropagationService
from app.services.sync_service import SyncService
from app.services.training_program_service import TrainingProgramService

TEST_PROJECT_ID = "skillbridge-test"
TEST_KID = "test-kid-1"
FIXED_NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def _int_to_base64url(value: int) -> str:
    byte_length = (value.bit_length() + 7) // 8
    return base64.urlsafe_b64encode(value.to_bytes(byte_length, byteorder="big")).rstrip(b"=").decode("ascii")


class InMemoryDocumentStore:
    """Dict-backed stand-in for Firestore. Collection paths are plain keys."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._ids = itertools.count(1)
        self.writes: list[tuple[str, str, str]] = []

    def _docs(self, collection: str) -> dict[str, dict[str, Any]]:
        return self.collections.setdefault(collection, {})

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        data = self._docs(collection).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    async def query(self, collection: str, field: str, value: Any) -> list[StoredDocument]:
        return [
            StoredDocument(doc_id, copy.deepcopy(data))
            for doc_id, data in self._docs(collection).items()
            if data.get(field) == value
        ]

    async def list_documents(self, collection: str) -> list[StoredDocument]:
        return [StoredDocument(doc_id, copy.deepcopy(data)) for doc_id, data in self._docs(collection).items()]

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = f"auto{next(self._ids)}"
        self._docs(collection)[doc_id] = copy.deepcopy(data)
        self.writes.append(("add", collection, doc_id))
        return doc_id

    async def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = True) -> None:
        docs = self._docs(collection)
        if merge and doc_id in docs:
            docs[doc_id].update(copy.deepcopy(data))
        else:
            docs[doc_id] = copy.deepcopy(data)
        self.writes.append(("set", collection, doc_id))

    async def delete(self, collection: str, doc_id: str) -> None:
        self._docs(collection).pop(doc_id, None)
        self.writes.append(("delete", collection, doc_id))

    def raw(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        return self._docs(collection).get(doc_id)


class FailingDocumentStore(InMemoryDocumentStore):
    """Raises PersistenceError for writes whose collection path contains a marker."""

    def __init__(self, *markers: str, failures: int | None = None) -> None:
        super().__init__()
        self.markers = markers
        self.remaining = failures
        self.failed_writes = 0

    def _should_fail(self, collection: str) -> bool:
        if not any(marker in collection for marker in self.markers):
            return False
        if self.remaining is not None:
            if self.remaining <= 0:
                return False
            self.remaining -= 1
        self.failed_writes += 1
        return True

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        if self._should_fail(collection):
            raise PersistenceError(f"simulated failure adding to {collection}")
        return await super().add(collection, data)

    async def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = True) -> None:
        if self._should_fail(collection):
            raise PersistenceError(f"simulated failure writing {collection}/{doc_id}")
        await super().set(collection, doc_id, data, merge=merge)


class FixedClock:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def build_services(store: InMemoryDocumentStore, clock: FixedClock | None = None) -> SimpleNamespace:
    clock = clock or FixedClock()
    ids = itertools.count(1)
    employees = EmployeeService(store)
    programs = TrainingProgramService(store, clock=clock)
    gaps = SkillGapService(employees)
    recommendations = RecommendationService(gaps, programs)
    propagation = SkillPropagationService(store, employees, programs, clock=clock)
    assignments = AssignmentService(
        store,
        programs,
        gaps,
        recommendations,
        propagation,
        clock=clock,
        id_factory=lambda: f"tr{next(ids)}",
        due_days=30,
    )
    return SimpleNamespace(
        store=store,
        clock=clock,
        employees=employees,
        programs=programs,
        gaps=gaps,
        recommendations=recommendations,
        propagation=propagation,
        assignments=assignments,
        sync=SyncService(store),
    )


def seed_employee(
    store: InMemoryDocumentStore,
    employee_id: str,
    *,
    first_name: str = "Test",
    last_name: str = "Employee",
    department: str = "Finance",
    skills: list[tuple[str, object]] | None = None,
) -> None:
    store.collections.setdefault(EMPLOYEES, {})[employee_id] = {
        "userId": employee_id,
        "firstName": first_name,
        "lastName": last_name,
        "department": department,
        "position": "Analyst",
        "email": f"{employee_id.lower()}@example.com",
        "isActive": True,
    }
    skill_docs = store.collections.setdefault(employee_skills_path(employee_id), {})
    for index, (name, level) in enumerate(skills or [], start=1):
        skill_docs[f"{employee_id}-skill{index}"] = {
            "employeeid": employee_id,
            "name": name,
            "level": level,
            "category": "Technical",
            "yearsofexperience": 1.0,
        }


def seed_program(
    store: InMemoryDocumentStore,
    program_id: str,
    *,
    title: str = "Training",
    provider: str = "Academy",
    covered_skills: list[str] | None = None,
) -> None:
    store.collections.setdefault(TRAINING_PROGRAMS, {})[program_id] = {
        "Title": title,
        "Description": f"{title} course",
        "Provider": provider,
        "Category": "Finance",
        "Duration": 16,
        "DifficultyLevel": "Intermediate",
        "Format": "Online",
        "CoveredSkills": covered_skills or [],
        "IsActive": True,
    }


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def services(store, clock):
    return build_services(store, clock)


@pytest.fixture
def api_services(monkeypatch, store, clock):
    """Point every endpoint module at services backed by the in-memory store."""
    wired = build_services(store, clock)
    from app.api.v1.endpoints import assignments, employees, training_programs

    monkeypatch.setattr(employees, "employee_service", wired.employees)
    monkeypatch.setattr(employees, "skill_gap_service", wired.gaps)
    monkeypatch.setattr(employees, "recommendation_service", wired.recommendations)
    monkeypatch.setattr(employees, "assignment_service", wired.assignments)
    monkeypatch.setattr(employees, "sync_service", wired.sync)
    monkeypatch.setattr(training_programs, "training_program_service", wired.programs)
    monkeypatch.setattr(training_programs, "assignment_service", wired.assignments)
    monkeypatch.setattr(assignments, "assignment_service", wired.assignments)
    monkeypatch.setattr(assignments, "sync_service", wired.sync)
    return wired


@pytest.fixture(autouse=True)
def _auth_settings():
    from app.core.config import settings

    original_project = settings.FIREBASE_PROJECT_ID
    settings.FIREBASE_PROJECT_ID = TEST_PROJECT_ID
    yield
    settings.FIREBASE_PROJECT_ID = original_project


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def rsa_test_keys():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("utf-8")

    pub = private_key.public_key().public_numbers()
    jwk_dict = {
        "kty": "RSA",
        "kid": TEST_KID,
        "use": "sig",
        "alg": "RS256",
        "n": _int_to_base64url(pub.n),
        "e": _int_to_base64url(pub.e),
    }
    jwks_response = {"keys": [jwk_dict]}
    return private_pem, jwks_response


def _make_token(
    private_pem: str,
    *,
    uid: str = "test-uid-123",
    name: str = "Test User",
    email: str = "test@example.com",
    roles: list[str] | None = None,
    admin: bool = False,
    project_id: str = TEST_PROJECT_ID,
    expired: bool = False,
) -> str:
    now = int(time.time())
    claims: dict[str, Any] = {
        "sub": uid,
        "user_id": uid,
        "name": name,
        "email": email,
        "roles": roles or [],
        "iss": f"https://securetoken.google.com/{project_id}",
        "aud": project_id,
        "auth_time": now - 60,
        "exp": now - 3600 if expired else now + 3600,
        "iat": now - 60,
    }
    if admin:
        claims["admin"] = True
    return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": TEST_KID})


@pytest.fixture
def mock_user_employee():
    return UserInfo(id="employee-1", name="Employee User", email="employee@example.com", roles=["employee"])


@pytest.fixture
def mock_user_admin():
    return UserInfo(id="admin-1", name="Admin User", email="admin@example.com", roles=["admin"])


@pytest.fixture
def authenticated_client(mock_user_admin):
    app.dependency_overrides[get_current_user] = lambda: mock_user_admin
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def employee_client(mock_user_employee):
    app.dependency_overrides[get_current_user] = lambda: mock_user_employee
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
