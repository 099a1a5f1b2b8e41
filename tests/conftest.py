"""
Shared fixtures: an in-memory SQLite database per test, record factories and
a FastAPI TestClient bound to the same session.
"""
import fnmatch
import os

# point the app at throwaway stores before any ppe_compliance import reads config
os.environ["POSTGRES_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["INGEST_API_KEY"] = ""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ppe_compliance.database import Base, build_engine, get_db
from ppe_compliance.enums import PPECategory, UserRole, ViolationStatus
from ppe_compliance.main import app
from ppe_compliance.models import Camera, User, Violation, Worker
from ppe_compliance.router.auth import create_access_token, hash_password

TEST_PASSWORD = "s3cret-pass"


@pytest.fixture(name="engine")
def engine_fixture():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(name="db")
def db_fixture(engine):
    """Provide a session on a fresh in-memory database"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def add_worker(db):
    counter = {"n": 0}

    def _add(name=None, employee_id=None, department="Civil Works", is_active=True):
        counter["n"] += 1
        worker = Worker(
            name=name or f"Worker {counter['n']}",
            employee_id=employee_id or f"EMP{counter['n']:03d}",
            department=department,
            is_active=is_active,
        )
        db.add(worker)
        db.commit()
        db.refresh(worker)
        return worker

    return _add


@pytest.fixture
def add_camera(db):
    counter = {"n": 0}

    def _add(zone="Main Gate", device_id=None, description=None, is_active=True):
        counter["n"] += 1
        camera = Camera(
            device_id=device_id or f"CAM-{counter['n']:02d}",
            zone=zone,
            description=description,
            is_active=is_active,
        )
        db.add(camera)
        db.commit()
        db.refresh(camera)
        return camera

    return _add


@pytest.fixture
def add_violation(db):
    def _add(
        worker,
        camera,
        category=PPECategory.HELMET,
        detected_at=None,
        status=ViolationStatus.PENDING,
        confidence_score=90,
        notes=None,
    ):
        violation = Violation(
            worker_id=worker.id,
            camera_id=camera.id,
            category=category,
            evidence_url="s3://evidence/frame.jpg",
            confidence_score=confidence_score,
            detected_at=detected_at or datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc),
            status=status,
            notes=notes,
            created_at=datetime.now(timezone.utc),
        )
        db.add(violation)
        db.commit()
        db.refresh(violation)
        return violation

    return _add


@pytest.fixture
def add_user(db):
    def _add(role, email=None, is_active=True):
        user = User(
            name=f"{role.value.title()} User",
            email=email or f"{role.value.lower()}@example.com",
            hashed_password=hash_password(TEST_PASSWORD),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _add


@pytest.fixture
def supervisor(add_user):
    return add_user(UserRole.SUPERVISOR)


@pytest.fixture
def analyst(add_user):
    return add_user(UserRole.ANALYST)


def bearer(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def supervisor_headers(supervisor):
    return bearer(supervisor)


@pytest.fixture
def analyst_headers(analyst):
    return bearer(analyst)


@pytest.fixture(name="client")
def client_fixture(db):
    """TestClient whose requests share the test session"""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return bearer


@pytest.fixture
def user_password():
    return TEST_PASSWORD


class FakeRedis:
    """Just enough of the redis client for the report cache"""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def scan_iter(self, match="*"):
        return iter([k for k in self.store if fnmatch.fnmatchcase(k, match)])

    def delete(self, *keys):
        for k in keys:
            self.store.pop(k, None)
        return len(keys)


@pytest.fixture
def fake_redis():
    return FakeRedis()
