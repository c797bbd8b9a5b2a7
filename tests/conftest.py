import os

# Point the app at the test database before anything imports database.py
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite:///./test_portal.db")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("SESSION_COOKIE_SECURE", "false")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app import app
from database import Base, SessionLocal, engine, get_db
from models.portal_session import PortalSession
from models.verification_code import VerificationCode
from services.whitelist_guard import WhitelistGuard
from utils.portal_config import get_code_sender, get_whitelist_guard
from utils.time_utils import utcnow

APPROVED_EMAILS = ["alice@x.com", "bob@example.com"]


class RecordingSender:
    """Stands in for the SMTP transport and remembers every code it was handed."""

    def __init__(self, delivered=True):
        self.delivered = delivered
        self.sent = []

    def __call__(self, to_email, code):
        self.sent.append((to_email, code))
        return self.delivered

    @property
    def last_code(self):
        return self.sent[-1][1]


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    cleanup = SessionLocal()
    try:
        cleanup.query(VerificationCode).delete()
        cleanup.query(PortalSession).delete()
        cleanup.commit()
    finally:
        cleanup.close()


@pytest.fixture
def db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def guard():
    return WhitelistGuard(APPROVED_EMAILS)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def client(db, guard, sender):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_whitelist_guard] = lambda: guard
    app.dependency_overrides[get_code_sender] = lambda: sender
    yield TestClient(app)
    app.dependency_overrides = {}


@pytest.fixture
def make_code(db):
    def _make_code(email="alice@x.com", code="12345", created_at=None, expires_at=None, used=False):
        created_at = created_at or utcnow()
        row = VerificationCode(
            email=email,
            code=code,
            created_at=created_at,
            expires_at=expires_at or created_at + timedelta(minutes=10),
            used=used,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _make_code


@pytest.fixture
def make_session(db):
    def _make_session(session_id="a" * 64, email="alice@x.com", expires_at=None, last_accessed_at=None):
        now = utcnow()
        row = PortalSession(
            session_id=session_id,
            email=email,
            created_at=now - timedelta(hours=1),
            expires_at=expires_at or now + timedelta(hours=23),
            last_accessed_at=last_accessed_at or now - timedelta(hours=1),
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _make_session
