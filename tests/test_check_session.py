from datetime import timedelta

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from tenacity import wait_none

from models.portal_session import PortalSession
from services.session_validator import SessionValidator
from utils.time_utils import as_utc, utcnow


def test_valid_session(client, db, make_session):
    stale_access = utcnow() - timedelta(hours=2)
    make_session(session_id="s" * 64, last_accessed_at=stale_access)

    response = client.post("/api/check-session", json={"sessionId": "s" * 64})
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["email"] == "alice@x.com"
    assert data["expiresAt"]
    assert "reason" not in data

    db.expire_all()
    assert as_utc(db.get(PortalSession, "s" * 64).last_accessed_at) > stale_access


def test_expired_session_is_deleted(client, db, make_session):
    make_session(session_id="e" * 64, expires_at=utcnow() - timedelta(minutes=1))

    response = client.post("/api/check-session", json={"sessionId": "e" * 64})
    assert response.status_code == 200
    assert response.json() == {"valid": False, "reason": "Session expired"}
    db.expire_all()
    assert db.get(PortalSession, "e" * 64) is None

    again = client.post("/api/check-session", json={"sessionId": "e" * 64})
    assert again.json() == {"valid": False, "reason": "Session not found"}


def test_unknown_session_changes_nothing(client, db, make_session):
    other = make_session(session_id="o" * 64)
    accessed = as_utc(other.last_accessed_at)

    response = client.post("/api/check-session", json={"sessionId": "nope"})
    assert response.status_code == 200
    assert response.json() == {"valid": False, "reason": "Session not found"}

    db.expire_all()
    assert db.query(PortalSession).count() == 1
    assert as_utc(db.get(PortalSession, "o" * 64).last_accessed_at) == accessed


def test_missing_session_id(client):
    assert client.post("/api/check-session", json={}).status_code == 400
    assert client.post("/api/check-session", json={"sessionId": ""}).status_code == 400


def test_check_session_only_accepts_post(client):
    assert client.get("/api/check-session").status_code == 405


def test_failed_touch_does_not_fail_check(db, make_session, monkeypatch):
    make_session(session_id="t" * 64)

    def failing_commit():
        raise SQLAlchemyError("update failed")

    monkeypatch.setattr(db, "commit", failing_commit)
    check = SessionValidator(db).check("t" * 64)
    assert check.valid is True
    assert check.email == "alice@x.com"


def test_lookup_failure_returns_500(client, make_session, monkeypatch):
    def broken_fetch(self, session_id):
        raise SQLAlchemyError("select failed")

    monkeypatch.setattr(SessionValidator, "_fetch", broken_fetch)
    response = client.post("/api/check-session", json={"sessionId": "x" * 64})
    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to check session"}


def test_session_is_valid_through_its_expiry_instant():
    expires_at = utcnow()
    session = PortalSession(session_id="b" * 64, email="alice@x.com", expires_at=expires_at)
    assert session.is_expired(now=expires_at) is False
    assert session.is_expired(now=expires_at + timedelta(microseconds=1)) is True


def _drop_first_queries(db, monkeypatch, failures):
    real_query = db.query
    real_rollback = db.rollback
    calls = {"query": 0, "rollback": 0}

    def flaky_query(*args, **kwargs):
        calls["query"] += 1
        if calls["query"] <= failures:
            raise OperationalError("SELECT", {}, Exception("server closed the connection unexpectedly"))
        return real_query(*args, **kwargs)

    def counting_rollback():
        calls["rollback"] += 1
        real_rollback()

    monkeypatch.setattr(SessionValidator._fetch.retry, "wait", wait_none())
    monkeypatch.setattr(db, "query", flaky_query)
    monkeypatch.setattr(db, "rollback", counting_rollback)
    return calls


def test_lookup_recovers_from_dropped_connection(client, db, make_session, monkeypatch):
    make_session(session_id="r" * 64)
    calls = _drop_first_queries(db, monkeypatch, failures=1)

    response = client.post("/api/check-session", json={"sessionId": "r" * 64})
    assert response.status_code == 200
    assert response.json()["valid"] is True
    assert calls["rollback"] == 1


def test_lookup_gives_up_after_three_attempts(client, db, make_session, monkeypatch):
    make_session(session_id="g" * 64)
    calls = _drop_first_queries(db, monkeypatch, failures=10)

    response = client.post("/api/check-session", json={"sessionId": "g" * 64})
    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to check session"}
    assert calls["query"] == 3
    assert calls["rollback"] == 3
