from datetime import datetime, timedelta

from models.portal_session import PortalSession
from models.verification_code import VerificationCode
from services.client_gate import ClientGate
from services.portal_client import PortalClient
from utils.time_utils import as_utc, utcnow
from fakes import FakePage


def test_full_login_flow(client, db, sender):
    sent = client.post("/api/send-code", json={"email": "alice@x.com"})
    assert sent.status_code == 200

    code_row = db.query(VerificationCode).one()
    assert as_utc(code_row.expires_at) - utcnow() <= timedelta(minutes=10)

    verified = client.post("/api/verify-code", json={"email": "alice@x.com", "code": sender.last_code})
    assert verified.status_code == 200
    session_id = verified.json()["sessionId"]
    expires_at = datetime.fromisoformat(verified.json()["expiresAt"].replace("Z", "+00:00"))
    assert abs(expires_at - (utcnow() + timedelta(hours=24))) < timedelta(minutes=1)

    checked = client.post("/api/check-session", json={"sessionId": session_id})
    assert checked.json()["valid"] is True
    assert checked.json()["email"] == "alice@x.com"


def test_email_is_one_identity_across_endpoints(client, db, sender):
    assert client.post("/api/send-code", json={"email": "  Alice@X.com "}).status_code == 200
    verified = client.post("/api/verify-code", json={"email": "ALICE@x.com", "code": sender.last_code})
    assert verified.status_code == 200

    checked = client.post("/api/check-session", json={"sessionId": verified.json()["sessionId"]})
    assert checked.json()["email"] == "alice@x.com"
    assert db.query(PortalSession).one().email == "alice@x.com"


def test_gate_against_live_api(client, sender):
    portal = PortalClient("http://testserver", http_client=client)
    assert portal.send_code("alice@x.com")["success"] is True
    login = portal.verify_code("alice@x.com", sender.last_code)

    login_page = FakePage(path="/login.html")
    ClientGate(login_page, portal).complete_login(login["sessionId"])
    assert login_page.credential == login["sessionId"]

    page = FakePage(credential=login_page.credential)
    assert ClientGate(page, portal).guard_page() is True

    forged = FakePage(credential="f" * 64)
    assert ClientGate(forged, portal).guard_page() is False
    assert forged.events[-1] == ("navigate", "/login.html")


def test_check_session_reads_cookie_when_body_is_empty(client, sender):
    client.post("/api/send-code", json={"email": "alice@x.com"})
    verified = client.post("/api/verify-code", json={"email": "alice@x.com", "code": sender.last_code})
    assert verified.status_code == 200

    # The TestClient keeps the session cookie set by verify-code
    checked = client.post("/api/check-session", json={})
    assert checked.status_code == 200
    assert checked.json()["valid"] is True


def test_check_session_accepts_cookie_without_body(client, sender):
    client.post("/api/send-code", json={"email": "alice@x.com"})
    verified = client.post("/api/verify-code", json={"email": "alice@x.com", "code": sender.last_code})
    assert verified.status_code == 200

    checked = client.post("/api/check-session")
    assert checked.status_code == 200
    assert checked.json()["valid"] is True
    assert checked.json()["email"] == "alice@x.com"


def test_check_session_without_body_or_cookie(client):
    response = client.post("/api/check-session")
    assert response.status_code == 400
    assert response.json() == {"detail": "Session ID is required"}
