from typing import Any, Optional

import httpx

from utils.logger_factory import new_logger

DEFAULT_TIMEOUT = 5.0


class PortalRequestError(Exception):
    """Non-2xx answer from the portal API."""

    def __init__(self, status_code: int, detail: Any = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Portal API returned {status_code}: {detail}")


class PortalClient:
    """
    Thin httpx client for the login endpoints, used by the login page flow
    and by the page gate.
    """

    def __init__(self, base_url: str, http_client: Optional[httpx.Client] = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client or httpx.Client(timeout=timeout)

    def _post(self, path: str, payload: dict) -> dict:
        log = new_logger("portal_post")
        response = self.http_client.post(f"{self.base_url}{path}", json=payload)
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400:
            detail = data.get("detail") if isinstance(data, dict) else None
            log.warning(f"POST {path} returned {response.status_code}: {detail}")
            raise PortalRequestError(response.status_code, detail)
        return data

    def send_code(self, email: str) -> dict:
        return self._post("/api/send-code", {"email": email})

    def verify_code(self, email: str, code: str) -> dict:
        return self._post("/api/verify-code", {"email": email, "code": code})

    def check_session(self, session_id: str) -> dict:
        return self._post("/api/check-session", {"sessionId": session_id})

    def close(self):
        self.http_client.close()
