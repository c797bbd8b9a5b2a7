"""
Page-load guard for protected portal pages.

The gate never touches browser globals directly. Everything it needs from the
page (stored credential, navigation, the loading overlay) comes through
``ClientCapabilities`` so the same logic runs against a real page bridge or a
test double.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Protocol

import httpx

from services.portal_client import PortalRequestError
from utils.logger_factory import new_logger, mask_token

SESSION_CREDENTIAL_NAME = "recruiter_session"
LOGIN_PATH = "/login.html"
HOME_PATH = "/"


class ClientCapabilities(ABC):
    @abstractmethod
    def current_path(self) -> str:
        ...

    @abstractmethod
    def read_credential(self) -> Optional[str]:
        ...

    @abstractmethod
    def write_credential(self, value: str, expires_at: Optional[datetime] = None) -> None:
        ...

    @abstractmethod
    def clear_credential(self) -> None:
        ...

    @abstractmethod
    def navigate(self, path: str) -> None:
        ...

    @abstractmethod
    def show_placeholder(self) -> None:
        """Block rendering with the "Verifying access..." overlay."""

    @abstractmethod
    def remove_placeholder(self) -> None:
        ...


class SessionChecker(Protocol):
    def check_session(self, session_id: str) -> dict:
        ...


class ClientGate:
    def __init__(self, capabilities: ClientCapabilities, checker: SessionChecker,
                 login_path: str = LOGIN_PATH, home_path: str = HOME_PATH):
        self.capabilities = capabilities
        self.checker = checker
        self.login_path = login_path
        self.home_path = home_path

    def is_login_page(self) -> bool:
        return self.login_path in (self.capabilities.current_path() or "")

    def redirect_to_login(self) -> None:
        # Redirecting from the login page itself would loop
        if not self.is_login_page():
            self.capabilities.navigate(self.login_path)

    def _deny(self) -> bool:
        self.capabilities.clear_credential()
        self.redirect_to_login()
        return False

    def _session_is_valid(self, session_id: str) -> bool:
        log = new_logger("gate_check_session")
        try:
            data = self.checker.check_session(session_id)
        except (PortalRequestError, httpx.HTTPError) as e:
            log.error(f"Auth check failed for [{mask_token(session_id)}]: {e}")
            return False
        return bool(data.get("valid"))

    def guard_page(self) -> bool:
        """
        Run once per protected page view. Returns True when the page may render.

        Every non-valid outcome is handled identically: the credential is
        cleared and the view is replaced by the login page.
        """
        if self.is_login_page():
            return True

        self.capabilities.show_placeholder()
        session_id = self.capabilities.read_credential()
        if not session_id:
            return self._deny()

        if not self._session_is_valid(session_id):
            return self._deny()

        self.capabilities.remove_placeholder()
        return True

    def complete_login(self, session_id: str, expires_at: Optional[datetime] = None) -> None:
        self.capabilities.write_credential(session_id, expires_at)
        self.capabilities.navigate(self.home_path)

    def logout(self) -> None:
        self.capabilities.clear_credential()
        self.redirect_to_login()
