import os
import re
from typing import Iterable, Optional

from utils.auth_errors import MalformedEmailError, NotWhitelistedError
from utils.logger_factory import new_logger

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(raw_email: Optional[str]) -> str:
    return (raw_email or "").strip().lower()


def load_approved_emails(raw: Optional[str]) -> list[str]:
    """Parse a comma separated allow-list such as ``APPROVED_RECRUITER_EMAILS``."""
    return [normalize_email(item) for item in (raw or "").split(",") if item.strip()]


class WhitelistGuard:
    """Decides whether an email may request a login code."""

    def __init__(self, approved_emails: Iterable[str]):
        self.approved_emails = frozenset(
            normalize_email(email) for email in approved_emails if email and email.strip()
        )

    @classmethod
    def from_env(cls, var_name: str = "APPROVED_RECRUITER_EMAILS") -> "WhitelistGuard":
        return cls(load_approved_emails(os.getenv(var_name)))

    def authorize(self, raw_email: Optional[str]) -> str:
        """
        Return the normalized email if it may request a code.

        Raises:
            MalformedEmailError: missing input or not shaped like local@domain.tld
            NotWhitelistedError: well formed but not on the allow-list
        """
        log = new_logger("authorize")
        email = normalize_email(raw_email)
        if not email:
            raise MalformedEmailError("Email is required")
        if not EMAIL_PATTERN.match(email):
            log.warning(f"Rejected malformed email [{email}]")
            raise MalformedEmailError()
        if email not in self.approved_emails:
            log.warning(f"Unauthorized email attempt [{email}]")
            raise NotWhitelistedError()
        return email
