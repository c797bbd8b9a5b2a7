"""
Process level configuration for the portal API.

Values are read from the environment (and ``.env``) once and handed to the
request handlers as FastAPI dependencies, so tests can swap them with
``app.dependency_overrides``.
"""
import os
from functools import lru_cache

from dotenv import load_dotenv

from services.code_issuer import CodeSender
from services.email_service import send_verification_code
from services.whitelist_guard import WhitelistGuard
from utils.logger_factory import new_logger

load_dotenv()

SESSION_COOKIE_NAME = "recruiter_session"


@lru_cache(maxsize=1)
def get_whitelist_guard() -> WhitelistGuard:
    log = new_logger("get_whitelist_guard")
    guard = WhitelistGuard.from_env()
    if not guard.approved_emails:
        log.warning("APPROVED_RECRUITER_EMAILS is empty, every send-code request will be rejected")
    else:
        log.info(f"Loaded whitelist with {len(guard.approved_emails)} approved emails")
    return guard


def get_code_sender() -> CodeSender:
    return send_verification_code


def cookie_secure() -> bool:
    return os.getenv("SESSION_COOKIE_SECURE", "true").lower() in ("1", "true", "yes")
